"""
自定义异常类
提供更精确的错误处理和异常信息
"""

from typing import Any, Dict, Optional


class BaseApplicationError(Exception):
    """应用基础异常类"""

    def __init__(
        self,
        message: str,
        error_code: str = None,
        details: Dict[str, Any] = None
    ):
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)


class DatabaseError(BaseApplicationError):
    """数据库相关异常"""

    def __init__(self, message: str, details: Dict[str, Any] = None):
        super().__init__(message, "DATABASE_ERROR", details)


class AuthenticationError(BaseApplicationError):
    """认证相关异常"""
    pass


class InvalidClientTokenError(AuthenticationError):
    """客户端指纹令牌无效"""

    def __init__(self, message: str = "客户端令牌无效或缺失"):
        super().__init__(message, "INVALID_CLIENT_TOKEN")


class ValidationError(BaseApplicationError):
    """数据验证异常"""

    def __init__(self, message: str, error_code: str = "VALIDATION_ERROR",
                 details: Dict[str, Any] = None):
        super().__init__(message, error_code, details)


class InvalidConstraintTokenError(ValidationError):
    """餐单约束令牌无法解码"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "INVALID_CONSTRAINT_TOKEN", details)


class BusinessLogicError(BaseApplicationError):
    """业务逻辑异常"""
    pass


class StoreNotFoundError(BusinessLogicError):
    """店铺不存在异常"""

    def __init__(self, store_id: str):
        super().__init__("店铺不存在", "STORE_NOT_FOUND", {"store_id": store_id})


class RateLimitExceededError(BaseApplicationError):
    """请求频率超限"""

    def __init__(self, message: str = "请求过于频繁，请稍后重试"):
        super().__init__(message, "RATE_LIMIT_EXCEEDED")
