"""
客户端身份令牌
把浏览器指纹与随机 nonce 一起签名为 JWT，评分接口据此识别客户端
"""

import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt
from fastapi import Depends, Header

from .exceptions import InvalidClientTokenError
from ..config.settings import settings

CLIENT_TOKEN_HEADER = "X-Client-Token"


class SecurityManager:
    """客户端令牌的签发与校验"""

    def __init__(self, secret: Optional[str] = None, algorithm: Optional[str] = None,
                 expire_days: Optional[int] = None):
        self.secret = secret or settings.client_token_secret
        self.algorithm = algorithm or settings.client_token_algorithm
        self.expire_days = expire_days if expire_days is not None else settings.client_token_expire_days

    def create_client_token(self, fingerprint: str) -> str:
        """签发客户端令牌"""
        if not fingerprint:
            raise InvalidClientTokenError("指纹不能为空")
        now = datetime.now(timezone.utc)
        payload = {
            "fingerprint": fingerprint,
            "nonce": secrets.token_hex(16),
            "iat": now,
            "exp": now + timedelta(days=self.expire_days),
        }
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def decode_client_token(self, token: str) -> Dict[str, Any]:
        """
        校验并解码客户端令牌

        Raises:
            InvalidClientTokenError: 签名错误、过期或缺少字段时
        """
        if not token:
            raise InvalidClientTokenError()
        try:
            payload = jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except jwt.ExpiredSignatureError:
            raise InvalidClientTokenError("客户端令牌已过期")
        except jwt.InvalidTokenError as e:
            raise InvalidClientTokenError(f"客户端令牌无效: {e}")

        if not payload.get("fingerprint") or not payload.get("nonce"):
            raise InvalidClientTokenError("客户端令牌缺少必要字段")
        return payload

    def verify_client_token(self, token: str) -> str:
        """校验令牌并返回其中的指纹"""
        return self.decode_client_token(token)["fingerprint"]

    @staticmethod
    def peek_fingerprint(token: Optional[str]) -> str:
        """不校验签名读取指纹，只用作限流的键"""
        if not token:
            return ""
        try:
            payload = jwt.decode(token, options={"verify_signature": False})
        except jwt.InvalidTokenError:
            return ""
        fingerprint = payload.get("fingerprint")
        return fingerprint if isinstance(fingerprint, str) else ""


# 全局安全管理器实例
security_manager = SecurityManager()


def get_security_manager() -> SecurityManager:
    """FastAPI 依赖：返回全局安全管理器"""
    return security_manager


async def get_client_token(
    x_client_token: Optional[str] = Header(default=None, alias=CLIENT_TOKEN_HEADER)
) -> Optional[str]:
    """读取原始客户端令牌"""
    return x_client_token


async def get_optional_client_fingerprint(
    x_client_token: Optional[str] = Header(default=None, alias=CLIENT_TOKEN_HEADER),
    security: SecurityManager = Depends(get_security_manager),
) -> Optional[str]:
    """令牌有效时返回指纹，否则返回 None（浏览接口用来标出自己的评分）"""
    if not x_client_token:
        return None
    try:
        return security.verify_client_token(x_client_token)
    except InvalidClientTokenError:
        return None
