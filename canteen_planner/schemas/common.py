from typing import Any, Dict
from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """错误响应格式"""
    success: bool = Field(False, description="请求失败")
    error_code: str = Field(description="错误码")
    message: str = Field(description="错误消息")
    details: Dict[str, Any] = Field(default_factory=dict, description="错误详情")

    model_config = {
        "json_schema_extra": {
            "example": {
                "success": False,
                "error_code": "INVALID_CONSTRAINT_TOKEN",
                "message": "约束令牌解压失败",
                "details": {"reason": "invalid stored block lengths"}
            }
        }
    }


# 路由上声明的通用错误响应
ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "请求参数错误"},
    422: {"model": ErrorResponse, "description": "请求参数验证失败"},
    500: {"model": ErrorResponse, "description": "服务器内部错误"},
}
