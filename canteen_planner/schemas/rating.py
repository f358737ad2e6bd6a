"""
评分与客户端身份相关的请求/响应模式
"""

from pydantic import BaseModel, Field


class FingerprintRequest(BaseModel):
    """客户端指纹登记请求"""
    fingerprint: str = Field(..., min_length=1, max_length=256, description="浏览器指纹")


class ClientTokenResponse(BaseModel):
    """客户端令牌"""
    token: str = Field(..., description="签名后的客户端令牌，放在 X-Client-Token 请求头中")


class RatingRequest(BaseModel):
    """店铺评分请求"""
    rating: float = Field(..., ge=0, le=5, description="评分 0-5")
