"""
店铺评分与客户端身份路由模块
"""

from typing import Optional

from fastapi import APIRouter, Depends, Request

from ...core.database import DatabaseManager, get_db_manager
from ...core.ratelimit import RateLimiter, get_rate_limiter
from ...core.security import SecurityManager, get_client_token, get_security_manager
from ...schemas.canteen import StoreListing
from ...schemas.common import ERROR_RESPONSES
from ...schemas.rating import ClientTokenResponse, FingerprintRequest, RatingRequest
from ...services.rating_service import RatingService
from ...utils.network import get_client_ip

router = APIRouter()


@router.post("/fingerprint", response_model=ClientTokenResponse, responses=ERROR_RESPONSES)
def register_fingerprint(
    req: FingerprintRequest,
    security: SecurityManager = Depends(get_security_manager),
):
    """为浏览器指纹签发客户端令牌"""
    return ClientTokenResponse(token=security.create_client_token(req.fingerprint))


@router.put(
    "/stores/{store_id}/rating",
    response_model=StoreListing,
    responses={
        **ERROR_RESPONSES,
        401: {"description": "客户端令牌无效"},
        404: {"description": "店铺不存在"},
        429: {"description": "请求过于频繁"},
    },
)
def rate_store(
    store_id: str,
    req: RatingRequest,
    request: Request,
    client_token: Optional[str] = Depends(get_client_token),
    db: DatabaseManager = Depends(get_db_manager),
    limiter: RateLimiter = Depends(get_rate_limiter),
    security: SecurityManager = Depends(get_security_manager),
):
    """
    给店铺评分

    依次经过限流、客户端令牌校验，再写入评分；
    返回更新后的店铺及评分汇总
    """
    service = RatingService(db, limiter, security)
    return service.rate_store(store_id, req.rating, client_token, get_client_ip(request))
