"""
食堂浏览路由模块
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from ...config.settings import settings
from ...core.database import DatabaseManager, get_db_manager
from ...core.exceptions import ValidationError
from ...core.security import get_optional_client_fingerprint
from ...models.base import PaginatedResponse, PaginationParams
from ...models.plan import PlanFilters
from ...schemas.canteen import CanteenBrowseQuery
from ...schemas.common import ERROR_RESPONSES
from ...services.canteen_service import CanteenService

router = APIRouter()


@router.get("", response_model=PaginatedResponse, responses=ERROR_RESPONSES)
def list_canteens(
    page: int = Query(1, ge=1, description="页码"),
    size: int = Query(settings.default_page_size, ge=1, le=100, description="每页食堂数"),
    canteen_ids: Optional[str] = Query(None, description="逗号分隔的食堂ID"),
    min_price: float = Query(settings.default_price_range[0], ge=0, description="最低价格"),
    max_price: float = Query(settings.default_price_range[1], ge=0, description="最高价格"),
    filters: PlanFilters = Depends(),
    fingerprint: Optional[str] = Depends(get_optional_client_fingerprint),
    db: DatabaseManager = Depends(get_db_manager),
):
    """
    获取食堂浏览列表

    菜单按价格区间与分类过滤，没有可见菜单的店铺和没有可见店铺的食堂不返回；
    携带有效的 X-Client-Token 时，每家店铺附带自己的评分
    """
    if min_price > max_price:
        raise ValidationError("价格区间无效", details={"min_price": min_price, "max_price": max_price})

    query = CanteenBrowseQuery(
        canteen_ids=[c.strip() for c in (canteen_ids or "").split(",") if c.strip()],
        min_price=min_price,
        max_price=max_price,
        filters=filters,
        pagination=PaginationParams(page=page, size=size),
    )
    return CanteenService(db).browse(query, fingerprint)
