"""
食堂浏览列表的查询与响应模式
"""

from typing import List, Optional, Tuple

from pydantic import BaseModel, Field, model_validator

from ..models.base import PaginationParams
from ..models.canteen import Store
from ..models.plan import PlanFilters


class CanteenBrowseQuery(BaseModel):
    """浏览列表查询条件"""
    canteen_ids: List[str] = Field(default_factory=list, description="选中的食堂ID，空表示全部")
    min_price: float = Field(..., ge=0, description="最低价格")
    max_price: float = Field(..., ge=0, description="最高价格")
    filters: PlanFilters = Field(default_factory=PlanFilters, description="过滤条件")
    pagination: PaginationParams = Field(default_factory=PaginationParams)

    @model_validator(mode="after")
    def validate_price_range(self):
        if self.min_price > self.max_price:
            raise ValueError("价格区间无效")
        return self

    @property
    def price_range(self) -> Tuple[float, float]:
        return (self.min_price, self.max_price)


class StoreListing(Store):
    """浏览列表中的店铺，菜单已按条件过滤，附带评分汇总"""
    average_rating: float = Field(0, description="平均评分，保留两位小数")
    rating_count: int = Field(0, description="评分人数")
    user_rating: Optional[float] = Field(None, description="当前客户端的评分")


class CanteenListing(BaseModel):
    """浏览列表中的食堂"""
    id: str = Field(..., description="食堂ID")
    name: str = Field(..., description="食堂名称")
    with_air_conditioning: bool = Field(..., description="是否有空调")
    stores: List[StoreListing] = Field(default_factory=list, description="可见店铺")
