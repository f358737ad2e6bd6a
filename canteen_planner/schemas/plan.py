"""
餐单相关的请求/响应模式
"""

import datetime as dt
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from ..config.settings import settings
from ..models.canteen import TIME_PATTERN
from ..models.plan import MAX_MEALS_PER_PLAN, MealSlot, PlanConstraints, PlanFilters


class MealSlotRequest(BaseModel):
    """单餐的日期与时间，都可省略"""
    date: Optional[dt.date] = Field(None, description="日期 YYYY-MM-DD")
    time: Optional[str] = Field(None, pattern=TIME_PATTERN, description="时间 HH:MM")


class PlanCreateRequest(BaseModel):
    """餐单创建请求"""
    price_range: List[float] = Field(default_factory=lambda: list(settings.default_price_range),
                                     min_length=2, max_length=2, description="单品价格区间 [min, max]")
    selected_canteens: List[str] = Field(default_factory=list, description="选中的食堂ID，空表示全部")
    filters: PlanFilters = Field(default_factory=PlanFilters, description="过滤条件")
    with_beverage: bool = Field(True, description="是否搭配饮品")
    total_planned_budgets: float = Field(..., ge=0, description="总预算")
    meals_planning_amount: int = Field(1, ge=1, le=MAX_MEALS_PER_PLAN, description="餐数")
    meals: List[MealSlotRequest] = Field(default_factory=list, description="各餐日期时间，不足的餐次不限时段")

    model_config = {
        "json_schema_extra": {
            "example": {
                "price_range": [20, 60],
                "selected_canteens": [],
                "filters": {"noodles": True},
                "with_beverage": True,
                "total_planned_budgets": 100,
                "meals_planning_amount": 2,
                "meals": [{"date": "2025-03-03", "time": "12:00"}, {"time": "18:00"}]
            }
        }
    }

    @field_validator("price_range")
    @classmethod
    def validate_price_range(cls, v):
        if v[0] < 0 or v[0] > v[1]:
            raise ValueError("价格区间无效")
        return v

    @field_validator("selected_canteens")
    @classmethod
    def validate_canteen_ids(cls, v):
        # 食堂ID会以逗号拼接进令牌
        for canteen_id in v:
            if not canteen_id or "," in canteen_id or ";" in canteen_id:
                raise ValueError(f"食堂ID无效: {canteen_id!r}")
        return v

    @model_validator(mode="after")
    def validate_meals(self):
        if len(self.meals) > self.meals_planning_amount:
            raise ValueError("餐次时段数量超过餐数")
        return self

    def to_constraints(self, plan_id: str = "") -> PlanConstraints:
        """转换为规划约束"""
        slots = list(self.meals) + [MealSlotRequest()] * (self.meals_planning_amount - len(self.meals))
        return PlanConstraints(
            price_range=(self.price_range[0], self.price_range[1]),
            selected_canteens=tuple(self.selected_canteens),
            filters=self.filters,
            with_beverage=self.with_beverage,
            total_planned_budgets=self.total_planned_budgets,
            meals_planning_amount=self.meals_planning_amount,
            meals=tuple(
                MealSlot(meal_number=index, date=slot.date, time=slot.time)
                for index, slot in enumerate(slots)
            ),
            plan_id=plan_id,
        )


class PlanLinkResponse(BaseModel):
    """餐单链接"""
    token: str = Field(..., description="约束令牌")
    plan_id: str = Field(..., description="餐单标识")
    path: str = Field(..., description="可分享的餐单路径")
