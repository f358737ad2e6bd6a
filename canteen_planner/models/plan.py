"""
餐单规划相关数据模型
"""

import datetime as dt
from typing import List, Optional, Tuple

from pydantic import Field, computed_field, field_validator, model_validator

from .base import BaseEntity, ValueObject
from .canteen import (
    FOOD_SUB_CATEGORIES,
    OTHERS_SUB_CATEGORY,
    TIME_PATTERN,
    WEEKDAYS,
    DayOfWeek,
    MenuItem,
    Store,
    StoreSummary,
    time_to_minutes,
)

MAX_MEALS_PER_PLAN = 5


class PlanFilters(ValueObject):
    """固定结构的布尔过滤条件"""
    with_aircon: bool = False
    no_aircon: bool = False
    noodles: bool = False
    soup_curry: bool = False
    somtum_northeastern: bool = False
    chicken_rice: bool = False
    rice_curry: bool = False
    steak: bool = False
    japanese: bool = False
    beverage: bool = False
    others: bool = False

    def active_sub_categories(self) -> Tuple[str, ...]:
        """已启用的食物子分类"""
        names = FOOD_SUB_CATEGORIES + (OTHERS_SUB_CATEGORY,)
        return tuple(name for name in names if getattr(self, name))

    def air_conditioning_preference(self) -> Optional[bool]:
        """空调偏好：两者都选或都不选时不过滤"""
        if self.with_aircon == self.no_aircon:
            return None
        return self.with_aircon


class MealSlot(ValueObject):
    """一顿饭的时段；无日期时间时匹配任意营业时间"""
    meal_number: int = Field(..., ge=0, description="从0开始的餐次序号")
    date: Optional[dt.date] = Field(None, description="日期")
    time: Optional[str] = Field(None, pattern=TIME_PATTERN, description="时间 HH:MM")

    @computed_field(alias="dayOfWeek")
    @property
    def day_of_week(self) -> Optional[DayOfWeek]:
        if self.date is None:
            return None
        return WEEKDAYS[self.date.weekday()]

    @property
    def time_in_minutes(self) -> Optional[int]:
        if self.time is None:
            return None
        return time_to_minutes(self.time)


class PlanConstraints(ValueObject):
    """解码后的规划请求"""
    price_range: Tuple[float, float] = Field(..., description="单品价格区间 [min, max]")
    selected_canteens: Tuple[str, ...] = Field(default=(), description="选中的食堂ID，空表示全部")
    filters: PlanFilters = Field(default_factory=PlanFilters)
    with_beverage: bool = Field(True, description="是否搭配饮品")
    total_planned_budgets: float = Field(..., ge=0, description="总预算")
    meals_planning_amount: int = Field(..., ge=1, le=MAX_MEALS_PER_PLAN, description="餐数")
    meals: Tuple[MealSlot, ...] = Field(..., description="按序号排列的餐次")
    plan_id: str = Field("", description="决定随机选择的餐单标识")

    @field_validator("price_range")
    @classmethod
    def validate_price_range(cls, v):
        if v[0] < 0 or v[0] > v[1]:
            raise ValueError("价格区间无效")
        return v

    @model_validator(mode="after")
    def validate_meals(self):
        if len(self.meals) != self.meals_planning_amount:
            raise ValueError("餐次数量与 meals_planning_amount 不一致")
        for index, meal in enumerate(self.meals):
            if meal.meal_number != index:
                raise ValueError("餐次序号必须从0连续递增")
        return self


class MealCandidates(BaseEntity):
    """某一餐次的候选店铺"""
    meal: MealSlot
    food_stores: List[Store] = Field(default_factory=list)
    drink_stores: List[Store] = Field(default_factory=list)


class SelectionResult(BaseEntity):
    """某一餐次的选择结果"""
    meal: MealSlot
    canteen_name: Optional[str] = None
    food_store: Optional[Store] = None
    drink_store: Optional[Store] = None
    picked_meal: Optional[MenuItem] = None
    picked_drink: Optional[MenuItem] = None

    @property
    def cost(self) -> float:
        total = 0.0
        if self.picked_meal is not None:
            total += self.picked_meal.price
        if self.picked_drink is not None:
            total += self.picked_drink.price
        return total


class PlannedMeal(BaseEntity):
    """输出给渲染层的一餐（店铺不含菜单）"""
    meal: MealSlot
    canteen_name: Optional[str] = None
    store: Optional[StoreSummary] = None
    picked_meal: Optional[MenuItem] = None
    drink_menu: Optional[MenuItem] = None
    drink_store: Optional[StoreSummary] = None


class MealPlan(BaseEntity):
    """完整餐单"""
    plan_id: str
    token: str
    selected_menu: List[PlannedMeal]
    budget_used: float
    total_planned_budgets: float
    budget_used_percentage: float
    used_fallback: bool = False

    @computed_field
    @property
    def has_any_meal(self) -> bool:
        return any(item.picked_meal is not None for item in self.selected_menu)
