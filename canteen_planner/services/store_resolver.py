"""
候选店铺解析
按价格、子分类、空调等条件查询店铺，再与每一餐的营业时间求交集
"""

from typing import List, Optional, Sequence

from .catalog_repository import CatalogRepository
from ..models.canteen import Canteen, StoreSummary
from ..models.plan import MealCandidates, MealSlot, PlanConstraints

# 打烊前30分钟不再推荐，留出用餐时间
PRE_CLOSE_BUFFER_MINUTES = 30


def is_within_opening_hours(meal_minutes: int, open_minutes: int, close_minutes: int) -> bool:
    return open_minutes <= meal_minutes <= close_minutes - PRE_CLOSE_BUFFER_MINUTES


def is_store_open_for(store: StoreSummary, meal: MealSlot) -> bool:
    """
    判断店铺在某一餐是否可用

    - 有日期：当天必须有营业时间；有时间时还须落在 [开门, 打烊-30] 内
    - 无日期有时间：任意一天的营业时间包含该时间即可
    - 都没有：总是可用
    """
    meal_minutes = meal.time_in_minutes
    day = meal.day_of_week

    if day is not None:
        hours = store.hours_for(day)
        if hours is None:
            return False
        if meal_minutes is None:
            return True
        return is_within_opening_hours(meal_minutes, hours.start_minutes, hours.end_minutes)

    if meal_minutes is None:
        return True
    return any(
        is_within_opening_hours(meal_minutes, hours.start_minutes, hours.end_minutes)
        for hours in store.opening_hours
    )


class StoreResolver:
    """候选店铺解析器"""

    def __init__(self, repository: Optional[CatalogRepository] = None):
        self.repository = repository or CatalogRepository()

    def resolve_canteens(self, constraints: PlanConstraints) -> List[Canteen]:
        """按选中食堂、空调偏好、价格区间内有食物筛选食堂"""
        return self.repository.find_canteens(
            ids=list(constraints.selected_canteens),
            with_air_conditioning=constraints.filters.air_conditioning_preference(),
            food_price_range=constraints.price_range,
        )

    def resolve(self, constraints: PlanConstraints, canteen_ids: Sequence[str]) -> List[MealCandidates]:
        """
        计算每一餐的候选食物店铺和饮品店铺

        Args:
            constraints: 规划约束
            canteen_ids: 已按食堂级条件筛选过的食堂ID

        Returns:
            List[MealCandidates]: 与 constraints.meals 一一对应
        """
        food_stores = self.repository.find_stores(
            canteen_ids,
            food_in_range=constraints.price_range,
            sub_category_in=constraints.filters.active_sub_categories(),
        )
        drink_stores = self.repository.find_stores(
            canteen_ids,
            drink_in_range=constraints.price_range,
        )

        return [
            MealCandidates(
                meal=meal,
                food_stores=[s for s in food_stores if is_store_open_for(s, meal)],
                drink_stores=[s for s in drink_stores if is_store_open_for(s, meal)],
            )
            for meal in constraints.meals
        ]
