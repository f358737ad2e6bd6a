"""
店铺与菜品选择引擎

两阶段：
- 阶段A：以 plan_id 派生的种子确定性地随机挑选店铺和菜品，尽量避免同一餐单内重复
- 阶段B：阶段A超预算时，沿用阶段A的店铺，每餐改选最便宜的合格菜品和饮品

每次计算新建一个引擎实例，已用集合不跨请求共享。
"""

import math
from typing import Callable, Dict, List, Optional, Sequence, Set, Tuple, TypeVar

from ..models.canteen import TOPPINGS_SUB_CATEGORY, Canteen, MenuItem, Store
from ..models.plan import MealCandidates, PlanConstraints, SelectionResult
from ..utils.prng import hash_to_seed, seeded_pick, seeded_shuffle

T = TypeVar("T")


def total_cost(selections: Sequence[SelectionResult]) -> float:
    """餐单中所有已选菜品与饮品的价格之和，保留两位小数"""
    return round(math.fsum(selection.cost for selection in selections), 2)


class SelectionEngine:
    """单次餐单计算的选择引擎"""

    def __init__(self, constraints: PlanConstraints):
        self.constraints = constraints
        self.plan_id = constraints.plan_id
        self._used_food_stores: Set[str] = set()
        self._used_drink_stores: Set[str] = set()
        self._used_meals: Set[str] = set()
        self._used_drinks: Set[str] = set()

    def order_canteens(self, canteens: Sequence[Canteen]) -> List[Canteen]:
        """以 plan_id 为种子打乱食堂顺序"""
        if len(canteens) <= 1:
            return list(canteens)
        return seeded_shuffle(canteens, hash_to_seed(self.plan_id))

    def eligible_food_items(self, store: Store) -> List[MenuItem]:
        price_range = self.constraints.price_range
        sub_categories = self.constraints.filters.active_sub_categories()
        return [
            item for item in store.menu
            if not item.is_drink
            and item.in_price_range(price_range)
            and item.matches_sub_categories(sub_categories)
        ]

    def eligible_drink_items(self, store: Store, within_price_range: bool = True) -> List[MenuItem]:
        price_range = self.constraints.price_range
        return [
            item for item in store.menu
            if item.is_drink
            and item.sub_category != TOPPINGS_SUB_CATEGORY
            and (not within_price_range or item.in_price_range(price_range))
        ]

    @staticmethod
    def _pick_unused(
        candidates: Sequence[T],
        seed_prefix: str,
        used: Set[str],
        key: Callable[[T], str],
    ) -> T:
        """
        按种子挑选，命中已用项时换偏移量重试

        最多尝试 len(candidates)+1 次，仍然重复则接受重复
        """
        picked = None
        for offset in range(len(candidates) + 1):
            picked = seeded_pick(candidates, hash_to_seed(f"{seed_prefix}{offset}"))
            if key(picked) not in used:
                break
        used.add(key(picked))
        return picked

    def select_stores(
        self,
        candidates: Sequence[MealCandidates],
        canteen_names: Dict[str, str],
    ) -> List[SelectionResult]:
        """为每一餐挑选食物店铺，并在同一食堂内挑选饮品店铺"""
        selections = []
        for candidate in candidates:
            meal = candidate.meal
            if not candidate.food_stores:
                selections.append(SelectionResult(meal=meal))
                continue

            food_store = self._pick_unused(
                candidate.food_stores,
                f"{self.plan_id}:{meal.meal_number}:store:",
                self._used_food_stores,
                key=lambda store: store.id,
            )

            same_canteen = [s for s in candidate.drink_stores if s.canteen_id == food_store.canteen_id]
            drink_store = None
            if same_canteen:
                drink_store = self._pick_unused(
                    same_canteen,
                    f"{self.plan_id}:{meal.meal_number}:drink-store:",
                    self._used_drink_stores,
                    key=lambda store: store.id,
                )

            selections.append(SelectionResult(
                meal=meal,
                canteen_name=canteen_names.get(food_store.canteen_id),
                food_store=food_store,
                drink_store=drink_store,
            ))
        return selections

    def pick_items(self, selection: SelectionResult) -> SelectionResult:
        """阶段A：确定性随机挑选菜品和饮品"""
        food_store = selection.food_store
        if food_store is None:
            return selection

        picked_meal: Optional[MenuItem] = None
        food_options = self.eligible_food_items(food_store)
        if food_options:
            picked_meal = self._pick_unused(
                food_options,
                f"{food_store.id}:{self.plan_id}:meal:",
                self._used_meals,
                key=lambda item: item.dedup_key,
            )

        picked_drink: Optional[MenuItem] = None
        drink_store = selection.drink_store
        if self.constraints.with_beverage and drink_store is not None:
            drink_options = self.eligible_drink_items(drink_store)
            tag = "drink"
            if not drink_options:
                # 价格区间内只有配料时，放宽价格限制
                drink_options = self.eligible_drink_items(drink_store, within_price_range=False)
                tag = "drink-relaxed"
            if drink_options:
                picked_drink = self._pick_unused(
                    drink_options,
                    f"{food_store.id}:{self.plan_id}:{tag}:",
                    self._used_drinks,
                    key=lambda item: item.dedup_key,
                )

        return selection.model_copy(update={"picked_meal": picked_meal, "picked_drink": picked_drink})

    def pick_cheapest(self, selection: SelectionResult) -> SelectionResult:
        """阶段B：每餐独立选最便宜的合格菜品和饮品，允许跨餐重复"""
        food_store = selection.food_store
        if food_store is None:
            return selection

        food_options = self.eligible_food_items(food_store)
        picked_meal = min(food_options, key=lambda item: item.price) if food_options else None

        picked_drink = None
        if self.constraints.with_beverage and selection.drink_store is not None:
            drink_options = self.eligible_drink_items(selection.drink_store)
            if drink_options:
                picked_drink = min(drink_options, key=lambda item: item.price)

        return selection.model_copy(update={"picked_meal": picked_meal, "picked_drink": picked_drink})

    def run(
        self,
        candidates: Sequence[MealCandidates],
        canteen_names: Dict[str, str],
    ) -> Tuple[List[SelectionResult], float, bool]:
        """
        执行两阶段选择

        Returns:
            tuple: (每餐选择结果, 实际花费, 是否使用了最便宜回退)
        """
        stores = self.select_stores(candidates, canteen_names)

        randomized = [self.pick_items(selection) for selection in stores]
        randomized_total = total_cost(randomized)
        if randomized_total <= self.constraints.total_planned_budgets:
            return randomized, randomized_total, False

        fallback = [self.pick_cheapest(selection) for selection in stores]
        return fallback, total_cost(fallback), True
