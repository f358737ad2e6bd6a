"""
餐单服务
串联约束解码、候选店铺解析、两阶段选择与结果组装
"""

import uuid
from typing import Dict, List, Optional, Sequence

from .catalog_repository import CatalogRepository
from .selection_engine import SelectionEngine
from .store_resolver import StoreResolver
from ..core.database import DatabaseManager, db_manager
from ..core.exceptions import ValidationError
from ..models.plan import MealPlan, PlanConstraints, PlannedMeal, SelectionResult
from ..utils.constraint_token import decode_constraint_token, encode_constraints


def new_plan_id() -> str:
    """生成新的餐单标识，"换一份"即换一个 plan_id"""
    return uuid.uuid4().hex


def plan_path(token: str, plan_id: str) -> str:
    return f"/plan/{token}/{plan_id}"


def budget_used_percentage(budget_used: float, total_budget: float) -> float:
    """
    预算使用百分比，上限100

    Raises:
        ValueError: 花费为负数时
    """
    if budget_used < 0:
        raise ValueError("budget_used 不能为负数")
    if total_budget <= 0:
        return 100.0 if budget_used > 0 else 0.0
    return round(min(100.0, budget_used / total_budget * 100), 2)


def assemble_plan(
    selections: Sequence[SelectionResult],
    budget_used: float,
    constraints: PlanConstraints,
    token: str = "",
    used_fallback: bool = False,
) -> MealPlan:
    """把选择结果组装成输出结构，店铺去掉菜单"""
    selected_menu: List[PlannedMeal] = []
    for selection in selections:
        selected_menu.append(PlannedMeal(
            meal=selection.meal,
            canteen_name=selection.canteen_name,
            store=selection.food_store.summary() if selection.food_store else None,
            picked_meal=selection.picked_meal,
            drink_menu=selection.picked_drink,
            drink_store=selection.drink_store.summary() if selection.drink_store else None,
        ))

    return MealPlan(
        plan_id=constraints.plan_id,
        token=token,
        selected_menu=selected_menu,
        budget_used=budget_used,
        total_planned_budgets=constraints.total_planned_budgets,
        budget_used_percentage=budget_used_percentage(budget_used, constraints.total_planned_budgets),
        used_fallback=used_fallback,
    )


class PlanService:
    """餐单服务"""

    def __init__(self, db: Optional[DatabaseManager] = None):
        self.db = db or db_manager
        self.repository = CatalogRepository(self.db)
        self.resolver = StoreResolver(self.repository)

    def create_plan_link(self, constraints: PlanConstraints) -> Dict[str, str]:
        """
        为规划请求生成可分享的链接

        Returns:
            dict: {"token", "plan_id", "path"}
        """
        token = encode_constraints(constraints)
        plan_id = new_plan_id()
        self.db.log_action("plan_created", {
            "plan_id": plan_id,
            "meals_planning_amount": constraints.meals_planning_amount,
            "total_planned_budgets": constraints.total_planned_budgets,
        })
        return {"token": token, "plan_id": plan_id, "path": plan_path(token, plan_id)}

    def generate_plan(self, token: str, plan_id: str) -> MealPlan:
        """
        按令牌和 plan_id 生成餐单，同样的输入总是得到同样的餐单

        Raises:
            InvalidConstraintTokenError: 令牌无法解码时
            ValidationError: plan_id 为空时
        """
        if not plan_id:
            raise ValidationError("plan_id 不能为空")
        constraints = decode_constraint_token(token, plan_id)
        return self.generate_plan_for(constraints, token)

    def generate_plan_for(self, constraints: PlanConstraints, token: str = "") -> MealPlan:
        """对已解码的约束执行完整的规划流程"""
        engine = SelectionEngine(constraints)

        canteens = engine.order_canteens(self.resolver.resolve_canteens(constraints))
        canteen_names = {canteen.id: canteen.name for canteen in canteens}
        candidates = self.resolver.resolve(constraints, [canteen.id for canteen in canteens])

        selections, budget_used, used_fallback = engine.run(candidates, canteen_names)
        return assemble_plan(selections, budget_used, constraints, token, used_fallback)
