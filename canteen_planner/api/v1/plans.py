"""
餐单路由模块
生成可分享的餐单链接，并按链接中的令牌与 plan_id 计算餐单
"""

from fastapi import APIRouter, Depends
from fastapi.responses import RedirectResponse

from ...core.database import DatabaseManager, get_db_manager
from ...core.exceptions import InvalidConstraintTokenError
from ...models.plan import MealPlan
from ...schemas.common import ERROR_RESPONSES
from ...schemas.plan import PlanCreateRequest, PlanLinkResponse
from ...services.plan_service import PlanService

router = APIRouter()

# 挂在根路径下的分享链接 /plan/{token}/{plan_id}
share_router = APIRouter()


@router.post("", response_model=PlanLinkResponse, responses=ERROR_RESPONSES)
def create_plan(req: PlanCreateRequest, db: DatabaseManager = Depends(get_db_manager)):
    """
    创建餐单链接

    约束编码进令牌，并生成新的 plan_id；"换一份"时保留令牌、换 plan_id 即可
    """
    return PlanService(db).create_plan_link(req.to_constraints())


@router.get("/{token}/{plan_id}", response_model=MealPlan, responses=ERROR_RESPONSES)
def get_plan(token: str, plan_id: str, db: DatabaseManager = Depends(get_db_manager)):
    """按令牌与 plan_id 计算餐单，令牌无效时返回 400"""
    return PlanService(db).generate_plan(token, plan_id)


@share_router.get("/plan/{token}/{plan_id}", response_model=MealPlan, tags=["餐单"])
def view_shared_plan(token: str, plan_id: str, db: DatabaseManager = Depends(get_db_manager)):
    """分享链接，令牌无效时重定向到首页"""
    try:
        return PlanService(db).generate_plan(token, plan_id)
    except InvalidConstraintTokenError:
        return RedirectResponse(url="/", status_code=302)
