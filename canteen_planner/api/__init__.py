"""
API routes and endpoints.
"""

from fastapi import APIRouter
from .v1 import canteens, plans, ratings
from .v1.plans import share_router

api_router = APIRouter()

# 包含所有v1路由
api_router.include_router(canteens.router, prefix="/canteens", tags=["食堂"])
api_router.include_router(plans.router, prefix="/plans", tags=["餐单"])
api_router.include_router(ratings.router, prefix="", tags=["评分"])

__all__ = ["api_router", "share_router"]
