"""
Business logic services.
Contains service layer implementations for core business operations.
"""

from .canteen_service import CanteenService
from .catalog_repository import CatalogRepository
from .plan_service import PlanService
from .rating_service import RatingService
from .selection_engine import SelectionEngine
from .store_resolver import StoreResolver

__all__ = [
    "CanteenService",
    "CatalogRepository",
    "PlanService",
    "RatingService",
    "SelectionEngine",
    "StoreResolver",
]
