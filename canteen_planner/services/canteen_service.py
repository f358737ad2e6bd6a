"""
食堂浏览服务
按食堂级条件和菜单级条件过滤目录，附带评分汇总并分页
"""

from typing import Dict, List, Optional

from .catalog_repository import CatalogRepository
from ..core.database import DatabaseManager, db_manager
from ..models.base import PaginatedResponse
from ..models.canteen import FOOD_SUB_CATEGORIES, MenuItem, Store
from ..models.plan import PlanFilters
from ..schemas.canteen import CanteenBrowseQuery, CanteenListing, StoreListing


def is_menu_item_visible(item: MenuItem, filters: PlanFilters) -> bool:
    """
    浏览列表的菜单过滤

    饮品只受 beverage 控制；具名子分类的食物受对应过滤项控制，
    其余食物受 others 控制；没有任何分类过滤时全部显示
    """
    if not filters.active_sub_categories() and not filters.beverage:
        return True
    if item.is_drink:
        return filters.beverage
    if item.sub_category in FOOD_SUB_CATEGORIES:
        return getattr(filters, item.sub_category)
    return filters.others


def summarize_ratings(ratings: Dict[str, float], fingerprint: Optional[str] = None) -> dict:
    """评分汇总：平均分（两位小数）、人数、当前客户端的评分"""
    count = len(ratings)
    average = round(sum(ratings.values()) / count, 2) if count else 0
    return {
        "average_rating": average,
        "rating_count": count,
        "user_rating": ratings.get(fingerprint) if fingerprint else None,
    }


def build_store_listing(store: Store, ratings: Dict[str, float],
                        fingerprint: Optional[str] = None,
                        menu: Optional[List[MenuItem]] = None) -> StoreListing:
    data = store.model_dump()
    if menu is not None:
        data["menu"] = [item.model_dump() for item in menu]
    data.update(summarize_ratings(ratings, fingerprint))
    return StoreListing.model_validate(data)


class CanteenService:
    """食堂浏览服务"""

    def __init__(self, db: Optional[DatabaseManager] = None):
        self.db = db or db_manager
        self.repository = CatalogRepository(self.db)

    def browse(self, query: CanteenBrowseQuery, fingerprint: Optional[str] = None) -> PaginatedResponse:
        """
        获取浏览列表

        Args:
            query: 浏览条件
            fingerprint: 当前客户端指纹，用于标出自己的评分

        Returns:
            PaginatedResponse: 按食堂分页，去掉了没有可见店铺的食堂
        """
        canteens, ratings = self.repository.list_catalog(
            ids=query.canteen_ids,
            with_air_conditioning=query.filters.air_conditioning_preference(),
        )

        listings: List[CanteenListing] = []
        for canteen in canteens:
            stores = []
            for store in canteen.stores:
                menu = [
                    item for item in store.menu
                    if item.in_price_range(query.price_range) and is_menu_item_visible(item, query.filters)
                ]
                if not menu:
                    continue
                stores.append(build_store_listing(store, ratings.get(store.id, {}), fingerprint, menu))
            if stores:
                listings.append(CanteenListing(
                    id=canteen.id,
                    name=canteen.name,
                    with_air_conditioning=canteen.with_air_conditioning,
                    stores=stores,
                ))

        pagination = query.pagination
        page_items = listings[pagination.offset:pagination.offset + pagination.size]
        return PaginatedResponse.create(page_items, len(listings), pagination)
