"""
目录数据访问层
食堂、店铺、菜单、营业时间与评分的读取，以及评分的 upsert 和目录导入

餐单生成只依赖这里的只读查询；查询数量与餐次数量无关。
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from ..core.database import DatabaseManager, db_manager
from ..core.exceptions import StoreNotFoundError
from ..models.canteen import (
    FOOD_SUB_CATEGORIES,
    OTHERS_SUB_CATEGORY,
    Canteen,
    CatalogDocument,
    MenuCategory,
    Store,
)


def _placeholders(values: Sequence[Any]) -> str:
    return ",".join(["?"] * len(values))


def _sub_category_clause(sub_categories: Sequence[str]) -> Tuple[str, list]:
    """子分类过滤的 SQL 片段，与 MenuItem.matches_sub_categories 规则一致"""
    named = [c for c in sub_categories if c != OTHERS_SUB_CATEGORY]
    parts, params = [], []
    if named:
        parts.append(f"mi.sub_category IN ({_placeholders(named)})")
        params.extend(named)
    if OTHERS_SUB_CATEGORY in sub_categories:
        parts.append(
            f"(mi.sub_category IS NULL OR mi.sub_category NOT IN ({_placeholders(FOOD_SUB_CATEGORIES)}))"
        )
        params.extend(FOOD_SUB_CATEGORIES)
    return "(" + " OR ".join(parts) + ")", params


class CatalogRepository:
    """目录仓储"""

    def __init__(self, db: Optional[DatabaseManager] = None):
        self.db = db or db_manager

    def count_canteens(self) -> int:
        row = self.db.execute_one("SELECT COUNT(*) FROM canteens")
        return row[0] if row else 0

    def find_canteens(
        self,
        ids: Optional[Sequence[str]] = None,
        with_air_conditioning: Optional[bool] = None,
        food_price_range: Optional[Sequence[float]] = None,
        include_stores: bool = False,
    ) -> List[Canteen]:
        """
        查询食堂

        Args:
            ids: 食堂ID过滤，为空表示全部
            with_air_conditioning: 空调过滤，None 表示不过滤
            food_price_range: 只保留至少有一家店卖该价格区间内食物的食堂
            include_stores: 是否附带店铺（含菜单和营业时间）

        Returns:
            List[Canteen]: 按ID排序的食堂列表
        """
        query = "SELECT c.id, c.name, c.with_air_conditioning FROM canteens c WHERE 1=1"
        params: list = []

        if ids:
            query += f" AND c.id IN ({_placeholders(ids)})"
            params.extend(ids)
        if with_air_conditioning is not None:
            query += " AND c.with_air_conditioning = ?"
            params.append(with_air_conditioning)
        if food_price_range is not None:
            query += """
            AND EXISTS (
                SELECT 1 FROM stores s JOIN menu_items mi ON mi.store_id = s.id
                WHERE s.canteen_id = c.id AND mi.category = 'FOOD' AND mi.price BETWEEN ? AND ?
            )"""
            params.extend([food_price_range[0], food_price_range[1]])
        query += " ORDER BY c.id"

        canteens = [
            Canteen(id=row["id"], name=row["name"], with_air_conditioning=row["with_air_conditioning"])
            for row in self.db.fetch_dicts(query, params)
        ]
        if include_stores and canteens:
            stores = self.find_stores([c.id for c in canteens])
            by_canteen: Dict[str, List[Store]] = {}
            for store in stores:
                by_canteen.setdefault(store.canteen_id, []).append(store)
            canteens = [
                c.model_copy(update={"stores": by_canteen.get(c.id, [])}) for c in canteens
            ]
        return canteens

    def find_stores(
        self,
        canteen_ids: Sequence[str],
        food_in_range: Optional[Sequence[float]] = None,
        drink_in_range: Optional[Sequence[float]] = None,
        sub_category_in: Optional[Sequence[str]] = None,
    ) -> List[Store]:
        """
        查询指定食堂内的店铺（含完整菜单和营业时间）

        Args:
            canteen_ids: 允许的食堂ID；为空时没有任何店铺
            food_in_range: 只保留有该价格区间内食物的店铺
            drink_in_range: 只保留有该价格区间内饮品的店铺
            sub_category_in: 与 food_in_range 联用，食物还须命中这些子分类

        Returns:
            List[Store]: 按ID排序的店铺列表
        """
        if not canteen_ids:
            return []

        query = f"SELECT s.id, s.canteen_id, s.name, s.description FROM stores s WHERE s.canteen_id IN ({_placeholders(canteen_ids)})"
        params: list = list(canteen_ids)

        if food_in_range is not None:
            query += """
            AND EXISTS (
                SELECT 1 FROM menu_items mi
                WHERE mi.store_id = s.id AND mi.category = 'FOOD' AND mi.price BETWEEN ? AND ?"""
            params.extend([food_in_range[0], food_in_range[1]])
            if sub_category_in:
                clause, clause_params = _sub_category_clause(sub_category_in)
                query += f" AND {clause}"
                params.extend(clause_params)
            query += ")"
        if drink_in_range is not None:
            query += """
            AND EXISTS (
                SELECT 1 FROM menu_items mi
                WHERE mi.store_id = s.id AND mi.category = 'DRINK' AND mi.price BETWEEN ? AND ?
            )"""
            params.extend([drink_in_range[0], drink_in_range[1]])
        query += " ORDER BY s.id"

        return self._hydrate_stores(self.db.fetch_dicts(query, params))

    def get_store(self, store_id: str) -> Optional[Store]:
        rows = self.db.fetch_dicts(
            "SELECT id, canteen_id, name, description FROM stores WHERE id = ?", [store_id]
        )
        stores = self._hydrate_stores(rows)
        return stores[0] if stores else None

    def _hydrate_stores(self, rows: List[Dict[str, Any]]) -> List[Store]:
        """一次性补齐营业时间与菜单"""
        if not rows:
            return []
        store_ids = [row["id"] for row in rows]
        ph = _placeholders(store_ids)

        hours: Dict[str, list] = {}
        for row in self.db.fetch_dicts(
            f"SELECT store_id, day_of_week, start_time, end_time FROM opening_hours WHERE store_id IN ({ph}) ORDER BY store_id, day_of_week",
            store_ids,
        ):
            hours.setdefault(row["store_id"], []).append(
                {"day_of_week": row["day_of_week"], "start": row["start_time"], "end": row["end_time"]}
            )

        menus: Dict[str, list] = {}
        for row in self.db.fetch_dicts(
            f"SELECT store_id, name, category, sub_category, price FROM menu_items WHERE store_id IN ({ph}) ORDER BY store_id, position",
            store_ids,
        ):
            menus.setdefault(row["store_id"], []).append(
                {"name": row["name"], "category": row["category"],
                 "sub_category": row["sub_category"], "price": row["price"]}
            )

        return [
            Store(
                id=row["id"],
                canteen_id=row["canteen_id"],
                name=row["name"],
                description=row["description"],
                opening_hours=hours.get(row["id"], []),
                menu=menus.get(row["id"], []),
            )
            for row in rows
        ]

    def list_catalog(
        self,
        ids: Optional[Sequence[str]] = None,
        with_air_conditioning: Optional[bool] = None,
    ) -> Tuple[List[Canteen], Dict[str, Dict[str, float]]]:
        """食堂（含店铺、菜单）与全部店铺评分，供浏览列表使用"""
        canteens = self.find_canteens(ids, with_air_conditioning, include_stores=True)
        store_ids = [store.id for canteen in canteens for store in canteen.stores]
        return canteens, self.get_ratings(store_ids)

    def get_ratings(self, store_ids: Sequence[str]) -> Dict[str, Dict[str, float]]:
        """返回 {store_id: {client_fingerprint: rating}}"""
        if not store_ids:
            return {}
        ratings: Dict[str, Dict[str, float]] = {}
        for row in self.db.fetch_dicts(
            f"SELECT store_id, client_fingerprint, rating FROM store_ratings WHERE store_id IN ({_placeholders(store_ids)})",
            list(store_ids),
        ):
            ratings.setdefault(row["store_id"], {})[row["client_fingerprint"]] = row["rating"]
        return ratings

    def upsert_rating(self, store_id: str, client_fingerprint: str, rating: float) -> Store:
        """
        写入评分：每个 (店铺, 客户端指纹) 只保留一行，后写覆盖

        Raises:
            StoreNotFoundError: 店铺不存在时
        """
        now = datetime.now().isoformat()
        with self.db.transaction() as conn:
            if conn.execute("SELECT 1 FROM stores WHERE id = ?", [store_id]).fetchone() is None:
                raise StoreNotFoundError(store_id)
            conn.execute(
                """
                INSERT INTO store_ratings (store_id, client_fingerprint, rating, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT (store_id, client_fingerprint)
                DO UPDATE SET rating = excluded.rating, updated_at = excluded.updated_at
                """,
                [store_id, client_fingerprint, rating, now, now],
            )
            self.db.log_action(
                "rating_upserted",
                {"store_id": store_id, "client_fingerprint": client_fingerprint, "rating": rating},
                conn,
            )
        return self.get_store(store_id)

    def load_catalog(self, document: Union[CatalogDocument, Dict[str, Any]]) -> Dict[str, int]:
        """
        导入目录数据，替换现有的食堂/店铺/菜单（评分保留）

        Returns:
            dict: 各类记录的导入数量
        """
        if not isinstance(document, CatalogDocument):
            document = CatalogDocument.model_validate(document)

        canteen_rows, store_rows, hour_rows, menu_rows = [], [], [], []
        for canteen in document.canteens:
            canteen_rows.append([canteen.id, canteen.name, canteen.with_air_conditioning])
            for store in canteen.stores:
                # 目录里嵌套的店铺以所在食堂为准
                store_rows.append([store.id, canteen.id, store.name, store.description])
                for entry in store.opening_hours:
                    hour_rows.append([store.id, entry.day_of_week.value, entry.start, entry.end])
                for position, item in enumerate(store.menu):
                    menu_rows.append([store.id, position, item.name,
                                      MenuCategory(item.category).value, item.sub_category, item.price])

        counts = {
            "canteens": len(canteen_rows),
            "stores": len(store_rows),
            "opening_hours": len(hour_rows),
            "menu_items": len(menu_rows),
        }
        with self.db.transaction() as conn:
            for table in ("menu_items", "opening_hours", "stores", "canteens"):
                conn.execute(f"DELETE FROM {table}")
            if canteen_rows:
                conn.executemany(
                    "INSERT INTO canteens (id, name, with_air_conditioning) VALUES (?, ?, ?)", canteen_rows)
            if store_rows:
                conn.executemany(
                    "INSERT INTO stores (id, canteen_id, name, description) VALUES (?, ?, ?, ?)", store_rows)
            if hour_rows:
                conn.executemany(
                    "INSERT INTO opening_hours (store_id, day_of_week, start_time, end_time) VALUES (?, ?, ?, ?)",
                    hour_rows)
            if menu_rows:
                conn.executemany(
                    "INSERT INTO menu_items (store_id, position, name, category, sub_category, price) VALUES (?, ?, ?, ?, ?, ?)",
                    menu_rows)
            self.db.log_action("catalog_loaded", counts, conn)
        return counts
