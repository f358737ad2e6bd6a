"""
目录仓储测试
"""

import json

import pytest
from pydantic import ValidationError as PydanticValidationError

from .conftest import SAMPLE_CATALOG
from ..core.exceptions import StoreNotFoundError
from ..models.canteen import DayOfWeek, MenuCategory
from ..services.catalog_repository import CatalogRepository


class TestLoadCatalog:
    """目录导入测试"""

    def test_counts(self, test_db):
        counts = CatalogRepository(test_db).load_catalog(SAMPLE_CATALOG)
        assert counts == {"canteens": 2, "stores": 5, "opening_hours": 26, "menu_items": 10}

    def test_logged(self, catalog_db):
        rows = catalog_db.fetch_dicts("SELECT detail_json FROM logs WHERE action = 'catalog_loaded'")
        assert len(rows) == 1
        assert json.loads(rows[0]["detail_json"])["stores"] == 5

    def test_reload_replaces_catalog_and_keeps_ratings(self, repository):
        repository.upsert_rating("north-rice", "fp-1", 4)
        smaller = {"canteens": [SAMPLE_CATALOG["canteens"][0]]}
        counts = repository.load_catalog(smaller)

        assert counts["canteens"] == 1
        assert repository.count_canteens() == 1
        assert repository.get_ratings(["north-rice"]) == {"north-rice": {"fp-1": 4}}

    def test_category_normalized(self, repository):
        store = repository.get_store("north-rice")
        assert [item.category for item in store.menu] == [MenuCategory.FOOD, MenuCategory.FOOD]

    def test_invalid_document_rejected(self, test_db):
        with pytest.raises(PydanticValidationError):
            CatalogRepository(test_db).load_catalog({"canteens": [{"name": "missing id"}]})


class TestFindCanteens:
    """食堂查询测试"""

    def test_all(self, repository):
        canteens = repository.find_canteens()
        assert [c.id for c in canteens] == ["north", "south"]
        assert canteens[0].with_air_conditioning is True
        assert canteens[0].stores == []

    def test_by_ids(self, repository):
        assert [c.id for c in repository.find_canteens(ids=["south", "missing"])] == ["south"]

    def test_air_conditioning(self, repository):
        assert [c.id for c in repository.find_canteens(with_air_conditioning=False)] == ["south"]

    def test_food_price_range(self, repository):
        assert [c.id for c in repository.find_canteens(food_price_range=(46, 58))] == []
        assert [c.id for c in repository.find_canteens(food_price_range=(30, 30))] == ["north"]

    def test_include_stores(self, repository):
        north, south = repository.find_canteens(include_stores=True)
        assert [s.id for s in north.stores] == ["north-drinks", "north-noodles", "north-rice"]
        assert [s.id for s in south.stores] == ["south-juice", "south-steak"]


class TestFindStores:
    """店铺查询测试"""

    def test_no_canteens(self, repository):
        assert repository.find_stores([]) == []

    def test_hydrated(self, repository):
        [store] = [s for s in repository.find_stores(["north"]) if s.id == "north-noodles"]
        assert store.canteen_id == "north"
        assert store.description == "Boat noodles"
        assert [item.name for item in store.menu] == ["Pork Noodles", "Beef Noodles"]
        assert len(store.opening_hours) == 5
        assert store.hours_for(DayOfWeek.MONDAY).start == "08:00"
        assert store.hours_for(DayOfWeek.SATURDAY) is None

    def test_food_in_range(self, repository):
        stores = repository.find_stores(["north", "south"], food_in_range=(40, 60))
        assert [s.id for s in stores] == ["north-noodles", "north-rice", "south-steak"]

    def test_food_sub_category(self, repository):
        stores = repository.find_stores(["north", "south"], food_in_range=(0, 100), sub_category_in=["noodles"])
        assert [s.id for s in stores] == ["north-noodles"]

    def test_food_sub_category_others(self, repository):
        stores = repository.find_stores(["north", "south"], food_in_range=(0, 100), sub_category_in=["others"])
        assert [s.id for s in stores] == ["north-rice"]

    def test_drink_in_range(self, repository):
        stores = repository.find_stores(["north", "south"], drink_in_range=(0, 12))
        assert [s.id for s in stores] == ["north-drinks"]

    def test_get_store_missing(self, repository):
        assert repository.get_store("missing") is None


class TestRatings:
    """评分测试"""

    def test_upsert_last_write_wins(self, repository):
        repository.upsert_rating("north-rice", "fp-1", 2)
        repository.upsert_rating("north-rice", "fp-1", 5)
        repository.upsert_rating("north-rice", "fp-2", 3)
        assert repository.get_ratings(["north-rice"]) == {"north-rice": {"fp-1": 5, "fp-2": 3}}

    def test_upsert_returns_store(self, repository):
        store = repository.upsert_rating("south-steak", "fp-1", 4.5)
        assert store.id == "south-steak"
        assert len(store.menu) == 2

    def test_upsert_unknown_store(self, repository, catalog_db):
        with pytest.raises(StoreNotFoundError):
            repository.upsert_rating("missing", "fp-1", 3)
        rows = catalog_db.fetch_dicts("SELECT * FROM store_ratings")
        assert rows == []

    def test_upsert_logged(self, repository, catalog_db):
        repository.upsert_rating("north-rice", "fp-1", 4)
        rows = catalog_db.fetch_dicts("SELECT detail_json FROM logs WHERE action = 'rating_upserted'")
        assert len(rows) == 1
        assert json.loads(rows[0]["detail_json"]) == {
            "store_id": "north-rice", "client_fingerprint": "fp-1", "rating": 4}

    def test_get_ratings_empty(self, repository):
        assert repository.get_ratings([]) == {}
        assert repository.get_ratings(["north-rice"]) == {}

    def test_list_catalog(self, repository):
        repository.upsert_rating("south-juice", "fp-1", 1)
        canteens, ratings = repository.list_catalog(with_air_conditioning=False)
        assert [c.id for c in canteens] == ["south"]
        assert [s.id for s in canteens[0].stores] == ["south-juice", "south-steak"]
        assert ratings == {"south-juice": {"fp-1": 1}}
