"""
测试配置文件
提供测试所需的fixtures和配置
"""

import os
import time

# 全局设置在导入时实例化，必须先于应用模块指定内存数据库
os.environ.setdefault("DATABASE_URL", "duckdb:///:memory:")
os.environ.setdefault("CLIENT_TOKEN_SECRET", "test-secret-key")

import limits.storage.memory
import pytest
from fastapi.testclient import TestClient

from ..app import create_app
from ..core.database import DatabaseManager, get_db_manager
from ..core.ratelimit import RateLimiter, get_rate_limiter
from ..core.security import SecurityManager
from ..services.catalog_repository import CatalogRepository

WEEKDAY_NAMES = ["MONDAY", "TUESDAY", "WEDNESDAY", "THURSDAY", "FRIDAY"]


def weekly_hours(days, start, end):
    return [{"dayOfWeek": day, "start": start, "end": end} for day in days]


SAMPLE_CATALOG = {
    "canteens": [
        {
            "id": "north",
            "name": "North Canteen",
            "withAirConditioning": True,
            "stores": [
                {
                    "id": "north-noodles",
                    "name": "Noodle Stall",
                    "description": "Boat noodles",
                    "openingHours": weekly_hours(WEEKDAY_NAMES, "08:00", "15:00"),
                    "menu": [
                        {"name": "Pork Noodles", "category": "FOOD", "sub_category": "noodles", "price": 35},
                        {"name": "Beef Noodles", "category": "FOOD", "sub_category": "noodles", "price": 45},
                    ],
                },
                {
                    "id": "north-rice",
                    "name": "Rice Stall",
                    "description": None,
                    "openingHours": weekly_hours(WEEKDAY_NAMES + ["SATURDAY", "SUNDAY"], "10:00", "20:00"),
                    "menu": [
                        {"name": "Chicken Rice", "category": "FOOD", "sub_category": "chicken_rice", "price": 40},
                        {"name": "Omelette Rice", "category": "food", "sub_category": None, "price": 30},
                    ],
                },
                {
                    "id": "north-drinks",
                    "name": "Drink Stall",
                    "description": "Tea and coffee",
                    "openingHours": weekly_hours(WEEKDAY_NAMES, "07:00", "19:00"),
                    "menu": [
                        {"name": "Lemon Tea", "category": "DRINK", "sub_category": "tea", "price": 10},
                        {"name": "Iced Coffee", "category": "DRINK", "sub_category": "coffee", "price": 15},
                        {"name": "Pearls", "category": "DRINK", "sub_category": "toppings", "price": 5},
                    ],
                },
            ],
        },
        {
            "id": "south",
            "name": "South Canteen",
            "withAirConditioning": False,
            "stores": [
                {
                    "id": "south-steak",
                    "name": "Steak Stall",
                    "description": "Weekend steaks",
                    "openingHours": weekly_hours(["SATURDAY", "SUNDAY"], "11:00", "20:00"),
                    "menu": [
                        {"name": "Pork Steak", "category": "FOOD", "sub_category": "steak", "price": 69},
                        {"name": "Chicken Steak", "category": "FOOD", "sub_category": "steak", "price": 59},
                    ],
                },
                {
                    "id": "south-juice",
                    "name": "Juice Stall",
                    "description": None,
                    "openingHours": weekly_hours(WEEKDAY_NAMES + ["SATURDAY", "SUNDAY"], "08:00", "18:00"),
                    "menu": [
                        {"name": "Orange Juice", "category": "DRINK", "sub_category": "juice", "price": 30},
                    ],
                },
            ],
        },
    ]
}


class FakeClock:
    """可手动推进的时钟，替换 limits 内存存储使用的 time 模块"""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def time(self) -> float:
        return self.now

    def __getattr__(self, name):
        return getattr(time, name)

    def advance(self, seconds: float):
        self.now += seconds


@pytest.fixture
def test_db():
    """空的内存数据库"""
    db = DatabaseManager(":memory:")
    db.init_database()
    yield db
    db.close()


@pytest.fixture
def catalog_db(test_db):
    """导入了示例目录的内存数据库"""
    CatalogRepository(test_db).load_catalog(SAMPLE_CATALOG)
    return test_db


@pytest.fixture
def repository(catalog_db):
    return CatalogRepository(catalog_db)


@pytest.fixture
def clock(monkeypatch):
    fake = FakeClock()
    monkeypatch.setattr(limits.storage.memory, "time", fake)
    return fake


@pytest.fixture
def rate_limiter(clock):
    return RateLimiter("10 per 30 seconds", "2 per 30 seconds")


@pytest.fixture
def security():
    return SecurityManager(secret="test-secret-key", algorithm="HS256", expire_days=1)


@pytest.fixture
def app(catalog_db, rate_limiter):
    """覆盖数据库与限流依赖的应用"""
    application = create_app()
    application.dependency_overrides[get_db_manager] = lambda: catalog_db
    application.dependency_overrides[get_rate_limiter] = lambda: rate_limiter
    yield application
    application.dependency_overrides.clear()


@pytest.fixture
def client(app):
    """测试客户端"""
    return TestClient(app)
