"""
食堂、店铺与菜单相关数据模型
"""

from enum import Enum
from typing import List, Optional, Sequence

from pydantic import BaseModel, Field, field_validator, model_validator

from .base import BaseEntity

TIME_PATTERN = r"^([01]?\d|2[0-3]):[0-5]\d$"


class DayOfWeek(str, Enum):
    """星期枚举（周一为第一天）"""
    MONDAY = "MONDAY"
    TUESDAY = "TUESDAY"
    WEDNESDAY = "WEDNESDAY"
    THURSDAY = "THURSDAY"
    FRIDAY = "FRIDAY"
    SATURDAY = "SATURDAY"
    SUNDAY = "SUNDAY"


# 与 date.weekday() 的下标一致
WEEKDAYS: List[DayOfWeek] = list(DayOfWeek)


class MenuCategory(str, Enum):
    """菜品大类"""
    FOOD = "FOOD"
    DRINK = "DRINK"


# 具名的食物子分类，"others" 匹配不属于其中任何一个的食物
FOOD_SUB_CATEGORIES = (
    "noodles",
    "soup_curry",
    "chicken_rice",
    "rice_curry",
    "somtum_northeastern",
    "steak",
    "japanese",
)
OTHERS_SUB_CATEGORY = "others"
TOPPINGS_SUB_CATEGORY = "toppings"


def time_to_minutes(value: str) -> int:
    """把 "HH:MM" 转换为当天的分钟数"""
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


class OpeningHours(BaseEntity):
    """店铺某一天的营业时间"""
    day_of_week: DayOfWeek = Field(..., alias="dayOfWeek", description="星期")
    start: str = Field(..., pattern=TIME_PATTERN, description="开始营业 HH:MM")
    end: str = Field(..., pattern=TIME_PATTERN, description="结束营业 HH:MM")

    @property
    def start_minutes(self) -> int:
        return time_to_minutes(self.start)

    @property
    def end_minutes(self) -> int:
        return time_to_minutes(self.end)


class MenuItem(BaseEntity):
    """菜单项；(name, category, price) 作为去重键"""
    name: str = Field(..., description="菜品名称")
    category: MenuCategory = Field(..., description="大类")
    sub_category: Optional[str] = Field(None, description="子分类标签")
    price: float = Field(..., ge=0, description="价格")

    @field_validator("category", mode="before")
    @classmethod
    def normalize_category(cls, v):
        """非 DRINK 的分类一律视为食物"""
        if isinstance(v, MenuCategory):
            return v
        return MenuCategory.DRINK if str(v).upper() == "DRINK" else MenuCategory.FOOD

    @property
    def dedup_key(self) -> str:
        return f"{self.name}-{self.category.value}-{self.price}"

    @property
    def is_drink(self) -> bool:
        return self.category == MenuCategory.DRINK

    def in_price_range(self, price_range: Sequence[float]) -> bool:
        return price_range[0] <= self.price <= price_range[1]

    def matches_sub_categories(self, sub_categories: Sequence[str]) -> bool:
        """
        判断食物是否命中子分类过滤

        未启用任何子分类时全部命中；"others" 只匹配不属于具名分类的食物
        """
        if not sub_categories:
            return True
        if self.sub_category in sub_categories:
            return True
        return OTHERS_SUB_CATEGORY in sub_categories and self.sub_category not in FOOD_SUB_CATEGORIES


class StoreSummary(BaseEntity):
    """店铺（不含菜单），用于输出"""
    id: str = Field(..., description="店铺ID")
    canteen_id: str = Field(..., alias="canteenId", description="所属食堂ID")
    name: str = Field(..., description="店铺名称")
    description: Optional[str] = Field(None, description="店铺描述")
    opening_hours: List[OpeningHours] = Field(default_factory=list, alias="openingHours",
                                              description="每周营业时间")

    @field_validator("opening_hours")
    @classmethod
    def validate_unique_days(cls, v):
        """每个星期最多一条营业时间"""
        days = [entry.day_of_week for entry in v]
        if len(days) != len(set(days)):
            raise ValueError("同一天只能有一条营业时间")
        return v

    def hours_for(self, day: DayOfWeek) -> Optional[OpeningHours]:
        for entry in self.opening_hours:
            if entry.day_of_week == day:
                return entry
        return None


class Store(StoreSummary):
    """店铺完整模型（含菜单）"""
    menu: List[MenuItem] = Field(default_factory=list, description="菜单")

    def summary(self) -> StoreSummary:
        """去掉菜单后的店铺信息"""
        return StoreSummary.model_validate(self.model_dump(exclude={"menu"}))


class Canteen(BaseEntity):
    """食堂"""
    id: str = Field(..., description="食堂ID")
    name: str = Field(..., description="食堂名称")
    with_air_conditioning: bool = Field(False, alias="withAirConditioning", description="是否有空调")
    stores: List[Store] = Field(default_factory=list, description="店铺列表")

    @model_validator(mode="before")
    @classmethod
    def fill_store_canteen(cls, data):
        """嵌套在食堂下的店铺默认归属该食堂"""
        if isinstance(data, dict) and data.get("stores"):
            canteen_id = data.get("id")
            stores = []
            for store in data["stores"]:
                if isinstance(store, dict) and "canteenId" not in store and "canteen_id" not in store:
                    store = {**store, "canteenId": canteen_id}
                stores.append(store)
            data = {**data, "stores": stores}
        return data


class CatalogDocument(BaseModel):
    """目录导入文件"""
    canteens: List[Canteen] = Field(default_factory=list)
