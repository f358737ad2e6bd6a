"""
基础数据模型
定义通用的模型基类和分页结构
"""

from pydantic import BaseModel, Field
from typing import Any


class BaseEntity(BaseModel):
    """基础实体模型"""

    model_config = {"from_attributes": True, "populate_by_name": True}


class ValueObject(BaseModel):
    """不可变值对象"""

    model_config = {"frozen": True, "populate_by_name": True}


class PaginationParams(BaseModel):
    """分页参数"""
    page: int = Field(default=1, ge=1, description="页码")
    size: int = Field(default=10, ge=1, le=100, description="每页大小")

    @property
    def offset(self) -> int:
        """计算偏移量"""
        return (self.page - 1) * self.size


class PaginatedResponse(BaseModel):
    """分页响应"""
    items: list[Any]
    total: int
    page: int
    size: int
    pages: int

    @classmethod
    def create(cls, items: list, total: int, pagination: PaginationParams):
        """创建分页响应"""
        pages = (total + pagination.size - 1) // pagination.size
        return cls(
            items=items,
            total=total,
            page=pagination.page,
            size=pagination.size,
            pages=pages
        )
