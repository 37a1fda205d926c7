"""Catalog domain entities.

目录服务拥有这些记录；对 Feed 而言它们是只读的。
"""

import math
from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class CatalogModel(BaseModel):
    """Base model for catalog payloads (camelCase on the wire)."""

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        coerce_numbers_to_str=True,
        extra="ignore",
    )


class ItemType(StrEnum):
    """目录条目类型。"""

    EBOOK = "ebook"
    MAGAZINE = "magazine"


class ListType(StrEnum):
    """书单类型。"""

    EDITOR_PICK = "editor_pick"
    PLATFORM = "platform"
    AWARD = "award"
    COLLECTION = "collection"
    BOOK_LIST = "book_list"
    SERIES = "series"
    WEEKLY = "weekly"
    CELEBRITY = "celebrity"
    BIOGRAPHY = "biography"
    YEAR = "year"


class CatalogItem(CatalogModel):
    """书籍/电子书/杂志记录。"""

    id: str = Field(..., description="条目ID")
    title: str = Field(..., description="标题")
    author: str | None = Field(default=None, description="作者")
    cover_url: str | None = Field(default=None, description="封面URL")
    description: str | None = Field(default=None, description="简介")
    rating: float | None = Field(default=None, description="评分（0-5）")
    rating_count: int = Field(default=0, description="评分人数")
    item_type: ItemType = Field(default=ItemType.EBOOK, description="条目类型")
    is_free: bool = Field(default=False, description="是否免费")
    price: float | None = Field(default=None, description="价格")
    membership_only: bool = Field(default=False, description="是否会员专享")
    published_year: int | None = Field(default=None, description="出版年份")

    @field_validator("rating", "price", mode="before")
    @classmethod
    def drop_non_finite(cls, value: Any) -> Any:
        # NaN / Infinity 按缺失处理
        if isinstance(value, float) and not math.isfinite(value):
            return None
        return value


class CuratedList(CatalogModel):
    """编辑精选 / 平台榜单 / 奖项书单。

    source 是展示用的来源标签（如 "NYT"、"Pulitzer"），交错排序按它分组。
    """

    id: str = Field(..., description="书单ID")
    title: str = Field(..., description="书单名称")
    list_type: ListType = Field(default=ListType.BOOK_LIST, description="书单类型")
    source: str = Field(default="", description="来源标签")
    items: tuple[CatalogItem, ...] = Field(
        default=(), alias="books", description="有序书籍引用"
    )
    book_count: int | None = Field(default=None, description="书单总书数")
    cover_urls: tuple[str, ...] = Field(default=(), description="预览封面")


class ListWithBooks(BaseModel):
    """书单与其已解析的有限书籍序列（每次请求构造，渲染后丢弃）。"""

    model_config = ConfigDict(frozen=True)

    curated_list: CuratedList
    books: tuple[CatalogItem, ...] = ()

    @property
    def source(self) -> str:
        return self.curated_list.source


class RankingEntry(CatalogModel):
    """外部/内部榜单中的一条排名快照。"""

    rank: int = Field(..., ge=1, description="名次")
    item: CatalogItem = Field(..., alias="book", description="书籍")
    source: str = Field(default="", description="榜单来源")
    stats: dict[str, Any] = Field(default_factory=dict, description="快照统计")
    computed_at: datetime | None = Field(default=None, description="计算时间")

    @property
    def rating(self) -> float | None:
        return self.item.rating
