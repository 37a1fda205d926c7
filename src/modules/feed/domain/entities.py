"""Feed domain entities."""

from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from src.modules.catalog.domain.entities import (
    CatalogItem,
    CuratedList,
    ListWithBooks,
    RankingEntry,
)


class FeedState(StrEnum):
    """Feed 生命周期状态。"""

    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    LOADED = "loaded"
    REFRESHING = "refreshing"
    CLOSED = "closed"


class SectionKind(StrEnum):
    """分区负载类型。"""

    ITEMS = "items"
    LISTS = "lists"
    LISTS_WITH_BOOKS = "lists_with_books"
    RANKINGS = "rankings"
    COLLECTION = "collection"


@dataclass(frozen=True)
class FeedGroup:
    """混排书籍组：1-4 本书组成的最小展示单元。"""

    items: tuple[CatalogItem, ...]

    def __post_init__(self) -> None:
        if not self.items:
            raise ValueError("FeedGroup must contain at least one item")

    def __len__(self) -> int:
        return len(self.items)


@dataclass(frozen=True)
class PaginationSnapshot:
    offset: int
    total: int
    has_more: bool


@dataclass
class FeedSection:
    """首页的一个分区。"""

    key: str
    title: str
    kind: SectionKind
    items: list[CatalogItem] = field(default_factory=list)
    lists: list[CuratedList] = field(default_factory=list)
    lists_with_books: list[ListWithBooks] = field(default_factory=list)
    rankings: list[RankingEntry] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.items or self.lists or self.lists_with_books or self.rankings)


@dataclass(frozen=True)
class FeedBlock:
    """最终屏幕上的一个块：分区或混排组。"""

    type: str
    section: FeedSection | None = None
    group: FeedGroup | None = None


@dataclass
class FeedScreen:
    """组装完成的首页。"""

    feed_id: str
    generation: int
    state: FeedState
    sections: list[FeedSection] = field(default_factory=list)
    groups: list[FeedGroup] = field(default_factory=list)
    cursor: PaginationSnapshot = field(
        default_factory=lambda: PaginationSnapshot(offset=0, total=0, has_more=True)
    )
    failed_sources: list[str] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)

    def section(self, key: str) -> FeedSection | None:
        return next((s for s in self.sections if s.key == key), None)

    def blocks(self) -> Iterator[FeedBlock]:
        """按屏幕顺序产出块：每个非空分区后紧跟一个混排组，剩余组追加在末尾。

        空分区不渲染（零成功源时屏幕只剩混排组或为空）。
        """
        group_index = 0
        for section in self.sections:
            if section.is_empty:
                continue
            yield FeedBlock(type="section", section=section)
            if group_index < len(self.groups):
                yield FeedBlock(type="group", group=self.groups[group_index])
                group_index += 1
        for group in self.groups[group_index:]:
            yield FeedBlock(type="group", group=group)


@dataclass(frozen=True)
class LoadMoreResult:
    """加载更多的结果；loaded=False 表示被守卫拒绝（非错误）。"""

    loaded: bool
    cursor: PaginationSnapshot
    new_groups: tuple[FeedGroup, ...] = ()
    reason: str | None = None
