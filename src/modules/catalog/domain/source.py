"""Content source domain interfaces and models."""

from dataclasses import dataclass, field
from enum import Enum, StrEnum
from typing import Any, Protocol


class SourceKind(StrEnum):
    """目录服务暴露的内容源（每种对应首页的一个分区数据）。"""

    ALL_BOOKS = "all_books"
    RECOMMENDATIONS = "recommendations"
    TOP_RATED = "top_rated"
    BOOKS_BY_YEAR = "books_by_year"
    BOOK_LISTS = "book_lists"
    EXTERNAL_RANKINGS = "external_rankings"
    EDITOR_PICKS = "editor_picks"
    BOOK_SERIES = "book_series"
    WEEKLY_PICKS = "weekly_picks"
    CELEBRITY_PICKS = "celebrity_picks"
    BIOGRAPHIES = "biographies"
    NYT_LISTS = "nyt_lists"
    AMAZON_LISTS = "amazon_lists"
    GOODREADS_LISTS = "goodreads_lists"
    PULITZER_AWARDS = "pulitzer_awards"
    BOOKER_AWARDS = "booker_awards"
    NEWBERY_AWARDS = "newbery_awards"
    AI_COLLECTION = "ai_collection"
    BIOGRAPHY_COLLECTION = "biography_collection"


class PayloadShape(StrEnum):
    """源返回的数据形态。"""

    ITEMS = "items"
    LISTS = "lists"
    RANKINGS = "rankings"
    YEAR_GROUPS = "year_groups"
    SINGLE_LIST = "single_list"


class FetchStatus(str, Enum):
    """抓取状态枚举。"""

    SUCCESS = "success"
    EMPTY = "empty"
    FAILED = "failed"


@dataclass
class SourcePage:
    """一次源抓取的结果：(items, total, has_more)。

    失败的源以空页表示，failed 标记供日志与 Feed 的 failed_sources 使用。
    """

    kind: SourceKind
    status: FetchStatus
    items: list[Any] = field(default_factory=list)
    total: int = 0
    has_more: bool = False
    offset: int = 0
    error_message: str | None = None
    duration_ms: int = 0

    @property
    def failed(self) -> bool:
        return self.status == FetchStatus.FAILED

    @classmethod
    def success(
        cls,
        kind: SourceKind,
        items: list[Any],
        total: int | None = None,
        has_more: bool | None = None,
        offset: int = 0,
        duration_ms: int = 0,
    ) -> "SourcePage":
        if total is None:
            total = offset + len(items)
        if has_more is None:
            has_more = offset + len(items) < total
        return cls(
            kind=kind,
            status=FetchStatus.SUCCESS if items else FetchStatus.EMPTY,
            items=items,
            total=total,
            has_more=has_more,
            offset=offset,
            duration_ms=duration_ms,
        )

    @classmethod
    def failed_page(
        cls,
        kind: SourceKind,
        error_message: str,
        offset: int = 0,
        duration_ms: int = 0,
    ) -> "SourcePage":
        return cls(
            kind=kind,
            status=FetchStatus.FAILED,
            offset=offset,
            error_message=error_message,
            duration_ms=duration_ms,
        )


class ContentSourceClient(Protocol):
    """Port for fetching one catalog facet."""

    async def fetch(
        self,
        kind: SourceKind,
        limit: int,
        offset: int = 0,
        **params: Any,
    ) -> SourcePage: ...
