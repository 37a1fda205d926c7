"""测试用领域对象工厂与 fake 依赖。"""

import asyncio
from typing import Any

from src.modules.catalog.domain.entities import (
    CatalogItem,
    CuratedList,
    ListType,
    RankingEntry,
)
from src.modules.catalog.domain.source import SourceKind, SourcePage


def make_item(item_id: str | int, rating: float | None = 4.0, **kwargs: Any) -> CatalogItem:
    """生成测试书籍。"""
    return CatalogItem(
        id=str(item_id),
        title=kwargs.pop("title", f"Book {item_id}"),
        rating=rating,
        **kwargs,
    )


def make_list(
    list_id: str,
    source: str,
    book_count: int = 3,
    list_type: ListType = ListType.PLATFORM,
) -> CuratedList:
    """生成测试书单（含 book_count 本书）。"""
    return CuratedList(
        id=list_id,
        title=f"{source} {list_id}",
        list_type=list_type,
        source=source,
        items=tuple(make_item(f"{list_id}-b{i}") for i in range(book_count)),
        book_count=book_count,
    )


def make_ranking(rank: int, source: str) -> RankingEntry:
    return RankingEntry(rank=rank, item=make_item(f"{source}-{rank}"), source=source)


class FakeContentSource:
    """内存中的内容源。

    - pages: 每个 SourceKind 返回的条目
    - all_books: 全部书籍，按 offset/limit 分页
    - failing: 返回失败页的源
    - errors: 直接抛出异常的源
    - delays: 每个源的响应延迟（秒）
    - gate: 设置后 ALL_BOOKS 请求会等待该事件
    """

    def __init__(self, all_books: list[CatalogItem] | None = None) -> None:
        self.pages: dict[SourceKind, list[Any]] = {}
        self.all_books = all_books if all_books is not None else []
        self.failing: set[SourceKind] = set()
        self.errors: dict[SourceKind, Exception] = {}
        self.delays: dict[SourceKind, float] = {}
        self.calls: list[tuple[SourceKind, int, int, dict[str, Any]]] = []
        self.gate: asyncio.Event | None = None

    async def fetch(
        self, kind: SourceKind, limit: int, offset: int = 0, **params: Any
    ) -> SourcePage:
        self.calls.append((kind, limit, offset, params))
        if kind in self.delays:
            await asyncio.sleep(self.delays[kind])
        if kind == SourceKind.ALL_BOOKS and self.gate is not None:
            await self.gate.wait()
        if kind in self.errors:
            raise self.errors[kind]
        if kind in self.failing:
            return SourcePage.failed_page(kind, "HTTP 503", offset=offset)

        if kind == SourceKind.ALL_BOOKS:
            items = self.all_books[offset : offset + limit]
            return SourcePage.success(
                kind, items, total=len(self.all_books), offset=offset
            )
        return SourcePage.success(kind, self.pages.get(kind, [])[:limit], offset=offset)

    def calls_for(self, kind: SourceKind) -> list[tuple[SourceKind, int, int, dict[str, Any]]]:
        return [call for call in self.calls if call[0] == kind]


class FakeClock:
    """可手动推进的单调时钟。"""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds
