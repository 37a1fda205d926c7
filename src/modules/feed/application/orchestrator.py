"""商城首页 Feed 编排。

一次首页加载：
1. 并发抓取所有内容源（每个源独立超时，失败按空处理）
2. 等待全部完成
3. 组装分区：书单 -> 交错 -> 展开；分页书籍 -> 混排组；高分书 -> 加权抽样

每个 FeedOrchestrator 实例对应一个客户端屏幕，持有自己的分页游标、
加载守卫和缓存屏幕；实例之间不共享可变状态。
"""

import asyncio
import random
import time
from dataclasses import dataclass, field
from typing import Any
from uuid import uuid4

from loguru import logger

from src.core.config import settings
from src.core.infrastructure.logging import BusinessEvents
from src.modules.catalog.domain.entities import CuratedList, ListWithBooks
from src.modules.catalog.domain.source import (
    ContentSourceClient,
    SourceKind,
    SourcePage,
)
from src.modules.feed.domain.composition import (
    FeedGrouper,
    flatten,
    interleave,
    shuffled,
    weighted_sample,
)
from src.modules.feed.domain.entities import (
    FeedScreen,
    FeedSection,
    FeedState,
    LoadMoreResult,
    SectionKind,
)
from src.modules.feed.domain.exceptions import FeedClosedError
from src.modules.feed.domain.pagination import (
    LoadMoreGuard,
    LoadRejection,
    PaginationCursor,
)

PLATFORM_SOURCES = (
    SourceKind.NYT_LISTS,
    SourceKind.AMAZON_LISTS,
    SourceKind.GOODREADS_LISTS,
)
AWARD_SOURCES = (
    SourceKind.PULITZER_AWARDS,
    SourceKind.BOOKER_AWARDS,
    SourceKind.NEWBERY_AWARDS,
)
CURATED_SECTIONS = (
    (SourceKind.EDITOR_PICKS, "editor_picks", "Editor's Picks"),
    (SourceKind.BOOK_SERIES, "book_series", "Book Series"),
    (SourceKind.WEEKLY_PICKS, "weekly_picks", "Weekly Picks"),
    (SourceKind.CELEBRITY_PICKS, "celebrity_picks", "Celebrity Picks"),
    (SourceKind.BIOGRAPHIES, "biographies", "Biographies"),
)


@dataclass(frozen=True)
class SourceRequest:
    kind: SourceKind
    limit: int
    offset: int = 0
    params: dict[str, Any] = field(default_factory=dict)


class FeedOrchestrator:
    """单个屏幕的 Feed 控制器。

    生命周期：uninitialized -> loading -> loaded，refresh() 经 refreshing 回到 loaded，
    close() 后进入 closed 并取消所有进行中的抓取。
    """

    def __init__(
        self,
        client: ContentSourceClient,
        *,
        rng: random.Random | None = None,
        grouper: FeedGrouper | None = None,
        guard: LoadMoreGuard | None = None,
        source_timeout_sec: float | None = None,
        page_size: int | None = None,
        feed_id: str | None = None,
    ) -> None:
        self.feed_id = feed_id or uuid4().hex
        self._client = client
        self._rng = rng or random.Random()
        self._grouper = grouper or FeedGrouper(rng=self._rng)
        self._guard = guard or LoadMoreGuard()
        self._cursor = PaginationCursor()
        self.source_timeout_sec = source_timeout_sec or settings.SOURCE_FETCH_TIMEOUT_SEC
        self.page_size = page_size or settings.ALL_BOOKS_PAGE_SIZE

        self.state = FeedState.UNINITIALIZED
        self.generation = 0
        self._screen: FeedScreen | None = None
        self._all_books: list = []
        self._load_task: asyncio.Task[FeedScreen] | None = None
        self._pending: set[asyncio.Task] = set()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def screen(self) -> FeedScreen | None:
        return self._screen

    @property
    def cursor(self) -> PaginationCursor:
        return self._cursor

    async def load_home(self) -> FeedScreen:
        """加载首页；已加载时直接返回缓存屏幕，并发调用共享同一次加载。"""
        while True:
            self._ensure_open()
            if self.state == FeedState.LOADED and self._screen is not None:
                return self._screen

            task = self._load_task
            if task is None or task.done():
                if self.state != FeedState.REFRESHING:
                    self.state = FeedState.LOADING
                task = self._track(asyncio.create_task(self._load(self.generation)))
                self._load_task = task

            try:
                return await asyncio.shield(task)
            except asyncio.CancelledError:
                if _caller_cancelled() or not task.cancelled():
                    raise
                # 被 refresh()/close() 取代，重新检查状态

    async def refresh(self) -> FeedScreen:
        """下拉刷新：硬重置分页与缓存后重新加载（冷却时间被清除）。"""
        self._ensure_open()
        self.generation += 1
        self._cancel_pending()

        self.state = FeedState.REFRESHING
        self._screen = None
        self._all_books = []
        self._cursor.reset()
        self._grouper.reset()
        self._guard.reset()

        BusinessEvents.feed_refreshed(feed_id=self.feed_id, generation=self.generation)
        return await self.load_home()

    async def load_more(self) -> LoadMoreResult:
        """加载下一页全部书籍并生成新的混排组。

        守卫未通过时静默返回 loaded=False，不抛异常。
        """
        self._ensure_open()
        if self.state != FeedState.LOADED or self._screen is None:
            return self._rejected(LoadRejection.NOT_LOADED)

        rejection = self._guard.try_begin(self._cursor.has_more)
        if rejection is not None:
            return self._rejected(rejection)

        generation = self.generation
        has_more = self._cursor.has_more
        try:
            request = SourceRequest(
                SourceKind.ALL_BOOKS, self.page_size, offset=self._cursor.offset
            )
            logger.debug(f"Feed {self.feed_id} loading more from offset {request.offset}")
            task = self._track(asyncio.create_task(self._fetch_one(request)))
            try:
                page = await task
            except asyncio.CancelledError:
                if _caller_cancelled() or generation == self.generation:
                    raise
                return self._rejected(LoadRejection.SUPERSEDED)

            if generation != self.generation:
                # 迟到的响应属于已丢弃的屏幕
                return self._rejected(LoadRejection.SUPERSEDED)
            if page.failed:
                return self._rejected(LoadRejection.SOURCE_UNAVAILABLE)

            self._all_books.extend(page.items)
            self._cursor.advance(len(page.items), page.total)
            new_groups = self._grouper.group(self._all_books)
            has_more = self._cursor.has_more

            screen = self._screen
            screen.groups.extend(new_groups)
            screen.cursor = self._cursor.snapshot()

            BusinessEvents.load_more_completed(
                feed_id=self.feed_id,
                offset=self._cursor.offset,
                total=self._cursor.total,
                new_items=len(page.items),
                new_groups=len(new_groups),
            )
            return LoadMoreResult(
                loaded=True,
                cursor=screen.cursor,
                new_groups=tuple(new_groups),
            )
        finally:
            if generation == self.generation:
                self._guard.finish(has_more)

    async def close(self) -> None:
        """关闭屏幕：取消进行中的抓取，之后到达的结果全部丢弃。"""
        if self.state == FeedState.CLOSED:
            return
        self.state = FeedState.CLOSED
        self.generation += 1
        self._cancel_pending()
        self._screen = None
        self._all_books = []
        logger.debug(f"Feed {self.feed_id} closed")

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def home_plan(self) -> list[SourceRequest]:
        """首页需要并发抓取的全部源。"""
        lists_params = {"booksPerList": settings.BOOKS_PER_LIST}
        plan = [
            SourceRequest(SourceKind.RECOMMENDATIONS, settings.RECOMMENDATIONS_FETCH_LIMIT),
            SourceRequest(SourceKind.BOOK_LISTS, settings.BOOK_LISTS_LIMIT),
            SourceRequest(SourceKind.BOOKS_BY_YEAR, settings.BOOKS_BY_YEAR_LIMIT),
            SourceRequest(
                SourceKind.TOP_RATED,
                settings.TOP_RATED_POOL_SIZE,
                params={"minRatingCount": settings.TOP_RATED_MIN_RATING_COUNT},
            ),
            SourceRequest(SourceKind.EXTERNAL_RANKINGS, settings.SOURCE_MAX_LIMIT),
        ]
        plan += [
            SourceRequest(kind, settings.CURATED_SECTION_LIMIT, params=lists_params)
            for kind, _, _ in CURATED_SECTIONS
        ]
        plan += [
            SourceRequest(kind, settings.CURATED_SECTION_LIMIT, params=lists_params)
            for kind in (*PLATFORM_SOURCES, *AWARD_SOURCES)
        ]
        plan += [
            SourceRequest(kind, settings.COLLECTION_BOOKS_LIMIT)
            for kind in (SourceKind.AI_COLLECTION, SourceKind.BIOGRAPHY_COLLECTION)
        ]
        plan.append(SourceRequest(SourceKind.ALL_BOOKS, self.page_size))
        return plan

    async def _load(self, generation: int) -> FeedScreen:
        start_time = time.time()
        pages = await self._fetch_all(self.home_plan())

        if generation != self.generation or self.state == FeedState.CLOSED:
            # 已被刷新/关闭取代，结果不写入任何状态
            raise asyncio.CancelledError()

        all_books = pages[SourceKind.ALL_BOOKS]
        self._all_books = list(all_books.items)
        self._cursor.reset()
        self._grouper.reset()
        if not all_books.failed:
            self._cursor.advance(len(all_books.items), all_books.total)
        self._grouper.group(self._all_books)

        failed = [str(kind) for kind, page in pages.items() if page.failed]
        screen = FeedScreen(
            feed_id=self.feed_id,
            generation=generation,
            state=FeedState.LOADED,
            sections=self.compose_sections(pages),
            groups=list(self._grouper.groups),
            cursor=self._cursor.snapshot(),
            failed_sources=failed,
        )

        self._screen = screen
        self.state = FeedState.LOADED
        latency_ms = int((time.time() - start_time) * 1000)
        screen.metadata["latency_ms"] = latency_ms
        BusinessEvents.feed_loaded(
            feed_id=self.feed_id,
            section_count=sum(1 for s in screen.sections if not s.is_empty),
            group_count=len(screen.groups),
            failed_sources=failed,
            latency_ms=latency_ms,
        )
        return screen

    async def _fetch_all(
        self, plan: list[SourceRequest]
    ) -> dict[SourceKind, SourcePage]:
        pages = await asyncio.gather(*(self._fetch_one(request) for request in plan))
        return {request.kind: page for request, page in zip(plan, pages, strict=True)}

    async def _fetch_one(self, request: SourceRequest) -> SourcePage:
        """抓取单个源；超时或任何异常都降级为失败的空页。"""
        start_time = time.time()
        try:
            async with asyncio.timeout(self.source_timeout_sec):
                return await self._client.fetch(
                    request.kind, request.limit, request.offset, **request.params
                )
        except TimeoutError:
            error = f"Timeout after {self.source_timeout_sec}s"
        except Exception as e:
            logger.exception(f"Unexpected error fetching {request.kind}: {e}")
            error = f"Error: {e}"

        duration_ms = int((time.time() - start_time) * 1000)
        BusinessEvents.source_fetch_failed(
            source=str(request.kind), error=error, duration_ms=duration_ms
        )
        return SourcePage.failed_page(
            request.kind, error, offset=request.offset, duration_ms=duration_ms
        )

    # ------------------------------------------------------------------
    # Composition
    # ------------------------------------------------------------------

    def compose_sections(self, pages: dict[SourceKind, SourcePage]) -> list[FeedSection]:
        """按首页顺序组装分区；缺失或失败的源产生空分区。"""

        def items_of(kind: SourceKind) -> list:
            page = pages.get(kind)
            return list(page.items) if page is not None else []

        def lists_from(kinds: tuple[SourceKind, ...], limit: int | None = None) -> list[CuratedList]:
            lists: list[CuratedList] = []
            for kind in kinds:
                lists.extend(items_of(kind)[:limit])
            return lists

        sections: list[FeedSection] = []

        recommendations = shuffled(items_of(SourceKind.RECOMMENDATIONS), self._rng)
        sections.append(
            FeedSection(
                key="recommendations",
                title="Recommended for You",
                kind=SectionKind.ITEMS,
                items=recommendations[: settings.RECOMMENDATIONS_SHOW],
            )
        )

        editor_lists = items_of(SourceKind.EDITOR_PICKS)
        sections.append(
            FeedSection(
                key="editor_picks_with_books",
                title="Editor's Picks",
                kind=SectionKind.LISTS_WITH_BOOKS,
                lists_with_books=flatten(
                    editor_lists[: settings.LISTS_PER_SOURCE], settings.BOOKS_PER_LIST
                ),
            )
        )

        ranked_lists = interleave(
            lists_from((*PLATFORM_SOURCES, *AWARD_SOURCES), settings.LISTS_PER_SOURCE)
        )
        sections.append(
            FeedSection(
                key="ranked_lists",
                title="Bestsellers & Awards",
                kind=SectionKind.LISTS_WITH_BOOKS,
                lists_with_books=flatten(ranked_lists, settings.BOOKS_PER_LIST),
            )
        )

        sections.append(
            FeedSection(
                key="external_rankings",
                title="Rankings",
                kind=SectionKind.RANKINGS,
                rankings=interleave(items_of(SourceKind.EXTERNAL_RANKINGS)),
            )
        )

        for kind, key, title in CURATED_SECTIONS:
            sections.append(
                FeedSection(key=key, title=title, kind=SectionKind.LISTS, lists=items_of(kind))
            )

        for kind, key, title in (
            (SourceKind.AI_COLLECTION, "ai_collection", "AI & Machine Learning"),
            (SourceKind.BIOGRAPHY_COLLECTION, "biography_collection", "Biography"),
        ):
            sections.append(
                FeedSection(
                    key=key,
                    title=title,
                    kind=SectionKind.COLLECTION,
                    lists_with_books=self._collection(items_of(kind)),
                )
            )

        year_books = [book for group in items_of(SourceKind.BOOKS_BY_YEAR) for book in group.items]
        sections.append(
            FeedSection(
                key="books_by_year",
                title="Books by Year",
                kind=SectionKind.ITEMS,
                items=shuffled(year_books, self._rng),
            )
        )

        sections.append(
            FeedSection(
                key="top_rated",
                title="Top Rated",
                kind=SectionKind.ITEMS,
                items=weighted_sample(
                    items_of(SourceKind.TOP_RATED), settings.TOP_RATED_COUNT, self._rng
                ),
            )
        )

        sections.append(
            FeedSection(
                key="platform_lists",
                title="Bestseller Lists",
                kind=SectionKind.LISTS,
                lists=interleave(lists_from(PLATFORM_SOURCES)),
            )
        )
        sections.append(
            FeedSection(
                key="award_lists",
                title="Award Winners",
                kind=SectionKind.LISTS,
                lists=interleave(lists_from(AWARD_SOURCES)),
            )
        )
        sections.append(
            FeedSection(
                key="popular_book_lists",
                title="Popular Book Lists",
                kind=SectionKind.LISTS,
                lists=items_of(SourceKind.BOOK_LISTS),
            )
        )
        return sections

    @staticmethod
    def _collection(lists: list[CuratedList]) -> list[ListWithBooks]:
        return flatten(lists[:1], settings.COLLECTION_BOOKS_LIMIT)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _ensure_open(self) -> None:
        if self.state == FeedState.CLOSED:
            raise FeedClosedError(self.feed_id)

    def _track(self, task: asyncio.Task) -> asyncio.Task:
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    def _cancel_pending(self) -> None:
        for task in list(self._pending):
            task.cancel()
        self._load_task = None

    def _rejected(self, reason: LoadRejection) -> LoadMoreResult:
        BusinessEvents.load_more_rejected(feed_id=self.feed_id, reason=str(reason))
        return LoadMoreResult(
            loaded=False, cursor=self._cursor.snapshot(), reason=str(reason)
        )


def _caller_cancelled() -> bool:
    task = asyncio.current_task()
    return task is not None and task.cancelling() > 0
