"""Store feed API routes."""

from fastapi import APIRouter, Depends, Query, Response, status

from src.core.interfaces.http.response import ApiResponse
from src.modules.catalog.domain.entities import (
    CatalogItem,
    CuratedList,
    ListWithBooks,
    RankingEntry,
)
from src.modules.feed.application.dependencies import get_feed_session_registry
from src.modules.feed.application.session_service import FeedSessionRegistry
from src.modules.feed.domain.entities import (
    FeedGroup,
    FeedScreen,
    FeedSection,
    PaginationSnapshot,
)
from src.modules.feed.interfaces.schemas import (
    CatalogItemResponse,
    CuratedListResponse,
    FeedBlockResponse,
    FeedGroupResponse,
    FeedScreenResponse,
    FeedSectionResponse,
    ListWithBooksResponse,
    LoadMoreResponse,
    PaginationResponse,
    RankingEntryResponse,
)

router = APIRouter(prefix="/store", tags=["store"])


def _to_item_response(item: CatalogItem) -> CatalogItemResponse:
    return CatalogItemResponse(
        id=item.id,
        title=item.title,
        author=item.author,
        cover_url=item.cover_url,
        description=item.description,
        rating=item.rating,
        rating_count=item.rating_count,
        item_type=item.item_type.value,
        is_free=item.is_free,
        price=item.price,
        membership_only=item.membership_only,
        published_year=item.published_year,
    )


def _to_list_response(curated: CuratedList) -> CuratedListResponse:
    return CuratedListResponse(
        id=curated.id,
        title=curated.title,
        list_type=curated.list_type.value,
        source=curated.source,
        book_count=curated.book_count,
        cover_urls=list(curated.cover_urls),
    )


def _to_list_with_books_response(entry: ListWithBooks) -> ListWithBooksResponse:
    return ListWithBooksResponse(
        curated_list=_to_list_response(entry.curated_list),
        books=[_to_item_response(book) for book in entry.books],
    )


def _to_ranking_response(entry: RankingEntry) -> RankingEntryResponse:
    return RankingEntryResponse(
        rank=entry.rank,
        source=entry.source,
        item=_to_item_response(entry.item),
        stats=entry.stats,
        computed_at=entry.computed_at,
    )


def _to_section_response(section: FeedSection) -> FeedSectionResponse:
    return FeedSectionResponse(
        key=section.key,
        title=section.title,
        kind=section.kind.value,
        items=[_to_item_response(item) for item in section.items],
        lists=[_to_list_response(curated) for curated in section.lists],
        lists_with_books=[
            _to_list_with_books_response(entry) for entry in section.lists_with_books
        ],
        rankings=[_to_ranking_response(entry) for entry in section.rankings],
    )


def _to_group_response(group: FeedGroup) -> FeedGroupResponse:
    return FeedGroupResponse(items=[_to_item_response(item) for item in group.items])


def _to_pagination_response(cursor: PaginationSnapshot) -> PaginationResponse:
    return PaginationResponse(
        offset=cursor.offset, total=cursor.total, has_more=cursor.has_more
    )


def _to_layout(screen: FeedScreen) -> list[FeedBlockResponse]:
    group_indexes = {id(group): index for index, group in enumerate(screen.groups)}
    layout: list[FeedBlockResponse] = []
    for block in screen.blocks():
        if block.section is not None:
            layout.append(
                FeedBlockResponse(type=block.type, section_key=block.section.key)
            )
        elif block.group is not None:
            layout.append(
                FeedBlockResponse(type=block.type, group_index=group_indexes[id(block.group)])
            )
    return layout


def _to_screen_response(screen: FeedScreen) -> FeedScreenResponse:
    return FeedScreenResponse(
        session_id=screen.feed_id,
        generation=screen.generation,
        state=screen.state.value,
        sections=[
            _to_section_response(section)
            for section in screen.sections
            if not section.is_empty
        ],
        groups=[_to_group_response(group) for group in screen.groups],
        layout=_to_layout(screen),
        cursor=_to_pagination_response(screen.cursor),
        failed_sources=screen.failed_sources,
    )


@router.get(
    "/home",
    response_model=ApiResponse[FeedScreenResponse],
    status_code=status.HTTP_200_OK,
    summary="加载商城首页",
    description="并发抓取全部内容源并组装首页；传入已有 session_id 时返回缓存屏幕",
)
async def load_home(
    session_id: str | None = Query(None, description="Feed 会话ID"),
    registry: FeedSessionRegistry = Depends(get_feed_session_registry),
) -> ApiResponse[FeedScreenResponse]:
    """Load (or reuse) the store home feed."""
    orchestrator = await registry.get_or_create(session_id)
    screen = await orchestrator.load_home()
    return ApiResponse.success(data=_to_screen_response(screen))


@router.post(
    "/home/{session_id}/more",
    response_model=ApiResponse[LoadMoreResponse],
    status_code=status.HTTP_200_OK,
    summary="加载更多书籍",
    description="加载下一页全部书籍并追加混排组；重复或过快的请求会被忽略",
)
async def load_more(
    session_id: str,
    registry: FeedSessionRegistry = Depends(get_feed_session_registry),
) -> ApiResponse[LoadMoreResponse]:
    """Load the next page of the mixed feed."""
    orchestrator = await registry.get(session_id)
    result = await orchestrator.load_more()

    screen = orchestrator.screen
    group_count = len(screen.groups) if screen is not None else 0
    response = LoadMoreResponse(
        session_id=orchestrator.feed_id,
        loaded=result.loaded,
        reason=result.reason,
        group_offset=group_count - len(result.new_groups),
        new_groups=[_to_group_response(group) for group in result.new_groups],
        cursor=_to_pagination_response(result.cursor),
    )
    return ApiResponse.success(data=response)


@router.post(
    "/home/{session_id}/refresh",
    response_model=ApiResponse[FeedScreenResponse],
    status_code=status.HTTP_200_OK,
    summary="刷新商城首页",
    description="丢弃当前屏幕与分页状态并重新加载",
)
async def refresh_home(
    session_id: str,
    registry: FeedSessionRegistry = Depends(get_feed_session_registry),
) -> ApiResponse[FeedScreenResponse]:
    """Pull-to-refresh."""
    orchestrator = await registry.get(session_id)
    screen = await orchestrator.refresh()
    return ApiResponse.success(data=_to_screen_response(screen))


@router.delete(
    "/home/{session_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="关闭商城首页",
    description="关闭会话并取消进行中的抓取",
)
async def close_home(
    session_id: str,
    registry: FeedSessionRegistry = Depends(get_feed_session_registry),
) -> Response:
    """Close a feed session."""
    await registry.close(session_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
