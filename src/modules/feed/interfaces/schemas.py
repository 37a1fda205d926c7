"""Store feed API schemas."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class CatalogItemResponse(BaseModel):
    """Catalog item response."""

    id: str = Field(..., description="条目ID")
    title: str = Field(..., description="标题")
    author: str | None = Field(None, description="作者")
    cover_url: str | None = Field(None, description="封面URL")
    description: str | None = Field(None, description="简介")
    rating: float | None = Field(None, description="评分")
    rating_count: int = Field(0, description="评分人数")
    item_type: str = Field(..., description="条目类型")
    is_free: bool = Field(False, description="是否免费")
    price: float | None = Field(None, description="价格")
    membership_only: bool = Field(False, description="是否会员专享")
    published_year: int | None = Field(None, description="出版年份")


class CuratedListResponse(BaseModel):
    """Curated list response (without books)."""

    id: str = Field(..., description="书单ID")
    title: str = Field(..., description="书单名称")
    list_type: str = Field(..., description="书单类型")
    source: str = Field(..., description="来源标签")
    book_count: int | None = Field(None, description="书单总书数")
    cover_urls: list[str] = Field(default_factory=list, description="预览封面")


class ListWithBooksResponse(BaseModel):
    """Curated list with its resolved books."""

    curated_list: CuratedListResponse
    books: list[CatalogItemResponse] = Field(default_factory=list)


class RankingEntryResponse(BaseModel):
    """Ranking entry response."""

    rank: int = Field(..., description="名次")
    source: str = Field(..., description="榜单来源")
    item: CatalogItemResponse
    stats: dict[str, Any] = Field(default_factory=dict, description="快照统计")
    computed_at: datetime | None = Field(None, description="计算时间")


class FeedSectionResponse(BaseModel):
    """Feed section response."""

    key: str = Field(..., description="分区标识")
    title: str = Field(..., description="分区标题")
    kind: str = Field(..., description="负载类型")
    items: list[CatalogItemResponse] = Field(default_factory=list)
    lists: list[CuratedListResponse] = Field(default_factory=list)
    lists_with_books: list[ListWithBooksResponse] = Field(default_factory=list)
    rankings: list[RankingEntryResponse] = Field(default_factory=list)


class FeedGroupResponse(BaseModel):
    """Mixed feed group (1-4 books)."""

    items: list[CatalogItemResponse]


class FeedBlockResponse(BaseModel):
    """One block in screen order: a section key or a group index."""

    type: str = Field(..., description="section / group")
    section_key: str | None = Field(None, description="分区标识")
    group_index: int | None = Field(None, description="混排组下标")


class PaginationResponse(BaseModel):
    """Pagination cursor response."""

    offset: int = Field(..., description="已加载条数")
    total: int = Field(..., description="服务端总数")
    has_more: bool = Field(..., description="是否还有更多")


class FeedScreenResponse(BaseModel):
    """Composed store home feed."""

    session_id: str = Field(..., description="Feed 会话ID")
    generation: int = Field(..., description="刷新代数")
    state: str = Field(..., description="Feed 状态")
    sections: list[FeedSectionResponse] = Field(default_factory=list)
    groups: list[FeedGroupResponse] = Field(default_factory=list)
    layout: list[FeedBlockResponse] = Field(default_factory=list)
    cursor: PaginationResponse
    failed_sources: list[str] = Field(default_factory=list, description="失败的内容源")


class LoadMoreResponse(BaseModel):
    """Load-more response; loaded=false means the request was ignored."""

    session_id: str = Field(..., description="Feed 会话ID")
    loaded: bool = Field(..., description="是否加载了新数据")
    reason: str | None = Field(None, description="未加载的原因")
    group_offset: int = Field(..., description="首个新组在 groups 中的下标")
    new_groups: list[FeedGroupResponse] = Field(default_factory=list)
    cursor: PaginationResponse
