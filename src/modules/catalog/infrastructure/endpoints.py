"""Catalog service endpoint table.

每个 SourceKind 对应目录服务的一个 REST 端点及其返回形态。
"""

from dataclasses import dataclass, field
from typing import Any

from src.modules.catalog.domain.entities import ListType
from src.modules.catalog.domain.source import PayloadShape, SourceKind


@dataclass(frozen=True)
class SourceEndpoint:
    path: str
    shape: PayloadShape
    params: dict[str, Any] = field(default_factory=dict)
    list_type: ListType | None = None
    source_label: str | None = None


ENDPOINTS: dict[SourceKind, SourceEndpoint] = {
    SourceKind.ALL_BOOKS: SourceEndpoint("/ebooks", PayloadShape.ITEMS),
    SourceKind.RECOMMENDATIONS: SourceEndpoint(
        "/ebooks", PayloadShape.ITEMS, {"sort": "random"}
    ),
    SourceKind.TOP_RATED: SourceEndpoint(
        "/store/top-rated", PayloadShape.ITEMS, {"bookType": "ebook"}
    ),
    SourceKind.BOOKS_BY_YEAR: SourceEndpoint(
        "/store/books-by-year", PayloadShape.YEAR_GROUPS, {"bookType": "ebook"}
    ),
    SourceKind.BOOK_LISTS: SourceEndpoint(
        "/book-lists",
        PayloadShape.LISTS,
        {"sort": "popular"},
        list_type=ListType.BOOK_LIST,
    ),
    SourceKind.EXTERNAL_RANKINGS: SourceEndpoint(
        "/store/external-rankings", PayloadShape.RANKINGS, {"bookType": "ebook"}
    ),
    SourceKind.EDITOR_PICKS: SourceEndpoint(
        "/store/editor-picks",
        PayloadShape.LISTS,
        list_type=ListType.EDITOR_PICK,
        source_label="Editor",
    ),
    SourceKind.BOOK_SERIES: SourceEndpoint(
        "/store/book-series", PayloadShape.LISTS, list_type=ListType.SERIES
    ),
    SourceKind.WEEKLY_PICKS: SourceEndpoint(
        "/store/weekly-picks", PayloadShape.LISTS, list_type=ListType.WEEKLY
    ),
    SourceKind.CELEBRITY_PICKS: SourceEndpoint(
        "/store/celebrity-picks", PayloadShape.LISTS, list_type=ListType.CELEBRITY
    ),
    SourceKind.BIOGRAPHIES: SourceEndpoint(
        "/store/biographies", PayloadShape.LISTS, list_type=ListType.BIOGRAPHY
    ),
    SourceKind.NYT_LISTS: SourceEndpoint(
        "/store/lists/nyt",
        PayloadShape.LISTS,
        list_type=ListType.PLATFORM,
        source_label="NYT",
    ),
    SourceKind.AMAZON_LISTS: SourceEndpoint(
        "/store/lists/amazon",
        PayloadShape.LISTS,
        list_type=ListType.PLATFORM,
        source_label="Amazon",
    ),
    SourceKind.GOODREADS_LISTS: SourceEndpoint(
        "/store/lists/goodreads",
        PayloadShape.LISTS,
        list_type=ListType.PLATFORM,
        source_label="Goodreads",
    ),
    SourceKind.PULITZER_AWARDS: SourceEndpoint(
        "/store/awards/pulitzer",
        PayloadShape.LISTS,
        list_type=ListType.AWARD,
        source_label="Pulitzer",
    ),
    SourceKind.BOOKER_AWARDS: SourceEndpoint(
        "/store/awards/booker",
        PayloadShape.LISTS,
        list_type=ListType.AWARD,
        source_label="Booker",
    ),
    SourceKind.NEWBERY_AWARDS: SourceEndpoint(
        "/store/awards/newbery",
        PayloadShape.LISTS,
        list_type=ListType.AWARD,
        source_label="Newbery",
    ),
    SourceKind.AI_COLLECTION: SourceEndpoint(
        "/store/collections/ai",
        PayloadShape.SINGLE_LIST,
        list_type=ListType.COLLECTION,
        source_label="AI",
    ),
    SourceKind.BIOGRAPHY_COLLECTION: SourceEndpoint(
        "/store/collections/biography",
        PayloadShape.SINGLE_LIST,
        list_type=ListType.COLLECTION,
        source_label="Biography",
    ),
}


def get_endpoint(kind: SourceKind) -> SourceEndpoint:
    try:
        return ENDPOINTS[kind]
    except KeyError:
        raise ValueError(f"Unsupported source kind: {kind}") from None
