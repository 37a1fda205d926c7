"""Catalog payload parsers.

把目录服务的 JSON 响应 `{data, total, hasMore}` 转换为领域对象。
单条记录解析失败时跳过并记录日志；整体结构非法时抛出 SourceUnavailableError。
"""

from typing import Any

from loguru import logger
from pydantic import ValidationError as PydanticValidationError

from src.modules.catalog.domain.entities import (
    CatalogItem,
    CuratedList,
    ListType,
    RankingEntry,
)
from src.modules.catalog.domain.exceptions import SourceUnavailableError
from src.modules.catalog.domain.source import PayloadShape, SourceKind
from src.modules.catalog.infrastructure.endpoints import SourceEndpoint

_SOURCE_KEYS = ("source", "displaySourceName", "sourceName")


def parse_page(
    kind: SourceKind,
    endpoint: SourceEndpoint,
    payload: Any,
    offset: int = 0,
) -> tuple[list[Any], int | None, bool | None]:
    """解析响应体。

    Returns:
        (items, total, has_more)，total/has_more 缺省时为 None
    """
    if not isinstance(payload, dict):
        raise SourceUnavailableError(kind, "payload must be a JSON object")

    data = payload.get("data")
    if endpoint.shape == PayloadShape.SINGLE_LIST:
        if data is None:
            return [], 0, False
        if not isinstance(data, dict):
            raise SourceUnavailableError(kind, "data must be an object")
        parsed = _parse_list(kind, endpoint, data)
        items = [parsed] if parsed is not None else []
        return items, len(items), False

    if data is None:
        data = []
    if not isinstance(data, list):
        raise SourceUnavailableError(kind, "data must be an array")

    if endpoint.shape == PayloadShape.ITEMS:
        items = _parse_many(kind, data, _parse_item)
    elif endpoint.shape == PayloadShape.LISTS:
        items = _parse_many(kind, data, lambda raw: _parse_list(kind, endpoint, raw))
    elif endpoint.shape == PayloadShape.RANKINGS:
        items = [
            entry
            for index, raw in enumerate(data)
            if (entry := _parse_ranking(kind, raw, offset + index + 1)) is not None
        ]
    elif endpoint.shape == PayloadShape.YEAR_GROUPS:
        items = _parse_many(kind, data, _parse_year_group)
    else:
        raise SourceUnavailableError(kind, f"unknown payload shape {endpoint.shape}")

    total = payload.get("total")
    has_more = payload.get("hasMore")
    return (
        items,
        total if isinstance(total, int) and total >= 0 else None,
        has_more if isinstance(has_more, bool) else None,
    )


def _parse_many(kind: SourceKind, data: list[Any], parse_one) -> list[Any]:
    items: list[Any] = []
    for raw in data:
        parsed = parse_one(raw)
        if parsed is None:
            logger.debug(f"Skipping malformed {kind} record: {raw!r:.200}")
            continue
        items.append(parsed)
    return items


def _parse_item(raw: Any) -> CatalogItem | None:
    if not isinstance(raw, dict):
        return None
    try:
        return CatalogItem.model_validate(raw)
    except PydanticValidationError:
        return None


def _parse_list(
    kind: SourceKind,
    endpoint: SourceEndpoint,
    raw: Any,
) -> CuratedList | None:
    if not isinstance(raw, dict):
        return None

    values = dict(raw)
    source = next(
        (values[key] for key in _SOURCE_KEYS if isinstance(values.get(key), str)),
        None,
    )
    values["source"] = source or endpoint.source_label or values.get("title", "")
    if "listType" not in values and "list_type" not in values:
        values["listType"] = endpoint.list_type or ListType.BOOK_LIST

    books = values.get("books")
    if isinstance(books, list):
        values["books"] = [b for b in (_parse_item(book) for book in books) if b]

    try:
        return CuratedList.model_validate(values)
    except PydanticValidationError as exc:
        logger.debug(f"Invalid curated list from {kind}: {exc.error_count()} errors")
        return None


def _parse_ranking(kind: SourceKind, raw: Any, fallback_rank: int) -> RankingEntry | None:
    if not isinstance(raw, dict):
        return None

    values = dict(raw)
    source = next(
        (values[key] for key in _SOURCE_KEYS if isinstance(values.get(key), str)),
        "",
    )
    values["source"] = source
    rank = values.get("rank")
    if not isinstance(rank, int) or rank < 1:
        # 缺失或非法名次按位置补齐
        values["rank"] = fallback_rank
    if "book" not in values and "item" not in values:
        # 榜单条目本身就是书籍记录
        values["book"] = {
            k: v for k, v in raw.items() if k not in ("rank", "stats", *_SOURCE_KEYS)
        }

    try:
        return RankingEntry.model_validate(values)
    except PydanticValidationError as exc:
        logger.debug(f"Invalid ranking entry from {kind}: {exc.error_count()} errors")
        return None


def _parse_year_group(raw: Any) -> CuratedList | None:
    if not isinstance(raw, dict):
        return None
    year = raw.get("year")
    if year is None:
        return None

    books = raw.get("books") if isinstance(raw.get("books"), list) else []
    return CuratedList(
        id=f"year-{year}",
        title=str(year),
        list_type=ListType.YEAR,
        source=str(year),
        items=tuple(b for b in (_parse_item(book) for book in books) if b),
        book_count=len(books),
    )
