"""目录服务客户端测试（httpx.MockTransport，不访问网络）。"""

import json
from collections.abc import Callable

import httpx
import pytest

from src.core.infrastructure.health import HealthStatus
from src.modules.catalog.domain.entities import CatalogItem, CuratedList, ListType
from src.modules.catalog.domain.source import FetchStatus, SourceKind
from src.modules.catalog.infrastructure.catalog_client import CatalogApiClient
from src.modules.catalog.infrastructure.endpoints import ENDPOINTS, get_endpoint
from src.modules.catalog.infrastructure.parsers import parse_page

pytestmark = pytest.mark.anyio


def _book(book_id: int, **extra) -> dict:
    return {
        "id": book_id,
        "title": f"Book {book_id}",
        "author": "Author",
        "coverUrl": f"https://covers.test/{book_id}.jpg",
        "rating": 4.5,
        "ratingCount": 12,
        **extra,
    }


def _client(handler: Callable[[httpx.Request], httpx.Response], **kwargs) -> CatalogApiClient:
    return CatalogApiClient(
        base_url="http://catalog.test/api",
        transport=httpx.MockTransport(handler),
        max_attempts=kwargs.pop("max_attempts", 1),
        **kwargs,
    )


class TestCatalogApiClient:
    """CatalogApiClient.fetch 测试。"""

    async def test_fetch_items_page(self):
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(
                200,
                json={"data": [_book(1), _book(2)], "total": 75, "hasMore": True},
            )

        client = _client(handler)
        page = await client.fetch(SourceKind.ALL_BOOKS, 30, offset=30)
        await client.aclose()

        assert page.status == FetchStatus.SUCCESS
        assert [item.id for item in page.items] == ["1", "2"]
        assert isinstance(page.items[0], CatalogItem)
        assert page.items[0].cover_url == "https://covers.test/1.jpg"
        assert page.items[0].rating_count == 12
        assert (page.total, page.has_more, page.offset) == (75, True, 30)

        url = requests[0].url
        assert url.path == "/api/ebooks"
        assert url.params["limit"] == "30"
        assert url.params["offset"] == "30"

    async def test_limit_is_clamped(self):
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json={"data": []})

        client = _client(handler, max_limit=50)
        await client.fetch(SourceKind.EXTERNAL_RANKINGS, 500)
        await client.aclose()

        assert requests[0].url.params["limit"] == "50"
        assert "offset" not in requests[0].url.params

    async def test_endpoint_and_extra_params_are_sent(self):
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json={"data": []})

        client = _client(handler)
        await client.fetch(SourceKind.TOP_RATED, 30, minRatingCount=3)
        await client.aclose()

        params = requests[0].url.params
        assert requests[0].url.path == "/api/store/top-rated"
        assert params["bookType"] == "ebook"
        assert params["minRatingCount"] == "3"

    async def test_missing_total_and_has_more_default(self):
        client = _client(lambda _: httpx.Response(200, json={"data": [_book(1)]}))
        page = await client.fetch(SourceKind.RECOMMENDATIONS, 12)
        await client.aclose()

        assert page.total == 1
        assert page.has_more is False

    async def test_empty_data_is_empty_not_failed(self):
        client = _client(lambda _: httpx.Response(200, json={"data": [], "total": 0}))
        page = await client.fetch(SourceKind.BOOK_LISTS, 6)
        await client.aclose()

        assert page.status == FetchStatus.EMPTY
        assert not page.failed

    @pytest.mark.parametrize(
        ("response", "expected_error"),
        [
            (httpx.Response(503, json={"error": "down"}), "HTTP 503"),
            (httpx.Response(404), "HTTP 404"),
            (httpx.Response(200, content=b"<html>"), "Invalid JSON"),
            (httpx.Response(200, json=[1, 2, 3]), "JSON object"),
            (httpx.Response(200, json={"data": {"id": 1}}), "data must be an array"),
        ],
    )
    async def test_failures_become_empty_pages(self, response, expected_error):
        client = _client(lambda _: response)
        page = await client.fetch(SourceKind.EDITOR_PICKS, 10)
        await client.aclose()

        assert page.failed
        assert page.items == []
        assert expected_error in page.error_message

    async def test_transport_error_is_retried(self):
        attempts = {"count": 0}

        def handler(request: httpx.Request) -> httpx.Response:
            attempts["count"] += 1
            if attempts["count"] == 1:
                raise httpx.ConnectError("connection refused", request=request)
            return httpx.Response(200, json={"data": [_book(1)], "total": 1})

        client = _client(handler, max_attempts=2)
        page = await client.fetch(SourceKind.ALL_BOOKS, 30)
        await client.aclose()

        assert attempts["count"] == 2
        assert page.status == FetchStatus.SUCCESS

    async def test_timeout_is_not_retried(self):
        attempts = {"count": 0}

        def handler(request: httpx.Request) -> httpx.Response:
            attempts["count"] += 1
            if attempts["count"] == 1:
                raise httpx.ReadTimeout("read timed out", request=request)
            return httpx.Response(200, json={"data": [_book(1)], "total": 1})

        client = _client(handler, max_attempts=3)
        page = await client.fetch(SourceKind.ALL_BOOKS, 30)
        await client.aclose()

        assert attempts["count"] == 1
        assert page.failed
        assert "Timeout" in page.error_message

    async def test_transport_error_after_retries_fails_page(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        client = _client(handler, max_attempts=1)
        page = await client.fetch(SourceKind.ALL_BOOKS, 30)
        await client.aclose()

        assert page.failed
        assert "Transport error" in page.error_message

    async def test_malformed_records_are_skipped(self):
        payload = {"data": [_book(1), {"title": "no id"}, "junk", _book(2)], "total": 4}
        client = _client(lambda _: httpx.Response(200, json=payload))
        page = await client.fetch(SourceKind.ALL_BOOKS, 30)
        await client.aclose()

        assert [item.id for item in page.items] == ["1", "2"]
        assert page.total == 4

    async def test_bearer_token_header(self):
        headers: list[httpx.Headers] = []

        def handler(request: httpx.Request) -> httpx.Response:
            headers.append(request.headers)
            return httpx.Response(200, json={"data": []})

        client = _client(handler, token="secret-token")
        await client.fetch(SourceKind.ALL_BOOKS, 1)
        await client.aclose()

        assert headers[0]["Authorization"] == "Bearer secret-token"

    async def test_check_health(self):
        client = _client(lambda _: httpx.Response(200, json={"status": "ok"}))
        result = await client.check_health()
        await client.aclose()

        assert result.status == HealthStatus.OK
        assert result.reachable
        assert result.to_dict()["status"] == "ok"

    async def test_check_health_unreachable(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        client = _client(handler)
        result = await client.check_health()
        await client.aclose()

        assert result.status == HealthStatus.ERROR
        assert not result.reachable


class TestParsers:
    """响应体解析测试。"""

    def test_every_source_kind_has_endpoint(self):
        assert set(ENDPOINTS) == set(SourceKind)

    def test_lists_fill_source_label(self):
        endpoint = get_endpoint(SourceKind.NYT_LISTS)
        payload = {
            "data": [
                {"id": 1, "title": "Fiction", "books": [_book(1), _book(2)]},
                {"id": 2, "title": "Nonfiction", "sourceName": "New York Times"},
            ]
        }

        items, total, has_more = parse_page(SourceKind.NYT_LISTS, endpoint, payload)

        assert all(isinstance(item, CuratedList) for item in items)
        assert [item.source for item in items] == ["NYT", "New York Times"]
        assert items[0].list_type == ListType.PLATFORM
        assert [book.id for book in items[0].items] == ["1", "2"]
        assert (total, has_more) == (None, None)

    def test_rankings_fall_back_to_position(self):
        endpoint = get_endpoint(SourceKind.EXTERNAL_RANKINGS)
        payload = {
            "data": [
                {"book": _book(1), "source": "NYT"},
                {**_book(2), "source": "Amazon", "rank": 7},
            ]
        }

        items, _, _ = parse_page(SourceKind.EXTERNAL_RANKINGS, endpoint, payload, offset=10)

        assert [(entry.rank, entry.source, entry.item.id) for entry in items] == [
            (11, "NYT", "1"),
            (7, "Amazon", "2"),
        ]

    def test_rankings_below_one_fall_back_to_position(self):
        endpoint = get_endpoint(SourceKind.EXTERNAL_RANKINGS)
        payload = {
            "data": [
                {"book": _book(1), "source": "NYT", "rank": 0},
                {"book": _book(2), "source": "NYT", "rank": -3},
            ]
        }

        items, _, _ = parse_page(SourceKind.EXTERNAL_RANKINGS, endpoint, payload)

        assert [(entry.rank, entry.item.id) for entry in items] == [(1, "1"), (2, "2")]

    def test_non_finite_rating_is_treated_as_missing(self):
        endpoint = get_endpoint(SourceKind.TOP_RATED)
        payload = {
            "data": [
                _book(1, rating=float("nan")),
                _book(2, rating=float("inf"), price=float("nan")),
                _book(3, rating=5.0, price=9.99),
            ]
        }

        items, _, _ = parse_page(SourceKind.TOP_RATED, endpoint, payload)

        assert [item.id for item in items] == ["1", "2", "3"]
        assert [item.rating for item in items] == [None, None, 5.0]
        assert items[1].price is None
        assert items[2].price == pytest.approx(9.99)

    def test_year_groups(self):
        endpoint = get_endpoint(SourceKind.BOOKS_BY_YEAR)
        payload = {"data": [{"year": 2024, "books": [_book(1)]}, {"books": []}]}

        items, _, _ = parse_page(SourceKind.BOOKS_BY_YEAR, endpoint, payload)

        assert len(items) == 1
        assert items[0].id == "year-2024"
        assert items[0].list_type == ListType.YEAR

    def test_single_list_collection(self):
        endpoint = get_endpoint(SourceKind.AI_COLLECTION)
        payload = {"data": {"id": "ai", "title": "AI", "books": [_book(1)]}}

        items, total, has_more = parse_page(SourceKind.AI_COLLECTION, endpoint, payload)

        assert len(items) == 1
        assert (total, has_more) == (1, False)

    def test_payload_as_text_is_rejected(self):
        from src.modules.catalog.domain.exceptions import SourceUnavailableError

        endpoint = get_endpoint(SourceKind.ALL_BOOKS)
        with pytest.raises(SourceUnavailableError):
            parse_page(SourceKind.ALL_BOOKS, endpoint, json.dumps({"data": []}))
