"""目录服务 HTTP 客户端。

为每个 SourceKind 提供统一的 fetch(kind, limit, offset) 接口。
任何网络错误、超时、4xx/5xx 或非法响应都转换为失败的空页：
单个源失败不会中断整个 Feed。
"""

import time
from typing import Any

import httpx
from loguru import logger
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from src.core.config import settings
from src.core.infrastructure.health import HealthStatus, ServiceHealthResult
from src.core.infrastructure.logging import BusinessEvents
from src.modules.catalog.domain.exceptions import SourceUnavailableError
from src.modules.catalog.domain.source import SourceKind, SourcePage
from src.modules.catalog.infrastructure.endpoints import get_endpoint
from src.modules.catalog.infrastructure.parsers import parse_page


class CatalogApiClient:
    """Catalog / Curated List / Ranking 服务客户端。"""

    def __init__(
        self,
        *,
        base_url: str | None = None,
        token: str | None = None,
        timeout_sec: float | None = None,
        max_limit: int | None = None,
        max_attempts: int | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = (base_url or settings.CATALOG_API_BASE_URL).rstrip("/")
        self.timeout_sec = timeout_sec or settings.SOURCE_FETCH_TIMEOUT_SEC
        self.max_limit = max_limit or settings.SOURCE_MAX_LIMIT
        self.max_attempts = max(1, max_attempts or settings.SOURCE_FETCH_MAX_ATTEMPTS)

        self._headers = {
            "User-Agent": settings.CATALOG_USER_AGENT,
            "Accept": "application/json",
        }
        token = token or settings.CATALOG_API_TOKEN
        if token:
            self._headers["Authorization"] = f"Bearer {token}"

        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def client(self) -> httpx.AsyncClient:
        """获取 httpx 客户端实例（延迟初始化）。"""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout_sec,
                headers=self._headers,
                transport=self._transport,
            )
        return self._client

    async def aclose(self) -> None:
        """关闭连接池。"""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def clamp_limit(self, limit: int) -> int:
        return max(1, min(limit, self.max_limit))

    async def fetch(
        self,
        kind: SourceKind,
        limit: int,
        offset: int = 0,
        **params: Any,
    ) -> SourcePage:
        """抓取一个内容源。

        Args:
            kind: 内容源
            limit: 条数（会被限制在 [1, SOURCE_MAX_LIMIT]）
            offset: 分页偏移
            **params: 额外查询参数（如 booksPerList、minRatingCount）

        Returns:
            SourcePage，失败时为空页且 failed=True
        """
        start_time = time.time()
        endpoint = get_endpoint(kind)
        limit = self.clamp_limit(limit)
        offset = max(0, offset)

        query: dict[str, Any] = {**endpoint.params, **params, "limit": limit}
        if offset:
            query["offset"] = offset

        try:
            payload = await self._get_json(endpoint.path, query)
            items, total, has_more = parse_page(kind, endpoint, payload, offset)
            duration_ms = int((time.time() - start_time) * 1000)
            return SourcePage.success(
                kind,
                items,
                total=total,
                has_more=has_more,
                offset=offset,
                duration_ms=duration_ms,
            )

        except httpx.TimeoutException as e:
            return self._failed(kind, offset, start_time, f"Timeout: {e}")
        except httpx.HTTPStatusError as e:
            return self._failed(
                kind, offset, start_time, f"HTTP {e.response.status_code}"
            )
        except httpx.HTTPError as e:
            return self._failed(kind, offset, start_time, f"Transport error: {e}")
        except SourceUnavailableError as e:
            return self._failed(kind, offset, start_time, e.reason)
        except ValueError as e:
            # 响应体不是合法 JSON
            return self._failed(kind, offset, start_time, f"Invalid JSON: {e}")

    async def _get_json(self, path: str, query: dict[str, Any]) -> Any:
        async for attempt in AsyncRetrying(
            # 超时不重试，外层单源超时与 httpx 超时相同
            retry=retry_if_exception_type(httpx.TransportError)
            & retry_if_not_exception_type(httpx.TimeoutException),
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=0.2, max=2),
            reraise=True,
        ):
            with attempt:
                response = await self.client.get(path, params=query)
                response.raise_for_status()
                return response.json()

    def _failed(
        self,
        kind: SourceKind,
        offset: int,
        start_time: float,
        error: str,
    ) -> SourcePage:
        duration_ms = int((time.time() - start_time) * 1000)
        logger.warning(f"Catalog source {kind} failed after {duration_ms}ms: {error}")
        BusinessEvents.source_fetch_failed(
            source=str(kind), error=error, duration_ms=duration_ms
        )
        return SourcePage.failed_page(
            kind, error, offset=offset, duration_ms=duration_ms
        )

    async def check_health(self) -> ServiceHealthResult:
        """检查目录服务是否可达。"""
        url = f"{self.base_url}{settings.CATALOG_HEALTH_PATH}"
        start_time = time.time()
        try:
            response = await self.client.get(settings.CATALOG_HEALTH_PATH)
            latency_ms = int((time.time() - start_time) * 1000)
            ok = response.status_code < 400
            return ServiceHealthResult(
                status=HealthStatus.OK if ok else HealthStatus.DEGRADED,
                reachable=True,
                url=url,
                status_code=response.status_code,
                latency_ms=latency_ms,
            )
        except httpx.HTTPError as e:
            return ServiceHealthResult(
                status=HealthStatus.ERROR,
                reachable=False,
                url=url,
                error=str(e) or type(e).__name__,
            )
