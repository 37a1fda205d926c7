"""
pytest 配置和共享 fixtures。

测试分层：
- unit/: 单元测试（不依赖外部服务，目录服务用 fake / httpx.MockTransport 代替）

使用方法：
    # 运行所有测试
    uv run pytest

    # 只运行单元测试
    uv run pytest tests/unit/

    # 运行带覆盖率
    uv run pytest --cov=src --cov-report=html
"""

import random
from collections.abc import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient

from src.modules.catalog.domain.entities import CatalogItem, ListType
from src.modules.catalog.domain.source import SourceKind
from tests.factories import (
    FakeClock,
    FakeContentSource,
    make_item,
    make_list,
    make_ranking,
)

# ============================================
# 配置 Fixtures
# ============================================


@pytest.fixture
def anyio_backend() -> str:
    """Feed 编排依赖 asyncio 的取消语义，只在 asyncio 上运行。"""
    return "asyncio"


# ============================================
# Fake 内容源
# ============================================


@pytest.fixture
def sample_books() -> list[CatalogItem]:
    """75 本书（30 + 30 + 15 三页）。"""
    return [make_item(f"book-{i}", rating=3.0 + (i % 3)) for i in range(75)]


@pytest.fixture
def fake_source(sample_books) -> FakeContentSource:
    source = FakeContentSource(all_books=sample_books)
    source.pages[SourceKind.RECOMMENDATIONS] = [make_item(f"rec-{i}") for i in range(12)]
    source.pages[SourceKind.TOP_RATED] = [
        make_item(f"top-{i}", rating=3.0 + (i % 5) * 0.5) for i in range(30)
    ]
    source.pages[SourceKind.NYT_LISTS] = [make_list(f"nyt-{i}", "NYT") for i in range(3)]
    source.pages[SourceKind.AMAZON_LISTS] = [
        make_list(f"amazon-{i}", "Amazon") for i in range(2)
    ]
    source.pages[SourceKind.PULITZER_AWARDS] = [
        make_list("pulitzer-0", "Pulitzer", list_type=ListType.AWARD)
    ]
    source.pages[SourceKind.EDITOR_PICKS] = [
        make_list(f"editor-{i}", "Editor", book_count=12, list_type=ListType.EDITOR_PICK)
        for i in range(6)
    ]
    source.pages[SourceKind.EXTERNAL_RANKINGS] = [
        *(make_ranking(rank, "NYT") for rank in range(1, 4)),
        *(make_ranking(rank, "Amazon") for rank in range(1, 3)),
    ]
    source.pages[SourceKind.BOOKS_BY_YEAR] = [
        make_list("year-2024", "2024", list_type=ListType.YEAR),
        make_list("year-2023", "2023", list_type=ListType.YEAR),
    ]
    source.pages[SourceKind.AI_COLLECTION] = [
        make_list("ai", "AI", book_count=25, list_type=ListType.COLLECTION)
    ]
    return source


@pytest.fixture
def seeded_rng() -> random.Random:
    return random.Random(42)


# ============================================
# 时间控制 Fixtures
# ============================================


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


# ============================================
# HTTP 客户端 Fixtures
# ============================================


@pytest.fixture
async def async_client(fake_source, seeded_rng) -> AsyncGenerator[AsyncClient, None]:
    """异步 HTTP 客户端（用于 API 测试），目录服务替换为 fake_source。"""
    from main import app
    from src.modules.feed.application.dependencies import get_feed_session_registry
    from src.modules.feed.application.orchestrator import FeedOrchestrator
    from src.modules.feed.application.session_service import FeedSessionRegistry

    registry = FeedSessionRegistry(
        lambda session_id: FeedOrchestrator(
            fake_source, rng=seeded_rng, feed_id=session_id
        )
    )

    async def _get_registry() -> FeedSessionRegistry:
        return registry

    # 覆盖依赖
    original_overrides = dict(app.dependency_overrides)
    app.dependency_overrides[get_feed_session_registry] = _get_registry

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client

    await registry.close_all()
    # 恢复依赖覆盖
    app.dependency_overrides.clear()
    app.dependency_overrides.update(original_overrides)
