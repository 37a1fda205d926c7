"""Feed module dependencies."""

from src.modules.catalog.infrastructure.dependencies import get_catalog_client
from src.modules.feed.application.orchestrator import FeedOrchestrator
from src.modules.feed.application.session_service import FeedSessionRegistry


def create_orchestrator(session_id: str | None = None) -> FeedOrchestrator:
    return FeedOrchestrator(get_catalog_client(), feed_id=session_id)


# 全局会话表（应用关闭时关闭所有会话）
feed_session_registry = FeedSessionRegistry(create_orchestrator)


async def get_feed_session_registry() -> FeedSessionRegistry:
    return feed_session_registry
