"""Feed module application dependencies.

Defines dependency providers for interfaces layer without importing infrastructure.
"""

from typing import NoReturn

from src.modules.feed.application.session_service import FeedSessionRegistry


def _missing_dependency(name: str) -> NoReturn:
    raise RuntimeError(f"Missing dependency override for {name}")


async def get_feed_session_registry() -> FeedSessionRegistry:
    _missing_dependency("FeedSessionRegistry")
