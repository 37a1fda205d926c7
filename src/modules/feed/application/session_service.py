"""Feed session registry.

每个客户端屏幕对应一个 FeedOrchestrator，按 session_id 保存在内存中。
超过 TTL 未访问或超出容量（LRU）的会话会被关闭并移除。
"""

import time
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass

from loguru import logger

from src.core.config import settings
from src.core.infrastructure.logging import BusinessEvents
from src.modules.feed.application.orchestrator import FeedOrchestrator
from src.modules.feed.domain.exceptions import FeedSessionNotFoundError


@dataclass
class _Session:
    orchestrator: FeedOrchestrator
    last_seen: float


class FeedSessionRegistry:
    """内存中的 Feed 会话表。"""

    def __init__(
        self,
        orchestrator_factory: Callable[[str | None], FeedOrchestrator],
        *,
        max_sessions: int | None = None,
        ttl_sec: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._factory = orchestrator_factory
        self.max_sessions = max_sessions or settings.FEED_SESSION_MAX
        self.ttl_sec = ttl_sec or settings.FEED_SESSION_TTL_SEC
        self._clock = clock
        self._sessions: OrderedDict[str, _Session] = OrderedDict()

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    async def get_or_create(self, session_id: str | None = None) -> FeedOrchestrator:
        """返回已有会话；不存在（或已过期）时新建。"""
        await self._evict_expired()
        if session_id is not None and session_id in self._sessions:
            return self._touch(session_id)

        orchestrator = self._factory(session_id)
        self._sessions[orchestrator.feed_id] = _Session(
            orchestrator=orchestrator, last_seen=self._clock()
        )
        logger.debug(f"Created feed session {orchestrator.feed_id}")

        while len(self._sessions) > self.max_sessions:
            oldest_id = next(iter(self._sessions))
            await self._evict(oldest_id, reason="capacity")
        return orchestrator

    async def get(self, session_id: str) -> FeedOrchestrator:
        """返回已有会话。

        Raises:
            FeedSessionNotFoundError: 会话不存在或已过期
        """
        await self._evict_expired()
        if session_id not in self._sessions:
            raise FeedSessionNotFoundError(session_id)
        return self._touch(session_id)

    async def close(self, session_id: str) -> None:
        session = self._sessions.pop(session_id, None)
        if session is None:
            raise FeedSessionNotFoundError(session_id)
        await session.orchestrator.close()

    async def close_all(self) -> None:
        sessions = list(self._sessions.values())
        self._sessions.clear()
        for session in sessions:
            await session.orchestrator.close()
        if sessions:
            logger.info(f"Closed {len(sessions)} feed sessions")

    def _touch(self, session_id: str) -> FeedOrchestrator:
        session = self._sessions[session_id]
        session.last_seen = self._clock()
        self._sessions.move_to_end(session_id)
        return session.orchestrator

    async def _evict_expired(self) -> None:
        now = self._clock()
        expired = [
            session_id
            for session_id, session in self._sessions.items()
            if now - session.last_seen > self.ttl_sec
        ]
        for session_id in expired:
            await self._evict(session_id, reason="expired")

    async def _evict(self, session_id: str, reason: str) -> None:
        session = self._sessions.pop(session_id, None)
        if session is None:
            return
        await session.orchestrator.close()
        BusinessEvents.feed_session_evicted(feed_id=session_id, reason=reason)
