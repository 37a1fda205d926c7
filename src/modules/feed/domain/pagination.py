"""Pagination cursor and load-more guard for infinite scroll."""

import threading
import time
from collections.abc import Callable
from enum import StrEnum

from src.core.config import settings
from src.core.domain.exceptions import ValidationError
from src.modules.feed.domain.entities import PaginationSnapshot


class PaginationCursor:
    """{offset, total, has_more}，has_more <=> offset < total。

    offset 在一个会话内单调递增，只有 reset() 会把它归零。
    """

    def __init__(self) -> None:
        self.offset = 0
        self.total = 0
        self.has_more = True

    def advance(self, received: int, total: int) -> None:
        """记录一页结果：received 为本页条数，total 为服务端总数。"""
        if received < 0:
            raise ValidationError("received must not be negative")
        self.offset += received
        self.total = max(total, 0)
        if received == 0:
            # 服务端不再返回数据时视为到底，避免无限请求同一偏移
            self.total = min(self.total, self.offset)
        self.has_more = self.offset < self.total

    def reset(self) -> None:
        self.offset = 0
        self.total = 0
        self.has_more = True

    def snapshot(self) -> PaginationSnapshot:
        return PaginationSnapshot(
            offset=self.offset, total=self.total, has_more=self.has_more
        )


class GuardState(StrEnum):
    IDLE = "idle"
    LOADING = "loading"
    EXHAUSTED = "exhausted"


class LoadRejection(StrEnum):
    """加载更多被拒绝的原因（静默，不是错误）。"""

    EXHAUSTED = "exhausted"
    IN_FLIGHT = "in_flight"
    COOLDOWN = "cooldown"
    NOT_LOADED = "not_loaded"
    SUPERSEDED = "superseded"
    SOURCE_UNAVAILABLE = "source_unavailable"


class LoadMoreGuard:
    """加载更多的三重守卫：has_more、无进行中的加载、冷却时间已过。

    Idle -> Loading -> Idle（或 has_more 变为 False 后 -> Exhausted）。
    状态切换在互斥锁内完成，多个并发调用只有一个能进入 Loading。
    """

    def __init__(
        self,
        cooldown_sec: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.cooldown_sec = (
            settings.load_more_cooldown_sec if cooldown_sec is None else cooldown_sec
        )
        self._clock = clock
        self._lock = threading.Lock()
        self.state = GuardState.IDLE
        self._last_started_at: float | None = None

    def try_begin(self, has_more: bool) -> LoadRejection | None:
        """尝试进入 Loading；成功返回 None，否则返回拒绝原因。"""
        with self._lock:
            if not has_more:
                if self.state != GuardState.LOADING:
                    self.state = GuardState.EXHAUSTED
                return LoadRejection.EXHAUSTED
            if self.state == GuardState.LOADING:
                return LoadRejection.IN_FLIGHT

            now = self._clock()
            if (
                self._last_started_at is not None
                and now - self._last_started_at < self.cooldown_sec
            ):
                return LoadRejection.COOLDOWN

            self.state = GuardState.LOADING
            self._last_started_at = now
            return None

    def finish(self, has_more: bool) -> None:
        with self._lock:
            self.state = GuardState.IDLE if has_more else GuardState.EXHAUSTED

    def reset(self) -> None:
        """强制回到 Idle 并清除冷却（显式刷新后可立即加载）。"""
        with self._lock:
            self.state = GuardState.IDLE
            self._last_started_at = None

    @property
    def is_loading(self) -> bool:
        return self.state == GuardState.LOADING
