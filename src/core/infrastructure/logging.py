"""Logging configuration with structlog integration.

提供两种日志记录方式：
1. loguru: 用于一般调试日志
2. structlog: 用于关键业务事件的结构化日志
"""

import sys
from typing import Any

import structlog
from loguru import logger

from src.core.config import settings


def setup_logging() -> None:
    """Configure application logging with structlog and loguru."""
    _configure_structlog()
    _configure_loguru()

    logger.info(f"Logging configured with level: {settings.LOG_LEVEL}")


def _configure_structlog() -> None:
    """配置 structlog 处理器链。"""
    if settings.ENVIRONMENT == "local":
        renderer = structlog.dev.ConsoleRenderer(colors=True)
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.CallsiteParameterAdder(
                [
                    structlog.processors.CallsiteParameter.MODULE,
                    structlog.processors.CallsiteParameter.FUNC_NAME,
                    structlog.processors.CallsiteParameter.LINENO,
                ]
            ),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            _get_log_level_number(settings.LOG_LEVEL)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


def _configure_loguru() -> None:
    """配置 loguru。"""
    logger.remove()

    logger.add(
        sys.stderr,
        level=settings.LOG_LEVEL,
        format=(
            "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
            "<level>{message}</level>"
        ),
        colorize=True,
    )

    if settings.ENVIRONMENT != "local":
        logger.add(
            "logs/storefeed_{time:YYYY-MM-DD}.log",
            rotation="00:00",
            retention="14 days",
            level="INFO",
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}",
        )


def _get_log_level_number(level: str) -> int:
    """将日志级别字符串转换为数字。"""
    levels = {
        "DEBUG": 10,
        "INFO": 20,
        "WARNING": 30,
        "ERROR": 40,
        "CRITICAL": 50,
    }
    return levels.get(level.upper(), 20)


# ============================================================================
# 业务事件日志记录器
# ============================================================================


class BusinessEvents:
    """业务事件日志助手类。

    提供统一的业务事件日志记录接口，确保事件格式一致。

    Usage:
        from src.core.infrastructure.logging import BusinessEvents

        BusinessEvents.source_fetch_failed(source="editor_picks", error="HTTP 503")
    """

    _log = structlog.get_logger("business.events")

    @classmethod
    def source_fetch_failed(
        cls,
        source: str,
        error: str,
        duration_ms: int | None = None,
        **extra: Any,
    ) -> None:
        """记录内容源抓取失败事件（按空结果降级）。"""
        cls._log.warning(
            "source_fetch_failed",
            event_type="source_error",
            source=source,
            error=error,
            duration_ms=duration_ms,
            **extra,
        )

    @classmethod
    def feed_loaded(
        cls,
        feed_id: str,
        section_count: int,
        group_count: int,
        failed_sources: list[str],
        latency_ms: int,
        **extra: Any,
    ) -> None:
        """记录首页 Feed 组装完成事件。"""
        level = "warning" if failed_sources else "info"
        getattr(cls._log, level)(
            "feed_loaded",
            event_type="feed",
            feed_id=feed_id,
            section_count=section_count,
            group_count=group_count,
            failed_sources=failed_sources,
            latency_ms=latency_ms,
            **extra,
        )

    @classmethod
    def feed_refreshed(cls, feed_id: str, generation: int, **extra: Any) -> None:
        """记录下拉刷新事件。"""
        cls._log.info(
            "feed_refreshed",
            event_type="feed",
            feed_id=feed_id,
            generation=generation,
            **extra,
        )

    @classmethod
    def load_more_completed(
        cls,
        feed_id: str,
        offset: int,
        total: int,
        new_items: int,
        new_groups: int,
        **extra: Any,
    ) -> None:
        """记录加载更多完成事件。"""
        cls._log.info(
            "load_more_completed",
            event_type="pagination",
            feed_id=feed_id,
            offset=offset,
            total=total,
            new_items=new_items,
            new_groups=new_groups,
            **extra,
        )

    @classmethod
    def load_more_rejected(cls, feed_id: str, reason: str, **extra: Any) -> None:
        """记录加载更多被节流/拒绝事件（非错误）。"""
        cls._log.debug(
            "load_more_rejected",
            event_type="pagination",
            feed_id=feed_id,
            reason=reason,
            **extra,
        )

    @classmethod
    def sample_pool_exhausted(
        cls,
        requested: int,
        pool_size: int,
        **extra: Any,
    ) -> None:
        """记录采样池不足事件（直接返回整个池）。"""
        cls._log.info(
            "sample_pool_exhausted",
            event_type="sampling",
            requested=requested,
            pool_size=pool_size,
            **extra,
        )

    @classmethod
    def feed_session_evicted(cls, feed_id: str, reason: str, **extra: Any) -> None:
        """记录 Feed 会话被淘汰事件。"""
        cls._log.info(
            "feed_session_evicted",
            event_type="session",
            feed_id=feed_id,
            reason=reason,
            **extra,
        )
