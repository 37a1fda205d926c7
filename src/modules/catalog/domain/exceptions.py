"""Catalog domain exceptions."""

from fastapi import status

from src.core.domain.exceptions import DomainException


class SourceUnavailableError(DomainException):
    """Raised when one content source cannot be fetched or parsed.

    只在客户端内部使用：fetch() 捕获后转换为空页，不会传播到 Feed。
    """

    http_status_code = status.HTTP_502_BAD_GATEWAY
    error_code = "SOURCE_UNAVAILABLE"

    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"Source '{source}' unavailable: {reason}")
