"""统一的健康检查类型定义。

所有外部依赖的健康检查都使用这些类型，确保类型安全和一致性。
"""

from enum import Enum

from pydantic import BaseModel, Field


class HealthStatus(str, Enum):
    """健康检查状态枚举。"""

    OK = "ok"
    ERROR = "error"
    DEGRADED = "degraded"


class ServiceHealthResult(BaseModel):
    """上游 HTTP 服务健康检查结果。"""

    status: HealthStatus = Field(..., description="健康状态")
    reachable: bool = Field(..., description="是否可达")
    url: str = Field(..., description="检查地址")
    status_code: int | None = Field(None, description="HTTP 状态码")
    latency_ms: int | None = Field(None, description="响应耗时（毫秒）")
    error: str | None = Field(None, description="错误信息")

    def to_dict(self) -> dict[str, str | bool | int | None]:
        """转换为字典（用于 API 响应）。"""
        return self.model_dump(mode="json", exclude_none=False)
