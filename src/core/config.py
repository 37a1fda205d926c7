"""Application configuration."""

from typing import Annotated, Any, Literal, Self

from pydantic import (
    AnyUrl,
    BeforeValidator,
    computed_field,
    model_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict


def parse_cors(v: Any) -> list[str] | str:
    if isinstance(v, str) and not v.startswith("["):
        return [i.strip() for i in v.split(",")]
    elif isinstance(v, list | str):
        return v
    raise ValueError(v)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore",
    )

    # Application
    PROJECT_NAME: str = "BookLibrio Store"
    SERVER_PORT: int = 8000
    ROOTPATH: str = ""
    API_V1_STR: str = "/api/v1"
    FRONTEND_HOST: str = "http://localhost:3000"
    ENVIRONMENT: Literal["local", "staging", "production"] = "local"
    LOG_LEVEL: str = "INFO"

    BACKEND_CORS_ORIGINS: Annotated[
        list[AnyUrl] | str, BeforeValidator(parse_cors)
    ] = []
    CORS_ALLOW_METHODS: list[str] = ["GET", "POST", "DELETE", "OPTIONS"]
    CORS_ALLOW_HEADERS: list[str] = ["*"]

    @computed_field
    @property
    def all_cors_origins(self) -> list[str]:
        return [str(origin).rstrip("/") for origin in self.BACKEND_CORS_ORIGINS] + [
            self.FRONTEND_HOST
        ]

    # Catalog Service（目录服务：书籍/书单/榜单）
    CATALOG_API_BASE_URL: str = "http://localhost:3001/api"
    CATALOG_API_TOKEN: str | None = None
    CATALOG_USER_AGENT: str = "BookLibrio-StoreFeed/1.0"
    CATALOG_HEALTH_PATH: str = "/health"
    SOURCE_FETCH_TIMEOUT_SEC: float = 10.0  # 单个源的独立超时
    SOURCE_FETCH_MAX_ATTEMPTS: int = 2  # 仅针对连接类传输错误重试（超时不重试）
    SOURCE_MAX_LIMIT: int = 50  # 服务端单次最大条数

    # Feed: all books pagination（无限滚动）
    ALL_BOOKS_PAGE_SIZE: int = 30
    LOAD_MORE_COOLDOWN_MS: int = 500

    # Feed: mixed book groups
    GROUP_SIZE_MIN: int = 1
    GROUP_SIZE_MAX: int = 4

    # Feed: weighted sampling（加权随机，高分优先但不排除低分）
    TOP_RATED_POOL_SIZE: int = 30
    TOP_RATED_COUNT: int = 10
    TOP_RATED_MIN_RATING_COUNT: int = 3
    WEIGHT_RATING_OFFSET: float = 2.0
    WEIGHT_FLOOR: float = 0.5
    WEIGHT_EXPONENT: float = 2.0
    DEFAULT_RATING: float = 3.0

    # Feed: section sizes
    RECOMMENDATIONS_FETCH_LIMIT: int = 12
    RECOMMENDATIONS_SHOW: int = 8
    BOOK_LISTS_LIMIT: int = 6
    BOOKS_BY_YEAR_LIMIT: int = 15
    CURATED_SECTION_LIMIT: int = 10
    LISTS_PER_SOURCE: int = 5
    BOOKS_PER_LIST: int = 10
    COLLECTION_BOOKS_LIMIT: int = 20

    # Feed sessions
    FEED_SESSION_MAX: int = 1000
    FEED_SESSION_TTL_SEC: int = 1800  # 30 minutes idle

    @model_validator(mode="after")
    def _check_group_bounds(self) -> Self:
        if self.GROUP_SIZE_MIN < 1:
            raise ValueError("GROUP_SIZE_MIN must be at least 1")
        if self.GROUP_SIZE_MIN > self.GROUP_SIZE_MAX:
            raise ValueError("GROUP_SIZE_MIN must not exceed GROUP_SIZE_MAX")
        return self

    @model_validator(mode="after")
    def _check_sampler_weights(self) -> Self:
        if self.WEIGHT_FLOOR <= 0:
            raise ValueError("WEIGHT_FLOOR must be positive")
        return self

    @computed_field
    @property
    def load_more_cooldown_sec(self) -> float:
        return self.LOAD_MORE_COOLDOWN_MS / 1000


settings = Settings()
