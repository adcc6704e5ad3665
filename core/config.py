"""
配置文件 - 项目配置管理
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import BaseModel, Field, field_validator
from typing import Optional
from pydantic import model_validator


class RedisSettings(BaseModel):
    url: Optional[str] = None
    namespace: str = "crypto-storefront"


class TrackerSettings(BaseModel):
    # auto -> redis when REDIS__URL is set, otherwise in-memory
    backend: str = "auto"
    key: str = "payments:pending"

    @field_validator("backend")
    @classmethod
    def _validate_backend(cls, v: str) -> str:
        value = (v or "auto").lower()
        if value not in {"auto", "memory", "redis"}:
            raise ValueError("TRACKER__BACKEND must be one of: auto, memory, redis")
        return value


class Settings(BaseSettings):
    """项目配置"""

    # 基础配置
    PROJECT_NAME: str = Field(default="Crypto Storefront Payments")
    VERSION: str = Field(default="1.0.0")
    DEBUG: bool = Field(default=False)
    ENVIRONMENT: str = Field(default="development")

    # 诊断端点（webhook 调试 / 模拟支付）；未设置时跟随 DEBUG
    DEBUG_ENDPOINTS: Optional[bool] = Field(default=None)

    redis: RedisSettings = Field(default_factory=RedisSettings)
    tracker: TrackerSettings = Field(default_factory=TrackerSettings)

    # CORS配置
    CORS_ORIGINS: list = Field(default=["http://localhost:3000"])

    # 日志/请求体记录配置
    LOG_REQUEST_BODY_ENABLE_BY_DEFAULT: bool = Field(default=True)
    LOG_REQUEST_BODY_MAX_BYTES: int = Field(default=2048)

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="allow",
        env_nested_delimiter="__",
    )

    @model_validator(mode="after")
    def _default_debug_endpoints(self):
        if self.DEBUG_ENDPOINTS is None:
            self.DEBUG_ENDPOINTS = self.DEBUG
        return self

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def _parse_cors_origins(cls, v):
        """允许 JSON 字符串或逗号分隔字符串两种格式。"""
        if isinstance(v, list):
            return v
        if isinstance(v, str):
            s = v.strip()
            if s.startswith("[") and s.endswith("]"):
                import json
                try:
                    arr = json.loads(s)
                    if isinstance(arr, list):
                        return arr
                except ValueError:
                    pass
            if "," in s:
                return [item.strip() for item in s.split(",") if item.strip()]
            return [s]
        return v

    @property
    def tracker_backend(self) -> str:
        """Resolve the effective tracker backend ("memory" or "redis")."""
        backend = self.tracker.backend
        if backend == "auto":
            return "redis" if self.redis.url else "memory"
        return backend


settings = Settings()
