"""
统一错误响应格式定义

成功响应由各路由的 DTO 直接描述（客户端依赖这些字段名），
错误统一渲染为 ``{"error": ..., "code": ..., ...}``。
"""
from typing import Optional
from pydantic import BaseModel, Field, field_serializer
from datetime import datetime, timezone


class ErrorResponse(BaseModel):
    """错误响应模型"""
    error: str
    code: int
    type: str
    details: Optional[dict] = None
    field: Optional[str] = None
    request_id: Optional[str] = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_serializer('timestamp')
    def serialize_timestamp(self, timestamp: datetime) -> str:
        """序列化时间戳为 UTC ISO8601，统一使用 Z 结尾"""
        ts = timestamp
        if ts.tzinfo is None:
            ts = ts.replace(tzinfo=timezone.utc)
        else:
            ts = ts.astimezone(timezone.utc)
        return ts.isoformat().replace("+00:00", "Z")


def error_response(
    code: int,
    message: str,
    error_type: str = "BusinessError",
    details: Optional[dict] = None,
    field: Optional[str] = None,
    request_id: Optional[str] = None,
) -> ErrorResponse:
    """
    创建错误响应

    Args:
        code: 业务状态码
        message: 错误消息
        error_type: 错误类型
        details: 错误详情
        field: 错误字段
        request_id: 请求ID
    """
    return ErrorResponse(
        error=message,
        code=int(code),
        type=error_type,
        details=details,
        field=field,
        request_id=request_id,
    )


def utc_now_iso() -> str:
    """Current UTC time as ISO-8601 with a trailing Z."""
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
