"""
REST API客户端基类

提供通用的HTTP请求功能，包括：
- 可选的重试策略（BackoffPolicy）
- 错误处理
- 请求/响应日志
- 超时控制
"""
import json
from typing import Dict, Any, Optional, Union
from dataclasses import dataclass
from enum import Enum
from datetime import datetime
import httpx
from pydantic import BaseModel

from application.utils.backoff import BackoffPolicy
from core.logging_config import get_logger


logger = get_logger(__name__)


class HTTPMethod(Enum):
    """HTTP方法枚举"""
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"


@dataclass
class APIResponse:
    """API响应封装"""
    status_code: int
    headers: Dict[str, str]
    data: Any
    raw_content: bytes
    elapsed_ms: float
    request_id: Optional[str] = None

    @property
    def is_success(self) -> bool:
        """判断请求是否成功"""
        return 200 <= self.status_code < 300

    @property
    def is_error(self) -> bool:
        """判断请求是否失败"""
        return self.status_code >= 400

    def json(self) -> Any:
        """获取JSON响应"""
        if self.data is not None:
            return self.data
        return json.loads(self.raw_content)

    def text(self) -> str:
        """获取文本响应"""
        return self.raw_content.decode('utf-8', errors='replace')


class APIError(Exception):
    """API错误基类"""
    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response: Optional[APIResponse] = None,
        request_id: Optional[str] = None
    ):
        self.message = message
        self.status_code = status_code
        self.response = response
        self.request_id = request_id
        super().__init__(self.message)

    def __str__(self):
        parts = [self.message]
        if self.status_code:
            parts.append(f"Status: {self.status_code}")
        if self.request_id:
            parts.append(f"Request ID: {self.request_id}")
        return " | ".join(parts)


class AuthenticationError(APIError):
    """认证错误"""


class NotFoundError(APIError):
    """资源未找到错误"""


class RateLimitError(APIError):
    """速率限制错误"""


class ServerError(APIError):
    """服务器错误"""


class TransportError(APIError):
    """网络/超时错误（未收到响应）"""


# 网络错误、5xx 与 429 可重试
RETRYABLE_ERRORS = (TransportError, ServerError, RateLimitError)


class BaseAPIClient:
    """
    REST API客户端基类

    提供通用的HTTP请求功能，子类可以继承并实现具体的API调用
    """

    def __init__(
        self,
        base_url: str,
        timeout: Union[float, httpx.Timeout] = 30.0,
        backoff: Optional[BackoffPolicy] = None,
        headers: Optional[Dict[str, str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        初始化API客户端

        Args:
            base_url: API基础URL
            timeout: 请求超时时间（秒）或 httpx.Timeout
            backoff: 重试策略，None 表示只请求一次
            headers: 默认请求头
            transport: 自定义 httpx transport（测试时注入 MockTransport）
        """
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout if isinstance(timeout, httpx.Timeout) else httpx.Timeout(timeout)
        self.backoff = backoff
        self._transport = transport

        self.default_headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "User-Agent": "crypto-storefront/1.0",
        }
        if headers:
            self.default_headers.update(headers)

        self._client: Optional[httpx.AsyncClient] = None

    @property
    def client(self) -> httpx.AsyncClient:
        """获取或创建HTTP客户端"""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                transport=self._transport,
                follow_redirects=True,
            )
        return self._client

    async def aclose(self) -> None:
        """关闭HTTP客户端"""
        if self._client is not None:
            try:
                await self._client.aclose()
            finally:
                self._client = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    def _build_url(self, endpoint: str) -> str:
        """构建完整URL"""
        return f"{self.base_url}/{endpoint.lstrip('/')}"

    def _raise_for_status(self, response: APIResponse) -> None:
        """处理错误响应"""
        error_map = {
            401: AuthenticationError,
            403: AuthenticationError,
            404: NotFoundError,
            429: RateLimitError,
        }
        status_code = response.status_code
        error_class = error_map.get(status_code, ServerError if status_code >= 500 else APIError)

        error_message = f"API request failed with status {status_code}"
        if isinstance(response.data, dict):
            err = response.data.get("error")
            if isinstance(err, dict):
                err = err.get("message")
            error_message = err or response.data.get("message") or error_message

        raise error_class(
            message=str(error_message),
            status_code=status_code,
            response=response,
            request_id=response.request_id,
        )

    async def _send_once(self, method: str, url: str, **kwargs) -> APIResponse:
        start_time = datetime.now()
        try:
            response = await self.client.request(method=method, url=url, **kwargs)
        except httpx.TimeoutException as exc:
            raise TransportError(f"Request timeout: {exc}") from exc
        except httpx.TransportError as exc:
            raise TransportError(f"Network error: {exc}") from exc

        elapsed = (datetime.now() - start_time).total_seconds() * 1000
        response_data = None
        if "application/json" in response.headers.get("content-type", ""):
            try:
                response_data = response.json()
            except json.JSONDecodeError:
                response_data = None

        api_response = APIResponse(
            status_code=response.status_code,
            headers=dict(response.headers),
            data=response_data,
            raw_content=response.content,
            elapsed_ms=elapsed,
            request_id=response.headers.get("x-request-id"),
        )
        logger.debug(
            "api_response",
            method=method,
            url=url,
            status_code=api_response.status_code,
            elapsed_ms=round(elapsed, 1),
        )
        if api_response.is_error:
            self._raise_for_status(api_response)
        return api_response

    async def _request(
        self,
        method: Union[str, HTTPMethod],
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        json_data: Optional[Union[Dict[str, Any], BaseModel]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> APIResponse:
        """
        发送HTTP请求

        Raises:
            APIError: 非 2xx 响应或网络错误
        """
        if isinstance(method, HTTPMethod):
            method = method.value
        if isinstance(json_data, BaseModel):
            json_data = json_data.model_dump(mode="json", exclude_unset=True)

        url = self._build_url(endpoint)
        request_headers = {**self.default_headers, **(headers or {})}
        kwargs: Dict[str, Any] = {"params": params, "json": json_data, "headers": request_headers}
        logger.debug("api_request", method=method, url=url, params=params)

        if self.backoff is None:
            return await self._send_once(method, url, **kwargs)

        retrying = self.backoff.retrying(RETRYABLE_ERRORS, operation=f"{method} {endpoint}")
        async for attempt in retrying:
            with attempt:
                return await self._send_once(method, url, **kwargs)

    async def get(self, endpoint: str, **kwargs) -> APIResponse:
        """GET请求"""
        return await self._request(HTTPMethod.GET, endpoint, **kwargs)

    async def post(self, endpoint: str, **kwargs) -> APIResponse:
        """POST请求"""
        return await self._request(HTTPMethod.POST, endpoint, **kwargs)

    async def put(self, endpoint: str, **kwargs) -> APIResponse:
        """PUT请求"""
        return await self._request(HTTPMethod.PUT, endpoint, **kwargs)

