"""
FilePath: /lightning_tooling/src/core/tooling_client.py
"""

import logging
import threading
from typing import Optional

import httpx
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from src.core.auth import AuthManager, Session, auth_manager
from src.core.config import settings
from src.core.exceptions import AuthenticationError

logger = logging.getLogger(__name__)

_tooling_client = None
_tooling_client_lock = threading.Lock()  # 线程安全锁

# 仅连接建立阶段的错误可重试：请求尚未到达服务端
RETRYABLE_EXCEPTIONS = (
    httpx.ConnectError,
    httpx.ConnectTimeout,
)


class ToolingAuth(httpx.Auth):
    """
    Bearer token auth for the Salesforce REST API.
    Re-authenticates once when the cached session is rejected with 401.
    """

    def __init__(self, manager: AuthManager):
        self.manager = manager

    async def _require_session(self) -> Session:
        session = await self.manager.get_session()
        if session is None:
            raise AuthenticationError("Failed to obtain a Salesforce session")
        return session

    async def async_auth_flow(self, request: httpx.Request):
        session = await self._require_session()
        request.headers["Authorization"] = f"Bearer {session.access_token}"
        response = yield request

        # 静态 token 无法刷新，直接返回 401 响应
        if response.status_code == 401 and not settings.SFDC_ACCESS_TOKEN:
            logger.warning("Session rejected (401), logging in again")
            self.manager.invalidate()
            session = await self._require_session()
            request.headers["Authorization"] = f"Bearer {session.access_token}"
            yield request


class ToolingClient:
    """
    Salesforce Tooling REST API 异步客户端

    特性:
    - 自动注入 Authorization 头，401 时重新登录一次
    - 首次请求时根据 session 的 instance_url 创建底层 httpx 客户端
    - 仅对连接失败做指数退避重试（请求未发出，不会重复写入）
    """

    # 重试配置
    MAX_RETRIES = 3
    RETRY_MIN_WAIT = 1  # 最小等待时间（秒）
    RETRY_MAX_WAIT = 10  # 最大等待时间（秒）

    def __init__(
        self,
        instance_url: Optional[str] = None,
        api_version: Optional[str] = None,
        manager: Optional[AuthManager] = None,
    ):
        self.instance_url = instance_url.rstrip("/") if instance_url else None
        # 未配置时为 None，由调用方决定回退版本
        self.api_version = api_version or settings.SFDC_API_VERSION
        self.auth_manager = manager or auth_manager
        self.client: Optional[httpx.AsyncClient] = None
        logger.info(
            "Initializing ToolingClient with api_version=%s", self.api_version
        )

    @property
    def rest_api_version(self) -> str:
        """请求路径使用的 API 版本，与新建 bundle 的 ApiVersion 字段无关"""
        return self.api_version or settings.SFDC_REST_API_VERSION

    @property
    def base_path(self) -> str:
        """Tooling API 根路径，如 /services/data/v58.0/tooling"""
        return f"/services/data/v{self.rest_api_version}/tooling"

    def _resolve_path(self, path: str) -> str:
        # nextRecordsUrl 等服务端返回的路径已包含 /services 前缀
        if path.startswith("/services/"):
            return path
        return f"{self.base_path}/{path.lstrip('/')}"

    async def _ensure_client(self) -> httpx.AsyncClient:
        if self.client is not None:
            return self.client

        instance_url = self.instance_url
        if instance_url is None:
            session = await self.auth_manager.get_session()
            if session is None:
                raise AuthenticationError("Failed to obtain a Salesforce session")
            instance_url = session.instance_url

        logger.info("Creating HTTP client for instance %s", instance_url)
        self.client = httpx.AsyncClient(
            base_url=instance_url,
            headers={"Content-Type": "application/json", "Accept": "application/json"},
            auth=ToolingAuth(self.auth_manager),
            timeout=httpx.Timeout(settings.SFDC_HTTP_TIMEOUT),
            trust_env=False,
        )
        return self.client

    def _get_retry_decorator(self):
        """获取重试装饰器配置"""
        return retry(
            stop=stop_after_attempt(self.MAX_RETRIES),
            wait=wait_exponential(
                multiplier=1, min=self.RETRY_MIN_WAIT, max=self.RETRY_MAX_WAIT
            ),
            retry=retry_if_exception_type(RETRYABLE_EXCEPTIONS),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )

    async def request(
        self,
        method: str,
        path: str,
        json: Optional[object] = None,
        params: Optional[dict] = None,
    ) -> httpx.Response:
        """
        发送请求

        Args:
            method: HTTP 方法 (GET, POST, PATCH, DELETE)
            path: 相对 Tooling 根路径的路径，或以 /services/ 开头的完整路径
            json: 请求体 (可选)
            params: 查询参数 (可选)

        Returns:
            httpx.Response，状态码由调用方检查

        Raises:
            AuthenticationError: 无法获取 session
            httpx.HTTPError: 网络错误（连接错误重试后仍失败）
        """
        if method not in ("GET", "POST", "PATCH", "DELETE"):
            logger.error("Unsupported HTTP method: %s", method)
            raise ValueError(f"Unsupported HTTP method: {method}")

        client = await self._ensure_client()
        url = self._resolve_path(path)

        @self._get_retry_decorator()
        async def _do_request():
            logger.debug("Making %s request to %s", method, url)
            if json is not None:
                logger.debug("%s payload: %s", method, json)
            response = await client.request(method, url, json=json, params=params)
            logger.debug("Response status: %d from %s", response.status_code, url)

            if response.status_code >= 400:
                logger.error(
                    "HTTP error %d from %s: %s",
                    response.status_code,
                    url,
                    response.text[:200],
                )
            else:
                logger.info(
                    "Request successful: %s %s -> %d",
                    method,
                    url,
                    response.status_code,
                )
            return response

        return await _do_request()

    async def get(self, path: str, params: Optional[dict] = None) -> httpx.Response:
        """GET 请求"""
        return await self.request("GET", path, params=params)

    async def post(self, path: str, json: Optional[object] = None) -> httpx.Response:
        """POST 请求"""
        return await self.request("POST", path, json=json)

    async def patch(self, path: str, json: Optional[object] = None) -> httpx.Response:
        """PATCH 请求"""
        return await self.request("PATCH", path, json=json)

    async def delete(self, path: str, params: Optional[dict] = None) -> httpx.Response:
        """DELETE 请求"""
        return await self.request("DELETE", path, params=params)

    async def close(self):
        """关闭客户端连接"""
        if self.client is None:
            return
        logger.info("Closing ToolingClient connection")
        await self.client.aclose()
        self.client = None
        logger.debug("ToolingClient connection closed")


def get_tooling_client() -> ToolingClient:
    """
    获取全局单例客户端（线程安全）

    使用双重检查锁定模式，防止多线程/多协程并发时重复实例化。

    Returns:
        ToolingClient: Tooling API 客户端实例
    """
    global _tooling_client

    # 快速路径：已初始化则直接返回
    if _tooling_client is not None:
        logger.debug("Reusing existing ToolingClient singleton instance")
        return _tooling_client

    # 慢路径：使用锁保护初始化
    with _tooling_client_lock:
        # 双重检查：防止等待锁期间其他线程已完成初始化
        if _tooling_client is not None:
            logger.debug(
                "Reusing existing ToolingClient singleton instance (after lock)"
            )
            return _tooling_client

        logger.debug("Creating new ToolingClient singleton instance")
        _tooling_client = ToolingClient(instance_url=settings.SFDC_INSTANCE_URL)

    return _tooling_client
