"""HTTP端点探测器"""

import asyncio
import time
from datetime import datetime
from typing import Callable, Dict, Optional

import aiohttp

from .base import BaseEndpointProbe
from ..models.health_check import Endpoint, ProbeResult

# 小于该值的状态码说明服务可达（即使返回了业务错误）
UNHEALTHY_STATUS_THRESHOLD = 500


class HttpEndpointProbe(BaseEndpointProbe):
    """HTTP端点探测器

    对端点发起一次 GET 请求：状态码 < 500 视为健康，不关心响应体；
    状态码 >= 500、连接错误或超时视为不健康。
    """

    def __init__(self, session: Optional[aiohttp.ClientSession] = None,
                 headers: Optional[Dict[str, str]] = None,
                 clock: Optional[Callable[[], datetime]] = None):
        """
        初始化HTTP探测器

        Args:
            session: 复用的 aiohttp 会话，为空时每次探测创建临时会话
            headers: 附加请求头
            clock: 时间来源
        """
        super().__init__(clock)
        self._session = session
        self.headers = headers or {}

    async def probe(self, endpoint: Endpoint) -> ProbeResult:
        """
        执行一次HTTP健康检查

        Args:
            endpoint: 端点配置

        Returns:
            ProbeResult: 探测结果，从不抛出异常
        """
        self.logger.debug(f"开始探测端点: {endpoint.name} ({endpoint.url})")
        timeout = aiohttp.ClientTimeout(total=endpoint.timeout_ms / 1000)
        start_time = time.monotonic()

        try:
            if self._session is not None:
                status_code = await self._request(self._session, endpoint, timeout)
            else:
                async with aiohttp.ClientSession() as session:
                    status_code = await self._request(session, endpoint, timeout)
        except asyncio.TimeoutError:
            return self._unhealthy(endpoint, f"HTTP请求超时 ({endpoint.timeout_ms}ms)")
        except aiohttp.ClientError as e:
            return self._unhealthy(endpoint, f"HTTP客户端错误: {str(e) or type(e).__name__}")
        except Exception as e:
            return self._unhealthy(endpoint, f"探测异常: {type(e).__name__}: {e}")

        response_time_ms = int(round((time.monotonic() - start_time) * 1000))

        if status_code >= UNHEALTHY_STATUS_THRESHOLD:
            return self._unhealthy(endpoint, f"服务端错误: HTTP {status_code}")

        self.logger.debug(
            f"端点 {endpoint.name} 健康: 状态码={status_code}, 响应时间={response_time_ms}ms")
        return ProbeResult.healthy(
            endpoint_name=endpoint.name,
            response_time_ms=response_time_ms,
            status_code=status_code,
            timestamp=self.clock()
        )

    async def _request(self, session: aiohttp.ClientSession, endpoint: Endpoint,
                       timeout: aiohttp.ClientTimeout) -> int:
        async with session.get(endpoint.url, headers=self.headers,
                               timeout=timeout) as response:
            return response.status

    def _unhealthy(self, endpoint: Endpoint, error_message: str) -> ProbeResult:
        self.logger.warning(f"端点 {endpoint.name} 不健康: {error_message}")
        return ProbeResult.unhealthy(
            endpoint_name=endpoint.name,
            error_message=error_message,
            timestamp=self.clock()
        )

    async def close(self):
        """关闭外部传入的会话"""
        if self._session is not None and not self._session.closed:
            await self._session.close()
