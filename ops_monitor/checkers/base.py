"""端点探测器基类"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Callable, Optional

from ..models.health_check import Endpoint, ProbeResult, utc_now
from ..utils.log_manager import get_logger


class BaseEndpointProbe(ABC):
    """端点探测器抽象基类

    实现必须把所有失败（网络错误、超时、服务端错误）转换为不健康的
    ProbeResult，``probe`` 本身从不抛出异常。
    """

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        """
        初始化探测器

        Args:
            clock: 返回当前时间的可调用对象，默认使用 UTC 当前时间
        """
        self.clock = clock or utc_now
        self.probe_type = self.__class__.__name__.replace('EndpointProbe', '').lower()
        self.logger = get_logger(f'probe.{self.probe_type}')

    @abstractmethod
    async def probe(self, endpoint: Endpoint) -> ProbeResult:
        """
        对端点执行一次有超时限制的健康检查

        Args:
            endpoint: 端点配置

        Returns:
            ProbeResult: 探测结果
        """
        pass

    async def close(self):
        """释放探测器持有的资源"""
        pass
