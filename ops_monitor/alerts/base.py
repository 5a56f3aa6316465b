"""告警投递基类"""

from abc import ABC, abstractmethod
from typing import Dict, Any, Optional

from ..models.health_check import AlertBatch


class BaseAlertSink(ABC):
    """告警投递抽象基类

    投递是尽力而为的：失败只记录日志并返回 False，从不向调用方抛出异常。
    """

    def __init__(self, name: str, config: Optional[Dict[str, Any]] = None):
        """
        初始化告警投递器

        Args:
            name: 投递器名称
            config: 投递器配置参数
        """
        self.name = name
        self.config = config or {}
        self.sink_type = self.__class__.__name__.replace('AlertSink', '').lower()

    @property
    def enabled(self) -> bool:
        """未配置投递目标时为 False，监控器将跳过告警"""
        return True

    @abstractmethod
    async def send(self, batch: AlertBatch) -> bool:
        """
        投递一个告警批次

        Args:
            batch: 本周期的不健康结果

        Returns:
            bool: 是否投递成功
        """
        pass

    def get_timeout(self) -> float:
        """
        获取超时时间配置

        Returns:
            float: 超时时间（秒）
        """
        return self.config.get('timeout', 30)

    def get_config_summary(self) -> Dict[str, Any]:
        """获取配置摘要"""
        return {
            'name': self.name,
            'type': self.sink_type,
            'enabled': self.enabled,
            'timeout': self.get_timeout()
        }
