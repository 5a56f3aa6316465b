"""错误上报器和重试机制"""

import random
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Any, Optional, Dict, List

from .exceptions import OpsMonitorError
from .log_manager import get_logger

ReportHandler = Callable[[Exception, Dict[str, Any]], None]


class RetryStrategy(Enum):
    """重试策略"""
    FIXED_DELAY = "fixed_delay"
    EXPONENTIAL_BACKOFF = "exponential_backoff"
    LINEAR_BACKOFF = "linear_backoff"


@dataclass
class RetryConfig:
    """重试配置，max_attempts 包含首次尝试"""
    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 60.0
    strategy: RetryStrategy = RetryStrategy.EXPONENTIAL_BACKOFF
    backoff_multiplier: float = 2.0
    jitter: bool = False
    retryable_errors: Optional[List[type]] = None


class RetryHandler:
    """重试处理器，负责计算退避时间并判断错误是否可重试"""

    def __init__(self, config: RetryConfig):
        self.config = config

    def calculate_delay(self, attempt: int) -> float:
        """计算第 attempt 次失败后的等待时间（秒）"""
        if self.config.strategy == RetryStrategy.EXPONENTIAL_BACKOFF:
            delay = self.config.base_delay * (
                self.config.backoff_multiplier ** (attempt - 1))
        elif self.config.strategy == RetryStrategy.LINEAR_BACKOFF:
            delay = self.config.base_delay * attempt
        else:
            delay = self.config.base_delay

        delay = min(delay, self.config.max_delay)

        if self.config.jitter:
            delay = delay * (0.5 + random.random() * 0.5)

        return delay

    def should_retry(self, error: Exception, attempt: int) -> bool:
        """判断是否应该重试"""
        if attempt >= self.config.max_attempts:
            return False

        if self.config.retryable_errors:
            return any(isinstance(error, error_type) for error_type in
                       self.config.retryable_errors)

        if isinstance(error, OpsMonitorError):
            return error.recoverable

        return isinstance(error, (ConnectionError, TimeoutError, OSError))


class ErrorReporter:
    """
    错误上报器

    作为外部错误上报服务的接入点：``report(error, context)`` 记录结构化日志、
    统计各类错误次数，并转发给注册的处理器（例如第三方错误追踪客户端）。
    上报本身从不抛出异常。
    """

    def __init__(self, environment: str = 'development', release: Optional[str] = None):
        self.environment = environment
        self.release = release
        self.error_stats: Dict[str, int] = {}
        self._handlers: List[ReportHandler] = []
        self.logger = get_logger('error_reporter')

    def add_handler(self, handler: ReportHandler) -> None:
        """注册上报处理器"""
        self._handlers.append(handler)

    def report(self, error: Exception, context: Optional[Dict[str, Any]] = None) -> None:
        """
        上报错误

        Args:
            error: 异常对象
            context: 附加上下文（操作名、目标等）
        """
        context = dict(context or {})
        context.setdefault('environment', self.environment)
        if self.release:
            context.setdefault('release', self.release)

        error_type = type(error).__name__
        self.error_stats[error_type] = self.error_stats.get(error_type, 0) + 1

        if isinstance(error, OpsMonitorError):
            self.logger.error(f"捕获错误: {error.format_error()} 上下文: {context}")
        else:
            self.logger.error(f"捕获错误: {error_type}: {error} 上下文: {context}")

        for handler in self._handlers:
            try:
                handler(error, context)
            except Exception as handler_error:
                self.logger.warning(f"错误上报处理器执行失败: {handler_error}")

    def report_message(self, message: str, level: str = 'info') -> None:
        """上报一条普通消息"""
        log_method = getattr(self.logger, level.lower(), self.logger.info)
        log_method(f"[{level.upper()}] {message}")

    def get_error_stats(self) -> Dict[str, int]:
        """获取错误统计信息"""
        return self.error_stats.copy()

    def reset_error_stats(self):
        """重置错误统计"""
        self.error_stats.clear()
