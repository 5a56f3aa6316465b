"""Webhook告警投递实现"""

import asyncio
from typing import Dict, Any, Optional, List
from urllib.parse import urlparse

import aiohttp

from .base import BaseAlertSink
from ..models.health_check import AlertBatch, ProbeResult, isoformat_millis
from ..utils.error_handler import RetryConfig, RetryHandler, RetryStrategy
from ..utils.exceptions import AlertConfigError, AlertSendError
from ..utils.log_manager import get_logger


class WebhookAlertSink(BaseAlertSink):
    """Webhook告警投递器

    每个周期把全部不健康结果合并为一条消息 POST 到 webhook，
    消息格式兼容常见聊天工具的 incoming webhook（text + attachments）。
    未配置 URL 时投递为空操作。
    """

    def __init__(self, url: Optional[str], config: Optional[Dict[str, Any]] = None,
                 name: str = 'webhook'):
        """
        初始化Webhook投递器

        Args:
            url: webhook 地址，为空时禁用告警
            config: 投递配置（timeout、headers、max_retries、retry_delay、retry_backoff、ssl_verify）
            name: 投递器名称

        Raises:
            AlertConfigError: 配置无效
        """
        super().__init__(name, config)
        self.logger = get_logger(f'alerts.webhook.{self.name}')
        self.url = url or ''
        self.headers: Dict[str, str] = self.config.get('headers', {})

        self.max_retries = self.config.get('max_retries', 2)
        self.retry_delay = self.config.get('retry_delay', 1.0)  # 秒
        self.retry_backoff = self.config.get('retry_backoff', 2.0)  # 指数退避倍数

        if not self.validate_config():
            raise AlertConfigError(f"Webhook告警配置无效: {name}", alert_name=name)

        self._retry_handler = RetryHandler(RetryConfig(
            max_attempts=self.max_retries + 1,
            base_delay=self.retry_delay,
            strategy=RetryStrategy.EXPONENTIAL_BACKOFF,
            backoff_multiplier=self.retry_backoff,
            retryable_errors=[AlertSendError]
        ))

    @property
    def enabled(self) -> bool:
        return bool(self.url)

    def validate_config(self) -> bool:
        """
        验证配置参数是否有效

        Returns:
            bool: 配置是否有效
        """
        if self.url:
            parsed_url = urlparse(self.url)
            if parsed_url.scheme not in ('http', 'https') or not parsed_url.netloc:
                self.logger.error(f"Webhook {self.name} URL格式无效: {self.url}")
                return False

        if not isinstance(self.max_retries, int) or self.max_retries < 0:
            self.logger.error(f"Webhook {self.name} 最大重试次数不能为负数")
            return False

        if self.retry_delay < 0:
            self.logger.error(f"Webhook {self.name} 重试延迟不能为负数")
            return False

        return True

    async def send(self, batch: AlertBatch) -> bool:
        """
        投递告警批次

        Args:
            batch: 告警批次

        Returns:
            bool: 是否投递成功，失败时只记录日志
        """
        if not self.enabled:
            self.logger.debug("未配置webhook地址，跳过告警")
            return False

        if not len(batch):
            return False

        payload = self.build_payload(batch)
        services = ', '.join(batch.service_names)
        self.logger.info(f"发送告警: {len(batch)} 个服务异常 ({services})")

        attempt = 0
        while True:
            attempt += 1
            try:
                await self._post(payload)
                if attempt > 1:
                    self.logger.info(f"Webhook {self.name} 重试第 {attempt - 1} 次后发送成功")
                else:
                    self.logger.info(f"Webhook {self.name} 告警发送成功")
                return True
            except AlertSendError as e:
                if not self._retry_handler.should_retry(e, attempt):
                    self.logger.error(
                        f"Webhook {self.name} 告警发送失败，已尝试 {attempt} 次: {e.message}")
                    return False
                delay = self._retry_handler.calculate_delay(attempt)
                self.logger.warning(
                    f"Webhook {self.name} 发送失败 (尝试 {attempt}/{self.max_retries + 1}): "
                    f"{e.message}，{delay:.2f}秒后重试")
                await asyncio.sleep(delay)
            except Exception as e:
                self.logger.error(f"Webhook {self.name} 告警发送出现未预期错误: {e}",
                                  exc_info=True)
                return False

    async def _post(self, payload: Dict[str, Any]) -> None:
        """
        发送一次HTTP请求

        Raises:
            AlertSendError: 网络错误、超时或非2xx响应
        """
        timeout = aiohttp.ClientTimeout(total=self.get_timeout())
        connector = aiohttp.TCPConnector(ssl=bool(self.config.get('ssl_verify', True)))

        try:
            async with aiohttp.ClientSession(timeout=timeout, connector=connector) as session:
                async with session.post(self.url, json=payload,
                                        headers=self.headers) as response:
                    if 200 <= response.status < 300:
                        return
                    response_text = await response.text()
                    raise AlertSendError(
                        f"webhook返回错误状态码 {response.status}: {response_text[:200]}",
                        alert_name=self.name)
        except aiohttp.ClientError as e:
            raise AlertSendError(f"HTTP请求失败: {e}", alert_name=self.name, cause=e)
        except asyncio.TimeoutError as e:
            raise AlertSendError("HTTP请求超时", alert_name=self.name, cause=e)

    def build_payload(self, batch: AlertBatch) -> Dict[str, Any]:
        """
        构建告警消息体

        Args:
            batch: 告警批次

        Returns:
            Dict[str, Any]: JSON 消息体
        """
        return {
            'text': f"🚨 Health Check Alert - {len(batch)} service(s) down",
            'attachments': [self._format_result(result)
                            for result in batch.unhealthy_results]
        }

    @staticmethod
    def _format_result(result: ProbeResult) -> Dict[str, Any]:
        fields: List[Dict[str, Any]] = [
            {'title': 'Service', 'value': result.endpoint_name, 'short': True},
            {'title': 'Error', 'value': result.error_message, 'short': False},
            {'title': 'Time', 'value': isoformat_millis(result.timestamp), 'short': True}
        ]
        return {'color': 'danger', 'fields': fields}

    def get_config_summary(self) -> Dict[str, Any]:
        """获取配置摘要"""
        summary = super().get_config_summary()
        summary.update({
            'max_retries': self.max_retries,
            'retry_delay': self.retry_delay,
            'headers_count': len(self.headers)
        })
        return summary
