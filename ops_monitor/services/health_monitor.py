"""健康监控器模块

按固定间隔并发探测所有配置的端点，汇总结果并在出现异常时合并告警
"""

import asyncio
import time
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence

from ..alerts.base import BaseAlertSink
from ..alerts.webhook_sink import WebhookAlertSink
from ..checkers.base import BaseEndpointProbe
from ..checkers.http_probe import HttpEndpointProbe
from ..models.health_check import AlertBatch, Endpoint, ProbeResult, utc_now
from ..utils.exceptions import ConfigError
from ..utils.log_manager import get_logger
from .config_manager import DEFAULT_INTERVAL_MS, MonitorConfig

CycleCallback = Callable[[List[ProbeResult]], Awaitable[None]]


class HealthMonitor:
    """健康监控器

    每个周期为每个端点创建一个探测任务并等待全部完成（单个慢端点不会拖慢
    其他端点），按端点配置顺序收集结果；存在不健康结果时构造一个告警批次
    交给告警投递器。同一时刻只运行一个周期，上一周期未结束时跳过本次触发。
    """

    def __init__(self, endpoints: Sequence[Endpoint], probe: BaseEndpointProbe,
                 alert_sink: Optional[BaseAlertSink] = None,
                 interval_ms: int = DEFAULT_INTERVAL_MS,
                 max_concurrent_probes: Optional[int] = None,
                 clock: Optional[Callable[[], datetime]] = None,
                 shutdown_timeout: float = 30.0):
        """初始化健康监控器

        Args:
            endpoints: 端点列表，不能为空
            probe: 端点探测器
            alert_sink: 告警投递器，为空或未启用时不发送告警
            interval_ms: 周期间隔（毫秒）
            max_concurrent_probes: 最大并发探测数，为空表示不限制
            clock: 时间来源
            shutdown_timeout: 停止时等待进行中周期的最长时间（秒）

        Raises:
            ConfigError: 端点为空或间隔无效
        """
        if not endpoints:
            raise ConfigError("至少需要配置一个监控端点", config_key='endpoints')
        if interval_ms <= 0:
            raise ConfigError("interval 必须是正整数", config_key='interval')

        self.endpoints: tuple = tuple(endpoints)
        self.probe = probe
        self.alert_sink = alert_sink
        self.interval_ms = interval_ms
        self.max_concurrent_probes = max_concurrent_probes
        self.clock = clock or utc_now
        self.shutdown_timeout = shutdown_timeout
        self.logger = get_logger('monitor')

        self.is_running = False
        self._stop_event: Optional[asyncio.Event] = None
        self._cycle_task: Optional[asyncio.Task] = None

        # 统计信息
        self.cycles_completed = 0
        self.skipped_ticks = 0
        self.alerts_sent = 0
        self.last_cycle_time: Optional[datetime] = None
        self.last_unhealthy_count = 0

        self.on_cycle_complete: Optional[CycleCallback] = None

    @classmethod
    def from_config(cls, config: MonitorConfig,
                    probe: Optional[BaseEndpointProbe] = None,
                    alert_sink: Optional[BaseAlertSink] = None) -> 'HealthMonitor':
        """由类型化配置创建监控器，默认使用HTTP探测器和Webhook投递器"""
        if alert_sink is None and config.webhook_url:
            alert_sink = WebhookAlertSink(config.webhook_url, config.alerting)
        return cls(
            endpoints=config.endpoints,
            probe=probe or HttpEndpointProbe(),
            alert_sink=alert_sink,
            interval_ms=config.interval_ms,
            max_concurrent_probes=config.max_concurrent_probes
        )

    def set_cycle_callback(self, callback: CycleCallback):
        """设置周期完成回调，参数为本周期的全部结果

        Args:
            callback: 周期结果回调函数
        """
        self.on_cycle_complete = callback

    @property
    def stop_event(self) -> Optional[asyncio.Event]:
        """当前调度使用的取消令牌"""
        return self._stop_event

    async def run_cycle(self) -> List[ProbeResult]:
        """执行一个完整周期

        Returns:
            全部端点的探测结果，顺序与端点配置一致
        """
        start = time.monotonic()
        self.logger.debug(f"开始探测周期，共 {len(self.endpoints)} 个端点")

        semaphore = (asyncio.Semaphore(self.max_concurrent_probes)
                     if self.max_concurrent_probes else None)
        results = list(await asyncio.gather(
            *(self._probe_endpoint(endpoint, semaphore) for endpoint in self.endpoints)
        ))

        unhealthy = [result for result in results if not result.is_healthy]
        elapsed = time.monotonic() - start
        self.logger.info(
            f"探测周期完成: {len(results) - len(unhealthy)} 健康, "
            f"{len(unhealthy)} 不健康, 耗时 {elapsed:.3f}s"
        )

        if unhealthy:
            await self._dispatch_alert(AlertBatch(tuple(unhealthy), created_at=self.clock()))

        self.cycles_completed += 1
        self.last_cycle_time = self.clock()
        self.last_unhealthy_count = len(unhealthy)

        if self.on_cycle_complete:
            try:
                await self.on_cycle_complete(results)
            except Exception as e:
                self.logger.error(f"周期回调执行失败: {e}", exc_info=True)

        return results

    async def _probe_endpoint(self, endpoint: Endpoint,
                              semaphore: Optional[asyncio.Semaphore]) -> ProbeResult:
        """探测单个端点，探测器违约抛出的异常也转换为不健康结果"""
        try:
            if semaphore is None:
                return await self.probe.probe(endpoint)
            async with semaphore:
                return await self.probe.probe(endpoint)
        except Exception as e:
            self.logger.error(f"探测端点 {endpoint.name} 时发生异常: {e}", exc_info=True)
            return ProbeResult.unhealthy(
                endpoint_name=endpoint.name,
                error_message=f"探测异常: {type(e).__name__}: {e}",
                timestamp=self.clock()
            )

    async def _dispatch_alert(self, batch: AlertBatch):
        """把告警批次交给投递器，失败只记录日志"""
        if self.alert_sink is None or not self.alert_sink.enabled:
            self.logger.warning(
                f"{len(batch)} 个服务异常 ({', '.join(batch.service_names)})，未配置告警地址")
            return

        try:
            delivered = await self.alert_sink.send(batch)
        except Exception as e:
            self.logger.error(f"告警投递器 {self.alert_sink.name} 发生异常: {e}", exc_info=True)
            return

        if delivered:
            self.alerts_sent += 1

    async def start(self, stop_event: Optional[asyncio.Event] = None):
        """启动周期调度，立即执行一次，之后每隔 interval 执行一次

        Args:
            stop_event: 取消令牌，被设置后调度结束；为空时内部创建
        """
        if self.is_running:
            self.logger.warning("健康监控器已经在运行")
            return

        self.is_running = True
        self._stop_event = stop_event or asyncio.Event()
        interval = self.interval_ms / 1000
        loop = asyncio.get_running_loop()

        self.logger.info(
            f"启动健康监控，端点数: {len(self.endpoints)}，间隔: {self.interval_ms}ms")

        next_tick = loop.time()
        try:
            while not self._stop_event.is_set():
                self._launch_cycle()

                next_tick += interval
                now = loop.time()
                if next_tick <= now:
                    next_tick = now + interval
                try:
                    await asyncio.wait_for(self._stop_event.wait(), timeout=next_tick - now)
                except asyncio.TimeoutError:
                    pass
        except asyncio.CancelledError:
            self.logger.info("健康监控调度被取消")
            raise
        finally:
            await self._drain()
            self.is_running = False
            self.logger.info("健康监控已停止")

    def _launch_cycle(self):
        if self._cycle_task is not None and not self._cycle_task.done():
            self.skipped_ticks += 1
            self.logger.warning("上一个探测周期尚未完成，跳过本次触发")
            return
        self._cycle_task = asyncio.create_task(self._run_scheduled_cycle())

    async def _run_scheduled_cycle(self):
        try:
            await self.run_cycle()
        except asyncio.CancelledError:
            self.logger.info("进行中的探测周期被取消，结果未发布")
            raise
        except Exception as e:
            self.logger.error(f"探测周期执行异常: {e}", exc_info=True)

    async def _drain(self):
        """等待进行中的周期结束，超时后取消"""
        task = self._cycle_task
        if task is None or task.done():
            return

        done, _ = await asyncio.wait({task}, timeout=self.shutdown_timeout)
        if not done:
            self.logger.warning(f"进行中的探测周期超过 {self.shutdown_timeout}s 未完成，取消")
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)

    async def stop(self):
        """停止调度并等待进行中的周期完成"""
        if self._stop_event is not None:
            self._stop_event.set()
        await self._drain()

    def get_monitor_stats(self) -> Dict[str, Any]:
        """获取监控器统计信息

        Returns:
            监控器统计信息
        """
        return {
            'is_running': self.is_running,
            'endpoints': [endpoint.name for endpoint in self.endpoints],
            'interval_ms': self.interval_ms,
            'alerting_enabled': bool(self.alert_sink and self.alert_sink.enabled),
            'alert_sink': self.alert_sink.get_config_summary() if self.alert_sink else None,
            'cycles_completed': self.cycles_completed,
            'skipped_ticks': self.skipped_ticks,
            'alerts_sent': self.alerts_sent,
            'last_cycle_time': self.last_cycle_time.isoformat() if self.last_cycle_time else None,
            'last_unhealthy_count': self.last_unhealthy_count,
            'cycle_in_progress': bool(self._cycle_task and not self._cycle_task.done())
        }
