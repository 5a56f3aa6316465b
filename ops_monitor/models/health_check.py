"""健康检查相关的数据模型"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Any, Optional, Tuple

DEFAULT_PROBE_TIMEOUT_MS = 10000


def utc_now() -> datetime:
    """返回带时区的当前 UTC 时间"""
    return datetime.now(timezone.utc)


def isoformat_millis(instant: datetime) -> str:
    """格式化为毫秒精度的 ISO8601 UTC 字符串，如 2024-01-02T03:04:05.678Z"""
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=timezone.utc)
    instant = instant.astimezone(timezone.utc)
    return instant.strftime('%Y-%m-%dT%H:%M:%S.') + f'{instant.microsecond // 1000:03d}Z'


@dataclass(frozen=True)
class Endpoint:
    """被监控的端点配置"""
    name: str
    url: str
    timeout_ms: int = DEFAULT_PROBE_TIMEOUT_MS


class ProbeStatus(Enum):
    """探测结果状态"""
    HEALTHY = 'healthy'
    UNHEALTHY = 'unhealthy'


@dataclass(frozen=True)
class ProbeResult:
    """单次探测结果

    健康的结果必须带有响应时间和状态码且没有错误信息；
    不健康的结果必须带有错误信息且没有响应时间和状态码，5xx 状态码只出现在错误信息中。
    """
    endpoint_name: str
    status: ProbeStatus
    response_time_ms: Optional[int] = None
    status_code: Optional[int] = None
    error_message: Optional[str] = None
    timestamp: datetime = field(default_factory=utc_now)

    def __post_init__(self):
        if self.status is ProbeStatus.HEALTHY:
            if self.response_time_ms is None or self.status_code is None:
                raise ValueError("健康的探测结果必须包含响应时间和状态码")
            if self.error_message is not None:
                raise ValueError("健康的探测结果不能包含错误信息")
        else:
            if not self.error_message:
                raise ValueError("不健康的探测结果必须包含错误信息")
            if self.response_time_ms is not None or self.status_code is not None:
                raise ValueError("不健康的探测结果不能包含响应时间或状态码")

    @classmethod
    def healthy(cls, endpoint_name: str, response_time_ms: int, status_code: int,
                timestamp: Optional[datetime] = None) -> 'ProbeResult':
        return cls(
            endpoint_name=endpoint_name,
            status=ProbeStatus.HEALTHY,
            response_time_ms=response_time_ms,
            status_code=status_code,
            timestamp=timestamp or utc_now()
        )

    @classmethod
    def unhealthy(cls, endpoint_name: str, error_message: str,
                  timestamp: Optional[datetime] = None) -> 'ProbeResult':
        return cls(
            endpoint_name=endpoint_name,
            status=ProbeStatus.UNHEALTHY,
            error_message=error_message,
            timestamp=timestamp or utc_now()
        )

    @property
    def is_healthy(self) -> bool:
        return self.status is ProbeStatus.HEALTHY

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            'name': self.endpoint_name,
            'status': self.status.value,
            'timestamp': isoformat_millis(self.timestamp)
        }
        if self.response_time_ms is not None:
            data['responseTime'] = self.response_time_ms
        if self.status_code is not None:
            data['statusCode'] = self.status_code
        if self.error_message is not None:
            data['error'] = self.error_message
        return data


@dataclass(frozen=True)
class AlertBatch:
    """一个周期内所有不健康结果组成的告警批次，按端点配置顺序排列"""
    unhealthy_results: Tuple[ProbeResult, ...]
    created_at: datetime = field(default_factory=utc_now)

    def __len__(self) -> int:
        return len(self.unhealthy_results)

    @property
    def service_names(self) -> Tuple[str, ...]:
        return tuple(result.endpoint_name for result in self.unhealthy_results)
