"""告警模块"""

from .base import BaseAlertSink
from .webhook_sink import WebhookAlertSink

__all__ = ['BaseAlertSink', 'WebhookAlertSink']
