"""端点探测器模块"""

from .base import BaseEndpointProbe
from .http_probe import HttpEndpointProbe

__all__ = ['BaseEndpointProbe', 'HttpEndpointProbe']
