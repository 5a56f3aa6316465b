"""服务模块"""

from .config_manager import ConfigManager, MonitorConfig
from .health_monitor import HealthMonitor

__all__ = ['ConfigManager', 'MonitorConfig', 'HealthMonitor']
