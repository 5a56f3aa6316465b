"""工具模块"""

from .exceptions import (OpsMonitorError, ConfigError, NetworkError, AlertError,
                         BackupError, ExternalProcessError, FileSystemError)
from .log_manager import LogManager, LogLevel, get_logger, configure_logging, log_manager

__all__ = [
    'OpsMonitorError', 'ConfigError', 'NetworkError', 'AlertError', 'BackupError',
    'ExternalProcessError', 'FileSystemError',
    'LogManager', 'LogLevel', 'get_logger', 'configure_logging', 'log_manager'
]
