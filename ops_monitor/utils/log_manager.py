"""
日志管理器模块

为监控器、告警和备份流水线提供统一的命名日志记录器，
支持控制台与轮转文件输出，重新配置时同步更新已创建的记录器。
"""

import logging
import logging.handlers
import os
import sys
from enum import Enum
from pathlib import Path
from typing import Optional, Dict, Any, List


class LogLevel(Enum):
    """日志级别枚举"""
    DEBUG = logging.DEBUG
    INFO = logging.INFO
    WARNING = logging.WARNING
    ERROR = logging.ERROR
    CRITICAL = logging.CRITICAL


class LogManager:
    """
    日志管理器类

    所有记录器都挂在 ``ops_monitor`` 命名空间下，支持：
    - 控制台输出（stdout 或 stderr）
    - 基于大小的日志文件轮转
    - 运行期修改级别和输出目标
    """

    ROOT_NAME = 'ops_monitor'

    def __init__(self):
        self._loggers: Dict[str, logging.Logger] = {}
        self._file_format = (
            '%(asctime)s - %(name)s - %(levelname)s - '
            '[%(filename)s:%(lineno)d] - %(message)s'
        )
        self._console_format = '%(asctime)s - %(levelname)s - %(message)s'
        self._date_format = '%Y-%m-%d %H:%M:%S'

        self._log_level = LogLevel.INFO
        self._log_file: Optional[str] = None
        self._max_file_size = 10 * 1024 * 1024  # 10MB
        self._backup_count = 5
        self._enable_console = True
        self._console_stream = 'stdout'

    def configure(self, config: Dict[str, Any]) -> None:
        """
        配置日志管理器

        Args:
            config: 日志配置字典，可选键：
                - log_level: DEBUG/INFO/WARNING/ERROR/CRITICAL
                - log_file: 日志文件路径，设置后启用文件输出
                - max_file_size: 单个日志文件最大字节数
                - backup_count: 轮转保留的文件数量
                - enable_console: 是否输出到控制台
                - console_stream: 'stdout' 或 'stderr'
                - format / console_format / date_format: 自定义格式

        Raises:
            ValueError: 日志级别无效
        """
        if 'log_level' in config:
            level_str = str(config['log_level']).upper()
            if level_str not in LogLevel.__members__:
                raise ValueError(f"无效的日志级别: {level_str}")
            self._log_level = LogLevel[level_str]

        if 'log_file' in config:
            self._log_file = config['log_file'] or None

        if 'max_file_size' in config:
            self._max_file_size = config['max_file_size']

        if 'backup_count' in config:
            self._backup_count = config['backup_count']

        if 'enable_console' in config:
            self._enable_console = config['enable_console']

        if 'console_stream' in config:
            self._console_stream = 'stderr' if config['console_stream'] == 'stderr' else 'stdout'

        if 'format' in config:
            self._file_format = config['format']

        if 'console_format' in config:
            self._console_format = config['console_format']

        if 'date_format' in config:
            self._date_format = config['date_format']

        # 已创建的记录器按新配置重建处理器
        for logger in self._loggers.values():
            self._apply(logger)

    def get_logger(self, name: str) -> logging.Logger:
        """
        获取指定名称的日志记录器

        Args:
            name: 组件名称，如 'monitor'、'backup.archiver'

        Returns:
            配置好的日志记录器实例
        """
        full_name = name if name.startswith(self.ROOT_NAME) else f'{self.ROOT_NAME}.{name}'
        if full_name in self._loggers:
            return self._loggers[full_name]

        logger = logging.getLogger(full_name)
        self._apply(logger)
        self._loggers[full_name] = logger
        return logger

    def _apply(self, logger: logging.Logger) -> None:
        """按当前配置为记录器重建处理器"""
        logger.setLevel(self._log_level.value)
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()
        for handler in self._build_handlers():
            logger.addHandler(handler)
        # 防止日志向上传播导致重复输出
        logger.propagate = False

    def _build_handlers(self) -> List[logging.Handler]:
        handlers: List[logging.Handler] = []

        if self._enable_console:
            console_handler = logging.StreamHandler(getattr(sys, self._console_stream))
            console_handler.setLevel(self._log_level.value)
            console_handler.setFormatter(
                logging.Formatter(self._console_format, datefmt=self._date_format)
            )
            handlers.append(console_handler)

        if self._log_file:
            Path(self._log_file).parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.handlers.RotatingFileHandler(
                self._log_file,
                maxBytes=self._max_file_size,
                backupCount=self._backup_count,
                encoding='utf-8'
            )
            file_handler.setLevel(self._log_level.value)
            file_handler.setFormatter(
                logging.Formatter(self._file_format, datefmt=self._date_format)
            )
            handlers.append(file_handler)

        return handlers

    def set_level(self, level: LogLevel) -> None:
        """
        设置全局日志级别

        Args:
            level: 新的日志级别
        """
        self._log_level = level
        for logger in self._loggers.values():
            logger.setLevel(level.value)
            for handler in logger.handlers:
                handler.setLevel(level.value)

    def get_log_stats(self) -> Dict[str, Any]:
        """获取日志统计信息"""
        stats = {
            'loggers_count': len(self._loggers),
            'log_level': self._log_level.name,
            'file_logging_enabled': bool(self._log_file),
            'console_logging_enabled': self._enable_console,
            'log_file': self._log_file,
            'max_file_size': self._max_file_size,
            'backup_count': self._backup_count
        }

        if self._log_file and os.path.exists(self._log_file):
            stats['current_log_size'] = os.path.getsize(self._log_file)

        return stats

    def cleanup(self) -> None:
        """关闭所有处理器"""
        for logger in self._loggers.values():
            for handler in list(logger.handlers):
                logger.removeHandler(handler)
                handler.close()

        self._loggers.clear()


# 进程内共享的日志管理器，日志输出本身是进程级资源
log_manager = LogManager()


def get_logger(name: str) -> logging.Logger:
    """获取日志记录器的便捷函数"""
    return log_manager.get_logger(name)


def configure_logging(config: Dict[str, Any]) -> None:
    """配置日志系统的便捷函数"""
    log_manager.configure(config)
