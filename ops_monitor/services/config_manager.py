"""配置管理器"""

import os
from dataclasses import dataclass, field
from typing import Dict, Any, Optional, List, Mapping

import yaml

from ..models.health_check import Endpoint, DEFAULT_PROBE_TIMEOUT_MS
from ..utils.config_validator import ConfigValidator
from ..utils.exceptions import ConfigError, ErrorCode
from ..utils.log_manager import get_logger

DEFAULT_INTERVAL_MS = 300000  # 5分钟


@dataclass(frozen=True)
class MonitorConfig:
    """健康监控器的类型化配置"""
    endpoints: List[Endpoint]
    interval_ms: int = DEFAULT_INTERVAL_MS
    webhook_url: Optional[str] = None
    max_concurrent_probes: Optional[int] = None
    alerting: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, monitor_config: Dict[str, Any],
                  alerting_config: Optional[Dict[str, Any]] = None) -> 'MonitorConfig':
        """
        由 monitor / alerting 配置段构建

        Raises:
            ConfigError: 配置验证失败
        """
        ConfigValidator.validate_monitor_config(monitor_config)
        if alerting_config:
            ConfigValidator.validate_alerting_config(alerting_config)

        default_timeout = monitor_config.get('timeout', DEFAULT_PROBE_TIMEOUT_MS)
        endpoints = [
            Endpoint(name=item['name'], url=item['url'],
                     timeout_ms=item.get('timeout', default_timeout))
            for item in monitor_config['endpoints']
        ]
        return cls(
            endpoints=endpoints,
            interval_ms=monitor_config.get('interval', DEFAULT_INTERVAL_MS),
            webhook_url=monitor_config.get('webhook_url') or None,
            max_concurrent_probes=monitor_config.get('max_concurrent_probes'),
            alerting=dict(alerting_config or {})
        )

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> 'MonitorConfig':
        """
        由环境变量构建默认监控配置

        BACKEND_URL 提供后端健康检查和数据库连通性（/api/bugs）两个端点，
        FRONTEND_URL 提供前端端点，SLACK_WEBHOOK_URL 为告警地址。

        Raises:
            ConfigError: 两个地址都未设置
        """
        environ = os.environ if environ is None else environ
        backend_url = (environ.get('BACKEND_URL') or '').rstrip('/')
        frontend_url = environ.get('FRONTEND_URL') or ''

        endpoints: List[Dict[str, Any]] = []
        if backend_url:
            endpoints.append({'name': 'Backend API', 'url': f'{backend_url}/health'})
        if frontend_url:
            endpoints.append({'name': 'Frontend App', 'url': frontend_url})
        if backend_url:
            endpoints.append({'name': 'Database', 'url': f'{backend_url}/api/bugs'})

        if not endpoints:
            raise ConfigError("未提供配置文件，且环境变量 BACKEND_URL / FRONTEND_URL 均未设置",
                              ErrorCode.CONFIG_MISSING_VALUE, config_key='BACKEND_URL')

        return cls.from_dict({
            'endpoints': endpoints,
            'webhook_url': environ.get('SLACK_WEBHOOK_URL') or None
        })


class ConfigManager:
    """配置管理器，负责YAML配置文件的加载、解析和验证"""

    def __init__(self, config_path: str):
        """
        初始化配置管理器

        Args:
            config_path: 配置文件路径
        """
        self.config_path = config_path
        self.config: Dict[str, Any] = {}
        self.logger = get_logger('config_manager')

    def load_config(self) -> Dict[str, Any]:
        """
        加载YAML配置文件

        Returns:
            Dict[str, Any]: 配置字典

        Raises:
            ConfigError: 配置加载或验证失败
        """
        self.logger.info(f"开始加载配置文件: {self.config_path}")

        try:
            with open(self.config_path, 'r', encoding='utf-8') as file:
                config = yaml.safe_load(file)
        except FileNotFoundError:
            self.logger.error(f"配置文件不存在: {self.config_path}")
            raise ConfigError(f"配置文件不存在: {self.config_path}",
                              ErrorCode.CONFIG_FILE_NOT_FOUND)
        except PermissionError:
            self.logger.error(f"没有权限读取配置文件: {self.config_path}")
            raise ConfigError(f"没有权限读取配置文件: {self.config_path}",
                              ErrorCode.CONFIG_FILE_NOT_FOUND)
        except yaml.YAMLError as e:
            self.logger.error(f"YAML格式错误: {e}")
            raise ConfigError(f"YAML格式错误: {e}", ErrorCode.CONFIG_PARSE_ERROR, cause=e)

        if config is None:
            self.logger.error("配置文件为空")
            raise ConfigError("配置文件为空", ErrorCode.CONFIG_PARSE_ERROR)

        self._validate_config(config)

        endpoints_count = len(config['monitor']['endpoints'])
        self.logger.info(f"配置验证成功，包含 {endpoints_count} 个监控端点")

        self.config = config
        return self.config

    def _validate_config(self, config: Any) -> None:
        """
        验证配置文件内容

        Raises:
            ConfigError: 配置验证失败
        """
        if not isinstance(config, dict):
            raise ConfigError("配置文件根节点必须是字典类型")

        if 'global' in config:
            ConfigValidator.validate_global_config(config['global'])

        if 'monitor' not in config:
            raise ConfigError("配置文件缺少 monitor 配置段", config_key='monitor')
        ConfigValidator.validate_monitor_config(config['monitor'])

        if 'alerting' in config:
            ConfigValidator.validate_alerting_config(config['alerting'])

    def get_global_config(self) -> Dict[str, Any]:
        """获取全局配置"""
        return self.config.get('global', {}) or {}

    def get_alerting_config(self) -> Dict[str, Any]:
        """获取告警投递配置"""
        return self.config.get('alerting', {}) or {}

    def get_monitor_config(self) -> MonitorConfig:
        """
        获取类型化的监控配置

        Returns:
            MonitorConfig: 监控配置
        """
        if not self.config:
            self.load_config()
        return MonitorConfig.from_dict(self.config['monitor'], self.get_alerting_config())
