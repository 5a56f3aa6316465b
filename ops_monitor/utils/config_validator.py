"""配置验证工具"""

from typing import Dict, Any, List
from urllib.parse import urlparse

from .exceptions import ConfigError


def _is_http_url(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    parsed = urlparse(value)
    return parsed.scheme in ('http', 'https') and bool(parsed.netloc)


def _is_positive_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


class ConfigValidator:
    """配置验证器"""

    @staticmethod
    def validate_endpoints(endpoints: Any) -> None:
        """
        验证端点列表

        Args:
            endpoints: 端点配置列表，每项包含 name 和 url

        Raises:
            ConfigError: 配置验证失败
        """
        if not isinstance(endpoints, list) or not endpoints:
            raise ConfigError("endpoints 必须是非空列表", config_key='endpoints')

        seen: List[str] = []
        for index, endpoint in enumerate(endpoints):
            if not isinstance(endpoint, dict):
                raise ConfigError(f"第 {index + 1} 个端点配置必须是字典类型")

            for field_name in ('name', 'url'):
                if not endpoint.get(field_name):
                    raise ConfigError(
                        f"第 {index + 1} 个端点缺少必需的配置项: {field_name}",
                        config_key=field_name)

            name = endpoint['name']
            if name in seen:
                raise ConfigError(f"端点名称重复: {name}", config_key='name')
            seen.append(name)

            if not _is_http_url(endpoint['url']):
                raise ConfigError(f"端点 '{name}' 的URL无效: {endpoint['url']}",
                                  config_key='url')

            timeout = endpoint.get('timeout')
            if timeout is not None and not _is_positive_int(timeout):
                raise ConfigError(f"端点 '{name}' 的 timeout 必须是正整数（毫秒）",
                                  config_key='timeout')

    @staticmethod
    def validate_monitor_config(monitor_config: Dict[str, Any]) -> None:
        """
        验证监控配置

        Args:
            monitor_config: monitor 配置段

        Raises:
            ConfigError: 配置验证失败
        """
        if not isinstance(monitor_config, dict):
            raise ConfigError("monitor 配置必须是字典类型")

        ConfigValidator.validate_endpoints(monitor_config.get('endpoints'))

        for key in ('interval', 'timeout', 'max_concurrent_probes'):
            value = monitor_config.get(key)
            if value is not None and not _is_positive_int(value):
                raise ConfigError(f"{key} 必须是正整数", config_key=key)

        webhook_url = monitor_config.get('webhook_url')
        if webhook_url and not _is_http_url(webhook_url):
            raise ConfigError(f"webhook_url 格式无效: {webhook_url}",
                              config_key='webhook_url')

    @staticmethod
    def validate_alerting_config(alerting_config: Dict[str, Any]) -> None:
        """验证告警投递配置"""
        if not isinstance(alerting_config, dict):
            raise ConfigError("alerting 配置必须是字典类型")

        max_retries = alerting_config.get('max_retries')
        if max_retries is not None and (not isinstance(max_retries, int) or max_retries < 0):
            raise ConfigError("max_retries 不能为负数", config_key='max_retries')

        for key in ('retry_delay', 'retry_backoff', 'timeout'):
            value = alerting_config.get(key)
            if value is not None and (not isinstance(value, (int, float)) or value < 0):
                raise ConfigError(f"{key} 必须是非负数", config_key=key)

        headers = alerting_config.get('headers')
        if headers is not None and not isinstance(headers, dict):
            raise ConfigError("headers 必须是字典类型", config_key='headers')

    @staticmethod
    def validate_global_config(global_config: Dict[str, Any]) -> None:
        """
        验证全局配置

        Raises:
            ConfigError: 配置验证失败
        """
        if not isinstance(global_config, dict):
            raise ConfigError("全局配置必须是字典类型")

        log_level = global_config.get('log_level')
        if log_level is not None:
            valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
            if log_level not in valid_levels:
                raise ConfigError(f"log_level 必须是以下值之一: {valid_levels}",
                                  config_key='log_level')
