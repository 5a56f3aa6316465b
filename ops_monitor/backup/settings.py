"""备份配置"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from ..utils.exceptions import ConfigError, ErrorCode
from ..utils.log_manager import get_logger

DEFAULT_BACKUP_DIR = 'backups'
DEFAULT_RETENTION_COUNT = 7

_FALSE_VALUES = ('0', 'false', 'no', 'off')

logger = get_logger('backup.settings')


def _parse_retention(value: Optional[str]) -> int:
    """解析保留数量，缺失、非整数或小于1时使用默认值"""
    if value is None or not value.strip():
        return DEFAULT_RETENTION_COUNT
    try:
        count = int(value.strip())
    except ValueError:
        logger.warning(f"保留数量无效: {value!r}，使用默认值 {DEFAULT_RETENTION_COUNT}")
        return DEFAULT_RETENTION_COUNT
    if count < 1:
        logger.warning(f"保留数量必须大于0: {count}，使用默认值 {DEFAULT_RETENTION_COUNT}")
        return DEFAULT_RETENTION_COUNT
    return count


def _parse_float(value: Optional[str], default: float) -> float:
    if value is None or not value.strip():
        return default
    try:
        return float(value)
    except ValueError:
        logger.warning(f"数值配置无效: {value!r}，使用默认值 {default}")
        return default


@dataclass(frozen=True)
class BackupSettings:
    """备份流水线配置"""
    mongodb_uri: Optional[str] = None
    backup_dir: Path = Path(DEFAULT_BACKUP_DIR)
    retention_count: int = DEFAULT_RETENTION_COUNT
    upload_url: Optional[str] = None
    upload_timeout: float = 60.0
    dump_command: str = 'mongodump'
    restore_command: str = 'mongorestore'
    preflight: bool = True
    preflight_timeout_ms: int = 5000

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> 'BackupSettings':
        """
        从环境变量读取配置

        MONGODB_URI、BACKUP_DIR、BACKUP_RETENTION_COUNT（兼容旧名
        BACKUP_RETENTION_DAYS）、BACKUP_UPLOAD_URL、BACKUP_UPLOAD_TIMEOUT、
        MONGODUMP_BIN、MONGORESTORE_BIN、BACKUP_PREFLIGHT
        """
        environ = os.environ if environ is None else environ
        retention = environ.get('BACKUP_RETENTION_COUNT')
        if retention is None:
            retention = environ.get('BACKUP_RETENTION_DAYS')

        preflight = environ.get('BACKUP_PREFLIGHT', 'true').strip().lower()

        return cls(
            mongodb_uri=environ.get('MONGODB_URI') or None,
            backup_dir=Path(environ.get('BACKUP_DIR') or DEFAULT_BACKUP_DIR),
            retention_count=_parse_retention(retention),
            upload_url=environ.get('BACKUP_UPLOAD_URL') or None,
            upload_timeout=_parse_float(environ.get('BACKUP_UPLOAD_TIMEOUT'), 60.0),
            dump_command=environ.get('MONGODUMP_BIN') or 'mongodump',
            restore_command=environ.get('MONGORESTORE_BIN') or 'mongorestore',
            preflight=preflight not in _FALSE_VALUES
        )

    def require_uri(self) -> str:
        """
        获取数据库连接地址

        Raises:
            ConfigError: 未配置 MONGODB_URI
        """
        if not self.mongodb_uri:
            raise ConfigError("MONGODB_URI 环境变量是必需的",
                              ErrorCode.CONFIG_MISSING_VALUE, config_key='MONGODB_URI')
        return self.mongodb_uri
