"""备份文件命名规则"""

import re
from datetime import datetime, timezone
from typing import Optional

from ..models.health_check import isoformat_millis

BACKUP_PREFIX = 'backup-'
BACKUP_SUFFIX = '.gz'

_TIMESTAMP_PATTERN = re.compile(
    r'^backup-(\d{4})-(\d{2})-(\d{2})T(\d{2})-(\d{2})-(\d{2})-(\d{3})Z\.gz$'
)


def backup_file_name(instant: datetime) -> str:
    """
    生成备份文件名

    ISO8601 时间戳中的 ':' 和 '.' 替换为 '-'，
    例如 backup-2024-01-02T03-04-05-678Z.gz

    Args:
        instant: 备份时间

    Returns:
        str: 文件名
    """
    stamp = isoformat_millis(instant).replace(':', '-').replace('.', '-')
    return f'{BACKUP_PREFIX}{stamp}{BACKUP_SUFFIX}'


def is_backup_file(file_name: str) -> bool:
    """文件名是否属于备份归档"""
    return file_name.startswith(BACKUP_PREFIX) and file_name.endswith(BACKUP_SUFFIX)


def parse_backup_timestamp(file_name: str) -> Optional[datetime]:
    """
    解析文件名中嵌入的时间戳

    Returns:
        Optional[datetime]: UTC 时间，文件名不符合规则时返回None
    """
    match = _TIMESTAMP_PATTERN.match(file_name)
    if not match:
        return None

    year, month, day, hour, minute, second, millis = (int(part) for part in match.groups())
    try:
        return datetime(year, month, day, hour, minute, second, millis * 1000,
                        tzinfo=timezone.utc)
    except ValueError:
        return None
