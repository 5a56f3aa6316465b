"""备份保留策略"""

import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, List, Union

from ..models.backup import BackupRecord
from ..utils.exceptions import FileSystemError
from ..utils.log_manager import get_logger
from .naming import is_backup_file, parse_backup_timestamp


class RetentionSweeper:
    """备份清理器

    列出目录中所有 ``backup-*.gz`` 文件，按新旧排序（文件名中的时间戳优先，
    无法解析时使用修改时间），保留最新的 N 个，删除其余文件。
    ``retention_count <= 0`` 表示一个都不保留。
    """

    def __init__(self, remove_file: Callable[[Union[str, Path]], None] = os.remove):
        """
        Args:
            remove_file: 删除文件的函数
        """
        self.remove_file = remove_file
        self.logger = get_logger('backup.retention')

    def list_backups(self, directory: Union[str, Path]) -> List[BackupRecord]:
        """
        列出备份文件，最新的在前

        Args:
            directory: 备份目录

        Returns:
            List[BackupRecord]: 备份记录

        Raises:
            FileSystemError: 目录无法读取
        """
        directory = Path(directory)
        if not directory.exists():
            self.logger.debug(f"备份目录不存在: {directory}")
            return []

        try:
            names = sorted(os.listdir(directory))
        except OSError as e:
            raise FileSystemError(f"无法读取备份目录: {e}", path=str(directory), cause=e)

        records: List[BackupRecord] = []
        for name in names:
            if not is_backup_file(name):
                continue
            path = directory / name
            try:
                stat = path.stat()
            except OSError as e:
                self.logger.warning(f"读取备份文件信息失败，跳过 {name}: {e}")
                continue
            if not path.is_file():
                continue
            records.append(BackupRecord(
                file_name=name,
                file_path=path,
                created_at=parse_backup_timestamp(name),
                modified_at=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc)
            ))

        # 稳定排序，时间相同时保持文件名顺序
        return sorted(records, key=lambda record: record.sort_key, reverse=True)

    def sweep(self, directory: Union[str, Path], retention_count: int) -> List[str]:
        """
        删除超出保留数量的旧备份

        Args:
            directory: 备份目录
            retention_count: 保留的最新备份数量

        Returns:
            List[str]: 成功删除的文件名

        Raises:
            FileSystemError: 目录无法读取
        """
        keep = max(retention_count, 0)
        records = self.list_backups(directory)
        expired = records[keep:]

        if not expired:
            self.logger.debug(f"共 {len(records)} 个备份，无需清理 (保留 {keep} 个)")
            return []

        deleted: List[str] = []
        for record in expired:
            try:
                self.remove_file(record.file_path)
            except OSError as e:
                self.logger.error(f"删除旧备份失败 {record.file_name}: {e}")
                continue
            deleted.append(record.file_name)
            self.logger.info(f"已删除旧备份: {record.file_name}")

        self.logger.info(f"备份清理完成: 删除 {len(deleted)}/{len(expired)} 个，保留 {keep} 个")
        return deleted
