"""备份模块"""

from .archiver import BackupArchiver
from .naming import backup_file_name, parse_backup_timestamp
from .retention import RetentionSweeper
from .settings import BackupSettings

__all__ = ['BackupArchiver', 'BackupSettings', 'RetentionSweeper',
           'backup_file_name', 'parse_backup_timestamp']
