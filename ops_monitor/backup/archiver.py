"""MongoDB备份归档流水线

创建备份按阶段执行：连通性检查 → 导出 → 上传 → 清理。
前两个阶段失败是致命的（上报后向调用方抛出），上传和清理失败只记录日志。
"""

import asyncio
from datetime import datetime
from pathlib import Path
from typing import Awaitable, Callable, Optional, Union

from ..models.backup import BackupReport, StageResult, StageStatus
from ..models.health_check import utc_now
from ..utils.error_handler import ErrorReporter
from ..utils.exceptions import BackupError, ConfigError, ExternalProcessError, FileSystemError
from ..utils.log_manager import get_logger
from .naming import backup_file_name
from .preflight import MongoPreflight
from .process import ProcessRunner
from .retention import RetentionSweeper
from .settings import BackupSettings
from .uploader import BackupUploader

STAGE_PREFLIGHT = 'preflight'
STAGE_DUMP = 'dump'
STAGE_UPLOAD = 'upload'
STAGE_SWEEP = 'sweep'


class BackupArchiver:
    """MongoDB备份归档器"""

    def __init__(self, settings: BackupSettings,
                 runner: Optional[ProcessRunner] = None,
                 uploader: Optional[BackupUploader] = None,
                 sweeper: Optional[RetentionSweeper] = None,
                 preflight: Optional[MongoPreflight] = None,
                 reporter: Optional[ErrorReporter] = None,
                 clock: Optional[Callable[[], datetime]] = None):
        """
        初始化备份归档器

        Args:
            settings: 备份配置
            runner: 外部进程执行器
            uploader: 上传器，为空且配置了上传地址时自动创建
            sweeper: 备份清理器
            preflight: 连通性检查器，为空时按配置自动创建
            reporter: 错误上报器
            clock: 时间来源，决定归档文件名
        """
        self.settings = settings
        self.runner = runner or ProcessRunner()
        if uploader is None and settings.upload_url:
            uploader = BackupUploader(settings.upload_url, timeout=settings.upload_timeout)
        self.uploader = uploader
        self.sweeper = sweeper or RetentionSweeper()
        self.preflight = preflight
        self.reporter = reporter or ErrorReporter()
        self.clock = clock or utc_now
        self.logger = get_logger('backup.archiver')

    async def create_backup(self) -> Path:
        """
        创建备份

        Returns:
            Path: 本地归档路径

        Raises:
            ConfigError: 未配置 MONGODB_URI
            BackupError: 导出失败
        """
        report = await self.run_pipeline()
        return report.archive_path

    async def run_pipeline(self) -> BackupReport:
        """
        执行完整的备份流水线

        Returns:
            BackupReport: 各阶段结果

        Raises:
            ConfigError: 未配置 MONGODB_URI
            BackupError: 致命阶段失败
        """
        try:
            uri = self.settings.require_uri()
        except ConfigError as e:
            self.logger.error(f"备份失败: {e.message}")
            self.reporter.report(e, {'operation': 'create_backup'})
            raise

        archive_path = Path(self.settings.backup_dir) / backup_file_name(self.clock())
        report = BackupReport()

        stages = [
            (STAGE_PREFLIGHT, True, lambda: self._preflight_stage(uri)),
            (STAGE_DUMP, True, lambda: self._dump_stage(uri, archive_path)),
            (STAGE_UPLOAD, False, lambda: self._upload_stage(archive_path)),
            (STAGE_SWEEP, False, lambda: self._sweep_stage(report)),
        ]

        self.logger.info("开始创建MongoDB备份...")
        for name, fatal, action in stages:
            result = await self._run_stage(name, fatal, action)
            report.stages.append(result)

            if result.halts_pipeline:
                self.reporter.report(result.error, {
                    'operation': 'create_backup',
                    'stage': name,
                    'archive': str(archive_path)
                })
                if name == STAGE_DUMP:
                    self._discard_partial_archive(archive_path)
                raise result.error

            if name == STAGE_DUMP:
                report.archive_path = archive_path
                self.logger.info(f"备份已创建: {archive_path}")

        failed = [stage.stage for stage in report.stages if stage.status is StageStatus.FAILED]
        if failed:
            self.reporter.report_message(
                f"备份 {archive_path.name} 已创建，但以下阶段失败: {', '.join(failed)}",
                level='warning')
        else:
            self.reporter.report_message(f"备份 {archive_path.name} 已创建")
        return report

    async def _run_stage(self, name: str, fatal: bool,
                         action: Callable[[], Awaitable[Optional[StageResult]]]) -> StageResult:
        """执行单个阶段，把异常转换为失败的阶段结果"""
        try:
            result = await action()
        except Exception as e:
            level = self.logger.error if fatal else self.logger.warning
            level(f"备份阶段 {name} 失败: {e}")
            return StageResult(stage=name, status=StageStatus.FAILED, fatal=fatal,
                               detail=str(e), error=e)

        if result is None:
            result = StageResult(stage=name, status=StageStatus.SUCCEEDED, fatal=fatal)
        return result

    async def _preflight_stage(self, uri: str) -> Optional[StageResult]:
        if not self.settings.preflight:
            return StageResult(stage=STAGE_PREFLIGHT, status=StageStatus.SKIPPED,
                               fatal=True, detail='已禁用')
        checker = self.preflight or MongoPreflight(
            uri, timeout_ms=self.settings.preflight_timeout_ms)
        await checker.check()
        return None

    async def _dump_stage(self, uri: str, archive_path: Path) -> Optional[StageResult]:
        try:
            archive_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FileSystemError(f"无法创建备份目录: {e}",
                                  path=str(archive_path.parent), cause=e)

        await self.runner.run([
            self.settings.dump_command,
            f'--uri={uri}',
            f'--archive={archive_path}',
            '--gzip'
        ])
        return None

    async def _upload_stage(self, archive_path: Path) -> Optional[StageResult]:
        if self.uploader is None:
            return StageResult(stage=STAGE_UPLOAD, status=StageStatus.SKIPPED,
                               detail='未配置上传地址')
        await self.uploader.upload(archive_path)
        return None

    async def _sweep_stage(self, report: BackupReport) -> Optional[StageResult]:
        loop = asyncio.get_running_loop()
        deleted = await loop.run_in_executor(
            None, self.sweeper.sweep, self.settings.backup_dir, self.settings.retention_count)
        report.deleted_files.extend(deleted)
        return StageResult(stage=STAGE_SWEEP, status=StageStatus.SUCCEEDED,
                           detail=f'删除 {len(deleted)} 个旧备份')

    def _discard_partial_archive(self, archive_path: Path):
        """导出失败时删除可能残留的不完整归档"""
        try:
            archive_path.unlink()
            self.logger.info(f"已删除不完整的归档: {archive_path.name}")
        except FileNotFoundError:
            pass
        except OSError as e:
            self.logger.warning(f"删除不完整的归档失败 {archive_path.name}: {e}")

    async def restore_backup(self, backup_file: Union[str, Path, None]) -> None:
        """
        从归档恢复数据库，恢复前会删除目标库中已有的数据（--drop）

        Args:
            backup_file: 归档路径

        Raises:
            ConfigError: 未提供归档路径或未配置 MONGODB_URI
            BackupError: 归档不存在或恢复失败
        """
        if not backup_file:
            error = ConfigError("请提供备份文件路径", config_key='backup_file')
            self.logger.error(error.message)
            raise error

        uri = self.settings.require_uri()
        path = Path(backup_file)
        if not path.is_file():
            error = BackupError(f"备份文件不存在: {path}", operation='restore')
            self.logger.error(error.message)
            raise error

        self.logger.info(f"正在从 {path} 恢复MongoDB备份...")
        try:
            await self.runner.run([
                self.settings.restore_command,
                f'--uri={uri}',
                f'--archive={path}',
                '--gzip',
                '--drop'
            ])
        except ExternalProcessError as e:
            self.logger.error(f"恢复失败: {e.message}")
            self.reporter.report(e, {'operation': 'restore_backup', 'archive': str(path)})
            raise

        self.logger.info("备份恢复成功")
        self.reporter.report_message(f"已从 {path.name} 恢复MongoDB备份")
