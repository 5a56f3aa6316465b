"""备份相关的数据模型"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Optional, List


@dataclass(frozen=True)
class BackupRecord:
    """备份目录中的一个归档文件"""
    file_name: str
    file_path: Path
    created_at: Optional[datetime]  # 文件名中嵌入的时间戳，无法解析时为None
    modified_at: datetime

    @property
    def sort_key(self) -> float:
        """保留排序依据：优先使用文件名时间戳，其次使用修改时间"""
        instant = self.created_at or self.modified_at
        return instant.timestamp()


class StageStatus(Enum):
    """流水线阶段状态"""
    SUCCEEDED = 'succeeded'
    FAILED = 'failed'
    SKIPPED = 'skipped'


@dataclass(frozen=True)
class StageResult:
    """流水线单个阶段的执行结果

    fatal 表示该阶段失败时会终止整条流水线。
    """
    stage: str
    status: StageStatus
    fatal: bool = False
    detail: Optional[str] = None
    error: Optional[Exception] = None

    @property
    def halts_pipeline(self) -> bool:
        return self.fatal and self.status is StageStatus.FAILED


@dataclass
class BackupReport:
    """一次备份流水线的完整报告"""
    archive_path: Optional[Path] = None
    stages: List[StageResult] = field(default_factory=list)
    deleted_files: List[str] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.archive_path is not None and not any(
            stage.halts_pipeline for stage in self.stages)

    def stage(self, name: str) -> Optional[StageResult]:
        for stage in self.stages:
            if stage.stage == name:
                return stage
        return None
