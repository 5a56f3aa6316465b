"""数据模型模块"""

from .backup import BackupRecord, BackupReport, StageResult, StageStatus
from .health_check import Endpoint, ProbeStatus, ProbeResult, AlertBatch

__all__ = ['Endpoint', 'ProbeStatus', 'ProbeResult', 'AlertBatch',
           'BackupRecord', 'BackupReport', 'StageResult', 'StageStatus']
