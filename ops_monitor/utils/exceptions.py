"""自定义异常类和错误代码"""

import traceback
from datetime import datetime
from enum import Enum
from typing import Optional, Dict, Any


class ErrorCode(Enum):
    """错误代码枚举"""
    # 通用错误 (1000-1999)
    UNKNOWN_ERROR = 1000
    VALIDATION_ERROR = 1001

    # 配置错误 (2000-2999)
    CONFIG_FILE_NOT_FOUND = 2000
    CONFIG_PARSE_ERROR = 2001
    CONFIG_VALIDATION_ERROR = 2002
    CONFIG_MISSING_VALUE = 2003

    # 网络错误 (3000-3999)
    CONNECTION_ERROR = 3000
    TIMEOUT_ERROR = 3001
    SERVICE_UNAVAILABLE = 3002

    # 告警错误 (4000-4999)
    ALERT_CONFIG_ERROR = 4000
    ALERT_SEND_ERROR = 4001

    # 备份错误 (5000-5999)
    BACKUP_ERROR = 5000
    EXTERNAL_PROCESS_ERROR = 5001
    UPLOAD_ERROR = 5002
    FILE_SYSTEM_ERROR = 5003
    PREFLIGHT_ERROR = 5004


class OpsMonitorError(Exception):
    """运维监控系统基础异常类"""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.UNKNOWN_ERROR,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        recoverable: bool = True
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.cause = cause
        self.recoverable = recoverable
        self.timestamp = datetime.now()

    def to_dict(self) -> Dict[str, Any]:
        """将异常转换为字典格式"""
        return {
            'error_code': self.error_code.value,
            'error_name': self.error_code.name,
            'message': self.message,
            'details': self.details,
            'recoverable': self.recoverable,
            'timestamp': self.timestamp.isoformat(),
            'cause': str(self.cause) if self.cause else None,
            'traceback': ''.join(traceback.format_exception(
                type(self.cause), self.cause, self.cause.__traceback__
            )) if self.cause else None
        }

    def format_error(self) -> str:
        """格式化错误信息"""
        error_msg = f"[{self.error_code.name}] {self.message}"
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            error_msg += f" (详情: {details_str})"
        if self.cause:
            error_msg += f" (原因: {self.cause})"
        return error_msg


class ConfigError(OpsMonitorError):
    """配置相关异常，缺少必需配置时对当前操作是致命的"""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.CONFIG_VALIDATION_ERROR,
        config_key: Optional[str] = None,
        **kwargs
    ):
        details = kwargs.pop('details', None) or {}
        if config_key:
            details['config_key'] = config_key
        kwargs.setdefault('recoverable', False)
        super().__init__(message, error_code, details, **kwargs)


class NetworkError(OpsMonitorError):
    """网络请求相关异常（探测、告警、上传），从不终止整个系统"""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.CONNECTION_ERROR,
        target: Optional[str] = None,
        **kwargs
    ):
        details = kwargs.pop('details', None) or {}
        if target:
            details['target'] = target
        super().__init__(message, error_code, details, **kwargs)


class AlertError(NetworkError):
    """告警相关异常"""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.ALERT_SEND_ERROR,
        alert_name: Optional[str] = None,
        **kwargs
    ):
        details = kwargs.pop('details', None) or {}
        if alert_name:
            details['alert_name'] = alert_name
        super().__init__(message, error_code, details=details, **kwargs)


class AlertConfigError(AlertError):
    """告警配置异常"""

    def __init__(self, message: str, alert_name: Optional[str] = None, **kwargs):
        super().__init__(
            message,
            ErrorCode.ALERT_CONFIG_ERROR,
            alert_name=alert_name,
            recoverable=False,
            **kwargs
        )


class AlertSendError(AlertError):
    """告警发送异常"""

    def __init__(self, message: str, alert_name: Optional[str] = None, **kwargs):
        super().__init__(
            message,
            ErrorCode.ALERT_SEND_ERROR,
            alert_name=alert_name,
            recoverable=True,
            **kwargs
        )


class UploadError(NetworkError):
    """备份上传异常"""

    def __init__(self, message: str, target: Optional[str] = None, **kwargs):
        super().__init__(message, ErrorCode.UPLOAD_ERROR, target=target, **kwargs)


class BackupError(OpsMonitorError):
    """备份/恢复相关异常"""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.BACKUP_ERROR,
        operation: Optional[str] = None,
        **kwargs
    ):
        details = kwargs.pop('details', None) or {}
        if operation:
            details['operation'] = operation
        kwargs.setdefault('recoverable', False)
        super().__init__(message, error_code, details, **kwargs)


class ExternalProcessError(BackupError):
    """外部工具（mongodump/mongorestore）以非零状态退出或无法启动"""

    def __init__(
        self,
        message: str,
        command: Optional[str] = None,
        returncode: Optional[int] = None,
        stderr: Optional[str] = None,
        **kwargs
    ):
        details = kwargs.pop('details', None) or {}
        if command:
            details['command'] = command
        if returncode is not None:
            details['returncode'] = returncode
        if stderr:
            details['stderr'] = stderr
        super().__init__(message, ErrorCode.EXTERNAL_PROCESS_ERROR,
                         details=details, **kwargs)
        self.returncode = returncode
        self.stderr = stderr


class PreflightError(BackupError):
    """备份前数据库连通性检查失败"""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, ErrorCode.PREFLIGHT_ERROR, **kwargs)


class FileSystemError(BackupError):
    """文件系统操作异常，清理时记录后跳过"""

    def __init__(self, message: str, path: Optional[str] = None, **kwargs):
        details = kwargs.pop('details', None) or {}
        if path:
            details['path'] = path
        kwargs.setdefault('recoverable', True)
        super().__init__(message, ErrorCode.FILE_SYSTEM_ERROR, details=details, **kwargs)
