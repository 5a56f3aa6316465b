"""外部进程执行"""

import asyncio
import re
from dataclasses import dataclass
from typing import Optional, Sequence

from ..utils.exceptions import ExternalProcessError
from ..utils.log_manager import get_logger

_URI_CREDENTIALS = re.compile(r'(://[^:/@]+:)[^@/]+@')


def mask_uri(text: str) -> str:
    """隐藏连接串中的密码"""
    return _URI_CREDENTIALS.sub(r'\1***@', text)


@dataclass(frozen=True)
class ProcessResult:
    """外部进程执行结果"""
    returncode: int
    stdout: str
    stderr: str


class ProcessRunner:
    """以 asyncio 子进程方式运行外部工具，不阻塞事件循环"""

    def __init__(self):
        self.logger = get_logger('backup.process')

    async def run(self, argv: Sequence[str]) -> ProcessResult:
        """
        运行命令并等待结束

        Args:
            argv: 命令及参数列表（不经过shell）

        Returns:
            ProcessResult: 执行结果

        Raises:
            ExternalProcessError: 无法启动或以非零状态退出
        """
        display = mask_uri(' '.join(argv))
        self.logger.debug(f"执行命令: {display}")

        try:
            process = await asyncio.create_subprocess_exec(
                *argv,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE
            )
        except FileNotFoundError as e:
            raise ExternalProcessError(f"找不到可执行文件: {argv[0]}",
                                       command=display, cause=e)
        except OSError as e:
            raise ExternalProcessError(f"无法启动外部进程 {argv[0]}: {e}",
                                       command=display, cause=e)

        try:
            stdout, stderr = await process.communicate()
        except asyncio.CancelledError:
            if process.returncode is None:
                process.kill()
                await process.wait()
            raise

        result = ProcessResult(
            returncode=process.returncode,
            stdout=stdout.decode('utf-8', errors='replace'),
            stderr=mask_uri(stderr.decode('utf-8', errors='replace'))
        )

        if result.returncode != 0:
            raise ExternalProcessError(
                f"{argv[0]} 退出码 {result.returncode}: "
                f"{self._tail(result.stderr) or '无错误输出'}",
                command=display,
                returncode=result.returncode,
                stderr=self._tail(result.stderr)
            )

        return result

    @staticmethod
    def _tail(text: str, limit: int = 500) -> Optional[str]:
        text = text.strip()
        if not text:
            return None
        return text[-limit:]
