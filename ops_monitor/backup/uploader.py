"""备份上传"""

import asyncio
import base64
from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, Optional

import aiohttp

from ..models.health_check import isoformat_millis, utc_now
from ..utils.exceptions import UploadError
from ..utils.log_manager import get_logger


class BackupUploader:
    """把备份归档以 base64 JSON 的形式 POST 到远程地址"""

    def __init__(self, url: str, timeout: float = 60.0,
                 headers: Optional[Dict[str, str]] = None,
                 clock: Optional[Callable[[], datetime]] = None):
        """
        初始化上传器

        Args:
            url: 上传地址
            timeout: 请求超时（秒）
            headers: 附加请求头
            clock: 时间来源
        """
        self.url = url
        self.timeout = timeout
        self.headers = headers or {}
        self.clock = clock or utc_now
        self.logger = get_logger('backup.uploader')

    async def upload(self, archive_path: Path) -> None:
        """
        上传备份文件

        Args:
            archive_path: 本地归档路径

        Raises:
            UploadError: 读取文件失败、网络错误或非2xx响应
        """
        loop = asyncio.get_running_loop()
        try:
            content = await loop.run_in_executor(None, archive_path.read_bytes)
        except OSError as e:
            raise UploadError(f"读取备份文件失败: {e}", target=str(archive_path), cause=e)

        payload = {
            'file': base64.b64encode(content).decode('ascii'),
            'fileName': archive_path.name,
            'timestamp': isoformat_millis(self.clock())
        }

        self.logger.info(f"上传备份 {archive_path.name} ({len(content)} 字节)")
        timeout = aiohttp.ClientTimeout(total=self.timeout)
        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.post(self.url, json=payload,
                                        headers=self.headers) as response:
                    if not 200 <= response.status < 300:
                        body = await response.text()
                        raise UploadError(
                            f"上传地址返回错误状态码 {response.status}: {body[:200]}",
                            target=self.url)
        except aiohttp.ClientError as e:
            raise UploadError(f"上传请求失败: {e}", target=self.url, cause=e)
        except asyncio.TimeoutError as e:
            raise UploadError("上传请求超时", target=self.url, cause=e)

        self.logger.info("备份上传成功")
