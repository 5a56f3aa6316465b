"""备份前的数据库连通性检查"""

import time
from typing import Any, Callable, Optional

from motor.motor_asyncio import AsyncIOMotorClient

from ..utils.exceptions import PreflightError
from ..utils.log_manager import get_logger
from .process import mask_uri


class MongoPreflight:
    """对 MongoDB 执行 ping，确认数据库可达后再启动 mongodump"""

    def __init__(self, uri: str, timeout_ms: int = 5000,
                 client_factory: Optional[Callable[..., Any]] = None):
        """
        初始化检查器

        Args:
            uri: MongoDB 连接地址
            timeout_ms: 服务器选择/连接超时（毫秒）
            client_factory: 客户端工厂，默认 AsyncIOMotorClient
        """
        self.uri = uri
        self.timeout_ms = timeout_ms
        self.client_factory = client_factory or AsyncIOMotorClient
        self.logger = get_logger('backup.preflight')

    async def check(self) -> float:
        """
        执行 ping

        Returns:
            float: ping 耗时（秒）

        Raises:
            PreflightError: 数据库不可达
        """
        try:
            client = self.client_factory(
                self.uri,
                serverSelectionTimeoutMS=self.timeout_ms,
                connectTimeoutMS=self.timeout_ms
            )
        except Exception as e:
            self.logger.error(f"MongoDB连接地址无效 ({mask_uri(self.uri)}): {e}")
            raise PreflightError(f"MongoDB连接地址无效: {e}", operation='preflight', cause=e)

        start = time.monotonic()
        try:
            await client.admin.command('ping')
        except Exception as e:
            self.logger.error(f"MongoDB连通性检查失败 ({mask_uri(self.uri)}): {e}")
            raise PreflightError(f"MongoDB不可达: {e}", operation='preflight', cause=e)
        finally:
            try:
                client.close()
            except Exception as e:
                self.logger.warning(f"关闭MongoDB客户端连接时出错: {e}")

        ping_time = time.monotonic() - start
        self.logger.info(f"MongoDB连通性检查通过，响应时间: {ping_time:.3f}秒")
        return ping_time
