"""测试备份前连通性检查"""

from unittest.mock import AsyncMock, Mock

import pytest

from ops_monitor.backup.preflight import MongoPreflight
from ops_monitor.utils.exceptions import PreflightError


def make_factory(command_side_effect=None):
    """创建返回模拟客户端的工厂"""
    client = Mock()
    client.admin.command = AsyncMock(return_value={'ok': 1}, side_effect=command_side_effect)
    factory = Mock(return_value=client)
    return factory, client


class TestMongoPreflight:
    """测试MongoPreflight类"""

    @pytest.mark.asyncio
    async def test_check_success(self):
        """测试ping成功"""
        factory, client = make_factory()
        preflight = MongoPreflight('mongodb://localhost:27017/app', timeout_ms=2000,
                                   client_factory=factory)

        ping_time = await preflight.check()

        assert ping_time >= 0
        factory.assert_called_once_with('mongodb://localhost:27017/app',
                                        serverSelectionTimeoutMS=2000,
                                        connectTimeoutMS=2000)
        client.admin.command.assert_awaited_once_with('ping')
        client.close.assert_called_once()

    @pytest.mark.asyncio
    async def test_check_failure(self):
        """测试ping失败"""
        factory, client = make_factory(command_side_effect=Exception('No servers found'))
        preflight = MongoPreflight('mongodb://user:pw@localhost/app', client_factory=factory)

        with pytest.raises(PreflightError, match='No servers found') as exc_info:
            await preflight.check()

        assert exc_info.value.details['operation'] == 'preflight'
        client.close.assert_called_once()

    @pytest.mark.asyncio
    async def test_malformed_uri(self):
        """测试连接地址格式错误时抛出连通性检查异常"""
        preflight = MongoPreflight('mongodb://localhost:notaport/db', timeout_ms=500)

        with pytest.raises(PreflightError, match='连接地址无效') as exc_info:
            await preflight.check()

        assert exc_info.value.details['operation'] == 'preflight'
        assert isinstance(exc_info.value.cause, ValueError)

    @pytest.mark.asyncio
    async def test_client_factory_error(self):
        """测试客户端创建失败"""
        factory = Mock(side_effect=ValueError('bad uri'))
        preflight = MongoPreflight('mongodb://localhost/app', client_factory=factory)

        with pytest.raises(PreflightError):
            await preflight.check()

    @pytest.mark.asyncio
    async def test_close_error_is_ignored(self):
        """测试关闭客户端失败不影响结果"""
        factory, client = make_factory()
        client.close.side_effect = RuntimeError('already closed')
        preflight = MongoPreflight('mongodb://localhost/app', client_factory=factory)

        assert await preflight.check() >= 0
