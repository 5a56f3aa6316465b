"""测试日志管理器"""

import logging
import logging.handlers
import sys

import pytest

from ops_monitor.utils.log_manager import LogLevel, LogManager


class TestLogManager:
    """测试LogManager类"""

    def setup_method(self):
        """测试前准备"""
        self.manager = LogManager()

    def teardown_method(self):
        """测试后清理"""
        self.manager.cleanup()

    def test_logger_namespace(self):
        """测试记录器命名空间"""
        logger = self.manager.get_logger('monitor')

        assert logger.name == 'ops_monitor.monitor'
        assert logger.propagate is False
        assert self.manager.get_logger('monitor') is logger
        assert self.manager.get_logger('ops_monitor.monitor') is logger

    def test_configure_level(self):
        """测试配置日志级别"""
        self.manager.configure({'log_level': 'debug'})
        logger = self.manager.get_logger('level_test')

        assert logger.level == logging.DEBUG

    def test_invalid_level(self):
        """测试无效的日志级别"""
        with pytest.raises(ValueError, match='无效的日志级别'):
            self.manager.configure({'log_level': 'VERBOSE'})

    def test_file_logging(self, tmp_path):
        """测试文件日志"""
        log_file = tmp_path / 'logs' / 'ops.log'
        self.manager.configure({'log_file': str(log_file), 'enable_console': False})
        logger = self.manager.get_logger('file_test')

        logger.info("备份已创建")
        for handler in logger.handlers:
            handler.flush()

        assert log_file.exists()
        assert "备份已创建" in log_file.read_text(encoding='utf-8')
        assert any(isinstance(h, logging.handlers.RotatingFileHandler)
                   for h in logger.handlers)
        assert self.manager.get_log_stats()['current_log_size'] > 0

    def test_reconfigure_updates_existing_loggers(self):
        """测试重新配置会更新已创建的记录器"""
        logger = self.manager.get_logger('reconfigure_test')
        assert logger.level == logging.INFO

        self.manager.configure({'log_level': 'ERROR', 'console_stream': 'stderr'})

        assert logger.level == logging.ERROR
        stream_handlers = [h for h in logger.handlers if isinstance(h, logging.StreamHandler)]
        assert len(stream_handlers) == 1
        assert stream_handlers[0].stream is sys.stderr

    def test_console_disabled(self):
        """测试关闭控制台输出"""
        self.manager.configure({'enable_console': False})

        assert self.manager.get_logger('quiet').handlers == []

    def test_set_level(self):
        """测试运行期修改级别"""
        logger = self.manager.get_logger('set_level_test')

        self.manager.set_level(LogLevel.WARNING)

        assert logger.level == logging.WARNING
        assert all(h.level == logging.WARNING for h in logger.handlers)

    def test_log_stats(self):
        """测试日志统计"""
        self.manager.get_logger('a')
        self.manager.get_logger('b')

        stats = self.manager.get_log_stats()

        assert stats['loggers_count'] == 2
        assert stats['log_level'] == 'INFO'
        assert stats['file_logging_enabled'] is False

    def test_cleanup(self):
        """测试清理"""
        logger = self.manager.get_logger('cleanup_test')

        self.manager.cleanup()

        assert logger.handlers == []
        assert self.manager.get_log_stats()['loggers_count'] == 0
