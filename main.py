#!/usr/bin/env python3
"""
运维监控主程序入口

monitor 子命令运行端点健康监控（支持优雅关闭），
backup 子命令创建或恢复 MongoDB 备份。
"""

import argparse
import asyncio
import logging
import os
import signal
import sys
from typing import Optional, Dict, Any, List, Mapping

from ops_monitor import __version__
from ops_monitor.backup.archiver import BackupArchiver
from ops_monitor.backup.settings import BackupSettings
from ops_monitor.models.health_check import ProbeResult
from ops_monitor.services.config_manager import ConfigManager, MonitorConfig
from ops_monitor.services.health_monitor import HealthMonitor
from ops_monitor.utils.error_handler import ErrorReporter
from ops_monitor.utils.exceptions import OpsMonitorError, ConfigError
from ops_monitor.utils.log_manager import log_manager, get_logger


class MonitorApp:
    """健康监控应用程序，负责组装组件和处理关闭信号"""

    def __init__(self, config_path: Optional[str] = None,
                 environ: Optional[Mapping[str, str]] = None):
        """初始化应用程序

        Args:
            config_path: YAML配置文件路径，为空时从环境变量构建配置
            environ: 环境变量
        """
        self.config_path = config_path
        self.environ = os.environ if environ is None else environ
        self.logger: Optional[logging.Logger] = None
        self.shutdown_event = asyncio.Event()
        self.monitor: Optional[HealthMonitor] = None
        self.global_config: Dict[str, Any] = {}

    def initialize(self, log_overrides: Optional[Dict[str, Any]] = None):
        """加载配置并创建监控器

        Raises:
            ConfigError: 配置无效
        """
        if self.config_path:
            config_manager = ConfigManager(self.config_path)
            config_manager.load_config()
            self.global_config = dict(config_manager.get_global_config())
            monitor_config = config_manager.get_monitor_config()
        else:
            monitor_config = MonitorConfig.from_env(self.environ)

        self.global_config.update(log_overrides or {})
        configure_app_logging(self.global_config)
        self.logger = get_logger('app')

        self.monitor = HealthMonitor.from_config(monitor_config)
        self.monitor.set_cycle_callback(self._log_cycle)
        self.logger.info(f"监控端点: {', '.join(e.name for e in monitor_config.endpoints)}")
        if self.monitor.alert_sink:
            self.logger.info(f"告警投递配置: {self.monitor.alert_sink.get_config_summary()}")
        else:
            self.logger.info("未配置告警投递，不健康结果只记录日志")

    async def _log_cycle(self, results: List[ProbeResult]):
        for result in results:
            if result.is_healthy:
                self.logger.debug(
                    f"{result.endpoint_name}: 健康 ({result.status_code}, {result.response_time_ms}ms)")
            else:
                self.logger.debug(f"{result.endpoint_name}: 不健康 - {result.error_message}")

    def _install_signal_handlers(self):
        loop = asyncio.get_running_loop()
        for signum in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(signum, self.shutdown, signum)
            except (NotImplementedError, RuntimeError):
                # Windows 事件循环不支持 add_signal_handler
                signal.signal(signum, lambda s, f: loop.call_soon_threadsafe(self.shutdown, s))

    async def run(self):
        """运行监控直到收到关闭信号"""
        self._install_signal_handlers()
        self.logger.info("启动健康监控系统")
        await self.monitor.start(self.shutdown_event)
        stats = self.monitor.get_monitor_stats()
        self.logger.info(
            f"健康监控已停止，完成周期: {stats['cycles_completed']}，"
            f"跳过: {stats['skipped_ticks']}，发送告警: {stats['alerts_sent']}")
        log_manager.cleanup()

    def shutdown(self, signum: Optional[int] = None):
        """触发应用程序关闭"""
        if self.logger:
            name = signal.Signals(signum).name if signum else 'shutdown'
            self.logger.info(f"收到关闭信号 {name}，正在停止...")
        self.shutdown_event.set()


def configure_app_logging(global_config: Dict[str, Any], console_stream: str = 'stdout'):
    """按全局配置设置日志系统"""
    log_config: Dict[str, Any] = {
        'log_level': global_config.get('log_level', 'INFO'),
        'enable_console': True,
        'console_stream': console_stream
    }
    if global_config.get('log_file'):
        log_config['log_file'] = global_config['log_file']
        log_config['max_file_size'] = global_config.get('max_log_size', 10 * 1024 * 1024)
        log_config['backup_count'] = global_config.get('log_backup_count', 5)
    log_manager.configure(log_config)


def create_argument_parser() -> argparse.ArgumentParser:
    """创建命令行参数解析器"""
    parser = argparse.ArgumentParser(
        prog='ops-monitor',
        description='运维监控 - 端点健康监控与MongoDB备份管理',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
示例用法:
  %(prog)s monitor config.yaml               # 使用配置文件启动监控
  %(prog)s monitor                           # 从 BACKEND_URL/FRONTEND_URL 构建端点
  %(prog)s monitor --check-once config.yaml  # 执行一次检查后退出
  %(prog)s monitor --validate config.yaml    # 验证配置文件
  %(prog)s backup create                     # 创建备份
  %(prog)s backup restore backups/backup-2024-01-02T03-04-05-678Z.gz

备份相关环境变量:
  MONGODB_URI, BACKUP_DIR, BACKUP_RETENTION_COUNT, BACKUP_UPLOAD_URL
        """
    )
    parser.add_argument('--version', '-v', action='version',
                        version=f'%(prog)s {__version__}')

    subparsers = parser.add_subparsers(dest='command')

    monitor_parser = subparsers.add_parser('monitor', help='运行端点健康监控')
    monitor_parser.add_argument('config_file', nargs='?', help='YAML配置文件路径')
    monitor_parser.add_argument('--validate', action='store_true',
                                help='验证配置文件格式并退出')
    monitor_parser.add_argument('--check-once', action='store_true',
                                help='执行一次健康检查后退出')
    monitor_parser.add_argument('--log-level',
                                choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                                help='设置日志级别（覆盖配置文件设置）')
    monitor_parser.add_argument('--log-file', help='日志文件路径（覆盖配置文件设置）')

    backup_parser = subparsers.add_parser('backup', help='MongoDB备份管理')
    backup_subparsers = backup_parser.add_subparsers(dest='backup_command')
    backup_subparsers.add_parser('create', help='创建备份')
    restore_parser = backup_subparsers.add_parser(
        'restore', help='从备份恢复（会删除目标库中已有的数据）')
    restore_parser.add_argument('backup_file', nargs='?', help='备份文件路径')

    return parser


def validate_config_file(config_path: str) -> bool:
    """验证配置文件

    Args:
        config_path: 配置文件路径

    Returns:
        验证是否成功
    """
    print(f"正在验证配置文件: {config_path}")
    try:
        config_manager = ConfigManager(config_path)
        config_manager.load_config()
        monitor_config = config_manager.get_monitor_config()
    except ConfigError as e:
        print(f"❌ 配置文件验证失败: {e.message}")
        return False

    print("✅ 配置文件验证成功!")
    print(f"   - 端点数量: {len(monitor_config.endpoints)}")
    for endpoint in monitor_config.endpoints:
        print(f"     * {endpoint.name} ({endpoint.url}, 超时 {endpoint.timeout_ms}ms)")
    print(f"   - 检查间隔: {monitor_config.interval_ms}ms")
    print(f"   - 告警: {'已启用' if monitor_config.webhook_url else '未配置'}")
    return True


async def check_once(monitor: HealthMonitor) -> bool:
    """执行一次健康检查

    Returns:
        是否全部健康
    """
    results = await monitor.run_cycle()

    print(f"健康检查完成，共检查 {len(results)} 个端点:")
    all_healthy = True
    for result in results:
        if result.is_healthy:
            print(f"   ✅ {result.endpoint_name}: 健康 "
                  f"(状态码: {result.status_code}, 响应时间: {result.response_time_ms}ms)")
        else:
            print(f"   ❌ {result.endpoint_name}: 不健康 - {result.error_message}")
            all_healthy = False

    return all_healthy


async def run_monitor_command(args: argparse.Namespace,
                              environ: Optional[Mapping[str, str]] = None) -> int:
    """执行 monitor 子命令，返回退出码"""
    if args.validate:
        if not args.config_file:
            print("--validate 需要提供配置文件路径", file=sys.stderr)
            return 1
        return 0 if validate_config_file(args.config_file) else 1

    log_overrides: Dict[str, Any] = {}
    if args.log_level:
        log_overrides['log_level'] = args.log_level
    if args.log_file:
        log_overrides['log_file'] = args.log_file

    app = MonitorApp(args.config_file, environ)
    try:
        app.initialize(log_overrides)
    except ConfigError as e:
        print(f"配置错误: {e.message}", file=sys.stderr)
        return 1

    if args.check_once:
        return 0 if await check_once(app.monitor) else 1

    print(f"运维监控 v{__version__} 已启动，按 Ctrl+C 停止")
    await app.run()
    return 0


async def run_backup_command(args: argparse.Namespace,
                             environ: Optional[Mapping[str, str]] = None,
                             archiver: Optional[BackupArchiver] = None) -> int:
    """执行 backup 子命令，返回退出码"""
    if args.backup_command not in ('create', 'restore'):
        print("用法: ops-monitor backup [create|restore <backup_file>]", file=sys.stderr)
        return 1

    if args.backup_command == 'restore' and not args.backup_file:
        print("请提供备份文件路径", file=sys.stderr)
        return 1

    configure_app_logging({'log_level': 'INFO'}, console_stream='stderr')
    environ = os.environ if environ is None else environ
    if archiver is None:
        reporter = ErrorReporter(environment=environ.get('APP_ENV', 'development'),
                                 release=environ.get('APP_VERSION'))
        archiver = BackupArchiver(BackupSettings.from_env(environ), reporter=reporter)

    try:
        if args.backup_command == 'create':
            archive_path = await archiver.create_backup()
            print(f"备份已创建: {archive_path}")
        else:
            await archiver.restore_backup(args.backup_file)
            print("备份恢复成功")
    except OpsMonitorError as e:
        print(f"备份操作失败: {e.format_error()}", file=sys.stderr)
        return 1

    return 0


async def main(argv: Optional[List[str]] = None) -> int:
    """主函数"""
    parser = create_argument_parser()
    args = parser.parse_args(argv)

    if args.command == 'monitor':
        return await run_monitor_command(args)
    if args.command == 'backup':
        return await run_backup_command(args)

    parser.print_help()
    return 1


def cli():
    """控制台脚本入口"""
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        print("\n用户中断程序")
        sys.exit(130)


if __name__ == "__main__":
    cli()
