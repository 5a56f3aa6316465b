"""测试备份保留策略"""

import os
from pathlib import Path

import pytest

from ops_monitor.backup.retention import RetentionSweeper
from ops_monitor.utils.exceptions import FileSystemError


def touch(directory: Path, name: str, mtime: float = None) -> Path:
    path = directory / name
    path.write_bytes(b'archive')
    if mtime is not None:
        os.utime(path, (mtime, mtime))
    return path


STAMPED = [
    'backup-2024-01-01T00-00-00-000Z.gz',
    'backup-2024-01-02T00-00-00-000Z.gz',
    'backup-2024-01-03T00-00-00-000Z.gz',
    'backup-2024-01-04T00-00-00-000Z.gz',
    'backup-2024-01-05T00-00-00-000Z.gz',
]


class TestRetentionSweeper:
    """测试RetentionSweeper类"""

    def setup_method(self):
        """测试前准备"""
        self.sweeper = RetentionSweeper()

    def test_sweep_keeps_newest(self, tmp_path):
        """测试保留最新的N个备份"""
        for name in STAMPED:
            touch(tmp_path, name)

        deleted = self.sweeper.sweep(tmp_path, 2)

        assert sorted(deleted) == STAMPED[:3]
        assert sorted(os.listdir(tmp_path)) == STAMPED[3:]

    def test_embedded_timestamp_wins_over_mtime(self, tmp_path):
        """测试排序以文件名时间戳为准"""
        # 修改时间与文件名顺序相反
        for index, name in enumerate(STAMPED):
            touch(tmp_path, name, mtime=1_700_000_000 - index * 1000)

        deleted = self.sweeper.sweep(tmp_path, 1)

        assert os.listdir(tmp_path) == [STAMPED[-1]]
        assert len(deleted) == 4

    def test_mtime_used_when_name_has_no_timestamp(self, tmp_path):
        """测试文件名无时间戳时使用修改时间"""
        touch(tmp_path, 'backup-old.gz', mtime=1_600_000_000)
        touch(tmp_path, 'backup-new.gz', mtime=1_700_000_000)

        deleted = self.sweeper.sweep(tmp_path, 1)

        assert deleted == ['backup-old.gz']

    def test_nothing_to_delete(self, tmp_path):
        """测试备份数量不超过保留数量"""
        for name in STAMPED[:2]:
            touch(tmp_path, name)

        assert self.sweeper.sweep(tmp_path, 2) == []
        assert self.sweeper.sweep(tmp_path, 10) == []
        assert len(os.listdir(tmp_path)) == 2

    def test_other_files_untouched(self, tmp_path):
        """测试不匹配的文件不会被删除"""
        for name in STAMPED:
            touch(tmp_path, name)
        touch(tmp_path, 'notes.txt', mtime=1)
        touch(tmp_path, 'backup-2024.tar', mtime=1)
        (tmp_path / 'backup-dir.gz').mkdir()

        self.sweeper.sweep(tmp_path, 1)

        assert sorted(os.listdir(tmp_path)) == sorted(
            [STAMPED[-1], 'notes.txt', 'backup-2024.tar', 'backup-dir.gz'])

    @pytest.mark.parametrize('count', [0, -3])
    def test_non_positive_count_deletes_all(self, tmp_path, count):
        """测试保留数量小于等于0时全部删除"""
        for name in STAMPED[:3]:
            touch(tmp_path, name)

        deleted = self.sweeper.sweep(tmp_path, count)

        assert len(deleted) == 3
        assert os.listdir(tmp_path) == []

    def test_missing_directory(self, tmp_path):
        """测试目录不存在"""
        assert self.sweeper.sweep(tmp_path / 'missing', 3) == []
        assert self.sweeper.list_backups(tmp_path / 'missing') == []

    def test_delete_failure_is_skipped(self, tmp_path):
        """测试单个文件删除失败时继续处理其余文件"""
        for name in STAMPED:
            touch(tmp_path, name)
        locked = tmp_path / STAMPED[0]

        def remove_file(path):
            if Path(path) == locked:
                raise PermissionError('locked')
            os.remove(path)

        sweeper = RetentionSweeper(remove_file=remove_file)
        deleted = sweeper.sweep(tmp_path, 2)

        assert sorted(deleted) == STAMPED[1:3]
        assert locked.exists()

    def test_list_backups_newest_first(self, tmp_path):
        """测试列出备份按新旧排序"""
        for name in reversed(STAMPED):
            touch(tmp_path, name)

        records = self.sweeper.list_backups(tmp_path)

        assert [record.file_name for record in records] == list(reversed(STAMPED))
        assert records[0].created_at is not None

    def test_equal_timestamps_order_is_deterministic(self, tmp_path):
        """测试时间相同时顺序稳定"""
        for name in ('backup-b.gz', 'backup-a.gz', 'backup-c.gz'):
            touch(tmp_path, name, mtime=1_700_000_000)

        first = [record.file_name for record in self.sweeper.list_backups(tmp_path)]
        second = [record.file_name for record in self.sweeper.list_backups(tmp_path)]

        assert first == second == ['backup-a.gz', 'backup-b.gz', 'backup-c.gz']

    def test_unreadable_directory_raises(self, tmp_path):
        """测试目录不可读"""
        target = tmp_path / 'file-not-dir'
        target.write_text('x')

        with pytest.raises(FileSystemError):
            self.sweeper.list_backups(target)
