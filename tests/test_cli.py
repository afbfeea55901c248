"""
End-to-end tests of the command-line interface against local storage.
"""

import pytest
from pathlib import Path

# Add parent directory to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from cli import OssifyCLI
from config.config import ConfigService


@pytest.fixture
def cli(tmp_path, monkeypatch):
    """CLI wired to an fs store under tmp_path with default settings."""
    monkeypatch.setenv('STORAGE_PROVIDER', 'fs')
    monkeypatch.setenv('STORAGE_ROOT_PATH', str(tmp_path / 'store'))
    instance = OssifyCLI()
    instance.config = ConfigService(data_dir=tmp_path / 'cfg')
    return instance


@pytest.fixture
def local_file(tmp_path):
    path = tmp_path / 'hello.txt'
    path.write_bytes(b'hello world')
    return path


class TestCommands:
    """Test commands end to end."""

    def test_no_command_prints_help(self, cli, capsys):
        assert cli.run([]) == 0
        assert 'usage' in capsys.readouterr().out

    def test_put_then_ls(self, cli, local_file, capsys):
        assert cli.run(['put', str(local_file), '/docs']) == 0
        assert cli.run(['ls', '/docs']) == 0
        assert 'docs/hello.txt' in capsys.readouterr().out

    def test_stat_json(self, cli, local_file, capsys):
        cli.run(['put', str(local_file), '/'])
        capsys.readouterr()
        assert cli.run(['stat', '/hello.txt', '--json']) == 0
        assert '"entry_type": "file"' in capsys.readouterr().out

    def test_du_summary(self, cli, local_file, capsys):
        cli.run(['put', str(local_file), '/docs'])
        capsys.readouterr()
        assert cli.run(['du', '/docs', '-s']) == 0
        out = capsys.readouterr().out
        assert '11B /docs' in out
        assert 'Total files: 1' in out

    def test_cp_mv_rm(self, cli, local_file, tmp_path):
        store = tmp_path / 'store'
        cli.run(['put', str(local_file), '/a'])
        assert cli.run(['cp', '/a/hello.txt', '/b.txt']) == 0
        assert (store / 'b.txt').read_bytes() == b'hello world'
        assert cli.run(['mv', '/b.txt', '/c.txt']) == 0
        assert not (store / 'b.txt').exists()
        assert cli.run(['rm', '/c.txt', '-f']) == 0
        assert not (store / 'c.txt').exists()

    def test_rm_directory_needs_recursive(self, cli, local_file, capsys):
        cli.run(['put', str(local_file), '/a'])
        assert cli.run(['rm', '/a', '-f']) == 1
        assert 'recursive' in capsys.readouterr().err

    def test_rm_confirmation_declined(self, cli, local_file, tmp_path, monkeypatch):
        cli.run(['put', str(local_file), '/'])
        monkeypatch.setattr('builtins.input', lambda prompt='': 'n')
        assert cli.run(['rm', '/hello.txt']) == 0
        assert (tmp_path / 'store' / 'hello.txt').exists()

    def test_get_missing_path(self, cli, tmp_path, capsys):
        assert cli.run(['get', '/missing', str(tmp_path / 'out')]) == 1
        assert 'Path not found' in capsys.readouterr().err
        assert not (tmp_path / 'out').exists()

    def test_mkdir(self, cli, tmp_path):
        assert cli.run(['mkdir', '/x/y', '-p']) == 0
        assert (tmp_path / 'store' / 'x' / 'y').is_dir()

    def test_empty_path_rejected(self, cli):
        with pytest.raises(SystemExit):
            cli.run(['ls', '  '])

    def test_unsupported_provider(self, cli, monkeypatch, capsys):
        monkeypatch.setenv('STORAGE_PROVIDER', 'ftp')
        assert cli.run(['ls', '/']) == 1
        assert 'Unsupported storage provider' in capsys.readouterr().err
