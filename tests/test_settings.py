#!/usr/bin/env python3
"""
Tests for configuration loading and run logging.
"""

import logging
from pathlib import Path

import pytest

from provision.errors import ConfigError
from provision.run_log import LATEST_LINK, rotate_logs, setup_logging
from provision.settings import BUNDLED_MODULES_DIR, CONFIG_DEFAULT, Settings, load_settings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for var in ('SETUP_CONFIG', 'SETUP_MODULES_DIR', 'SETUP_LOG_DIR', 'SETUP_TIMEOUT', 'SETUP_DRY_RUN'):
        monkeypatch.delenv(var, raising=False)


@pytest.mark.unit
class TestLoadSettings:
    def test_missing_file_gives_defaults(self, tmp_path):
        settings = load_settings(tmp_path / 'absent.yml')
        assert settings.default_timeout == 600
        assert settings.modules_dir == BUNDLED_MODULES_DIR
        assert settings.modules == {}
        assert settings.dry_run is False

    def test_values_from_yaml(self, tmp_path):
        config = tmp_path / 'setup.yml'
        config.write_text(
            'modules_dir: /opt/modules\n'
            'log_dir: logs\n'
            'default_timeout: 300\n'
            'min_free_gb: 2.5\n'
            'modules:\n'
            '  node:\n'
            '    flags: ["--major=22"]\n'
            '    timeout: 120\n'
            '  rider:\n'
        )
        settings = load_settings(config)
        assert settings.modules_dir == Path('/opt/modules')
        assert settings.log_dir == tmp_path / 'logs'
        assert settings.default_timeout == 300
        assert settings.min_free_gb == 2.5
        assert settings.modules['rider'] == {}
        node = settings.module_config('node', descriptor_timeout=900)
        assert node.flags == ['--major=22']
        assert node.timeout == 120

    def test_environment_overrides(self, tmp_path, monkeypatch):
        config = tmp_path / 'setup.yml'
        config.write_text('default_timeout: 300\ndry_run: false\n')
        monkeypatch.setenv('SETUP_CONFIG', str(config))
        monkeypatch.setenv('SETUP_TIMEOUT', '45')
        monkeypatch.setenv('SETUP_DRY_RUN', 'yes')
        monkeypatch.setenv('SETUP_MODULES_DIR', str(tmp_path / 'mods'))
        monkeypatch.setenv('SETUP_LOG_DIR', str(tmp_path / 'logs'))
        settings = load_settings()
        assert settings.default_timeout == 45
        assert settings.dry_run is True
        assert settings.modules_dir == tmp_path / 'mods'
        assert settings.log_dir == tmp_path / 'logs'

    @pytest.mark.parametrize('content', [
        'modules: [1, 2\n',
        '- just\n- a list\n',
        'default_timeout: soon\n',
        'modules: not-a-mapping\n',
        'modules:\n  node: fast\n',
        'modules:\n  node:\n    flags: --major=22\n',
        'modules:\n  rider:\n    timeout: ten\n',
        'modules:\n  rider:\n    timeout: 0\n',
        'modules:\n  rider:\n    timeout: -5\n',
    ])
    def test_invalid_config_raises(self, tmp_path, content):
        config = tmp_path / 'setup.yml'
        config.write_text(content)
        with pytest.raises(ConfigError):
            load_settings(config)

    def test_bundled_config_loads(self, config_dir):
        settings = load_settings(config_dir / 'setup.yml')
        assert settings.modules_dir == BUNDLED_MODULES_DIR
        assert settings.module_config('node').flags == ['--major=20']

    def test_default_config_is_the_bundled_one(self):
        settings = load_settings()
        assert CONFIG_DEFAULT.is_file()
        assert settings.modules_dir == BUNDLED_MODULES_DIR
        assert settings.module_config('rider').timeout == 1200

    def test_relative_paths_follow_the_config_file(self, tmp_path):
        config = tmp_path / 'etc' / 'setup.yml'
        config.parent.mkdir()
        config.write_text('modules_dir: mods\nlock_file: run/setup.lock\n')
        settings = load_settings(config)
        assert settings.modules_dir == config.parent / 'mods'
        assert settings.lock_file == config.parent / 'run' / 'setup.lock'


@pytest.mark.unit
class TestModuleConfig:
    def test_timeout_precedence(self):
        settings = Settings(default_timeout=600, modules={'a': {'timeout': 60}})
        assert settings.module_config('a', descriptor_timeout=900).timeout == 60
        assert settings.module_config('b', descriptor_timeout=900).timeout == 900
        assert settings.module_config('b').timeout == 600

    def test_enabled_default(self):
        settings = Settings(modules={'a': {'enabled': False}})
        assert settings.module_config('a').enabled is False
        assert settings.module_config('b').enabled is True

    @pytest.mark.parametrize('timeout', ['ten', 0, -1, 2.5, True])
    def test_invalid_module_timeout_is_config_error(self, timeout):
        settings = Settings(modules={'a': {'timeout': timeout}})
        with pytest.raises(ConfigError, match='modules.a.timeout'):
            settings.module_config('a', descriptor_timeout=900)


@pytest.mark.unit
class TestRunLog:
    def test_creates_timestamped_log_and_latest_link(self, tmp_path, restore_logging):
        log_file = setup_logging(tmp_path / 'logs', retention=5)
        logging.getLogger('provision.test').info('hello from test')
        for handler in logging.getLogger().handlers:
            handler.flush()
        assert log_file.name.startswith('setup_')
        assert 'hello from test' in log_file.read_text()
        latest = tmp_path / 'logs' / LATEST_LINK
        assert latest.is_symlink()
        assert latest.resolve() == log_file.resolve()

    def test_rotation_keeps_newest(self, tmp_path):
        for stamp in ('20240101_000000', '20240102_000000', '20240103_000000'):
            (tmp_path / f'setup_{stamp}.log').write_text(stamp)
        rotate_logs(tmp_path, keep=2)
        assert sorted(p.name for p in tmp_path.glob('setup_*.log')) == [
            'setup_20240102_000000.log',
            'setup_20240103_000000.log',
        ]

    def test_unwritable_log_dir_falls_back_to_console(self, tmp_path, restore_logging, capsys):
        blocker = tmp_path / 'file'
        blocker.write_text('not a directory')
        assert setup_logging(blocker / 'logs') is None
        assert 'Could not create log directory' in capsys.readouterr().out
