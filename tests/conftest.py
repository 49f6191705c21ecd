"""
Pytest configuration and fixtures for workstation-setup tests.
"""

import json
import logging
import time

import pytest
from pathlib import Path

from provision.modules.base import ActionResult, BaseModule
from provision.registry import ModuleRegistry
from provision.settings import BUNDLED_MODULES_DIR, DATA_DIR, Settings


@pytest.fixture
def project_root():
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def config_dir():
    """Return the directory holding the bundled setup.yml."""
    return DATA_DIR


@pytest.fixture
def bundled_modules_dir():
    """Return the directory holding the shipped module descriptors."""
    return BUNDLED_MODULES_DIR


def write_descriptor(modules_dir, name, descriptor):
    """Write modules/<name>/module.json.

    ``descriptor`` is either a list of dependency names or a full descriptor dict.
    A plain string is written verbatim (for malformed-JSON cases).
    """
    module_dir = modules_dir / name
    module_dir.mkdir(parents=True, exist_ok=True)
    path = module_dir / 'module.json'
    if isinstance(descriptor, str):
        path.write_text(descriptor)
        return path
    if isinstance(descriptor, (list, tuple)):
        descriptor = {'name': name, 'dependencies': list(descriptor)}
    data = {'name': name}
    data.update(descriptor)
    path.write_text(json.dumps(data))
    return path


@pytest.fixture
def make_registry(tmp_path):
    """Build a ModuleRegistry from a ``{name: deps-or-descriptor}`` mapping."""
    modules_dir = tmp_path / 'modules'
    modules_dir.mkdir()

    def _make(graph):
        for name, descriptor in graph.items():
            write_descriptor(modules_dir, name, descriptor)
        return ModuleRegistry(modules_dir)

    return _make


@pytest.fixture
def settings(tmp_path):
    """Settings that keep logs, locks and modules inside tmp_path."""
    return Settings(
        modules_dir=tmp_path / 'modules',
        log_dir=tmp_path / 'logs',
        lock_file=tmp_path / 'setup.lock',
        lock_timeout=1,
        min_free_gb=0,
    )


class FakeHost:
    """Stands in for the machine being provisioned.

    Recipes built by ``factory`` record every check/install/verify call and
    consult these sets instead of running commands.
    """

    def __init__(self):
        self.present = set()
        self.fail_install = {}
        self.raise_on_install = {}
        self.fail_verify = set()
        self.raise_on_verify = {}
        self.no_verify = set()
        self.raise_on_check = {}
        self.install_delay = {}
        self.calls = []

    def factory(self, descriptor, config=None):
        return FakeRecipe(descriptor, config, host=self)

    def actions(self, action):
        return [name for kind, name in self.calls if kind == action]

    @property
    def installs(self):
        return self.actions('install')


class FakeRecipe(BaseModule):
    def __init__(self, descriptor, config=None, host=None):
        super().__init__(descriptor, config, package_manager=object())
        self.name = descriptor.name
        self.host = host

    def check_installed(self):
        self.host.calls.append(('check', self.name))
        if self.name in self.host.raise_on_check:
            raise self.host.raise_on_check[self.name]
        return self.name in self.host.present

    def install(self, force=False):
        self.host.calls.append(('install', self.name))
        if self.name in self.host.install_delay:
            time.sleep(self.host.install_delay[self.name])
        if self.name in self.host.raise_on_install:
            raise self.host.raise_on_install[self.name]
        if self.name in self.host.fail_install:
            return ActionResult(False, self.host.fail_install[self.name])
        self.host.present.add(self.name)
        return ActionResult(True, f'{self.name} installed')

    def verify(self):
        self.host.calls.append(('verify', self.name))
        if self.name in self.host.raise_on_verify:
            raise self.host.raise_on_verify[self.name]
        if self.name in self.host.no_verify:
            return None
        if self.name in self.host.fail_verify:
            return ActionResult(False, 'unexpected version')
        return ActionResult(True, 'ok')


@pytest.fixture
def host():
    """A fresh FakeHost per test."""
    return FakeHost()


@pytest.fixture
def restore_logging():
    """Undo the root-logger changes made by setup_logging."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "security: mark test as a security validation test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test"
    )
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )


def pytest_collection_modifyitems(config, items):
    """Automatically mark security tests."""
    for item in items:
        if "security" in str(item.fspath):
            item.add_marker(pytest.mark.security)
