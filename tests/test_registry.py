#!/usr/bin/env python3
"""
Tests for module descriptors and the on-disk module registry.
"""

import json

import pytest

from provision.descriptor import NO_DESCRIPTION, ModuleDescriptor
from provision.errors import InvalidDescriptorError, ModuleNotFound
from provision.registry import ModuleRegistry


@pytest.mark.unit
class TestModuleDescriptor:
    def test_defaults(self):
        descriptor = ModuleDescriptor.from_dict({}, name='bare')
        assert descriptor.name == 'bare'
        assert descriptor.description == NO_DESCRIPTION
        assert descriptor.dependencies == ()
        assert descriptor.timeout is None

    def test_full_descriptor(self, tmp_path):
        path = tmp_path / 'docker' / 'module.json'
        path.parent.mkdir()
        path.write_text(json.dumps({
            'name': 'docker',
            'description': 'Docker Engine',
            'dependencies': ['essentials'],
            'conflicts': ['podman'],
            'provides': ['docker'],
            'check_installed': 'command -v docker',
            'timeout': 900,
            'documentation': {'homepage': 'https://www.docker.com'},
        }))
        descriptor = ModuleDescriptor.from_file(path)
        assert descriptor.name == 'docker'
        assert descriptor.dependencies == ('essentials',)
        assert descriptor.conflicts == ('podman',)
        assert descriptor.timeout == 900
        assert descriptor.directory == path.parent
        assert descriptor.documentation['homepage'] == 'https://www.docker.com'

    def test_directory_name_wins_over_declared_name(self, caplog):
        descriptor = ModuleDescriptor.from_dict({'name': 'other'}, name='real')
        assert descriptor.name == 'real'
        assert 'using directory name' in caplog.text

    def test_blank_description_gets_placeholder(self):
        descriptor = ModuleDescriptor.from_dict({'description': ''}, name='m')
        assert descriptor.description == NO_DESCRIPTION

    @pytest.mark.parametrize('data', [
        [],
        {'dependencies': 'essentials'},
        {'dependencies': [1, 2]},
        {'dependencies': ['']},
        {'description': 42},
        {'timeout': 0},
        {'timeout': '600'},
        {'timeout': True},
        {'documentation': 'https://example.com'},
    ])
    def test_invalid_fields_raise(self, data):
        with pytest.raises(InvalidDescriptorError):
            ModuleDescriptor.from_dict(data, name='bad')

    def test_malformed_json_raises(self, tmp_path):
        path = tmp_path / 'broken' / 'module.json'
        path.parent.mkdir()
        path.write_text('{"dependencies": [')
        with pytest.raises(InvalidDescriptorError) as excinfo:
            ModuleDescriptor.from_file(path)
        assert 'malformed JSON' in str(excinfo.value)
        assert excinfo.value.module == 'broken'


@pytest.mark.unit
class TestModuleRegistry:
    def test_list_modules_sorted(self, make_registry):
        registry = make_registry({'zeta': [], 'alpha': [], 'mid': []})
        assert list(registry.list_modules()) == ['alpha', 'mid', 'zeta']

    def test_list_modules_ignores_dirs_without_descriptor(self, make_registry, tmp_path):
        registry = make_registry({'real': []})
        (tmp_path / 'modules' / 'scratch').mkdir()
        (tmp_path / 'modules' / 'notes.txt').write_text('not a module')
        assert list(registry.list_modules()) == ['real']

    def test_list_modules_reflects_disk(self, make_registry, tmp_path):
        registry = make_registry({'a': []})
        assert list(registry.list_modules()) == ['a']
        (tmp_path / 'modules' / 'b').mkdir()
        (tmp_path / 'modules' / 'b' / 'module.json').write_text('{}')
        assert list(registry.list_modules()) == ['a', 'b']

    def test_missing_modules_dir(self, tmp_path, caplog):
        registry = ModuleRegistry(tmp_path / 'does-not-exist')
        assert list(registry.list_modules()) == []
        assert 'Modules directory not found' in caplog.text

    def test_module_exists(self, make_registry):
        registry = make_registry({'git': []})
        assert registry.module_exists('git')
        assert not registry.module_exists('svn')
        assert not registry.module_exists('')

    @pytest.mark.parametrize('name', ['../etc', 'a/b', '.hidden'])
    def test_module_exists_rejects_path_like_names(self, make_registry, name):
        registry = make_registry({'git': []})
        assert not registry.module_exists(name)

    def test_get_dependencies(self, make_registry):
        registry = make_registry({'essentials': [], 'git': ['essentials']})
        assert registry.get_dependencies('git') == ['essentials']
        assert registry.get_dependencies('essentials') == []

    def test_get_dependencies_unknown_module(self, make_registry):
        registry = make_registry({'git': []})
        with pytest.raises(ModuleNotFound):
            registry.get_dependencies('svn')

    def test_malformed_descriptor_is_hard_error(self, make_registry):
        registry = make_registry({'broken': 'not json at all'})
        assert registry.module_exists('broken')
        with pytest.raises(InvalidDescriptorError):
            registry.get_dependencies('broken')

    def test_get_description(self, make_registry):
        registry = make_registry({
            'git': {'description': 'Version control'},
            'plain': [],
            'broken': '{',
        })
        assert registry.get_description('git') == 'Version control'
        assert registry.get_description('plain') == NO_DESCRIPTION
        assert registry.get_description('broken') == NO_DESCRIPTION

    def test_descriptors_are_cached(self, make_registry):
        registry = make_registry({'git': []})
        assert registry.get('git') is registry.get('git')


@pytest.mark.integration
class TestBundledModules:
    """The shipped descriptors form a valid, acyclic graph."""

    EXPECTED = {'essentials', 'git', 'node', 'docker', 'dotnet', 'vscode', 'rider', 'claude', 'dev-tools'}

    def test_all_bundled_modules_present(self, bundled_modules_dir):
        registry = ModuleRegistry(bundled_modules_dir)
        assert set(registry.list_modules()) == self.EXPECTED

    def test_bundled_descriptors_parse(self, bundled_modules_dir):
        registry = ModuleRegistry(bundled_modules_dir)
        for descriptor in registry.descriptors():
            assert descriptor.description != NO_DESCRIPTION
            assert descriptor.check_installed

    def test_bundled_modules_resolve(self, bundled_modules_dir):
        from provision.resolver import resolve

        registry = ModuleRegistry(bundled_modules_dir)
        assert resolve(registry, 'claude') == ['essentials', 'node', 'claude']
        for name in registry.list_modules():
            assert resolve(registry, name)[0] == 'essentials'
