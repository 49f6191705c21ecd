"""
Module registry
---------------
Exposes the modules known on disk. Every subdirectory of ``modules_dir`` that
contains a ``module.json`` is a module; the directory name is its key.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Iterator, List

from .descriptor import DESCRIPTOR_FILENAME, NO_DESCRIPTION, ModuleDescriptor
from .errors import InvalidDescriptorError, ModuleNotFound

logger = logging.getLogger(__name__)


class ModuleRegistry:
    """Read-only view of the module descriptors under one directory.

    Descriptors are parsed on first access and cached for the lifetime of the
    registry, which is one CLI invocation.
    """

    def __init__(self, modules_dir: Path):
        self.modules_dir = Path(modules_dir)
        self._cache: Dict[str, ModuleDescriptor] = {}

    def list_modules(self) -> Iterator[str]:
        """Yield module names in sorted order."""
        if not self.modules_dir.is_dir():
            logger.warning("Modules directory not found: %s", self.modules_dir)
            return
        names = sorted(
            entry.name
            for entry in self.modules_dir.iterdir()
            if entry.is_dir() and (entry / DESCRIPTOR_FILENAME).is_file()
        )
        yield from names

    def module_exists(self, name: str) -> bool:
        if not name or "/" in name or name.startswith("."):
            return False
        return (self.modules_dir / name / DESCRIPTOR_FILENAME).is_file()

    def get(self, name: str) -> ModuleDescriptor:
        """Return the descriptor for ``name``.

        Raises:
            ModuleNotFound: no such module.
            InvalidDescriptorError: descriptor present but malformed.
        """
        if name in self._cache:
            return self._cache[name]
        if not self.module_exists(name):
            raise ModuleNotFound(name)
        path = self.modules_dir / name / DESCRIPTOR_FILENAME
        descriptor = ModuleDescriptor.from_file(path, name=name)
        self._cache[name] = descriptor
        return descriptor

    def get_dependencies(self, name: str) -> List[str]:
        return list(self.get(name).dependencies)

    def get_description(self, name: str) -> str:
        try:
            return self.get(name).description or NO_DESCRIPTION
        except InvalidDescriptorError as exc:
            logger.warning("%s", exc)
            return NO_DESCRIPTION

    def descriptors(self) -> List[ModuleDescriptor]:
        return [self.get(name) for name in self.list_modules()]
