"""
Module descriptors
------------------
Static metadata for one installable module, read from
``modules/<name>/module.json``. Descriptors are loaded once per invocation and
never mutated afterwards.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from .errors import InvalidDescriptorError

logger = logging.getLogger(__name__)

DESCRIPTOR_FILENAME = "module.json"
NO_DESCRIPTION = "No description available"

_LIST_FIELDS = ("dependencies", "conflicts", "provides", "tags", "platforms", "post_install_actions")
_STR_FIELDS = (
    "description",
    "version",
    "category",
    "check_installed",
    "verify_command",
    "get_version",
    "size_estimate",
    "install_time_estimate",
    "min_os_version",
)


@dataclass(frozen=True)
class ModuleDescriptor:
    """Identity, dependency and check metadata for a module.

    Attributes:
        name: Unique module key; always the name of the module directory.
        dependencies: Modules that must be installed first, in declaration
            order, duplicates removed.
        conflicts: Modules incompatible with this one. Informational only.
        provides: Commands or capabilities available once installed.
        check_installed: Shell predicate; exit status 0 means installed.
        verify_command: Optional shell command run after install.
        timeout: Per-module install timeout in seconds, if declared.
    """

    name: str
    description: str = NO_DESCRIPTION
    version: str = "unknown"
    category: str = "uncategorized"
    tags: Tuple[str, ...] = ()
    dependencies: Tuple[str, ...] = ()
    conflicts: Tuple[str, ...] = ()
    provides: Tuple[str, ...] = ()
    platforms: Tuple[str, ...] = ()
    min_os_version: str = ""
    check_installed: str = ""
    verify_command: str = ""
    get_version: str = ""
    size_estimate: str = "unknown"
    install_time_estimate: str = "unknown"
    post_install_actions: Tuple[str, ...] = ()
    documentation: Dict[str, Any] = field(default_factory=dict, compare=False)
    timeout: Optional[int] = None
    path: Optional[Path] = field(default=None, compare=False)

    @property
    def directory(self) -> Optional[Path]:
        return self.path.parent if self.path else None

    @classmethod
    def from_file(cls, path: Path, name: Optional[str] = None) -> "ModuleDescriptor":
        """Load and validate a descriptor.

        Raises:
            InvalidDescriptorError: unreadable file, bad JSON or a field of
                the wrong type.
        """
        name = name or path.parent.name
        try:
            with path.open("r", encoding="utf-8") as fh:
                data = json.load(fh)
        except OSError as exc:
            raise InvalidDescriptorError(name, path, f"cannot read: {exc}") from exc
        except json.JSONDecodeError as exc:
            raise InvalidDescriptorError(name, path, f"malformed JSON: {exc}") from exc
        return cls.from_dict(data, name=name, path=path)

    @classmethod
    def from_dict(cls, data: Any, name: str, path: Optional[Path] = None) -> "ModuleDescriptor":
        if not isinstance(data, dict):
            raise InvalidDescriptorError(name, path, "top-level value must be an object")

        declared = data.get("name")
        if declared and declared != name:
            logger.warning(
                "Descriptor %s declares name '%s'; using directory name '%s'",
                path, declared, name,
            )

        kwargs: Dict[str, Any] = {"name": name, "path": path}
        for key in _LIST_FIELDS:
            if key in data and data[key] is not None:
                kwargs[key] = _string_tuple(data[key], key, name, path)
        for key in _STR_FIELDS:
            value = data.get(key)
            if value is None:
                continue
            if not isinstance(value, str):
                raise InvalidDescriptorError(name, path, f"'{key}' must be a string")
            kwargs[key] = value

        if not kwargs.get("description"):
            kwargs["description"] = NO_DESCRIPTION

        if "dependencies" in kwargs:
            deps = kwargs["dependencies"]
            if name in deps:
                logger.warning("Module %s lists itself as a dependency", name)
            # dict.fromkeys keeps first-seen order
            kwargs["dependencies"] = tuple(dict.fromkeys(deps))

        timeout = data.get("timeout")
        if timeout is not None:
            if isinstance(timeout, bool) or not isinstance(timeout, int) or timeout <= 0:
                raise InvalidDescriptorError(name, path, "'timeout' must be a positive integer")
            kwargs["timeout"] = timeout

        docs = data.get("documentation")
        if docs is not None:
            if not isinstance(docs, dict):
                raise InvalidDescriptorError(name, path, "'documentation' must be an object")
            kwargs["documentation"] = dict(docs)

        unknown = set(data) - {f.name for f in fields(cls)}
        if unknown:
            logger.debug("Ignoring unknown descriptor keys for %s: %s", name, sorted(unknown))

        return cls(**kwargs)


def _string_tuple(value: Any, key: str, name: str, path: Optional[Path]) -> Tuple[str, ...]:
    if not isinstance(value, list) or not all(isinstance(v, str) and v for v in value):
        raise InvalidDescriptorError(name, path, f"'{key}' must be a list of non-empty strings")
    return tuple(value)
