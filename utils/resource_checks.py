#!/usr/bin/env python3
"""
Disk space preflight check run before any install mutates the host
"""
import shutil
from pathlib import Path
from typing import Union

GIB = 1024 ** 3


def _existing_ancestor(path: Path) -> Path:
    """Closest existing directory at or above ``path``."""
    for candidate in (path, *path.parents):
        if candidate.exists():
            return candidate
    return Path(path.anchor or '/')


def free_gb(path: Union[str, Path]) -> float:
    """Free space in GiB on the filesystem that holds (or would hold) ``path``."""
    target = _existing_ancestor(Path(path).expanduser())
    return shutil.disk_usage(target).free / GIB


def check_disk_space(path: Union[str, Path], min_gb: float = 10) -> bool:
    """
    Check if sufficient disk space is available for an install run

    Args:
        path: Install target; may not exist yet, the nearest existing parent
            is measured instead
        min_gb: Minimum required space in GB; 0 disables the check

    Returns:
        True if sufficient space available

    Raises:
        IOError: If insufficient disk space
    """
    if not min_gb:
        return True
    available = free_gb(path)
    if available < min_gb:
        raise IOError(
            f"Insufficient disk space under {path}: {available:.1f}GB free, "
            f"at least {min_gb}GB required (set min_free_gb to change)"
        )
    return True
