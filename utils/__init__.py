#!/usr/bin/env python3
"""
Utilities package for workstation setup
"""
from .resource_checks import check_disk_space
from .api_retry import retry_with_backoff
from .atomic_write import atomic_write_json
from .file_lock import host_lock

__all__ = [
    'check_disk_space',
    'retry_with_backoff',
    'atomic_write_json',
    'host_lock',
]
