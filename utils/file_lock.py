#!/usr/bin/env python3
"""
Host lock so only one provisioning run mutates the machine at a time
"""
import os
from contextlib import contextmanager
from pathlib import Path
from typing import Union

import portalocker


@contextmanager
def host_lock(path: Union[str, Path], timeout: float = 30):
    """
    Hold an exclusive lock on ``path`` for the duration of the block

    The lock file records the holder's PID for troubleshooting. The lock is
    released even if the block raises.

    Usage:
        with host_lock('~/.cache/workstation-setup/setup.lock', timeout=10):
            orchestrator.install('docker')

    Args:
        path: Lock file path (created if missing)
        timeout: Maximum seconds to wait for the lock

    Yields:
        File handle of the lock file

    Raises:
        TimeoutError: If the lock cannot be acquired within timeout
    """
    path = Path(path).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)

    lock = portalocker.Lock(str(path), mode='a', timeout=timeout, fail_when_locked=False)
    try:
        fh = lock.acquire()
    except portalocker.LockException as e:
        raise TimeoutError(
            f"Failed to acquire lock on {path} within {timeout} seconds. "
            f"Another setup run may be in progress."
        ) from e
    try:
        fh.seek(0)
        fh.truncate()
        fh.write(f"{os.getpid()}\n")
        fh.flush()
        yield fh
    finally:
        lock.release()
