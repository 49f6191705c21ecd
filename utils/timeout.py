#!/usr/bin/env python3
"""
Timeout Context Manager
Bounds the wall-clock time of an install action using SIGALRM
"""

import signal
import threading
from contextlib import contextmanager


@contextmanager
def timeout(seconds):
    """
    Context manager that raises TimeoutError if the block exceeds ``seconds``

    Usage:
        with timeout(600):
            recipe.install()

    SIGALRM only works in the main thread on POSIX; elsewhere, or when
    ``seconds`` is falsy, the block runs unbounded and callers rely on the
    per-command subprocess timeouts.

    Raises:
        TimeoutError: If the block exceeds the timeout
    """
    usable = (
        seconds
        and hasattr(signal, "SIGALRM")
        and threading.current_thread() is threading.main_thread()
    )
    if not usable:
        yield
        return

    def handler(signum, frame):
        raise TimeoutError(f"Operation timed out after {seconds}s")

    previous = signal.signal(signal.SIGALRM, handler)
    signal.alarm(max(1, int(seconds)))
    try:
        yield
    finally:
        signal.alarm(0)
        signal.signal(signal.SIGALRM, previous)
