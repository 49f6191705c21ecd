"""
Run logging
-----------
One timestamped log file per invocation, a ``latest.log`` symlink to it, and
rotation down to the configured number of files.
"""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"
LOG_PREFIX = "setup_"
LATEST_LINK = "latest.log"


def rotate_logs(log_dir: Path, keep: int) -> None:
    """Delete all but the newest ``keep`` run logs."""
    logs = sorted(log_dir.glob(f"{LOG_PREFIX}*.log"), reverse=True)
    for old in logs[max(keep, 1):]:
        old.unlink(missing_ok=True)


def _update_latest(log_dir: Path, log_file: Path) -> None:
    link = log_dir / LATEST_LINK
    try:
        if link.is_symlink() or link.exists():
            link.unlink()
        link.symlink_to(log_file.name)
    except OSError as exc:
        logging.getLogger(__name__).debug("Could not update %s: %s", link, exc)


def setup_logging(log_dir: Path, retention: int = 10, verbose: bool = False) -> Optional[Path]:
    """Configure root logging for a CLI run and return the log file path.

    The console only shows warnings unless ``verbose`` is set; the file gets
    everything at INFO and above. If ``log_dir`` cannot be created the run
    continues with console logging only.
    """
    console = logging.StreamHandler()
    console.setLevel(logging.INFO if verbose else logging.WARNING)
    handlers = [console]

    log_file = None
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        log_file = log_dir / f"{LOG_PREFIX}{datetime.now():%Y%m%d_%H%M%S}.log"
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    except OSError as exc:
        print(f"⚠ Could not create log directory {log_dir}: {exc}")
        log_file = None

    logging.basicConfig(level=logging.INFO, format=LOG_FORMAT, handlers=handlers, force=True)

    if log_file is not None:
        _update_latest(log_dir, log_file)
        rotate_logs(log_dir, retention)
    return log_file
