#!/usr/bin/env python3
"""
Atomic JSON write for run summaries
"""
import json
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Union


def atomic_write_json(path: Union[str, Path], data: Dict[str, Any]) -> None:
    """
    Write JSON atomically using the temp + rename pattern

    Readers either see the previous summary or the complete new one, never a
    partially written file.

    Args:
        path: Destination file path
        data: JSON-serialisable mapping
    """
    path = Path(path).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)

    # Temp file must live in the same directory for the rename to be atomic
    with tempfile.NamedTemporaryFile(
        mode='w',
        dir=path.parent,
        delete=False,
        suffix='.tmp',
        prefix='.tmp_',
        encoding='utf-8',
    ) as tmp:
        json.dump(data, tmp, indent=2, sort_keys=True)
        tmp_path = tmp.name

    try:
        os.replace(tmp_path, path)
    except OSError:
        Path(tmp_path).unlink(missing_ok=True)
        raise
