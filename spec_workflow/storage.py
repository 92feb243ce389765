"""Durable file storage for log collections.

Writes replace the whole file through a temporary sibling and
``os.replace`` so that readers observe either the previous or the new
content, never a partially written file.
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Optional


def read_collection(path: Path) -> Optional[bytes]:
    """Return the raw bytes stored at ``path``, or None when absent."""
    try:
        return Path(path).read_bytes()
    except FileNotFoundError:
        return None


def write_collection(path: Path, data: bytes) -> None:
    """Atomically replace the file at ``path`` with ``data``."""
    destination = Path(path)
    destination.parent.mkdir(parents=True, exist_ok=True)
    handle = tempfile.NamedTemporaryFile(
        "wb",
        dir=str(destination.parent),
        prefix=f".{destination.name}.",
        suffix=".tmp",
        delete=False,
    )
    temp_name = handle.name
    try:
        with handle:
            handle.write(data)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(temp_name, destination)
    finally:
        if os.path.exists(temp_name):
            os.remove(temp_name)
