# File: dalgen/utils.py
"""
dalgen - Shared Helpers
=======================
Small infrastructure pieces used by the naming engine, the sanitizer and the
output layer:

- ``ReadWriteLock`` guards an ``IdentifierCache`` (many readers,
  one writer on a cache miss).
- ``setup_logging`` wires the ``dalgen`` logger hierarchy to stderr.
- ``Timer`` measures pipeline steps.
- File helpers write generated files atomically (write-to-temp then rename).
- ``build_import_block`` renders a sorted, de-duplicated import block for
  generated file headers.
"""

from __future__ import annotations

import hashlib
import logging
import os
import sys
import tempfile
import threading
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator, List, Mapping, Optional, Set

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("dalgen.utils")


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------


def setup_logging(verbosity: int = 0) -> None:
    """
    Configure the root dalgen logger based on verbosity level.

    Args:
        verbosity: 0 = WARNING, 1 = INFO, 2+ = DEBUG.
    """
    if verbosity >= 2:
        level = logging.DEBUG
    elif verbosity >= 1:
        level = logging.INFO
    else:
        level = logging.WARNING

    handler: logging.StreamHandler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)

    fmt: str = "%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s"
    datefmt: str = "%H:%M:%S"
    handler.setFormatter(logging.Formatter(fmt, datefmt=datefmt))

    root_logger: logging.Logger = logging.getLogger("dalgen")
    root_logger.setLevel(level)

    # Remove existing handlers to prevent duplication
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.propagate = False


# ---------------------------------------------------------------------------
# Reader / writer lock
# ---------------------------------------------------------------------------


class ReadWriteLock:
    """
    Writer-preferring reader/writer lock.

    Any number of threads may hold the read side at once.  A writer waits
    for active readers to drain and blocks new readers while it waits, so a
    steady stream of lookups cannot starve a cache insert.

    Usage::

        lock = ReadWriteLock()
        with lock.read():
            value = cache.get(key)
        with lock.write():
            cache[key] = value
    """

    __slots__ = ("_cond", "_readers", "_writer", "_writers_waiting")

    def __init__(self) -> None:
        self._cond: threading.Condition = threading.Condition(threading.Lock())
        self._readers: int = 0
        self._writer: bool = False
        self._writers_waiting: int = 0

    def acquire_read(self) -> None:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1

    def release_read(self) -> None:
        with self._cond:
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()

    def acquire_write(self) -> None:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True

    def release_write(self) -> None:
        with self._cond:
            self._writer = False
            self._cond.notify_all()

    @contextmanager
    def read(self) -> Iterator[None]:
        self.acquire_read()
        try:
            yield
        finally:
            self.release_read()

    @contextmanager
    def write(self) -> Iterator[None]:
        self.acquire_write()
        try:
            yield
        finally:
            self.release_write()

    def __repr__(self) -> str:
        return (
            f"<ReadWriteLock readers={self._readers} "
            f"writer={self._writer} waiting={self._writers_waiting}>"
        )


# ---------------------------------------------------------------------------
# File I/O helpers
# ---------------------------------------------------------------------------


def ensure_directory(path: Path) -> None:
    """Create directory (and parents) if it doesn't exist."""
    path.mkdir(parents=True, exist_ok=True)
    logger.debug("Ensured directory exists: %s", path)


def atomic_write(target_path: Path, data: bytes) -> None:
    """
    Write *data* to *target_path* atomically using a temporary file.

    The temp file is created in the destination directory so that
    ``os.replace`` stays on one filesystem.  On failure the temp file is
    removed and the error propagates; the destination is left untouched.
    """
    fd: int = -1
    tmp_path: str = ""
    try:
        fd, tmp_path = tempfile.mkstemp(
            dir=str(target_path.parent),
            prefix=f".{target_path.name}.",
            suffix=".tmp",
        )
        os.write(fd, data)
        os.fsync(fd)
        os.close(fd)
        fd = -1

        os.replace(tmp_path, str(target_path))
        tmp_path = ""
    finally:
        if fd >= 0:
            os.close(fd)
        if tmp_path and os.path.exists(tmp_path):
            os.unlink(tmp_path)


def write_bytes(path: Path, data: bytes, atomic: bool = True) -> int:
    """
    Write *data* to *path*, creating parent directories.

    Returns the number of bytes written.
    """
    ensure_directory(path.parent)

    if atomic:
        atomic_write(path, data)
    else:
        path.write_bytes(data)

    logger.debug("Wrote %d bytes to %s", len(data), path)
    return len(data)


# ---------------------------------------------------------------------------
# Checksum & metrics
# ---------------------------------------------------------------------------


def sha256_hex(data: bytes) -> str:
    """Return SHA-256 hex digest of *data*."""
    return hashlib.sha256(data).hexdigest()


def count_lines(content: str) -> int:
    """Count the number of lines in a string."""
    if not content:
        return 0
    return content.count("\n") + (1 if not content.endswith("\n") else 0)


# ---------------------------------------------------------------------------
# Timer context manager
# ---------------------------------------------------------------------------


class Timer:
    """
    Simple context-manager timer for profiling generation steps.

    Usage:
        with Timer("sanitize models.py") as t:
            ...
        print(t.elapsed)
    """

    __slots__ = ("label", "start_time", "end_time", "elapsed")

    def __init__(self, label: str = "operation") -> None:
        self.label: str = label
        self.start_time: float = 0.0
        self.end_time: float = 0.0
        self.elapsed: float = 0.0

    def __enter__(self) -> "Timer":
        self.start_time = time.perf_counter()
        return self

    def __exit__(
        self,
        exc_type: Optional[type],
        exc_val: Optional[BaseException],
        exc_tb: Optional[object],
    ) -> None:
        self.end_time = time.perf_counter()
        self.elapsed = self.end_time - self.start_time
        logger.debug("Timer [%s]: %.4f seconds", self.label, self.elapsed)

    def __repr__(self) -> str:
        return f"<Timer {self.label}: {self.elapsed:.4f}s>"


# ---------------------------------------------------------------------------
# Import statement builder
# ---------------------------------------------------------------------------


def build_import_block(
    imports: Mapping[str, Optional[str]],
    from_imports: Optional[Mapping[str, Set[str]]] = None,
) -> str:
    """
    Build a sorted, de-duplicated import block.

    *imports* maps a module path to an optional alias (``import x as y``);
    *from_imports* maps a module path to the names imported from it.

    Example:
        >>> build_import_block({"json": None, "numpy": "np"}, {"typing": {"List", "Any"}})
        'import json\\nimport numpy as np\\nfrom typing import Any, List'
    """
    lines: List[str] = []
    for module in sorted(imports):
        alias: Optional[str] = imports[module]
        if alias and alias != module:
            lines.append(f"import {module} as {alias}")
        else:
            lines.append(f"import {module}")

    for module in sorted(from_imports or {}):
        names: List[str] = sorted((from_imports or {})[module])
        if names:
            lines.append(f"from {module} import {', '.join(names)}")
        else:
            lines.append(f"import {module}")
    return "\n".join(lines)


def merge_import_dicts(*dicts: Mapping[str, Set[str]]) -> Dict[str, Set[str]]:
    """Merge several ``module -> names`` mappings into one, unifying sets."""
    result: Dict[str, Set[str]] = {}
    for d in dicts:
        for module, names in d.items():
            result.setdefault(module, set()).update(names)
    return result


__all__: List[str] = [
    "setup_logging",
    "ReadWriteLock",
    "ensure_directory",
    "atomic_write",
    "write_bytes",
    "sha256_hex",
    "count_lines",
    "Timer",
    "build_import_block",
    "merge_import_dicts",
]
