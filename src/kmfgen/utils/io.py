"""File access checks shared by the build and import paths."""

from __future__ import annotations
from pathlib import Path
from typing import Iterable
import errno
import os
import stat

from ..packing.constants import KMF_EXTENSION, MAX_TOTAL_SIZE
from ..packing.errors import (
    DecodeError,
    ImportResult,
    SourceError,
    E_SOURCE_ACCESS,
    E_TARGET_ACCESS,
)

__all__ = [
    "read_kmf_bytes",
    "check_source_path",
    "check_target_path",
]

_ANY_READ = stat.S_IRUSR | stat.S_IRGRP | stat.S_IROTH
_ANY_WRITE = stat.S_IWUSR | stat.S_IWGRP | stat.S_IWOTH
_LOCKED_ERRNOS = {errno.EBUSY, errno.ETXTBSY}


def read_kmf_bytes(path: str | Path, max_size: int = MAX_TOTAL_SIZE) -> bytes:
    """Read a ``.kmf`` file after the access checks, classifying failures.

    Oversized files are rejected from their stat size without being read.
    """
    p = Path(path)
    if not p.exists():
        raise DecodeError(
            ImportResult.FILE_NOT_FOUND, f"File not found: {p}"
        )
    if not p.is_file() or p.suffix.lower() != KMF_EXTENSION:
        raise DecodeError(
            ImportResult.INVALID_EXTENSION,
            f"Not a '{KMF_EXTENSION}' file: {p}",
        )
    st = p.stat()
    if not stat.S_IMODE(st.st_mode) & _ANY_READ:
        raise DecodeError(
            ImportResult.UNAUTHORIZED_READ, f"No read permission: {p}"
        )
    if st.st_size == 0:
        raise DecodeError(ImportResult.FILE_EMPTY, f"File is empty: {p}")
    if st.st_size > max_size:
        raise DecodeError(
            ImportResult.UNSUPPORTED_FILE_SIZE,
            f"File too large: {st.st_size}>{max_size}",
        )
    try:
        with p.open("rb") as f:
            return f.read()
    except PermissionError as exc:
        raise DecodeError(
            ImportResult.UNAUTHORIZED_READ, f"No read permission: {p}"
        ) from exc
    except OSError as exc:
        if exc.errno in _LOCKED_ERRNOS:
            raise DecodeError(
                ImportResult.FILE_LOCKED, f"File is in use: {p}"
            ) from exc
        raise DecodeError(
            ImportResult.UNKNOWN_READ_ERROR, f"Failed to read {p}: {exc}"
        ) from exc


def check_source_path(path: str | Path, allowed: Iterable[str]) -> Path:
    p = Path(path).resolve()
    if not p.exists():
        raise SourceError(
            E_SOURCE_ACCESS, f"Input path '{p}' does not exist", {"path": str(p)}
        )
    if not p.is_file() or not p.suffix:
        raise SourceError(
            E_SOURCE_ACCESS,
            f"Input path '{p}' is not a regular file",
            {"path": str(p)},
        )
    allowed = tuple(allowed)
    if p.suffix.lower() not in allowed:
        raise SourceError(
            E_SOURCE_ACCESS,
            f"Input path '{p}' extension '{p.suffix}' is not allowed",
            {"path": str(p), "allowed": list(allowed)},
        )
    if not stat.S_IMODE(p.stat().st_mode) & _ANY_READ:
        raise SourceError(
            E_SOURCE_ACCESS,
            f"Insufficient read permissions for input path '{p}'",
            {"path": str(p)},
        )
    return p


def check_target_path(path: str | Path, *, force: bool = False) -> Path:
    p = Path(path).resolve()
    if p.exists() and not force:
        raise SourceError(
            E_TARGET_ACCESS, f"Output path '{p}' already exists", {"path": str(p)}
        )
    if p.suffix.lower() != KMF_EXTENSION:
        raise SourceError(
            E_TARGET_ACCESS,
            f"Output path '{p}' extension '{p.suffix}' is not allowed",
            {"path": str(p)},
        )
    parent = p.parent
    if not parent.is_dir():
        raise SourceError(
            E_TARGET_ACCESS,
            f"Output parent '{parent}' does not exist",
            {"path": str(p)},
        )
    if not (
        stat.S_IMODE(parent.stat().st_mode) & _ANY_WRITE
        and os.access(parent, os.W_OK)
    ):
        raise SourceError(
            E_TARGET_ACCESS,
            f"Insufficient write permissions for output parent '{parent}'",
            {"path": str(p)},
        )
    return p
