"""
Atomic Write — All-or-nothing file replacement.

Writes go to a uniquely named temp file in the destination directory,
are fsync'd, and are then renamed over the destination. A reader of the
destination sees either the previous contents or the new contents, never
a partial file.

## Usage

    from reboot_notifier.persistence.atomic_write import write_atomic

    write_atomic(b'{"reboot_now": true}', "~/notifier/config.json", permissions=0o644)
"""

from __future__ import annotations

import errno as errno_codes
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Optional, Union

logger = logging.getLogger(__name__)

PathLike = Union[str, "os.PathLike[str]"]


class AtomicWriteError(Exception):
    """Base error for a failed atomic write. The destination is untouched."""

    def __init__(self, message: str, errno: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.errno = errno

    def __str__(self) -> str:
        if self.errno is not None:
            return f"{self.message} (errno {self.errno}: {os.strerror(self.errno)})"
        return self.message


class EmptyPathError(AtomicWriteError):
    """Destination path is empty or blank."""


class TempFileError(AtomicWriteError):
    """The temporary file could not be created or written."""


class ShortWriteError(AtomicWriteError):
    """Fewer bytes reached the temporary file than were requested."""


class DestinationIsDirectoryError(AtomicWriteError):
    """Destination exists and is a directory."""


class RenameError(AtomicWriteError):
    """The temporary file could not be renamed onto the destination."""


def _discard(tmp_path: str) -> None:
    try:
        os.unlink(tmp_path)
    except OSError as e:
        logger.debug(f"Could not remove temp file {tmp_path}: {e}")


def write_atomic(
    data: bytes,
    path: PathLike,
    permissions: Optional[int] = None,
) -> Path:
    """
    Replace the file at `path` with `data` atomically.

    Args:
        data: Bytes to write
        path: Destination path (``~`` is expanded)
        permissions: Optional mode applied to the file before it is renamed

    Returns:
        The expanded destination path

    Raises:
        EmptyPathError: Blank destination path
        TempFileError: Parent directory or temp file could not be created/written
        ShortWriteError: Not all bytes were written
        DestinationIsDirectoryError: Destination is an existing directory
        RenameError: Final rename failed
    """
    raw = os.fspath(path)
    if not raw.strip():
        raise EmptyPathError("Destination path empty")

    dest = Path(raw).expanduser()
    parent = dest.parent

    try:
        parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise TempFileError(f"Cannot create directory {parent}", e.errno) from e

    try:
        fd, tmp_path = tempfile.mkstemp(prefix=f"{dest.name}.tmp.", dir=str(parent))
    except OSError as e:
        raise TempFileError(f"Cannot create temp file near {dest}", e.errno) from e

    try:
        try:
            written = os.write(fd, data)
        except OSError as e:
            raise TempFileError(f"Write to {tmp_path} failed", e.errno) from e
        if written != len(data):
            raise ShortWriteError(
                f"Short write {written}/{len(data)} to {tmp_path}",
                errno_codes.EIO,
            )
        os.fsync(fd)
    except (AtomicWriteError, OSError) as e:
        os.close(fd)
        _discard(tmp_path)
        if isinstance(e, AtomicWriteError):
            raise
        raise TempFileError(f"fsync of {tmp_path} failed", e.errno) from e
    os.close(fd)

    if permissions is not None:
        try:
            os.chmod(tmp_path, permissions)
        except OSError as e:
            _discard(tmp_path)
            raise TempFileError(f"chmod of {tmp_path} failed", e.errno) from e

    if dest.is_dir():
        _discard(tmp_path)
        raise DestinationIsDirectoryError(f"Destination {dest} is a directory", errno_codes.EISDIR)

    try:
        os.replace(tmp_path, dest)
    except OSError as e:
        _discard(tmp_path)
        raise RenameError(f"Rename {tmp_path} -> {dest} failed", e.errno) from e

    logger.debug(f"Wrote {len(data)} bytes → {dest}")
    return dest


def encode_json(obj: Any) -> bytes:
    """Serialize a JSON document the way every file in this package is written."""
    return (json.dumps(obj, indent=2, sort_keys=True, ensure_ascii=False) + "\n").encode("utf-8")


def write_json_atomic(obj: Any, path: PathLike, permissions: Optional[int] = 0o644) -> Path:
    """Serialize `obj` as pretty JSON and write it atomically."""
    return write_atomic(encode_json(obj), path, permissions=permissions)
