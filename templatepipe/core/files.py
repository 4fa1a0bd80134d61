# templatepipe/core/files.py
"""
In-memory file objects that flow through a batch.

A VirtualFile carries a location (``path``, plus the ``base`` it is relative
to) and its contents. The contents decide what kind of file it is: ``None``
for an empty placeholder, ``bytes`` for a buffered file, any readable object
for a streaming one. Directories are flagged explicitly.
"""
import copy
import os
import posixpath
from enum import Enum
from typing import Any, List, Optional, Union

from templatepipe.exceptions import PathResolutionError

Contents = Union[bytes, Any, None]


class FileKind(Enum):
    BUFFER = "buffer"
    DIRECTORY = "directory"
    STREAM = "stream"
    NULL = "null"


def to_posix(path: Union[str, os.PathLike]) -> str:
    # normalises separators so keys look the same on every platform.
    return os.fspath(path).replace("\\", "/")


def _split(path: str) -> List[str]:
    normalized = posixpath.normpath(path) if path else ""
    return [part for part in normalized.split("/") if part and part != "."]


def relative_path(path: str, start: str) -> str:
    """Lexical equivalent of os.path.relpath that never looks at the working directory."""
    path_parts = _split(path)
    start_parts = _split(start)
    if start_parts and posixpath.isabs(start) != posixpath.isabs(path):
        raise PathResolutionError(f"cannot rebase {path!r} onto {start!r}: one is absolute, the other relative")

    common = 0
    for path_part, start_part in zip(path_parts, start_parts):
        if path_part != start_part:
            break
        common += 1

    parts = [".."] * (len(start_parts) - common) + path_parts[common:]
    return "/".join(parts) or "."


class VirtualFile:
    """A file travelling through the pipeline."""

    def __init__(
        self,
        path: Union[str, os.PathLike],
        contents: Contents = None,
        base: Union[str, os.PathLike] = "",
        is_directory: bool = False,
        stat: Optional[os.stat_result] = None,
    ):
        self.path = to_posix(path)
        self.base = to_posix(base)
        self.contents = contents
        self.is_directory = is_directory
        self.stat = stat

    @property
    def kind(self) -> FileKind:
        if self.is_directory:
            return FileKind.DIRECTORY
        if self.contents is None:
            return FileKind.NULL
        if isinstance(self.contents, (bytes, bytearray)):
            return FileKind.BUFFER
        return FileKind.STREAM

    def is_null(self) -> bool:
        return self.kind is FileKind.NULL

    def is_buffer(self) -> bool:
        return self.kind is FileKind.BUFFER

    def is_stream(self) -> bool:
        return self.kind is FileKind.STREAM

    @property
    def relative(self) -> str:
        # path relative to base; the bare path when there is no base.
        if not self.base:
            return self.path.lstrip("/")
        return relative_path(self.path, self.base)

    def clone(self, **changes: Any) -> "VirtualFile":
        # copies the file; keyword arguments replace attributes on the copy.
        contents = changes.pop("contents", copy.copy(self.contents) if self.is_buffer() else self.contents)
        cloned = VirtualFile(
            path=changes.pop("path", self.path),
            contents=contents,
            base=changes.pop("base", self.base),
            is_directory=changes.pop("is_directory", self.is_directory),
            stat=changes.pop("stat", self.stat),
        )
        if changes:
            raise TypeError(f"unknown VirtualFile attributes: {sorted(changes)}")
        return cloned

    def __repr__(self) -> str:
        return f"VirtualFile(path={self.path!r}, kind={self.kind.value})"
