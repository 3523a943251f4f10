"""
Defines the core data types shared by the ucode front end.

This module provides the parse configuration handed to the compiler, the
byte-stream abstraction used for scripts and environment payloads, and the
prototype-chained scopes the engine resolves global names through.
"""

from __future__ import annotations

import io
import re
import collections.abc
from dataclasses import dataclass
from typing import Any, BinaryIO, Dict, Optional

from ucode.ucode_errors import SourceError


@dataclass
class RunConfig:
    """Parser flags consumed by the compiler."""
    strict_declarations: bool = False
    lstrip_blocks: bool = True
    trim_blocks: bool = True


_NON_IDENT = re.compile(r"[^A-Za-z0-9_]")


def sanitize_identifier(key: str) -> str:
    """Replace every character outside [A-Za-z0-9_] with an underscore."""
    return _NON_IDENT.sub("_", key)


# =================================================================
# Sources
# =================================================================

class SourceHandle:
    """A named byte stream with a logical read offset.

    Two forms exist: file-backed handles open their path on first use and
    close it on disposal; buffer-backed handles own their bytes. Bytes handed
    back through `unread` are returned before anything else in the stream.
    """

    CHUNK_SIZE = 128

    def __init__(self, name: str, *, path: Optional[str] = None, buffer: Optional[bytes] = None):
        if (path is None) == (buffer is None):
            raise ValueError("SourceHandle needs exactly one of path or buffer")
        self.name = name
        self.path = path
        self.offset = 0
        self._stream: Optional[BinaryIO] = io.BytesIO(buffer) if buffer is not None else None
        self._pushback = bytearray()
        self._closed = False

    @classmethod
    def from_file(cls, path: str) -> "SourceHandle":
        return cls(path, path=path)

    @classmethod
    def from_buffer(cls, name: str, data: bytes | bytearray | str) -> "SourceHandle":
        if isinstance(data, str):
            data = data.encode("utf-8")
        return cls(name, buffer=bytes(data))

    @property
    def is_file(self) -> bool:
        return self.path is not None

    @property
    def closed(self) -> bool:
        return self._closed

    def open(self) -> "SourceHandle":
        """Open the backing file if not already open; raises SourceError."""
        if self._closed:
            raise ValueError(f"I/O operation on closed source {self.name!r}")
        if self._stream is None:
            try:
                self._stream = open(self.path, "rb")
            except OSError as e:
                raise SourceError.from_os_error(self.path, e) from e
        return self

    def read(self, size: int = -1) -> bytes:
        """Read up to `size` bytes (all remaining bytes when negative)."""
        self.open()
        out = bytearray()
        if self._pushback:
            if size < 0 or size >= len(self._pushback):
                out += self._pushback
                self._pushback.clear()
            else:
                out += self._pushback[:size]
                del self._pushback[:size]
                return bytes(out)
        remaining = -1 if size < 0 else size - len(out)
        if remaining != 0:
            try:
                out += self._stream.read(remaining)
            except OSError as e:
                raise SourceError.from_os_error(self.name, e) from e
        return bytes(out)

    def unread(self, data: bytes) -> None:
        """Push bytes back so the next read returns them first."""
        self._pushback[:0] = data

    def read_line(self) -> bytes:
        """Read through the next newline (inclusive) or end of stream."""
        out = bytearray()
        while True:
            c = self.read(1)
            if not c:
                break
            out += c
            if c == b"\n":
                break
        return bytes(out)

    def chunks(self, size: int = CHUNK_SIZE):
        """Yield the remaining bytes in fixed-size chunks."""
        while True:
            chunk = self.read(size)
            if not chunk:
                return
            yield chunk

    def text(self, encoding: str = "utf-8") -> str:
        """Decode all remaining bytes."""
        return self.read().decode(encoding, errors="replace")

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._stream is not None:
            self._stream.close()
            self._stream = None
        self._pushback.clear()

    def __enter__(self) -> "SourceHandle":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def __repr__(self) -> str:
        kind = "file" if self.is_file else "buffer"
        return f"<SourceHandle {kind} name={self.name!r} offset={self.offset}>"


# =================================================================
# Scopes
# =================================================================

class Scope:
    """A JSON-object-backed scope with an optional prototype parent.

    Lookups walk the instance bindings first, then the parent chain. The
    global scope has no parent; the root scope the script executes in has
    the global scope as its parent.
    """
    def __init__(self, parent: Optional["Scope"] = None):
        self.bindings: Dict[str, Any] = {}
        self.meta: Dict[str, Any] = {"parent": parent}

    def __setitem__(self, key: str, value: Any):
        if not isinstance(key, str):
            raise TypeError(f"Scope key must be a str, not {type(key)}")
        self.bindings[key] = value

    def __getitem__(self, key: str) -> Any:
        owner = self.find_owner(key)
        if owner is not None:
            return owner.bindings[key]
        raise KeyError(f"'{key}'")

    def __contains__(self, key: Any) -> bool:
        """Checks if a key exists in this Scope or its prototypes."""
        if isinstance(key, str):
            return self.find_owner(key) is not None
        return False

    def find_owner(self, key: str) -> Optional["Scope"]:
        """Finds the Scope in the prototype chain that owns key."""
        if key in self.bindings:
            return self
        parent = self.meta.get("parent")
        if parent is not None:
            return parent.find_owner(key)
        return None

    def get(self, key: str, default: Any = None) -> Any:
        owner = self.find_owner(key) if isinstance(key, str) else None
        if owner is not None:
            return owner.bindings[key]
        return default

    @property
    def parent(self) -> Optional["Scope"]:
        return self.meta.get("parent")

    def keys(self) -> collections.abc.KeysView[str]:
        """Returns a view of keys in the current scope only."""
        return self.bindings.keys()

    def release(self) -> None:
        """Drop all bindings and the parent link."""
        self.bindings.clear()
        self.meta["parent"] = None

    def __enter__(self) -> "Scope":
        return self

    def __exit__(self, *exc_info) -> None:
        self.release()

    def __repr__(self) -> str:
        keys = ', '.join(self.bindings.keys())
        parent_id = f", parent=#{id(self.parent)}" if self.parent else ""
        return f"<Scope bindings=[{keys}]{parent_id}>"
