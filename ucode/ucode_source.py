"""
Opening script and environment inputs.

Standard input can be drained only once per process. StdinAcquirer holds
that state explicitly; the CLI builds one per process and every consumer
of '-' goes through it.
"""

from __future__ import annotations

import sys
from dataclasses import dataclass, field
from typing import BinaryIO, List, Optional, Tuple

from ucode.ucode_datatypes import SourceHandle
from ucode.ucode_errors import SourceError
from ucode.ucode_logging import get_logger, log_event
from ucode.ucode_options import INLINE_ENV_NAME, INLINE_SOURCE_NAME, EnvInput, RunRequest, SourceSpec

STDIN_NAME = "[stdin]"

logger = get_logger(__name__)


class StdinAcquirer:
    """Reads standard input into memory on first use; later uses fail."""

    CHUNK_SIZE = 128

    def __init__(self, stream: Optional[BinaryIO] = None):
        self._stream = stream
        self._buffer: Optional[bytes] = None

    @property
    def acquired(self) -> bool:
        return self._buffer is not None

    def acquire(self) -> SourceHandle:
        if self._buffer is not None:
            raise SourceError.stdin_exhausted()

        stream = self._stream if self._stream is not None else sys.stdin.buffer
        buf = bytearray()
        while True:
            chunk = stream.read(self.CHUNK_SIZE)
            if not chunk:
                break
            buf += chunk
        self._buffer = bytes(buf)
        log_event(logger, "stdin.acquired", size=len(self._buffer))
        return SourceHandle.from_buffer(STDIN_NAME, self._buffer)


def open_main_source(spec: SourceSpec, stdin: StdinAcquirer) -> SourceHandle:
    if spec.kind == "inline":
        return SourceHandle.from_buffer(INLINE_SOURCE_NAME, spec.value)
    if spec.kind == "stdin":
        return stdin.acquire()
    return SourceHandle.from_file(spec.value).open()


def open_env_input(env_input: EnvInput, stdin: StdinAcquirer) -> SourceHandle:
    if env_input.flag == "e":
        return SourceHandle.from_buffer(INLINE_ENV_NAME, env_input.payload)
    if env_input.reads_stdin:
        return stdin.acquire()
    return SourceHandle.from_file(env_input.payload).open()


@dataclass
class ResolvedInputs:
    """Open handles for one run; close() releases every one of them."""
    main: Optional[SourceHandle] = None
    env: List[Tuple[EnvInput, SourceHandle]] = field(default_factory=list)

    def close(self) -> None:
        for _, handle in self.env:
            handle.close()
        if self.main is not None:
            self.main.close()

    def __enter__(self) -> "ResolvedInputs":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


def resolve_inputs(request: RunRequest, stdin: StdinAcquirer) -> ResolvedInputs:
    """Open every input of `request` in command-line order.

    Sources replaced by a later -i / -s are opened and closed again, so a
    missing file or a second use of stdin still fails the run.

    On failure the handles opened so far are closed before the error
    propagates.
    """
    resolved = ResolvedInputs()
    try:
        for item in request.staged_inputs():
            if item is request.source:
                resolved.main = open_main_source(item, stdin)
            elif isinstance(item, SourceSpec):
                # A replaced -i still opens its file or drains stdin.
                open_main_source(item, stdin).close()
            else:
                resolved.env.append((item, open_env_input(item, stdin)))
    except BaseException:
        resolved.close()
        raise
    return resolved
