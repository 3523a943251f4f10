"""
Error types raised by the ucode front end.

Every error knows the process exit status it maps to; only the CLI turns
them into exit codes.
"""

from __future__ import annotations

import errno as _errno
from dataclasses import dataclass
from typing import Optional


@dataclass
class UcodeError(Exception):
    message: str
    detail: Optional[str] = None
    exit_code: int = 1

    def __str__(self) -> str:
        if self.detail:
            return f"{self.message}: {self.detail}"
        return self.message


class UsageError(UcodeError):
    """Bad command line: unknown option, missing argument or no script source."""


class ConfigError(UcodeError):
    """Invalid configuration file or setting."""


@dataclass
class SourceError(UcodeError):
    """A script or environment input could not be opened or read."""
    errno: Optional[int] = None

    @classmethod
    def from_os_error(cls, path: str, exc: OSError) -> "SourceError":
        return cls(
            message=f"Failed to open {path}",
            detail=exc.strerror or str(exc),
            errno=exc.errno,
        )

    @classmethod
    def stdin_exhausted(cls) -> "SourceError":
        return cls(
            message="Can read from stdin only once",
            errno=_errno.EINVAL,
        )


class EnvironmentValidationError(UcodeError):
    """An -e / -E payload is malformed JSON or not a JSON object."""

    @classmethod
    def for_flag(cls, flag: str, detail: Optional[str] = None) -> "EnvironmentValidationError":
        return cls(message=f"Option -{flag} must point to a valid JSON object", detail=detail)


class EngineUnavailableError(UcodeError):
    """No script engine could be located or imported."""


@dataclass
class CompileError(UcodeError):
    """The engine rejected the script; `message` is its diagnostic text."""
    exit_code: int = 2

    def __str__(self) -> str:
        return self.message


class ExecutionError(UcodeError):
    """The engine reported a non-zero status; it prints its own diagnostics."""


def format_error(error: BaseException) -> str:
    if isinstance(error, UcodeError):
        return str(error)
    return f"{type(error).__name__}: {error}"


__all__ = [
    "UcodeError",
    "UsageError",
    "ConfigError",
    "SourceError",
    "EnvironmentValidationError",
    "EngineUnavailableError",
    "CompileError",
    "ExecutionError",
    "format_error",
]
