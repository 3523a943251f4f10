"""
The interface to the compiler / VM engine that actually runs scripts.

The front end never interprets the language itself. An engine is any
object implementing `Engine`; it is produced per run by a factory called
with the run's RunConfig, which is where VM state gets initialized.
"""

from __future__ import annotations

import importlib
from abc import ABC, abstractmethod
from importlib.metadata import entry_points
from typing import Any, Callable, Optional, Sequence

from ucode.ucode_datatypes import RunConfig, Scope, SourceHandle
from ucode.ucode_errors import EngineUnavailableError

ENTRY_POINT_GROUP = "ucode.engines"


class Engine(ABC):
    """The required base class for script engines driven by ScriptRunner."""

    @abstractmethod
    def compile(self, config: RunConfig, source: SourceHandle) -> Any:
        """Compile `source` into an entry point; raise CompileError with the diagnostic."""
        raise NotImplementedError

    @abstractmethod
    def init_globals(self, scope: Scope) -> None:
        """Add the standard library to `scope`."""
        raise NotImplementedError

    @abstractmethod
    def execute(self, entry: Any, root_scope: Scope, modules: Sequence[str]) -> int:
        """Run `entry` after preloading `modules`; returns the VM status."""
        raise NotImplementedError

    def dump(self, entry: Any) -> str:
        """Render the compiled program as a dot graph."""
        raise NotImplementedError

    def free(self) -> None:
        """Release VM resources."""


EngineFactory = Callable[[RunConfig], Engine]


def _import_locator(locator: str) -> Any:
    module_name, sep, attr = locator.partition(":")
    if not sep or not module_name or not attr:
        raise EngineUnavailableError(f"Invalid engine locator {locator!r}", detail="expected 'module:attribute'")
    try:
        obj = importlib.import_module(module_name)
    except ImportError as e:
        raise EngineUnavailableError(f"Cannot import engine module {module_name}", detail=str(e)) from e
    for part in attr.split("."):
        try:
            obj = getattr(obj, part)
        except AttributeError as e:
            raise EngineUnavailableError(f"Engine {locator} not found", detail=str(e)) from e
    return obj


def load_engine_factory(locator: Optional[str] = None) -> EngineFactory:
    """Resolve the engine factory from a 'module:attr' locator or the installed entry points."""
    if locator:
        factory = _import_locator(locator)
    else:
        found = sorted(entry_points(group=ENTRY_POINT_GROUP), key=lambda ep: ep.name)
        if not found:
            raise EngineUnavailableError(
                "No script engine available",
                detail=f"set UCODE_ENGINE or install a package providing '{ENTRY_POINT_GROUP}'",
            )
        try:
            factory = found[0].load()
        except ImportError as e:
            raise EngineUnavailableError(f"Cannot load engine {found[0].value}", detail=str(e)) from e
    if not callable(factory):
        raise EngineUnavailableError(f"Engine {locator or found[0].value} is not callable")
    return factory
