"""
Builds the environment tree of initial global variables from -e / -E.

Each input is a JSON object, optionally namespaced under a prefix. Inputs
without a prefix merge into the root; prefixed inputs merge into a nested
object under the sanitized prefix. Later keys overwrite earlier ones.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, Optional, Tuple

from ucode.ucode_datatypes import SourceHandle, sanitize_identifier
from ucode.ucode_errors import EnvironmentValidationError
from ucode.ucode_logging import get_logger, log_event
from ucode.ucode_options import EnvInput
from ucode.ucode_serialize import read_json_object

logger = get_logger(__name__)


class EnvironmentBuilder:
    """Accumulates parsed environment objects into one tree.

    The tree is created on the first merge. Values are shared with the
    parsed input, not copied. freeze() ends the build; merging afterwards
    is an error.
    """

    def __init__(self):
        self._root: Optional[Dict[str, Any]] = None
        self._frozen = False

    @property
    def empty(self) -> bool:
        return self._root is None

    def merge(self, prefix: str, obj: Dict[str, Any]) -> Dict[str, Any]:
        """Merge `obj` into the root, or into root[sanitize(prefix)]; returns the target."""
        if self._frozen:
            raise RuntimeError("environment is frozen")
        if self._root is None:
            self._root = {}

        target = self._root
        if prefix:
            name = sanitize_identifier(prefix)
            nested = target.get(name)
            if not isinstance(nested, dict):
                nested = {}
                target[name] = nested
            target = nested

        for key, value in obj.items():
            target[sanitize_identifier(key)] = value
        log_event(logger, "env.merged", prefix=prefix, keys=len(obj))
        return target

    def freeze(self) -> Optional[Dict[str, Any]]:
        """Finish building; returns the tree, or None if nothing was merged."""
        self._frozen = True
        return self._root


def load_env_input(env_input: EnvInput, source: SourceHandle) -> Dict[str, Any]:
    """Parse one staged input, closing its handle."""
    with source:
        try:
            return read_json_object(source)
        except ValueError as e:
            raise EnvironmentValidationError.for_flag(env_input.flag, detail=str(e)) from e


def build_environment(inputs: Iterable[Tuple[EnvInput, SourceHandle]]) -> Optional[Dict[str, Any]]:
    builder = EnvironmentBuilder()
    for env_input, source in inputs:
        builder.merge(env_input.prefix, load_env_input(env_input, source))
    return builder.freeze()
