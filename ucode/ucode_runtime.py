# ucode_runtime.py

import copy
from dataclasses import dataclass
from typing import Any, Dict, List, Literal, Optional, Sequence

from ucode.ucode_config import DEFAULT_SEARCH_PATH
from ucode.ucode_datatypes import RunConfig, Scope, SourceHandle, sanitize_identifier
from ucode.ucode_engine import Engine, EngineFactory
from ucode.ucode_errors import CompileError, ExecutionError
from ucode.ucode_logging import get_logger, log_event

logger = get_logger(__name__)


# ===================================================================
# Global scope helpers
# ===================================================================

def split_search_path(search_path: str) -> List[str]:
    """Split on ':' keeping empty segments; ':'.join() restores the input."""
    return search_path.split(":")


def globals_init(scope: Scope, search_path: str = DEFAULT_SEARCH_PATH) -> None:
    scope["REQUIRE_SEARCH_PATH"] = split_search_path(search_path)


def register_variable(scope: Scope, key: str, value: Any) -> None:
    scope[sanitize_identifier(key)] = value


def strip_shebang(source: SourceHandle) -> int:
    """Discard a leading '#!' line from `source`; returns the bytes discarded.

    The source offset advances by the same amount so engine diagnostics
    keep pointing at the right place. Without a shebang the peeked bytes
    are pushed back untouched.
    """
    head = source.read(2)
    if head != b"#!":
        source.unread(head)
        return 0
    skipped = len(head) + len(source.read_line())
    source.offset += skipped
    return skipped


# ===================================================================
# Results
# ===================================================================

@dataclass
class ExecutionResult:
    """The structured result of one run."""
    status: Literal['success', 'error']
    exit_code: int = 0
    error_message: Optional[str] = None
    output: Optional[str] = None

    def format_error(self) -> str:
        if self.status != 'error':
            return ""
        return self.error_message or ""


# ===================================================================
# Orchestration
# ===================================================================

class ScriptRunner:
    """Compiles a script and executes it against freshly built scopes.

    A run goes: optional shebang skip, compile, global scope setup (search
    path, then environment, then the engine's standard library), root scope
    creation, execution. Later insertions into the global scope win, so a
    library symbol shadows an environment variable of the same name. Both
    scopes and the engine are released on every path out of run().
    """

    def __init__(self, engine_factory: EngineFactory, *, search_path: str = DEFAULT_SEARCH_PATH):
        self.engine_factory = engine_factory
        self.search_path = search_path

    def build_globals(self, engine: Engine, env: Optional[Dict[str, Any]]) -> Scope:
        globals_scope = Scope()
        globals_init(globals_scope, self.search_path)

        if env:
            # The builder's tree stays untouched; the scope gets its own copy.
            for key, value in env.items():
                register_variable(globals_scope, key, copy.deepcopy(value))

        engine.init_globals(globals_scope)
        return globals_scope

    @staticmethod
    def build_root_scope(globals_scope: Scope, script_args: Optional[Sequence[str]] = None) -> Scope:
        root_scope = Scope(parent=globals_scope)
        root_scope["global"] = globals_scope.bindings
        if script_args is not None:
            root_scope["ARGV"] = list(script_args)
        return root_scope

    def run(
        self,
        config: RunConfig,
        source: SourceHandle,
        *,
        skip_shebang: bool = False,
        env: Optional[Dict[str, Any]] = None,
        modules: Optional[Sequence[str]] = None,
        script_args: Optional[Sequence[str]] = None,
        dump: bool = False,
    ) -> ExecutionResult:
        engine = self.engine_factory(config)
        globals_scope: Optional[Scope] = None
        root_scope: Optional[Scope] = None
        try:
            if skip_shebang:
                skipped = strip_shebang(source)
                if skipped:
                    log_event(logger, "source.shebang_skipped", source=source.name, size=skipped)

            try:
                entry = engine.compile(config, source)
            except CompileError as e:
                log_event(logger, "run.compile_failed", source=source.name)
                return ExecutionResult(status='error', exit_code=e.exit_code, error_message=e.message)
            log_event(logger, "run.compiled", source=source.name)

            if dump:
                try:
                    output = engine.dump(entry)
                except NotImplementedError:
                    return ExecutionResult(
                        status='error',
                        exit_code=1,
                        error_message="The script engine cannot dump the AST\n",
                    )
                return ExecutionResult(status='success', output=output)

            globals_scope = self.build_globals(engine, env)
            root_scope = self.build_root_scope(globals_scope, script_args)

            try:
                rc = engine.execute(entry, root_scope, list(modules or ()))
            except ExecutionError as e:
                rc = e.exit_code or 1
            log_event(logger, "run.executed", source=source.name, status=rc)

            if rc:
                return ExecutionResult(status='error', exit_code=1)
            return ExecutionResult(status='success')
        finally:
            if root_scope is not None:
                root_scope.release()
            if globals_scope is not None:
                globals_scope.release()
            engine.free()
            log_event(logger, "run.released", source=source.name)
