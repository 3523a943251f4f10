from ucode.ucode_datatypes import RunConfig, Scope, SourceHandle, sanitize_identifier
from ucode.ucode_engine import Engine
from ucode.ucode_errors import CompileError, ExecutionError, UcodeError
from ucode.ucode_runtime import ExecutionResult, ScriptRunner

__all__ = [
    "RunConfig",
    "Scope",
    "SourceHandle",
    "sanitize_identifier",
    "Engine",
    "CompileError",
    "ExecutionError",
    "UcodeError",
    "ExecutionResult",
    "ScriptRunner",
]
