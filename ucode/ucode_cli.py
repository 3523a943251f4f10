import sys
from pathlib import Path
from typing import BinaryIO, Mapping, Optional, Sequence, TextIO

from ucode.ucode_config import load_settings
from ucode.ucode_engine import EngineFactory, load_engine_factory
from ucode.ucode_env import build_environment
from ucode.ucode_errors import UcodeError, format_error
from ucode.ucode_logging import configure_logging, get_logger, log_event
from ucode.ucode_options import format_usage, parse_args
from ucode.ucode_runtime import ScriptRunner
from ucode.ucode_source import StdinAcquirer, resolve_inputs

logger = get_logger(__name__)


def main(
    argv: Optional[Sequence[str]] = None,
    *,
    engine_factory: Optional[EngineFactory] = None,
    stdin: Optional[BinaryIO] = None,
    stdout: Optional[TextIO] = None,
    stderr: Optional[TextIO] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> int:
    """Run the ucode command line and return the process exit status."""
    argv = list(sys.argv if argv is None else argv)
    stdout = stdout or sys.stdout
    stderr = stderr or sys.stderr
    prog = argv[0] if argv else "ucode"

    try:
        request = parse_args(argv[1:], prog)
        if request.show_help:
            stdout.write(format_usage(prog))
            return 0

        for warning in request.warnings:
            print(warning, file=stderr)

        settings = load_settings(environ)
        configure_logging(
            level=settings.log_level,
            format_name=settings.log_format,
            log_dir=Path(settings.log_dir) if settings.log_dir else None,
        )
        log_event(
            logger,
            "options.parsed",
            source=request.source.kind,
            env_inputs=len(request.env_inputs),
            modules=request.modules,
        )

        with resolve_inputs(request, StdinAcquirer(stdin)) as inputs:
            env = build_environment(inputs.env)
            runner = ScriptRunner(
                engine_factory or load_engine_factory(settings.engine),
                search_path=settings.search_path,
            )
            result = runner.run(
                request.config,
                inputs.main,
                skip_shebang=request.skip_shebang,
                env=env,
                modules=request.modules,
                script_args=request.script_args,
                dump=request.dump,
            )
    except UcodeError as e:
        print(format_error(e), file=stderr)
        return e.exit_code

    if result.output is not None:
        stdout.write(result.output)
    if result.error_message:
        stderr.write(result.format_error())
    return result.exit_code


if __name__ == "__main__":
    sys.exit(main())
