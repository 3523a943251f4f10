"""
Command-line parsing for the ucode front end.

Turns argv into a RunRequest: parse configuration, the chosen main
source, the staged -e/-E environment inputs and the module preload list.
Nothing is opened or read here; see ucode_source for that.
"""

from __future__ import annotations

import argparse
import os
import re
from dataclasses import dataclass, field
from typing import List, Literal, Optional, Sequence

from ucode.ucode_datatypes import RunConfig
from ucode.ucode_errors import UsageError

INLINE_SOURCE_NAME = "[-s argument]"
INLINE_ENV_NAME = "[-e argument]"

USAGE = (
    "== Usage ==\n\n"
    "  # {prog} [-d] [-l] [-r] [-S] [-e '[prefix=]{{\"var\": ...}}'] [-E [prefix=]env.json] "
    "{{-i <file> | -s \"ucode script...\"}} [-m module]... [path [args...]]\n"
    "  -h, --help\tPrint this help\n"
    "  -i file\tSpecify an ucode script to parse, '-' reads standard input\n"
    "  -s \"ucode script...\"\tSpecify an ucode fragment to parse\n"
    "  -d Instead of executing the script, dump the resulting AST as dot\n"
    "  -l Do not strip leading block whitespace\n"
    "  -r Do not trim trailing block newlines\n"
    "  -S Enable strict mode\n"
    "  -e Set global variables from given JSON object\n"
    "  -E Set global variables from given JSON file, '-' reads standard input\n"
    "  -m Preload given module\n"
)


def format_usage(prog: str) -> str:
    return USAGE.format(prog=os.path.basename(prog))


@dataclass
class SourceSpec:
    """Where the main script comes from, before anything is opened."""
    kind: Literal["file", "stdin", "inline"]
    value: str
    order: int = 0

    @property
    def reads_stdin(self) -> bool:
        return self.kind == "stdin"


@dataclass
class EnvInput:
    """One staged -e / -E argument, split into prefix and payload."""
    flag: Literal["e", "E"]
    prefix: str
    payload: str
    order: int = 0

    @property
    def reads_stdin(self) -> bool:
        return self.flag == "E" and self.payload == "-"


@dataclass
class RunRequest:
    config: RunConfig = field(default_factory=RunConfig)
    source: Optional[SourceSpec] = None
    env_inputs: List[EnvInput] = field(default_factory=list)
    modules: List[str] = field(default_factory=list)
    skip_shebang: bool = False
    dump: bool = False
    script_args: Optional[List[str]] = None
    warnings: List[str] = field(default_factory=list)
    replaced_sources: List[SourceSpec] = field(default_factory=list)
    show_help: bool = False

    def staged_inputs(self) -> list:
        """The main source and environment inputs in command-line order."""
        staged = list(self.env_inputs) + list(self.replaced_sources)
        if self.source is not None:
            staged.append(self.source)
        return sorted(staged, key=lambda item: item.order)


def split_prefix(arg: str) -> tuple[str, str]:
    """Split `[prefix=]payload` on the first '='; no '=' means no prefix."""
    prefix, sep, payload = arg.partition("=")
    if not sep:
        return "", arg
    return prefix, payload


# ===================================================================
# argparse plumbing
# ===================================================================

class _HelpRequested(Exception):
    pass


class _ArgumentParser(argparse.ArgumentParser):
    def error(self, message):
        raise UsageError(message)


def _next_order(namespace) -> int:
    namespace.order += 1
    return namespace.order


class _HelpAction(argparse.Action):
    def __init__(self, option_strings, dest, **kwargs):
        super().__init__(option_strings, dest, nargs=0, **kwargs)

    def __call__(self, parser, namespace, values, option_string=None):
        raise _HelpRequested()


class _SourceAction(argparse.Action):
    """-i / -s: the most recent selection wins, a conflict only warns."""

    def __call__(self, parser, namespace, values, option_string=None):
        if namespace.source is not None:
            namespace.warnings.append("Options -i and -s are exclusive")
            namespace.replaced_sources.append(namespace.source)
        if option_string == "-s":
            spec = SourceSpec("inline", values)
        elif values == "-":
            spec = SourceSpec("stdin", values)
        else:
            spec = SourceSpec("file", values)
        spec.order = _next_order(namespace)
        namespace.source = spec


class _EnvAction(argparse.Action):
    def __call__(self, parser, namespace, values, option_string=None):
        prefix, payload = split_prefix(values)
        flag = option_string.lstrip("-")
        namespace.env_inputs.append(EnvInput(flag, prefix, payload, _next_order(namespace)))


def _build_parser(prog: str) -> argparse.ArgumentParser:
    parser = _ArgumentParser(prog=prog, add_help=False, allow_abbrev=False)
    parser.add_argument("-h", "--help", action=_HelpAction)
    parser.add_argument("-i", metavar="FILE", action=_SourceAction)
    parser.add_argument("-s", metavar="SCRIPT", action=_SourceAction)
    parser.add_argument("-d", dest="dump", action="store_true")
    parser.add_argument("-l", dest="lstrip_blocks", action="store_false")
    parser.add_argument("-r", dest="trim_blocks", action="store_false")
    parser.add_argument("-S", dest="strict_declarations", action="store_true")
    parser.add_argument("-e", metavar="JSON", action=_EnvAction)
    parser.add_argument("-E", metavar="ENVFILE", action=_EnvAction)
    parser.add_argument("-m", metavar="MODULE", dest="modules", action="append")
    parser.add_argument("args", nargs="*")
    return parser


_BINDABLE = re.compile(r"-([lrSdh]*)([iseEm])")


def _bind_values(argv: Sequence[str]) -> List[str]:
    """Attach the next word to every option that takes a value.

    Like getopt, `-s -1` must give -s the value "-1". argparse would read
    "-1" as another option, so such pairs become `-s=-1`; a flag cluster
    ending in a value option (`-ls text`) is split into `-l -s=text`.
    """
    out: List[str] = []
    args = iter(argv)
    for arg in args:
        if arg == "--":
            out.append(arg)
            out.extend(args)
            break
        m = _BINDABLE.fullmatch(arg)
        if m:
            value = next(args, None)
            if value is not None:
                out.extend(f"-{flag}" for flag in m.group(1))
                out.append(f"-{m.group(2)}={value}")
                continue
        out.append(arg)
    return out


def _fresh_namespace() -> argparse.Namespace:
    return argparse.Namespace(
        order=0,
        source=None,
        env_inputs=[],
        modules=[],
        warnings=[],
        replaced_sources=[],
    )


def parse_args(argv: Sequence[str], prog: str = "ucode") -> RunRequest:
    """Parse the arguments following the program name.

    An empty argument list or -h yields a request with show_help set. A
    missing script source raises UsageError.
    """
    if not argv:
        return RunRequest(show_help=True)

    parser = _build_parser(prog)
    try:
        ns = parser.parse_intermixed_args(_bind_values(argv), namespace=_fresh_namespace())
    except _HelpRequested:
        return RunRequest(show_help=True)

    request = RunRequest(
        config=RunConfig(
            strict_declarations=ns.strict_declarations,
            lstrip_blocks=ns.lstrip_blocks,
            trim_blocks=ns.trim_blocks,
        ),
        source=ns.source,
        env_inputs=ns.env_inputs,
        modules=ns.modules,
        dump=ns.dump,
        warnings=ns.warnings,
        replaced_sources=ns.replaced_sources,
    )

    # Run-as-script style: the first positional is a shebang-aware path.
    args = ns.args or []
    if request.source is None and args:
        request.source = SourceSpec("file", args[0], order=_next_order(ns))
        request.skip_shebang = True
        request.script_args = list(args)

    if request.source is None:
        raise UsageError("One of -i or -s is required")
    return request
