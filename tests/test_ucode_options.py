import pytest

from ucode.ucode_errors import UsageError
from ucode.ucode_options import EnvInput, SourceSpec, format_usage, parse_args, split_prefix


def test_no_arguments_requests_help():
    req = parse_args([])
    assert req.show_help
    assert req.source is None

@pytest.mark.parametrize("argv", [["-h"], ["--help"], ["-s", "x", "-h"], ["-h", "-i"]])
def test_help_stops_parsing(argv):
    assert parse_args(argv).show_help

def test_inline_script():
    req = parse_args(["-s", "return 1+1;"])
    assert req.source == SourceSpec("inline", "return 1+1;", order=req.source.order)
    assert req.skip_shebang is False
    assert req.script_args is None
    assert req.warnings == []

def test_input_file_and_stdin():
    assert parse_args(["-i", "x.uc"]).source.kind == "file"
    assert parse_args(["-i", "-"]).source.kind == "stdin"

def test_parse_flags_toggle_config():
    req = parse_args(["-l", "-r", "-S", "-s", "1"])
    assert req.config.lstrip_blocks is False
    assert req.config.trim_blocks is False
    assert req.config.strict_declarations is True

def test_combined_short_flags_and_attached_value():
    req = parse_args(["-lrS", "-sreturn"])
    assert req.config.lstrip_blocks is False
    assert req.config.trim_blocks is False
    assert req.config.strict_declarations is True
    assert req.source.value == "return"

def test_config_defaults_when_untouched():
    req = parse_args(["-s", "1"])
    assert req.config.lstrip_blocks is True
    assert req.config.trim_blocks is True
    assert req.config.strict_declarations is False

def test_conflicting_sources_last_wins_with_warning():
    req = parse_args(["-i", "file.uc", "-s", "text"])
    assert req.source.kind == "inline"
    assert req.source.value == "text"
    assert req.warnings == ["Options -i and -s are exclusive"]

    req = parse_args(["-s", "text", "-i", "file.uc"])
    assert req.source == SourceSpec("file", "file.uc", order=req.source.order)
    assert len(req.warnings) == 1

@pytest.mark.parametrize(
    "arg,expected",
    [
        ('net={"x":5}', ("net", '{"x":5}')),
        ('{"x":5}', ("", '{"x":5}')),
        ('={"x":5}', ("", '{"x":5}')),
        ('a=b=c', ("a", "b=c")),
        ("env.json", ("", "env.json")),
    ],
)
def test_split_prefix(arg, expected):
    assert split_prefix(arg) == expected

def test_env_inputs_keep_command_line_order():
    req = parse_args(["-e", 'a={"x":1}', "-E", "b=env.json", "-e", '{"y":2}', "-s", "1"])
    assert [(e.flag, e.prefix, e.payload) for e in req.env_inputs] == [
        ("e", "a", '{"x":1}'),
        ("E", "b", "env.json"),
        ("e", "", '{"y":2}'),
    ]
    orders = [e.order for e in req.env_inputs]
    assert orders == sorted(orders)

def test_env_stdin_marker():
    req = parse_args(["-E", "-", "-s", "1"])
    assert req.env_inputs[0].reads_stdin
    assert not EnvInput("e", "", "-").reads_stdin

def test_modules_accumulate_in_order():
    req = parse_args(["-m", "fs", "-s", "1", "-m", "math", "-m", "fs"])
    assert req.modules == ["fs", "math", "fs"]

def test_positional_script_is_shebang_aware():
    req = parse_args(["script.uc", "a1", "a2"])
    assert req.source.kind == "file"
    assert req.source.value == "script.uc"
    assert req.skip_shebang is True
    assert req.script_args == ["script.uc", "a1", "a2"]

def test_options_after_positional_are_still_parsed():
    req = parse_args(["script.uc", "-m", "fs"])
    assert req.modules == ["fs"]
    assert req.script_args == ["script.uc"]

def test_explicit_source_ignores_positional():
    req = parse_args(["-s", "1", "other.uc"])
    assert req.source.kind == "inline"
    assert req.skip_shebang is False

def test_dump_flag():
    assert parse_args(["-d", "-s", "1"]).dump is True

def test_missing_source_is_usage_error():
    with pytest.raises(UsageError) as ei:
        parse_args(["-l"])
    assert str(ei.value) == "One of -i or -s is required"
    assert ei.value.exit_code == 1

def test_unknown_option_is_usage_error():
    with pytest.raises(UsageError):
        parse_args(["-x", "-s", "1"])

def test_missing_option_argument_is_usage_error():
    with pytest.raises(UsageError):
        parse_args(["-s"])

def test_staged_inputs_sorted_by_position():
    req = parse_args(["-E", "-", "-i", "-", "-e", "{}"])
    kinds = [type(item).__name__ for item in req.staged_inputs()]
    assert kinds == ["EnvInput", "SourceSpec", "EnvInput"]

def test_usage_text_uses_program_basename():
    text = format_usage("/usr/bin/ucode")
    assert text.startswith("== Usage ==\n\n  # ucode ")
    for flag in ("-h", "-i", "-s", "-l", "-r", "-S", "-e", "-E", "-m"):
        assert f"  {flag}" in text

@pytest.mark.parametrize(
    "argv,expected",
    [
        (["-s", "-1+2"], "-1+2"),
        (["-s", "-i"], "-i"),
        (["-s", "--"], "--"),
        (["-s", ""], ""),
        (["-s", "a=b"], "a=b"),
    ],
)
def test_script_text_taken_verbatim_even_with_leading_dash(argv, expected):
    assert parse_args(argv).source.value == expected

def test_dash_leading_values_for_other_options():
    req = parse_args(["-e", "-x={}", "-E", "-", "-m", "-mod", "-i", "-weird.uc"])
    assert [(e.prefix, e.payload) for e in req.env_inputs] == [("-x", "{}"), ("", "-")]
    assert req.modules == ["-mod"]
    assert req.source == SourceSpec("file", "-weird.uc", order=req.source.order)

def test_flag_cluster_ending_in_value_option():
    req = parse_args(["-lSs", "-1"])
    assert req.config.lstrip_blocks is False
    assert req.config.strict_declarations is True
    assert req.source == SourceSpec("inline", "-1", order=req.source.order)

def test_replaced_sources_are_kept_for_opening():
    req = parse_args(["-i", "a.uc", "-i", "-", "-s", "x"])
    assert [s.value for s in req.replaced_sources] == ["a.uc", "-"]
    assert [type(item).__name__ for item in req.staged_inputs()] == ["SourceSpec"] * 3
    assert req.staged_inputs()[-1] is req.source
