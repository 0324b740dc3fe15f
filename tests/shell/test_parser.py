"""Unit tests for the pipeline parser."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from tidepipe.shell.execution.parser import ParseError, parse_pipeline
from tidepipe.shell.models.pipeline import Invocation

# ---------------------------------------------------------------------------
# Empty input
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("text", ["", "   ", "\t\n"])
def test_empty_pipeline(text: str) -> None:
    assert parse_pipeline(text) == ()


# ---------------------------------------------------------------------------
# Stages and arguments
# ---------------------------------------------------------------------------


def test_two_stage_pipeline() -> None:
    pipeline = parse_pipeline('exec --json "echo [1,2,3]" | json')

    assert [stage.name for stage in pipeline] == ["exec", "json"]
    assert dict(pipeline[0].args) == {"_": (), "json": "echo [1,2,3]"}
    assert dict(pipeline[1].args) == {"_": ()}


def test_flag_equals_form() -> None:
    (stage,) = parse_pipeline("head --n=5")
    assert stage.args["n"] == "5"


def test_flag_equals_keeps_later_equals_signs() -> None:
    (stage,) = parse_pipeline("where --expr=a=b")
    assert stage.args["expr"] == "a=b"


def test_positional_arguments_in_order() -> None:
    (stage,) = parse_pipeline("where state=open author=me")
    assert stage.args["_"] == ("state=open", "author=me")
    assert stage.positional == ["state=open", "author=me"]


def test_flag_without_value_is_true() -> None:
    (stage,) = parse_pipeline("exec --json")
    assert stage.args["json"] == "true"


def test_flag_followed_by_flag() -> None:
    (stage,) = parse_pipeline("head --verbose --n 3")
    assert stage.args["verbose"] == "true"
    assert stage.args["n"] == "3"


def test_repeated_flag_collects_list() -> None:
    (stage,) = parse_pipeline("invoke --tag a --tag=b --tag c")
    assert stage.args["tag"] == ("a", "b", "c")


def test_double_dash_ends_flags() -> None:
    (stage,) = parse_pipeline("exec -- --not-a-flag x")
    assert stage.args["_"] == ("--not-a-flag", "x")
    assert "not-a-flag" not in stage.args


def test_quoted_token_is_never_a_flag() -> None:
    (stage,) = parse_pipeline('approve --prompt "--really?"')
    assert stage.args["prompt"] == "--really?"


def test_unknown_flags_preserved_verbatim() -> None:
    (stage,) = parse_pipeline("mystery --Weird_Flag 'x y'")
    assert stage.args["Weird_Flag"] == "x y"


def test_unknown_command_name_is_not_a_parse_error() -> None:
    (stage,) = parse_pipeline("no.such.command --x 1")
    assert stage.name == "no.such.command"


# ---------------------------------------------------------------------------
# Quoting and escaping
# ---------------------------------------------------------------------------


def test_pipe_inside_double_quotes() -> None:
    (stage,) = parse_pipeline('exec "grep a | wc -l"')
    assert stage.args["_"] == ("grep a | wc -l",)


def test_pipe_inside_single_quotes() -> None:
    pipeline = parse_pipeline("exec 'echo \"a|b\"' | json")
    assert len(pipeline) == 2
    assert pipeline[0].args["_"] == ('echo "a|b"',)


def test_quoted_lone_pipe_is_an_argument() -> None:
    (stage,) = parse_pipeline('exec "|"')
    assert stage.args["_"] == ("|",)


def test_escaped_pipe_outside_quotes() -> None:
    (stage,) = parse_pipeline(r"exec a\|b")
    assert stage.args["_"] == ("a|b",)


def test_escapes_inside_double_quotes() -> None:
    (stage,) = parse_pipeline(r'approve --prompt "say \"hi\" \\ ok"')
    assert stage.args["prompt"] == 'say "hi" \\ ok'


def test_single_quotes_are_literal() -> None:
    (stage,) = parse_pipeline(r"approve --prompt 'a\"b'")
    assert stage.args["prompt"] == 'a\\"b'


def test_adjacent_quoted_parts_join() -> None:
    (stage,) = parse_pipeline("exec pre\"fix 'x'\"post")
    assert stage.args["_"] == ("prefix 'x'post",)


def test_flag_equals_with_quoted_value() -> None:
    (stage,) = parse_pipeline('approve --prompt="ok? | sure"')
    assert stage.args["prompt"] == "ok? | sure"


def test_empty_quoted_value() -> None:
    (stage,) = parse_pipeline('approve --prompt ""')
    assert stage.args["prompt"] == ""


def test_no_spaces_around_pipe() -> None:
    pipeline = parse_pipeline("exec ls|json|head --n 1")
    assert [stage.name for stage in pipeline] == ["exec", "json", "head"]


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    ("text", "fragment"),
    [
        ("| json", "start"),
        ("json |", "end"),
        ("|", "start"),
        ("exec x || json", "Empty stage"),
        ("exec x |   | json", "Empty stage"),
        ('exec "unterminated', "Unterminated"),
        ("exec 'unterminated", "Unterminated"),
        ("exec trailing\\", "Dangling escape"),
        ("--json | json", "flag"),
        ('"" | json', "empty command name"),
    ],
)
def test_parse_errors(text: str, fragment: str) -> None:
    with pytest.raises(ParseError, match=fragment):
        parse_pipeline(text)


def test_parse_error_is_value_error() -> None:
    with pytest.raises(ValueError):
        parse_pipeline("a |")


# ---------------------------------------------------------------------------
# Totality and immutability
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    ("text", "stages"),
    [
        ("a", 1),
        ("a | b", 2),
        ("a --x 1 | b 'q | r' | c", 3),
        ('a "x" | b --y=" | " | c | d', 4),
    ],
)
def test_one_invocation_per_segment(text: str, stages: int) -> None:
    assert len(parse_pipeline(text)) == stages


def test_pipeline_is_immutable() -> None:
    pipeline = parse_pipeline("exec --json x | json")
    assert isinstance(pipeline, tuple)
    with pytest.raises(ValidationError):
        pipeline[0].name = "other"  # type: ignore[misc]


def test_args_cannot_be_rewritten() -> None:
    (stage,) = parse_pipeline("head --n 1 a b")

    with pytest.raises(TypeError):
        stage.args["n"] = "99"  # type: ignore[index]
    with pytest.raises(AttributeError):
        stage.args["_"].append("c")  # type: ignore[union-attr]

    assert stage.args["n"] == "1"
    assert stage.positional == ["a", "b"]


def test_args_dict_is_a_private_copy() -> None:
    (stage,) = parse_pipeline("invoke --tag a --tag b x")

    copy = stage.args_dict()
    copy["_"].append("y")
    copy["tag"].append("c")
    copy["extra"] = "1"

    assert copy["tag"] == ["a", "b", "c"]
    assert dict(stage.args) == {"_": ("x",), "tag": ("a", "b")}


def test_serialized_args_use_lists() -> None:
    (stage,) = parse_pipeline("invoke --tag a --tag b x")
    assert stage.model_dump(mode="json") == {"name": "invoke", "args": {"_": ["x"], "tag": ["a", "b"]}}


def test_reparse_does_not_touch_previous_value() -> None:
    first = parse_pipeline("head --n 1")
    second = parse_pipeline("head --n 1")

    assert first[0] == second[0]
    assert first[0] is not second[0]
    assert first[0].args is not second[0].args


def test_invocation_default_args() -> None:
    assert Invocation(name="json").positional == []


def test_escaped_leading_dashes_are_positional() -> None:
    (stage,) = parse_pipeline(r"exec \--literal")
    assert stage.args["_"] == ("--literal",)


def test_flag_without_name() -> None:
    with pytest.raises(ParseError, match="Invalid flag"):
        parse_pipeline("exec --=x")
