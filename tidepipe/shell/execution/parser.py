"""Pipeline parser -- turns a pipeline string into ``Invocation`` values.

Lexing rules:

- ``|`` outside quotes separates stages.
- Whitespace outside quotes separates tokens.
- ``'...'`` is literal; ``"..."`` honours ``\\"`` and ``\\\\``; a backslash
  outside quotes escapes the next character.

Argument rules per stage:

- The first token is the command name.
- ``--flag value`` and ``--flag=value`` set a flag; a flag with nothing
  after it (or followed by another flag) is ``"true"``.
- Repeating a flag collects its values into a list.
- Bare tokens go to ``args["_"]``; after a bare ``--`` every token is bare.
- A token that starts with a quote or an escape is never a flag.

Values are kept as raw strings.  Unknown command names and unknown flags
are not errors here; the engine and the commands deal with those.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from tidepipe.shell.models.pipeline import POSITIONAL_KEY, ArgValue, Invocation, Pipeline

logger = logging.getLogger(__name__)

PIPE = "|"
_QUOTES = ("'", '"')
_DOUBLE_QUOTE_ESCAPABLE = ('"', "\\")


class ParseError(ValueError):
    """Malformed pipeline syntax."""


@dataclass(frozen=True)
class _Token:
    text: str
    quoted: bool = False


# ---------------------------------------------------------------------------
# Lexer
# ---------------------------------------------------------------------------


def _split_segments(text: str) -> list[list[_Token]]:
    """Lex *text* into one token list per pipe-delimited segment."""
    segments: list[list[_Token]] = [[]]
    buf: list[str] = []
    in_token = False
    quoted = False
    i = 0
    n = len(text)

    def flush() -> None:
        nonlocal buf, in_token, quoted
        if in_token:
            segments[-1].append(_Token("".join(buf), quoted))
        buf = []
        in_token = False
        quoted = False

    while i < n:
        ch = text[i]

        if ch in _QUOTES:
            end = _read_quoted(text, i, buf)
            if not in_token:
                quoted = True
            in_token = True
            i = end + 1
            continue

        if ch == "\\":
            if i + 1 >= n:
                msg = "Dangling escape character at end of pipeline"
                raise ParseError(msg)
            buf.append(text[i + 1])
            if not in_token:
                quoted = True
            in_token = True
            i += 2
            continue

        if ch == PIPE:
            flush()
            segments.append([])
        elif ch.isspace():
            flush()
        else:
            buf.append(ch)
            in_token = True
        i += 1

    flush()
    return segments


def _read_quoted(text: str, start: int, buf: list[str]) -> int:
    """Append the body of the quoted string at *start* to *buf*.

    Returns the index of the closing quote.
    """
    quote = text[start]
    i = start + 1
    n = len(text)
    while i < n:
        ch = text[i]
        if ch == quote:
            return i
        if quote == '"' and ch == "\\" and i + 1 < n and text[i + 1] in _DOUBLE_QUOTE_ESCAPABLE:
            buf.append(text[i + 1])
            i += 2
            continue
        buf.append(ch)
        i += 1
    msg = f"Unterminated {quote} quote starting at position {start}"
    raise ParseError(msg)


# ---------------------------------------------------------------------------
# Arguments
# ---------------------------------------------------------------------------


def _is_flag(token: _Token) -> bool:
    return not token.quoted and token.text.startswith("--") and len(token.text) > 2


def _set_arg(args: dict[str, ArgValue], key: str, value: str) -> None:
    existing = args.get(key)
    if existing is None:
        args[key] = value
    elif isinstance(existing, list):
        existing.append(value)
    else:
        args[key] = [existing, value]


def parse_args(tokens: list[_Token]) -> dict[str, ArgValue]:
    """Build the argument mapping for one stage (command name excluded)."""
    args: dict[str, ArgValue] = {POSITIONAL_KEY: []}
    bare: list[str] = []
    rest_positional = False
    i = 0

    while i < len(tokens):
        token = tokens[i]
        i += 1

        if rest_positional:
            bare.append(token.text)
            continue
        if not token.quoted and token.text == "--":
            rest_positional = True
            continue
        if not _is_flag(token):
            bare.append(token.text)
            continue

        key, sep, value = token.text[2:].partition("=")
        if not key:
            msg = f"Invalid flag {token.text!r}"
            raise ParseError(msg)
        if sep:
            _set_arg(args, key, value)
        elif i < len(tokens) and not _is_flag(tokens[i]):
            _set_arg(args, key, tokens[i].text)
            i += 1
        else:
            _set_arg(args, key, "true")

    args[POSITIONAL_KEY] = bare
    return args


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def parse_pipeline(text: str) -> Pipeline:
    """Parse a pipeline string into an immutable tuple of invocations.

    An empty or whitespace-only string yields an empty pipeline.

    Raises
    ------
    ParseError:
        On unterminated quotes, a dangling escape, or an empty stage
        (leading, trailing or doubled pipe).
    """
    segments = _split_segments(text)
    if len(segments) == 1 and not segments[0]:
        return ()

    stages: list[Invocation] = []
    for index, tokens in enumerate(segments):
        if not tokens:
            if index == 0:
                msg = "Pipeline cannot start with '|'"
            elif index == len(segments) - 1:
                msg = "Pipeline cannot end with '|'"
            else:
                msg = f"Empty stage at position {index} (no command between pipes)"
            raise ParseError(msg)

        head, *rest = tokens
        if _is_flag(head):
            msg = f"Stage {index} starts with flag {head.text!r} instead of a command name"
            raise ParseError(msg)
        if not head.text:
            msg = f"Stage {index} has an empty command name"
            raise ParseError(msg)
        stages.append(Invocation(name=head.text, args=parse_args(rest)))

    logger.debug("Parsed pipeline with %d stage(s): %s", len(stages), [s.name for s in stages])
    return tuple(stages)
