import asyncio
import logging
import os
import sys

import click

from tidepipe.shell.context import CommandContext
from tidepipe.shell.models.enums import ErrorType, ShellMode

logger = logging.getLogger(__name__)

EXIT_RUNTIME_ERROR = 1
EXIT_PARSE_ERROR = 2

_HUMAN_PREFIX = {
    ErrorType.PARSE_ERROR: "Parse error",
    ErrorType.RUNTIME_ERROR: "Error",
}


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
def main() -> None:
    """Tidepipe - typed JSON command pipelines with approval gates."""


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _bootstrap(mode: ShellMode):
    """Load settings, configure logging and build the command registry."""
    from tidepipe.shell.log import setup_logging
    from tidepipe.shell.registry import create_default_registry
    from tidepipe.shell.settings import get_settings

    settings = get_settings()
    setup_logging(settings.log_level, plain=mode == ShellMode.TOOL)
    return settings, create_default_registry(settings)


def _command_context(mode: ShellMode) -> CommandContext:
    stdin = sys.stdin
    return CommandContext(
        env=os.environ,
        mode=mode,
        stdin=stdin,
        stdout=sys.stdout,
        stderr=sys.stderr,
        interactive=bool(stdin and stdin.isatty()),
    )


def _strip_mode(words: tuple[str, ...], mode: str) -> tuple[str, list[str]]:
    """Pull ``--mode X`` / ``--mode=X`` words out of the pipeline; the last one wins."""
    rest: list[str] = []
    remaining = iter(words)
    for word in remaining:
        if word == "--mode":
            value = next(remaining, None)
            if value is None:
                raise click.BadParameter("requires a value", param_hint="'--mode'")
            mode = value
        elif word.startswith("--mode="):
            mode = word.removeprefix("--mode=")
        else:
            rest.append(word)

    choices = [m.value for m in ShellMode]
    if mode not in choices:
        raise click.BadParameter(f"{mode!r} is not one of {', '.join(map(repr, choices))}.", param_hint="'--mode'")
    return mode, rest


def _fail(ctx: click.Context, mode: ShellMode, error_type: ErrorType, exc: BaseException, code: int) -> None:
    """Report *exc* in the form the mode requires, then exit with *code*."""
    from tidepipe.shell.execution.mode import error_envelope, write_envelope

    if mode == ShellMode.TOOL:
        write_envelope(error_envelope(error_type, exc))
    else:
        click.echo(f"{_HUMAN_PREFIX[error_type]}: {exc}", err=True)
    ctx.exit(code)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@main.command(context_settings={"ignore_unknown_options": True, "allow_interspersed_args": False})
@click.option(
    "--mode",
    type=click.Choice([m.value for m in ShellMode]),
    default=ShellMode.HUMAN.value,
    show_default=True,
    help="human: print items / let commands render; tool: print one JSON envelope.",
)
@click.argument("pipeline", nargs=-1, type=click.UNPROCESSED)
@click.pass_context
def run(ctx: click.Context, mode: str, pipeline: tuple[str, ...]) -> None:
    """Run a pipeline, e.g. 'exec --json "echo [1,2,3]" | json'.

    --mode may also follow the pipeline words; a stage flag called --mode
    has to be quoted inside a pipeline word.
    """
    from tidepipe.shell.execution.engine import run_pipeline
    from tidepipe.shell.execution.mode import render_human, result_envelope, write_envelope
    from tidepipe.shell.execution.parser import ParseError, parse_pipeline

    mode, words = _strip_mode(pipeline, mode)
    shell_mode = ShellMode(mode)
    try:
        settings, registry = _bootstrap(shell_mode)
    except ValueError as exc:
        _fail(ctx, shell_mode, ErrorType.RUNTIME_ERROR, exc, EXIT_RUNTIME_ERROR)
        return

    try:
        parsed = parse_pipeline(" ".join(words))
    except ParseError as exc:
        _fail(ctx, shell_mode, ErrorType.PARSE_ERROR, exc, EXIT_PARSE_ERROR)
        return

    # Exit must not happen inside the try: click's Exit is a RuntimeError.
    failure: Exception | None = None
    try:
        result = asyncio.run(run_pipeline(parsed, registry, ctx=_command_context(shell_mode)))
        envelope = result_envelope(parsed, result, token_key=settings.token_key()) if shell_mode == ShellMode.TOOL else None
    except Exception as exc:
        logger.debug("Pipeline failed", exc_info=True)
        failure = exc

    if failure is not None:
        _fail(ctx, shell_mode, ErrorType.RUNTIME_ERROR, failure, EXIT_RUNTIME_ERROR)
        return

    if envelope is not None:
        write_envelope(envelope)
    else:
        render_human(result)


@main.command()
@click.option("--token", default=None, help="Resume token from a needs_approval envelope.")
@click.option(
    "--approve",
    "approved",
    type=click.BOOL,
    default=False,
    show_default=True,
    help="yes/no: whether the halted stage was approved.",
)
@click.pass_context
def resume(ctx: click.Context, token: str | None, approved: bool) -> None:
    """Resume a halted pipeline.  Always prints one JSON envelope."""
    from tidepipe.shell.execution.engine import resume_pipeline
    from tidepipe.shell.execution.mode import cancelled_envelope, result_envelope, write_envelope
    from tidepipe.shell.execution.token import TokenError, decode_token

    try:
        settings, registry = _bootstrap(ShellMode.TOOL)
    except ValueError as exc:
        _fail(ctx, ShellMode.TOOL, ErrorType.RUNTIME_ERROR, exc, EXIT_RUNTIME_ERROR)
        return

    try:
        continuation = decode_token(token, key=settings.token_key())
    except TokenError as exc:
        _fail(ctx, ShellMode.TOOL, ErrorType.RUNTIME_ERROR, exc, EXIT_RUNTIME_ERROR)
        return

    if not approved:
        logger.info("Resume declined; %d stage(s) not run", len(continuation.remaining))
        write_envelope(cancelled_envelope())
        return

    failure: Exception | None = None
    try:
        remaining, result = asyncio.run(
            resume_pipeline(continuation, registry, ctx=_command_context(ShellMode.TOOL)),
        )
        envelope = result_envelope(remaining, result, token_key=settings.token_key())
    except Exception as exc:
        logger.debug("Resumed pipeline failed", exc_info=True)
        failure = exc

    if failure is not None:
        _fail(ctx, ShellMode.TOOL, ErrorType.RUNTIME_ERROR, failure, EXIT_RUNTIME_ERROR)
        return

    write_envelope(envelope)


@main.command("help")
@click.argument("topic", required=False)
@click.pass_context
def help_(ctx: click.Context, topic: str | None) -> None:
    """Show overall usage, or a command's own help."""
    from tidepipe.shell.execution.help import render_usage

    try:
        _, registry = _bootstrap(ShellMode.HUMAN)
    except ValueError as exc:
        _fail(ctx, ShellMode.HUMAN, ErrorType.RUNTIME_ERROR, exc, EXIT_RUNTIME_ERROR)
        return
    if topic is None:
        click.echo(render_usage(registry), nl=False)
        return

    command = registry.get(topic)
    if command is None:
        click.echo(f"Unknown command: {topic}", err=True)
        ctx.exit(EXIT_PARSE_ERROR)
        return
    click.echo(command.help(), nl=False)


if __name__ == "__main__":
    main()
