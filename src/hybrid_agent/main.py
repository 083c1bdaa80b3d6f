"""CLI entrypoint for hybrid-agent."""

import logging
from pathlib import Path

import rich_click as click

from hybrid_agent import __version__
from hybrid_agent.orchestrator.controllers import (
    AskCommand,
    ContextCommand,
    CostsCommand,
    HybridCliController,
    StatusCommand,
)
from hybrid_agent.orchestrator.errors import AgentError
from hybrid_agent.orchestrator.models import ProgressEvent

click.rich_click.USE_MARKDOWN = True
CONTROLLER = HybridCliController()


@click.group()
@click.version_option(version=__version__, prog_name="hybrid-agent")
def hybrid_agent() -> None:
    """Hybrid claude/gemini agent orchestrator."""


@hybrid_agent.command("ask")
@click.argument("prompt")
@click.option(
    "--work-dir",
    type=click.Path(path_type=Path, file_okay=False),
    default=None,
    help="Working directory for agents and the context file. Defaults to HYBRID_AGENT_WORK_DIR.",
)
@click.option(
    "--agent",
    type=click.Choice(["claude", "gemini"], case_sensitive=False),
    default=None,
    help="Force the drafting agent instead of table routing.",
)
@click.option("--model", default=None, help="Force an explicit model id for the drafting agent.")
@click.option(
    "--no-review",
    is_flag=True,
    default=False,
    help="Skip the review/correction loop even when routing asks for it.",
)
@click.option(
    "--with-context",
    is_flag=True,
    default=False,
    help="Prepend the synopsis saved by the previous run to the prompt.",
)
@click.option(
    "--timeout-seconds",
    type=click.FloatRange(min=1, max=3600),
    default=None,
    help="Timeout per agent call. Defaults to HYBRID_AGENT_CALL_TIMEOUT_SECONDS.",
)
@click.option("--verbose", is_flag=True, default=False, help="Log state transitions.")
def ask(  # noqa: PLR0913
    prompt: str,
    work_dir: Path | None,
    agent: str | None,
    model: str | None,
    no_review: bool,
    with_context: bool,
    timeout_seconds: float | None,
    verbose: bool,
) -> None:
    """Route a task to claude or gemini and print the result."""

    _configure_logging(verbose=verbose)
    try:
        lines = CONTROLLER.ask(
            AskCommand(
                prompt=prompt,
                work_dir=work_dir,
                agent=agent.lower() if agent is not None else None,
                model=model,
                no_review=no_review,
                with_context=with_context,
                timeout_seconds=timeout_seconds,
            ),
            on_progress=_echo_progress,
        )
    except (AgentError, ValueError) as error:
        raise click.ClickException(str(error)) from error
    _emit_lines(lines)


@hybrid_agent.command("costs")
@click.option(
    "--work-dir",
    type=click.Path(path_type=Path, file_okay=False),
    default=None,
    help="Directory holding the context file.",
)
def costs(work_dir: Path | None) -> None:
    """Show the cost summary recorded by the last run."""

    _emit_lines(CONTROLLER.show_costs(CostsCommand(work_dir=work_dir)))


@hybrid_agent.command("context")
@click.option(
    "--work-dir",
    type=click.Path(path_type=Path, file_okay=False),
    default=None,
    help="Directory holding the context file.",
)
def context(work_dir: Path | None) -> None:
    """Print the saved session synopsis."""

    _emit_lines(CONTROLLER.show_context(ContextCommand(work_dir=work_dir)))


@hybrid_agent.command("status")
@click.option(
    "--work-dir",
    type=click.Path(path_type=Path, file_okay=False),
    default=None,
    help="Working directory for agents and the context file.",
)
def status(work_dir: Path | None) -> None:
    """Report configuration and agent availability."""

    try:
        lines = CONTROLLER.show_status(StatusCommand(work_dir=work_dir))
    except ValueError as error:
        raise click.ClickException(str(error)) from error
    _emit_lines(lines)


def _echo_progress(event: ProgressEvent) -> None:
    click.echo(f"[{event.stage.value}] {event.message}", err=True)


def _configure_logging(*, verbose: bool) -> None:
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _emit_lines(lines: list[str]) -> None:
    for line in lines:
        click.echo(line)


if __name__ == "__main__":  # pragma: no cover
    hybrid_agent()
