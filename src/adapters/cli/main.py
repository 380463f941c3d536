"""
adapters.cli.main - CLI adapter for the multi-agent voice orchestrator.

Mirrors src/adapters/rest/ but for terminal use. Uses the same
ServiceFactory and AgentSession as the REST API, with typed text in
place of a voice channel.

Commands
--------
  chat     Interactive session with the agent graph (prints the memory report on exit)
  agents   Show the agents, their tools and the handoff graph
  parse    Run the record parser on a blob of text
  token    Issue an ephemeral realtime session credential

Usage
-----
  python run_cli.py chat --user alice
  python run_cli.py parse daily_checkin "daily_cigarettes: 3"
  python run_cli.py token
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Optional

# ── Ensure src/ is on the path ──
_SRC = Path(__file__).resolve().parent.parent.parent
sys.path.insert(0, str(_SRC))

import typer
from rich import box
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.prompt import Confirm, Prompt
from rich.table import Table

from agent.catalog import RECORD_SCHEMAS
from application.dto import CloseReport
from domain.exceptions import ConfigurationError, SessionConnectionError
from domain.models import ApprovalRequest, ConversationItem, ItemType, Role
from factory import ServiceFactory
from infrastructure.config import Settings

__version__ = "0.1.0"

console = Console()
app = typer.Typer(
    help="Multi-agent voice orchestrator CLI",
    add_completion=False,
    no_args_is_help=True,
)

_EXIT_WORDS = ("exit", "quit", "q", "bye")


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------

def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )


async def _make_factory() -> ServiceFactory:
    """Build and initialize a ServiceFactory, exiting on bad configuration."""
    try:
        factory = ServiceFactory(Settings.from_env())
    except ConfigurationError as e:
        console.print(f"[bold red]Configuration error:[/bold red] {e}")
        raise typer.Exit(code=1)
    await factory.initialize()
    return factory


def _print_item(item: ConversationItem, agent_name: str) -> None:
    if item.item_type == ItemType.FUNCTION_CALL:
        args = json.dumps(item.arguments, ensure_ascii=False)
        console.print(f"  [dim]⚙ {item.tool_name}({args}) → {item.output}[/dim]")
    elif item.role == Role.ASSISTANT and item.text:
        console.print(Panel(item.text, title=agent_name, border_style="green"))


def _print_close_report(report: CloseReport) -> None:
    console.print(
        f"[dim]Session {report.session_id} closed on {report.final_agent} "
        f"({report.history_length} item(s)).[/dim]"
    )
    memory = report.memory
    if memory is None:
        console.print("[dim]Memory store disabled.[/dim]")
        return

    table = Table(title="Memory", box=box.SIMPLE)
    table.add_column("Entry")
    table.add_column("Result")
    if memory.messages_success is None:
        table.add_row("conversation", "[dim]nothing to store[/dim]")
    elif memory.messages_success:
        table.add_row("conversation", f"[green]{memory.messages_submitted} message(s)[/green]")
    else:
        table.add_row("conversation", f"[red]{memory.messages_error}[/red]")
    for entry in memory.entries:
        result = "[green]ok[/green]" if entry.success else f"[red]{entry.error}[/red]"
        table.add_row(entry.label, result)
    console.print(table)


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"voice-agents v{__version__}")
        raise typer.Exit()


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

@app.command()
def chat(
    user: Optional[str] = typer.Option(None, "--user", "-u", help="Memory user id"),
    reply_timeout: float = typer.Option(
        120.0, "--reply-timeout", help="Seconds to wait for the assistant's reply",
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Show debug logging"),
) -> None:
    """Start an interactive session with the agent graph."""
    _configure_logging(verbose)

    async def _run() -> None:
        factory = await _make_factory()
        replied = asyncio.Event()
        shown = 0
        holder: dict = {}

        def on_history(history) -> None:
            nonlocal shown
            session = holder["session"]
            for item in history[shown:]:
                _print_item(item, session.active_agent.name)
                if item.role == Role.ASSISTANT and item.is_message and item.text:
                    replied.set()
            shown = len(history)

        async def on_approval(request: ApprovalRequest) -> None:
            args = json.dumps(request.arguments, ensure_ascii=False)
            approved = await asyncio.to_thread(
                Confirm.ask,
                f"[bold yellow]{request.agent_name}[/bold yellow] wants to run "
                f"[bold]{request.tool_name}[/bold]({args}). Allow?",
            )
            session = holder["session"]
            if approved:
                session.approve(request.call_id)
            else:
                session.deny(request.call_id)

        session = factory.create_session(
            user,
            on_approval_requested=on_approval,
            on_history_updated=on_history,
        )
        holder["session"] = session

        try:
            with console.status("[bold cyan]Connecting…", spinner="dots"):
                await session.connect()
        except SessionConnectionError as e:
            console.print(f"[bold red]Could not connect:[/bold red] {e}")
            raise typer.Exit(code=1)

        console.print(Panel(
            f"[bold]Voice Agents[/bold]\n"
            f"User [bold]{session.ctx.user_id}[/bold], talking to "
            f"[bold]{session.active_agent.name}[/bold]\n"
            "Type your message, or [bold]exit[/bold] / [bold]quit[/bold] to stop.",
            border_style="cyan",
        ))

        try:
            while True:
                try:
                    user_input = await asyncio.to_thread(Prompt.ask, "\n[bold cyan]You[/bold cyan]")
                except (KeyboardInterrupt, EOFError):
                    break
                if user_input.strip().lower() in _EXIT_WORDS:
                    break
                if not user_input.strip():
                    continue

                replied.clear()
                await session.send_user_text(user_input)
                try:
                    await asyncio.wait_for(replied.wait(), timeout=reply_timeout)
                except asyncio.TimeoutError:
                    console.print("[yellow]No reply yet; the model may still be working.[/yellow]")
        finally:
            with console.status("[bold cyan]Saving to memory…", spinner="dots"):
                report = await session.close()
            _print_close_report(report)
            console.print("[dim]Goodbye![/dim]")

    asyncio.run(_run())


@app.command()
def agents() -> None:
    """Show the agents, their tools and who they can hand off to."""

    async def _run() -> None:
        factory = await _make_factory()
        table = Table(title="Agents", box=box.ROUNDED)
        table.add_column("Agent", style="bold")
        table.add_column("Tools")
        table.add_column("Hands off to")
        table.add_column("Description", style="dim")
        for spec in factory.agents.all():
            summary = spec.summary()
            table.add_row(
                summary.name,
                ", ".join(summary.tools) or "-",
                ", ".join(summary.handoff_targets) or "-",
                summary.handoff_description,
            )
        console.print(table)
        console.print(f"[dim]Sessions start on {factory.config.initial_agent}.[/dim]")

    asyncio.run(_run())


@app.command()
def parse(
    interview: str = typer.Argument(..., help=f"One of: {', '.join(RECORD_SCHEMAS)}"),
    text: Optional[str] = typer.Argument(None, help="Raw text; read from --file or stdin if omitted"),
    file: Optional[Path] = typer.Option(None, "--file", "-f", exists=True, dir_okay=False),
) -> None:
    """Run the configured record parser on a blob of text."""
    schema = RECORD_SCHEMAS.get(interview)
    if schema is None:
        console.print(f"[bold red]Unknown interview '{interview}'.[/bold red]")
        raise typer.Exit(code=2)
    if text is None:
        text = file.read_text(encoding="utf-8") if file else sys.stdin.read()

    async def _run() -> None:
        factory = await _make_factory()
        with console.status("[bold cyan]Parsing…", spinner="dots"):
            outcome = await factory.parser.parse(text, schema)
        if not outcome.ok:
            console.print(f"[bold red]Parse failed:[/bold red] {outcome.error}")
            raise typer.Exit(code=1)
        console.print_json(json.dumps(outcome.record.model_dump(), ensure_ascii=False))

    asyncio.run(_run())


@app.command()
def token() -> None:
    """Issue an ephemeral realtime credential for a browser voice client."""

    async def _run() -> None:
        factory = await _make_factory()
        try:
            secret = await factory.create_realtime_issuer().issue()
        except SessionConnectionError as e:
            console.print(f"[bold red]{e}[/bold red]")
            raise typer.Exit(code=1)
        finally:
            await factory.aclose()
        console.print(secret)

    asyncio.run(_run())


# ---------------------------------------------------------------------------
# Global version option
# ---------------------------------------------------------------------------

@app.callback()
def _callback(
    version: bool = typer.Option(
        False, "--version", "-v",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """Multi-agent voice orchestrator CLI"""


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    app()
