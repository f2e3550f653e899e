"""
Command line interface for responseloop.

Usage:
    rloop chat PROMPT [--model NAME] [--system TEXT] [--profile NAME]
    rloop config show|validate
    rloop version
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler

from responseloop import __version__
from responseloop.config import load_config
from responseloop.errors import ResponseLoopError

app = typer.Typer(name="rloop", help="Streamed, tool-calling conversations against a Responses API")
config_app = typer.Typer(help="Configuration management")

app.add_typer(config_app, name="config")

console = Console()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _get_config_path() -> Path | None:
    """Find config file in standard locations."""
    candidates = [
        Path.cwd() / "responseloop.yaml",
        Path.cwd() / "responseloop.yml",
        Path.home() / ".config" / "responseloop" / "config.yaml",
        Path.home() / ".responseloop" / "config.yaml",
    ]
    for p in candidates:
        if p.is_file():
            return p
    return None


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

@app.command()
def chat(
    prompt: str = typer.Argument(..., help="User prompt"),
    model: Optional[str] = typer.Option(None, help="Model name"),
    system: str = typer.Option("", "--system", "-s", help="System prompt"),
    profile: Optional[str] = typer.Option(None, help="Config profile name"),
    max_iterations: Optional[int] = typer.Option(None, help="Max conversation iterations"),
    hide_reasoning: bool = typer.Option(False, help="Do not print reasoning summaries"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log loop progress"),
):
    """Run one conversation and stream its output."""
    from responseloop.cli.output import OutputFormatter
    from responseloop.service import StreamRequest, build_transport, stream_completion

    _configure_logging(verbose)
    try:
        cfg = load_config(
            _get_config_path(),
            profile=profile,
            cli_overrides={
                "llm.model": model,
                "conversation.max_iterations": max_iterations,
            },
        )
        cfg.validate()
    except ResponseLoopError as e:
        console.print(f"[red]Config error:[/red] {e}")
        raise typer.Exit(1)

    if not cfg.llm.api_key():
        console.print(f"[yellow]Warning:[/yellow] {cfg.llm.api_key_env} is not set")

    formatter = OutputFormatter(console, show_reasoning=not hide_reasoning)

    async def _run():
        return await stream_completion(
            StreamRequest(prompt=prompt, system_prompt=system),
            cfg,
            build_transport(cfg),
            emit=formatter,
        )

    try:
        outcome = asyncio.run(_run())
    except ResponseLoopError as e:
        console.print(f"\n[red]Error:[/red] {e}")
        raise typer.Exit(1)

    formatter.format_summary(outcome.result, outcome.usage)


@config_app.command("show")
def config_show(
    profile: Optional[str] = typer.Option(None, help="Config profile name"),
):
    """Show effective config."""
    from responseloop.cli.output import OutputFormatter

    cfg = load_config(_get_config_path(), profile=profile)
    formatter = OutputFormatter(console)
    formatter.format_config(cfg.to_dict())


@config_app.command("validate")
def config_validate(
    profile: Optional[str] = typer.Option(None, help="Config profile name"),
):
    """Validate config values."""
    config_path = _get_config_path()
    try:
        cfg = load_config(config_path, profile=profile)
        cfg.validate()
    except ResponseLoopError as e:
        console.print(f"[red]Config validation failed:[/red] {e}")
        raise typer.Exit(1)

    console.print("[green]Config is valid.[/green]")
    if config_path:
        console.print(f"  Loaded from: {config_path}")
    else:
        console.print("  [dim]No config file found, using defaults.[/dim]")
    console.print(f"  Model: {cfg.llm.model} via {cfg.llm.transport}")
    console.print(f"  Max iterations: {cfg.conversation.max_iterations}")
    console.print(f"  Tracing: {'on' if cfg.tracing.enabled else 'off'}")


@app.command()
def version():
    """Show version."""
    console.print(f"responseloop v{__version__}")


def main():
    app()


if __name__ == "__main__":
    main()
