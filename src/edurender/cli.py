"""
edurender command line interface.

Usage:
    edurender render notes.md -o notes.html --standalone
    edurender notes output.json
    edurender config show
    edurender config set-strict on
"""

import logging
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.table import Table

from edurender import __version__
from edurender.config import LOG_LEVELS, get_config_manager
from edurender.exceptions import EduRenderError
from edurender.notes import parse_notes
from edurender.renderer import StructuredTextRenderer

console = Console()


def error(message: str) -> None:
    console.print(f"[red]✗[/red] {message}")


def success(message: str) -> None:
    console.print(f"[green]✓[/green] {message}")


def info(message: str) -> None:
    console.print(f"[blue]ℹ[/blue] {message}")


def _read_source(source) -> str:
    """Read a click.File, exiting on undecodable input."""
    try:
        return source.read()
    except UnicodeDecodeError as e:
        error(f"{source.name} is not valid UTF-8: {e.reason} at byte {e.start}")
        sys.exit(1)


@click.group()
@click.option(
    "--config-dir",
    envvar="EDURENDER_CONFIG_DIR",
    type=click.Path(file_okay=False, path_type=Path),
    help="Configuration directory (default: ~/.edurender)"
)
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    help="Logging level (default: from config)"
)
@click.version_option(__version__, prog_name="edurender")
@click.pass_context
def main(ctx, config_dir: Optional[Path], log_level: Optional[str]):
    """edurender - render AI tool output (Markdown + LaTeX + cards) to HTML."""
    ctx.ensure_object(dict)
    manager = get_config_manager(config_dir)
    ctx.obj["config"] = manager

    level = (log_level or manager.get_config().log_level).upper()
    logging.basicConfig(
        level=getattr(logging, level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# ===== RENDER COMMANDS =====

@main.command()
@click.argument("source", type=click.File("r", encoding="utf-8"))
@click.option("--output", "-o", type=click.Path(dir_okay=False, path_type=Path), help="Write HTML here instead of stdout")
@click.option("--standalone", is_flag=True, help="Wrap the fragment in a full HTML page")
@click.option("--title", help="Page title for --standalone")
@click.option("--strict-math/--lenient-math", default=None, help="Show bad LaTeX as Math Error boxes")
@click.pass_context
def render(ctx, source, output: Optional[Path], standalone: bool, title: Optional[str], strict_math: Optional[bool]):
    """Render SOURCE (a file or '-' for stdin) to HTML."""
    config = ctx.obj["config"].get_config()
    renderer = StructuredTextRenderer.from_config(config)
    if strict_math is not None:
        renderer.strict_math = strict_math

    text = _read_source(source)
    if standalone:
        html = renderer.render_document(text, title=title or config.document_title)
    else:
        html = renderer.render(text)

    if output is None:
        click.echo(html)
        return

    try:
        output.write_text(html, encoding="utf-8")
    except OSError as e:
        error(f"Cannot write {output}: {e}")
        sys.exit(1)

    success(f"Written: [bold]{output}[/bold]")


@main.command()
@click.argument("source", type=click.File("r", encoding="utf-8"))
def notes(source):
    """List the note cards found in SOURCE."""
    found = parse_notes(_read_source(source))

    if not found:
        info("No notes found")
        return

    table = Table(title=f"Notes ({len(found)})")
    table.add_column("#", style="dim", width=3)
    table.add_column("Concept", style="cyan")
    table.add_column("Summary")
    table.add_column("Importance")
    table.add_column("Quick facts")

    for i, note in enumerate(found, 1):
        table.add_row(
            str(i),
            note.concept_name,
            note.summary or "-",
            note.importance or "-",
            "\n".join(f"• {fact}" for fact in note.quick_facts or []) or "-",
        )

    console.print(table)


# ===== CONFIG COMMANDS =====

@main.group("config")
def config_group():
    """Manage local renderer settings."""
    pass


@config_group.command("show")
@click.pass_context
def config_show(ctx):
    """Show the current configuration."""
    manager = ctx.obj["config"]
    config = manager.get_config()

    table = Table(title="Configuration", show_header=False)
    table.add_column("Setting", style="cyan")
    table.add_column("Value")

    table.add_row("File", str(manager.config_file))
    table.add_row("Strict math", "on" if config.strict_math else "off")
    table.add_row("Document title", config.document_title)
    table.add_row("Log level", config.log_level)

    console.print(table)


@config_group.command("set-strict")
@click.argument("state", type=click.Choice(["on", "off"]))
@click.pass_context
def config_set_strict(ctx, state: str):
    """Turn strict math on or off."""
    ctx.obj["config"].set_strict_math(state == "on")
    success(f"Strict math: [bold]{state}[/bold]")


@config_group.command("set-title")
@click.argument("title")
@click.pass_context
def config_set_title(ctx, title: str):
    """Set the default title of standalone pages."""
    try:
        ctx.obj["config"].set_document_title(title)
    except EduRenderError as e:
        error(e.message)
        sys.exit(1)
    success(f"Document title: [bold]{title.strip()}[/bold]")


@config_group.command("set-log-level")
@click.argument("level")
@click.pass_context
def config_set_log_level(ctx, level: str):
    """Set the default logging level."""
    try:
        ctx.obj["config"].set_log_level(level)
    except EduRenderError as e:
        error(e.message)
        sys.exit(1)
    success(f"Log level: [bold]{level.upper()}[/bold]")


@config_group.command("reset")
@click.pass_context
def config_reset(ctx):
    """Restore default settings."""
    ctx.obj["config"].reset()
    success("Configuration reset")


if __name__ == "__main__":
    main()
