"""CLI commands for xdportal.

The CLI is a thin entry point: global options (config file, log level) live
here, the interface command groups register themselves from command_groups.
"""

from pathlib import Path

import typer
from rich.console import Console

from xdportal import __logo__, __version__
from xdportal.cli.command_groups.group_registry import register_command_groups

app = typer.Typer(
    name="xdportal",
    help=f"{__logo__} xdportal - talk to XDG desktop portals",
    no_args_is_help=True,
)

console = Console()


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"{__logo__} xdportal v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    config: Path | None = typer.Option(None, "--config", "-c", help="Config file (default ~/.config/xdportal/config.json)"),
    log_level: str | None = typer.Option(None, "--log-level", help="Override logging.level"),
    version: bool = typer.Option(False, "--version", callback=_version_callback, is_eager=True),
) -> None:
    """xdportal - talk to XDG desktop portals."""
    from xdportal.config.loader import load_config
    from xdportal.utils.logging import configure_logging

    try:
        cfg = load_config(config)
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    configure_logging(log_level or cfg.logging.level, cfg.logging.file)
    ctx.obj = cfg


register_command_groups(app=app, console=console)


if __name__ == "__main__":
    app()
