"""Registry for grouped CLI command modules."""

from __future__ import annotations

import typer
from rich.console import Console

from .launcher_command import register_launcher_commands


def register_command_groups(app: typer.Typer, console: Console) -> None:
    """Attach grouped command modules to the main app."""
    register_launcher_commands(app=app, console=console)
