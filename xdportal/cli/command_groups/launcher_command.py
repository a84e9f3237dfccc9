"""Dynamic launcher command group."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Awaitable, Callable

import typer
from rich.console import Console
from rich.table import Table

from xdportal.config.schema import PortalConfig
from xdportal.portal.client import PortalClient
from xdportal.portal.dynamic_launcher import DynamicLauncherProxy, LauncherType, PrepareInstallOptions
from xdportal.portal.icon import Icon, IconKind
from xdportal.utils.exceptions import PortalError, RequestDeclined


async def open_client(config: PortalConfig) -> PortalClient:
    return await PortalClient.connect(config)


def _run(
    console: Console,
    config: PortalConfig | None,
    action: Callable[[DynamicLauncherProxy], Awaitable[Any]],
) -> Any:
    async def runner() -> Any:
        client = await open_client(config or PortalConfig())
        async with client:
            return await action(client.dynamic_launcher())

    try:
        return asyncio.run(runner())
    except RequestDeclined as e:
        console.print(f"[yellow]{'Cancelled by user' if e.user_cancelled else e.message}[/yellow]")
        raise typer.Exit(2)
    except PortalError as e:
        console.print(f"[red]Error: {e.message}[/red]")
        raise typer.Exit(1)


def register_launcher_commands(app: typer.Typer, console: Console) -> None:
    """Register launcher command group."""
    launcher_app = typer.Typer(help="Dynamic launchers: install, launch and remove app/web-app shortcuts")
    app.add_typer(launcher_app, name="launcher")

    @launcher_app.command("supported-types")
    def supported_types(ctx: typer.Context) -> None:
        """List the launcher types the portal accepts."""
        supported = _run(console, ctx.obj, lambda launcher: launcher.supported_launcher_types())
        table = Table(title="Launcher types")
        table.add_column("Type", style="cyan")
        table.add_column("Supported")
        for member in LauncherType:
            table.add_row(member.name.lower(), "[green]✓[/green]" if member in supported else "[dim]✗[/dim]")
        console.print(table)

    @launcher_app.command("prepare-install")
    def prepare_install(
        ctx: typer.Context,
        name: str = typer.Argument(..., help="Launcher name shown in the dialog"),
        icon_name: list[str] | None = typer.Option(None, "--icon-name", help="Themed icon name (repeatable)"),
        icon_file: Path | None = typer.Option(None, "--icon-file", help="Icon image file"),
        web: str | None = typer.Option(None, "--web", help="Install a web application for this URL"),
        modal: bool | None = typer.Option(None, "--modal/--no-modal", help="Make the dialog modal"),
        parent_window: str = typer.Option("", "--parent-window", help="Parent window identifier"),
    ) -> None:
        """Ask the user to confirm a new launcher; prints the install token."""
        if icon_file is not None:
            if not icon_file.exists():
                raise typer.BadParameter(f"icon file not found: {icon_file}")
            icon = Icon.from_bytes(icon_file.read_bytes())
        elif icon_name:
            icon = Icon.with_names(*icon_name)
        else:
            raise typer.BadParameter("pass --icon-name or --icon-file")
        options = PrepareInstallOptions(
            modal=modal,
            launcher_type=LauncherType.WEB_APPLICATION if web else None,
            target=web,
        )

        async def action(launcher: DynamicLauncherProxy):
            request = await launcher.prepare_install(parent_window, name, icon, options)
            return await request.response()

        prepared = _run(console, ctx.obj, action)
        console.print(f"Name: [cyan]{prepared.name}[/cyan]")
        console.print(f"Token: {prepared.token}")

    @launcher_app.command("install")
    def install(
        ctx: typer.Context,
        token: str = typer.Argument(..., help="Token from prepare-install"),
        desktop_file_id: str = typer.Argument(..., help="e.g. org.example.App.desktop"),
        entry_file: Path = typer.Argument(..., help="Desktop entry file to install"),
    ) -> None:
        """Install a launcher using a token."""
        if not entry_file.exists():
            raise typer.BadParameter(f"desktop entry not found: {entry_file}")
        desktop_entry = entry_file.read_text(encoding="utf-8")
        _run(console, ctx.obj, lambda launcher: launcher.install(token, desktop_file_id, desktop_entry))
        console.print(f"[green]✓[/green] Installed {desktop_file_id}")

    @launcher_app.command("uninstall")
    def uninstall(
        ctx: typer.Context,
        desktop_file_id: str = typer.Argument(..., help="Launcher to remove"),
    ) -> None:
        """Remove a launcher installed by this application."""
        _run(console, ctx.obj, lambda launcher: launcher.uninstall(desktop_file_id))
        console.print(f"[green]✓[/green] Uninstalled {desktop_file_id}")

    @launcher_app.command("launch")
    def launch(
        ctx: typer.Context,
        desktop_file_id: str = typer.Argument(..., help="Launcher to start"),
    ) -> None:
        """Launch an installed launcher."""
        _run(console, ctx.obj, lambda launcher: launcher.launch(desktop_file_id))
        console.print(f"[green]✓[/green] Launched {desktop_file_id}")

    @launcher_app.command("desktop-entry")
    def desktop_entry(
        ctx: typer.Context,
        desktop_file_id: str = typer.Argument(..., help="Installed launcher"),
    ) -> None:
        """Print the desktop entry of an installed launcher."""
        contents = _run(console, ctx.obj, lambda launcher: launcher.desktop_entry(desktop_file_id))
        console.print(contents, markup=False, highlight=False)

    @launcher_app.command("icon")
    def icon(
        ctx: typer.Context,
        desktop_file_id: str = typer.Argument(..., help="Installed launcher"),
        output: Path | None = typer.Option(None, "--output", "-o", help="Write icon bytes to this file"),
    ) -> None:
        """Show (and optionally save) the icon of an installed launcher."""
        launcher_icon = _run(console, ctx.obj, lambda launcher: launcher.icon(desktop_file_id))
        console.print(f"Format: {launcher_icon.icon_type.value}  Size: {launcher_icon.size}px")
        value = launcher_icon.icon
        if value.kind is IconKind.THEMED:
            console.print(f"Names: {', '.join(value.names)}")
        elif value.kind is IconKind.FILE:
            console.print(f"File: {value.uri}")
        if output is None:
            return
        if value.kind is not IconKind.BYTES:
            raise typer.BadParameter("icon is not inline image data; nothing to write")
        output.write_bytes(value.as_bytes or b"")
        console.print(f"[green]✓[/green] Wrote {output}")
