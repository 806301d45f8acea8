"""Pinme CLI - Main commands."""
import asyncio
from pathlib import Path

import typer
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn, BarColumn, TaskProgressColumn
from rich.table import Table

app = typer.Typer(
    name="pinme",
    help="Upload files and directories to IPFS",
    add_completion=False
)
console = Console()


def run_async(coro):
    """Run async function."""
    return asyncio.run(coro)


def _load_config():
    from pinmepy import APIConfig, ConfigError

    try:
        return APIConfig.from_env()
    except ConfigError as e:
        console.print(f"[red]Invalid configuration: {e}[/red]")
        raise typer.Exit(1)


def _run_upload(path: Path, import_as_archive: bool):
    from pinmepy import PinmeClient, ProgressState
    from pinmepy.core.upload.progress import format_duration

    verb = "Importing" if import_as_archive else "Uploading"
    config = _load_config()

    async def do_upload():
        async with PinmeClient(config) as pinme:
            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                BarColumn(),
                TaskProgressColumn(),
                TextColumn("{task.fields[status]}"),
                console=console
            ) as progress:
                task = progress.add_task(f"{verb} {path.name}", total=100, status="")

                def on_progress(state: ProgressState):
                    progress.update(
                        task,
                        completed=state.percentage,
                        status=f"{format_duration(state.elapsed)} ({state.phase.value})"
                    )

                result = await pinme.upload(
                    path,
                    import_as_archive=import_as_archive,
                    progress_callback=on_progress
                )

            elapsed = format_duration(pinme.last_elapsed)
            if result is None:
                console.print(f"[red]Upload failed: {pinme.last_error} ({elapsed})[/red]")
                raise typer.Exit(1)

            console.print(f"[green]Upload completed ({elapsed})[/green]")
            console.print(f"Content hash: {result.content_hash}")
            if result.short_url:
                console.print(f"Short URL: {result.short_url}")

    run_async(do_upload())


@app.command()
def upload(
    path: Path = typer.Argument(..., help="File or directory to upload", exists=True),
):
    """Upload a file or directory."""
    _run_upload(path, import_as_archive=False)


@app.command(name="import")
def import_(
    path: Path = typer.Argument(..., help="CAR file or directory to import", exists=True),
):
    """Import a CAR archive."""
    _run_upload(path, import_as_archive=True)


@app.command(name="list")
def list_(
    limit: int = typer.Option(10, "--limit", "-l", help="Number of records to show"),
    clear: bool = typer.Option(False, "--clear", "-c", help="Clear all upload history"),
):
    """Show upload history."""
    from pinmepy import HistoryRecorder
    from pinmepy.core.limits import format_size

    history = HistoryRecorder(_load_config().config_dir)

    if clear:
        history.clear()
        console.print("[green]Upload history cleared[/green]")
        return

    records = history.list(limit)
    if not records:
        console.print("[yellow]No upload history[/yellow]")
        return

    table = Table()
    table.add_column("Date", style="dim")
    table.add_column("Name")
    table.add_column("Type", style="cyan")
    table.add_column("Size", justify="right")
    table.add_column("Content hash")

    for record in records:
        kind = f"D ({record.file_count} files)" if record.is_directory else "F"
        table.add_row(
            record.uploaded_at.strftime("%Y-%m-%d %H:%M"),
            record.name,
            kind,
            format_size(record.size),
            record.content_hash
        )

    console.print(table)


@app.command("ls", hidden=True)
def ls(
    limit: int = typer.Option(10, "--limit", "-l", help="Number of records to show"),
    clear: bool = typer.Option(False, "--clear", "-c", help="Clear all upload history"),
):
    """Alias for 'list'."""
    list_(limit=limit, clear=clear)


@app.command("set-appkey")
def set_appkey(
    app_key: str = typer.Argument(None, help='App key in the form "<address>-<jwt>"'),
):
    """Store an app key."""
    from pinmepy import IdentityError
    from pinmepy.core.identity import AuthStore

    if not app_key:
        app_key = typer.prompt("AppKey", hide_input=True)

    store = AuthStore(_load_config().config_dir)
    try:
        auth = store.set(app_key)
    except IdentityError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    console.print(f"[green]App key saved for address {auth.address}[/green]")


@app.command("show-appkey")
def show_appkey():
    """Show the stored app key (masked)."""
    from pinmepy.core.identity import AuthStore

    auth = AuthStore(_load_config().config_dir).get()
    if auth is None:
        console.print("[yellow]No app key set. Run 'pinme set-appkey' first.[/yellow]")
        raise typer.Exit(1)

    masked = auth.token[:6] + "..." + auth.token[-4:] if len(auth.token) > 12 else "***"
    console.print(f"Address: {auth.address}")
    console.print(f"Token: {masked}")


@app.command()
def logout():
    """Forget the stored app key."""
    from pinmepy.core.identity import AuthStore

    if AuthStore(_load_config().config_dir).clear():
        console.print("[green]Logged out successfully[/green]")
    else:
        console.print("[yellow]No app key set[/yellow]")


def main():
    """Entry point."""
    app()


if __name__ == "__main__":
    main()
