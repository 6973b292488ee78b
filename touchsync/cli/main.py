"""Main CLI entry point for touchsync."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import List, Optional

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

app = typer.Typer(
    name="touchsync",
    help="Multi-video touch annotation - inspect, review and restore labeled sessions",
    add_completion=False,
)
console = Console()


@app.callback()
def main():
    """Load settings from a .env file before any command runs."""
    load_dotenv()


@app.command()
def inspect(
    videos: List[Path] = typer.Argument(
        ...,
        help="Video files to probe",
        exists=True,
        dir_okay=False,
    ),
):
    """
    Show duration and nominal frame rate of video files.
    """
    from touchsync.media.probe import is_video_file, probe_video

    table = Table(title="Videos")
    table.add_column("Name", style="cyan")
    table.add_column("Duration", justify="right")
    table.add_column("FPS", justify="right")
    table.add_column("Frames", justify="right")
    table.add_column("Size", justify="right")

    for path in videos:
        if not is_video_file(path):
            console.print(f"[yellow]Skipping non-video file: {path}[/yellow]")
            continue
        try:
            info = probe_video(path)
        except ValueError as e:
            console.print(f"[red]Error: {e}[/red]")
            continue
        table.add_row(
            info.name,
            f"{info.duration:.3f} s",
            f"{info.frame_rate:.2f}",
            str(info.frame_count),
            f"{info.width}x{info.height}",
        )

    console.print(table)


@app.command()
def show(
    session_file: Path = typer.Argument(
        ...,
        help="Exported touches file (.csv)",
        exists=True,
        dir_okay=False,
    ),
):
    """
    Display the touches and sync data stored in an exported file.
    """
    from touchsync.errors import TouchSyncError
    from touchsync.interchange.reader import SessionReader

    try:
        parsed = SessionReader().parse(session_file.read_text(encoding="utf-8"))
    except TouchSyncError as e:
        console.print(f"[red]Error: {e.message}[/red]")
        raise typer.Exit(1)

    if parsed.metadata:
        meta = Table(title="Sync metadata")
        meta.add_column("Track", style="cyan")
        meta.add_column("Offset", justify="right")
        meta.add_column("FPS", justify="right")
        for entry in parsed.metadata.tracks:
            meta.add_row(entry.track_name, f"{entry.sync_offset:.3f} s", f"{entry.frame_rate:g}")
        console.print(meta)
    else:
        console.print("[yellow]No sync metadata (legacy file); offsets must be re-derived[/yellow]")

    _display_touches(parsed.annotations)


@app.command()
def restore(
    session_file: Path = typer.Argument(
        ...,
        help="Exported touches file (.csv)",
        exists=True,
        dir_okay=False,
    ),
    videos: List[Path] = typer.Argument(
        ...,
        help="The session's video files, in their original order",
        exists=True,
        dir_okay=False,
    ),
    output: Optional[Path] = typer.Option(
        None,
        "--output", "-o",
        help="Re-export the restored session (adds sync metadata to legacy files)",
    ),
):
    """
    Restore a session against video files and report the recovered sync.

    Example:
        touchsync restore touches.csv left.mp4 right.mp4 -o restored.csv
    """
    asyncio.run(_restore_session(session_file, videos, output))


async def _restore_session(
    session_file: Path,
    videos: list[Path],
    output: Optional[Path],
):
    """Run the async restore workflow."""
    from touchsync.config import SessionConfig
    from touchsync.media.detection import OpenCVFrameRateDetector
    from touchsync.media.probe import open_video
    from touchsync.session import Session

    session = Session(config=SessionConfig.from_env(), detector=OpenCVFrameRateDetector())

    streams = []
    for path in videos:
        try:
            streams.append((path.name, open_video(path)))
        except ValueError as e:
            console.print(f"[red]Error: {e}[/red]")
            raise typer.Exit(1)

    registered = await session.register_tracks(streams)
    if not registered:
        console.print(f"[red]Error: {registered.message}[/red]")
        raise typer.Exit(1)
    for warning in registered.warnings:
        console.print(f"[yellow]{warning}[/yellow]")

    result = await session.import_session(session_file.read_text(encoding="utf-8"))
    if not result:
        console.print(Panel(
            f"[bold]{result.kind.value}[/bold]\n{result.message}",
            title="Import failed",
            border_style="red",
        ))
        raise typer.Exit(1)

    summary = result.value
    _display_restore(session, summary)
    for warning in result.warnings:
        console.print(f"[yellow]Warning: {warning}[/yellow]")

    if output:
        exported = session.export_session()
        output.write_text(exported.value, encoding="utf-8", newline="")
        console.print(f"\n[green]Session saved to {output}[/green]")


def _display_restore(session, summary):
    """Show recovered offsets and the shared range."""
    source = "sync metadata" if summary.used_metadata else "frame columns (median estimate)"
    console.print(Panel.fit(
        f"[bold blue]Session restored[/bold blue] from {source}\n"
        f"Touches: {summary.annotation_count}\n"
        f"Timeline: {summary.sync_range.master_min:.3f} s .. "
        f"{summary.sync_range.master_max:.3f} s",
        border_style="blue",
    ))

    table = Table(title="Tracks")
    table.add_column("#", justify="right")
    table.add_column("Track", style="cyan")
    table.add_column("Offset", justify="right")
    table.add_column("FPS", justify="right")
    table.add_column("Duration", justify="right")
    for i, track in enumerate(session.tracks, 1):
        table.add_row(
            str(i),
            track.display_name,
            f"{track.offset:.3f} s",
            f"{track.frame_rate:g}",
            f"{track.duration:.3f} s",
        )
    console.print(table)

    _display_touches(session.annotations)


def _display_touches(annotations):
    """Display touches as a table."""
    if not annotations:
        console.print("[dim]No touches logged[/dim]")
        return

    table = Table(title=f"Touches ({len(annotations)})")
    table.add_column("Frame", justify="right", style="cyan")
    table.add_column("Time", justify="right")
    table.add_column("Surface")

    for annotation in annotations:
        surface = annotation.label
        if annotation.surface is None:
            surface = "[dim]unassigned[/dim]"
        table.add_row(str(annotation.frame), f"{annotation.time:.3f}s", surface)

    console.print(table)


@app.command()
def version():
    """Show version information."""
    from touchsync import __version__

    console.print(f"touchsync v{__version__}")


if __name__ == "__main__":
    app()
