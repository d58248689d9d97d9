"""Photo culling CLI: scan folders and run AI analysis over them."""

import argparse
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from rich.console import Console

    from photo_culling.models import AnalysisProgress, Photo
    from photo_culling.session import CullingSession


def main() -> None:
    """CLI entry point for photo culling."""
    parser = argparse.ArgumentParser(description="Photo culling workflow")
    parser.add_argument("--log-level", default=None, help="Logging level (default: from .env)")
    subparsers = parser.add_subparsers(dest="command")

    # scan
    scan_parser = subparsers.add_parser("scan", help="List the images a folder would upload")
    scan_parser.add_argument("directory", help="Folder to scan")

    # analyze
    an_parser = subparsers.add_parser("analyze", help="Analyze every image in a folder")
    an_parser.add_argument("directory", help="Folder to analyze")
    an_parser.add_argument(
        "--mode",
        choices=["fast", "deep", "manual"],
        default="fast",
        help="Culling mode (default: fast)",
    )
    an_parser.add_argument("--event", required=True, help="Event type, e.g. wedding or portrait")
    an_parser.add_argument("--user-id", help="User ID (or set CULLING_USER_ID in .env)")
    an_parser.add_argument("--api-url", help="Analysis service URL (or set CULLING_API_URL)")
    an_parser.add_argument("--album", help="Create an album with this name for the analysis")
    an_parser.add_argument(
        "--find-duplicates", action="store_true", help="Search for duplicates after analysis"
    )
    an_parser.add_argument(
        "--cull", action="store_true", help="Tag low-scoring photos as culled after analysis"
    )
    an_parser.add_argument(
        "--filter",
        default="all",
        help="Only list photos in this category, e.g. high-score or blurry (default: all)",
    )
    an_parser.add_argument("--save-album", help="Save approved photos as an album with this title")

    args = parser.parse_args()

    from photo_culling.config import LOG_LEVEL
    from photo_culling.logging_config import setup_logging

    setup_logging(args.log_level or LOG_LEVEL)

    if args.command is None:
        parser.print_help()
        return

    if args.command == "scan":
        _cmd_scan(args)
    elif args.command == "analyze":
        import asyncio

        asyncio.run(_cmd_analyze(args))


def _cmd_scan(args: argparse.Namespace) -> None:
    """List supported images in a folder."""
    from pathlib import Path

    from photo_culling.collection.upload import is_raw_file, scan_directory
    from photo_culling.errors import ValidationError

    try:
        paths = scan_directory(Path(args.directory))
    except ValidationError as e:
        print(f"Error: {e}")
        return

    raw = sum(1 for p in paths if is_raw_file(p.name))
    for path in paths:
        print(f"  {path}")
    print(f"Found {len(paths)} images ({raw} RAW).")


async def _cmd_analyze(args: argparse.Namespace) -> None:
    """Upload a folder, analyze it and print the scored photos."""
    from pathlib import Path

    from rich.console import Console
    from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn

    from photo_culling.service.client import CullingServiceClient
    from photo_culling.session import CullingSession

    session = CullingSession(
        client=CullingServiceClient(base_url=args.api_url),
        user_id=args.user_id,
    )
    console = Console()

    if not session.upload_directory(Path(args.directory)):
        _print_notifications(session)
        return
    if not session.configure(args.mode, args.event):
        _print_notifications(session)
        return

    print(f"Analyzing {len(session.photos)} photos ({args.mode} mode)...")
    with Progress(
        SpinnerColumn(),
        TextColumn("[bold blue]{task.description}"),
        BarColumn(),
        TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
        TextColumn("{task.completed}/{task.total}"),
        console=console,
    ) as progress:
        task = progress.add_task("Analyzing", total=len(session.photos))

        def on_progress(state: "AnalysisProgress") -> None:
            progress.update(
                task, completed=state.processed, description=state.current_photo or "Analyzing"
            )

        ok = await session.start_analysis(album_name=args.album, on_progress=on_progress)

    if not ok:
        _print_notifications(session)
        return

    if args.find_duplicates:
        await session.find_duplicates()
    if args.cull:
        await session.cull_all()

    session.orchestrator.cancel_follow_up()
    session.group_people()
    session.set_category_filter(args.filter)
    _print_photo_table(console, session.filtered_photos())
    if session.person_groups:
        print(f"People: {len(session.person_groups)} groups")

    if args.save_album:
        await session.save_album(args.save_album)
    _print_notifications(session)


def _print_photo_table(console: "Console", photos: "list[Photo]") -> None:
    from rich.table import Table

    table = Table(title=f"{len(photos)} photos")
    table.add_column("File")
    table.add_column("Score", justify="right")
    table.add_column("Stars", justify="right")
    table.add_column("Label")
    table.add_column("Tags")
    table.add_column("Caption", overflow="fold")
    for photo in sorted(photos, key=lambda p: p.ai_score, reverse=True):
        table.add_row(
            photo.filename,
            f"{photo.ai_score:.1f}",
            f"{photo.stars:.1f}",
            str(photo.color_label or ""),
            ", ".join(photo.tags),
            photo.caption or "",
        )
    console.print(table)


def _print_notifications(session: "CullingSession") -> None:
    for item in session.notifier.items:
        print(f"[{item.level}] {item.message}")
