"""Command-line entry point.

Examples:
  spotify-likes search "Radiohead"     Print the first matching artist
  spotify-likes likes                  Export liked songs to tmp/liked_songs.json
  spotify-likes likes -o out.json      Export to a different file

Environment Variables:
  SPOTIFY_CLIENT_ID, SPOTIFY_CLIENT_SECRET, SPOTIFY_REDIRECT_URI
  LOG_LEVEL (default INFO), LOG_FILE (optional)
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import Optional, Sequence

from dotenv import load_dotenv
from pydantic import ValidationError
from rich.console import Console
from rich.style import Style

from .config import Settings
from .errors import SpotifyLikesError
from .services.liked_songs import get_liked_songs
from .services.result_sink import JsonFileSink
from .services.search import find_artist

ERROR_STYLE = Style(color="red", bold=True)
INFO_STYLE = Style(color="cyan")
SUCCESS_STYLE = Style(color="green")

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"

console = Console()
logger = logging.getLogger(__name__)


def _configure_logging() -> None:
    """Configure logging based on LOG_LEVEL / LOG_FILE environment variables."""
    load_dotenv()

    log_level_str = os.getenv("LOG_LEVEL", "INFO").upper()
    log_level = getattr(logging, log_level_str, logging.INFO)

    handlers: list[logging.Handler] = []

    log_file = os.getenv("LOG_FILE")
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATEFMT))
        handlers.append(file_handler)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATEFMT))
    handlers.append(console_handler)

    logging.basicConfig(level=log_level, handlers=handlers, force=True)

    logging.getLogger("spotify_likes").setLevel(log_level)

    # Quiet down noisy third-party libraries
    if log_level > logging.DEBUG:
        for noisy in ("httpx", "httpcore", "uvicorn", "uvicorn.error"):
            logging.getLogger(noisy).setLevel(logging.WARNING)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="spotify-likes",
        description="Search Spotify artists and export your liked songs",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__.split("\n", 2)[2] if __doc__ else None,
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    search = subparsers.add_parser("search", help="search for an artist")
    search.add_argument("artist_name", help="Artist to look up")

    likes = subparsers.add_parser("likes", help="get all liked songs")
    likes.add_argument(
        "--output",
        "-o",
        type=Path,
        default=None,
        help="Where to write the JSON array (default: $LIKED_SONGS_OUTPUT_PATH)",
    )
    return parser


async def _run_search(settings: Settings, artist_name: str) -> int:
    artist = await find_artist(settings, artist_name)
    if artist is None:
        console.print(
            f"No artist found for '{artist_name}'", style=INFO_STYLE, markup=False
        )
        return 0
    console.print_json(data=artist)
    return 0


async def _run_likes(settings: Settings, output: Optional[Path]) -> int:
    sink = JsonFileSink(output or settings.liked_songs_output_path)
    collection = await get_liked_songs(settings, sink=sink)
    console.print(
        f"Fetched {len(collection)} of {collection.expected_total} liked songs "
        f"-> {sink.path}",
        style=SUCCESS_STYLE,
        markup=False,
    )
    if collection.failed_offsets:
        console.print(
            f"{len(collection.failed_offsets)} page(s) could not be fetched "
            f"(offsets {collection.failed_offsets})",
            style=ERROR_STYLE,
            markup=False,
        )
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    """CLI entry point."""
    args = build_parser().parse_args(argv)
    _configure_logging()

    try:
        settings = Settings()  # pyright: ignore[reportCallIssue]
    except ValidationError as exc:
        console.print(f"Invalid configuration: {exc}", style=ERROR_STYLE, markup=False)
        return 1

    try:
        if args.command == "search":
            return asyncio.run(_run_search(settings, args.artist_name))
        return asyncio.run(_run_likes(settings, args.output))
    except SpotifyLikesError as exc:
        logger.debug("Command %s aborted", args.command, exc_info=True)
        console.print(
            f"{exc.__class__.__name__}: {exc.detail}", style=ERROR_STYLE, markup=False
        )
        if args.command == "likes":
            console.print("No liked songs were exported.", style=INFO_STYLE)
        return 1


if __name__ == "__main__":  # pragma: no cover - manual invocation
    sys.exit(main())
