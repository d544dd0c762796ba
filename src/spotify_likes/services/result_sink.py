"""Destinations for the exported liked-songs list."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Protocol, Sequence

logger = logging.getLogger(__name__)


class ResultSink(Protocol):
    def write(self, tracks: Sequence[str]) -> None: ...


class JsonFileSink:
    """Write track names as a pretty-printed JSON array."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def write(self, tracks: Sequence[str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(
            json.dumps(list(tracks), indent=2, ensure_ascii=False) + "\n",
            encoding="utf-8",
        )
        logger.info("Wrote %d liked songs to %s", len(tracks), self.path)


__all__ = ["JsonFileSink", "ResultSink"]
