"""Pydantic models for the Spotify payloads this tool reads."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterator, List, Optional

from pydantic import BaseModel, ConfigDict, Field


@dataclass(frozen=True)
class Credential:
    """Bearer token for one run. Expiry is reported but never tracked."""

    access_token: str = field(repr=False)
    token_type: str = "Bearer"
    scope: Optional[str] = None
    expires_in: Optional[int] = None

    @property
    def authorization_header(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.access_token}"}


class TokenResponse(BaseModel):
    """Body returned by the accounts service token endpoint."""

    access_token: str = Field(min_length=1)
    token_type: str = "Bearer"
    scope: Optional[str] = None
    expires_in: Optional[int] = None

    model_config = ConfigDict(extra="ignore")

    def to_credential(self) -> Credential:
        return Credential(
            access_token=self.access_token,
            token_type=self.token_type,
            scope=self.scope or None,
            expires_in=self.expires_in,
        )


class TrackRef(BaseModel):
    name: Optional[str] = None

    model_config = ConfigDict(extra="ignore")


class SavedTrackItem(BaseModel):
    # Local files and removed tracks come back with a null track.
    track: Optional[TrackRef] = None

    model_config = ConfigDict(extra="ignore")


class SavedTracksPage(BaseModel):
    """One page of `GET /me/tracks`."""

    total: int = Field(ge=0)
    items: List[SavedTrackItem] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore")

    def track_names(self) -> list[str]:
        return [
            item.track.name
            for item in self.items
            if item.track is not None and item.track.name is not None
        ]


@dataclass
class LikedSongCollection:
    """Track names gathered from every page, in ascending offset order."""

    expected_total: int
    tracks: list[str] = field(default_factory=list)
    failed_offsets: list[int] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.tracks)

    def __iter__(self) -> Iterator[str]:
        return iter(self.tracks)

    def extend(self, names: list[str]) -> None:
        self.tracks.extend(names)


ArtistRecord = dict[str, Any]


__all__ = [
    "ArtistRecord",
    "Credential",
    "LikedSongCollection",
    "SavedTrackItem",
    "SavedTracksPage",
    "TokenResponse",
    "TrackRef",
]
