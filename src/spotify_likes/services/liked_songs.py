"""Bulk retrieval of the user's saved tracks.

The library is fetched in three steps:

1. a probe for one item learns the total number of saved tracks;
2. offsets ``0, L, 2L, ...`` are generated for page size ``L``;
3. offsets are fetched in sequential batches of ``concurrency`` requests.
   Each batch is gathered completely and merged in offset order before the
   next one starts, so the output order never depends on network timing.

Every request retries on HTTP 429 after the ``retry-after`` delay. Any other
failure of a page is logged and the page contributes nothing; the run goes
on. The total reported by the probe is not reconciled if the library
changes mid-run.
"""

from __future__ import annotations

import asyncio
import logging
import math
import webbrowser
from typing import Awaitable, Callable, Iterator, Optional, Sequence

import httpx
from pydantic import ValidationError

from spotify_likes.config import Settings
from spotify_likes.errors import FetchError, PageFetchError, ThrottleError
from spotify_likes.schemas.spotify import (
    Credential,
    LikedSongCollection,
    SavedTracksPage,
)
from spotify_likes.services.result_sink import JsonFileSink, ResultSink
from spotify_likes.services.spotify_auth.callback import AuthorizationFlow
from spotify_likes.utils.http import (
    extract_error_detail,
    http_client_scope,
    parse_retry_after,
)

logger = logging.getLogger(__name__)

PAGE_SIZE = 50
CONCURRENCY = 5

SleepFunc = Callable[[float], Awaitable[object]]


def page_offsets(total: int, page_size: int) -> list[int]:
    """Offsets of the ``ceil(total / page_size)`` pages covering ``total`` items."""

    pages = math.ceil(total / page_size) if total > 0 else 0
    return [index * page_size for index in range(pages)]


def _batched(items: Sequence[int], size: int) -> Iterator[Sequence[int]]:
    for start in range(0, len(items), size):
        yield items[start : start + size]


class LikedSongsFetcher:
    """Fetch every saved track name with bounded, batched concurrency."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        api_url: str,
        page_size: int = PAGE_SIZE,
        concurrency: int = CONCURRENCY,
        default_retry_after: float = 1.0,
        max_throttle_retries: Optional[int] = None,
        sleep: SleepFunc = asyncio.sleep,
    ):
        if page_size < 1:
            raise ValueError("page_size must be at least 1")
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self._client = client
        self._api_url = api_url.rstrip("/")
        self._page_size = page_size
        self._concurrency = concurrency
        self._default_retry_after = default_retry_after
        self._max_throttle_retries = max_throttle_retries
        self._sleep = sleep

    @classmethod
    def from_settings(
        cls, settings: Settings, client: httpx.AsyncClient, **overrides
    ) -> "LikedSongsFetcher":
        options = {
            "api_url": settings.api_base_url,
            "page_size": settings.liked_songs_page_size,
            "concurrency": settings.liked_songs_concurrency,
            "default_retry_after": settings.default_retry_after,
            "max_throttle_retries": settings.max_throttle_retries,
        }
        options.update(overrides)
        return cls(client, **options)

    @property
    def tracks_url(self) -> str:
        return f"{self._api_url}/me/tracks"

    async def fetch_all(self, credential: Credential) -> LikedSongCollection:
        """Fetch the whole library.

        Raises:
            FetchError: If the probe for the total fails.
        """

        total = await self.probe_total(credential)
        logger.info("Total liked songs: %d", total)

        offsets = page_offsets(total, self._page_size)
        logger.info("Fetching data in %d pages...", len(offsets))

        collection = LikedSongCollection(expected_total=total)
        for batch in _batched(offsets, self._concurrency):
            # gather() returns results in argument order, not completion order.
            results = await asyncio.gather(
                *(self._fetch_page(credential, offset) for offset in batch)
            )
            for offset, names in zip(batch, results):
                if names is None:
                    collection.failed_offsets.append(offset)
                else:
                    collection.extend(names)

        logger.info("Total songs fetched: %d", len(collection))
        if collection.failed_offsets:
            logger.warning(
                "%d page(s) failed and were skipped: offsets %s",
                len(collection.failed_offsets),
                collection.failed_offsets,
            )
        return collection

    async def probe_total(self, credential: Credential) -> int:
        try:
            page = await self._request_page(credential, offset=0, limit=1)
        except PageFetchError as exc:
            raise FetchError(
                f"Could not determine the number of liked songs: {exc.detail}",
                exc.status_code,
            ) from exc
        return page.total

    async def _fetch_page(
        self, credential: Credential, offset: int
    ) -> Optional[list[str]]:
        """Return the page's track names, or ``None`` if the page failed."""

        try:
            page = await self._request_page(
                credential, offset=offset, limit=self._page_size
            )
        except PageFetchError as exc:
            logger.error("Error fetching songs for offset %d: %s", offset, exc.detail)
            return None

        names = page.track_names()
        logger.info("Fetched %d songs for offset %d", len(names), offset)
        return names

    async def _request_page(
        self, credential: Credential, *, offset: int, limit: int
    ) -> SavedTracksPage:
        """GET one page, retrying the same offset for as long as it is throttled."""

        retries = 0
        while True:
            try:
                return await self._get_page(credential, offset=offset, limit=limit)
            except ThrottleError as exc:
                if (
                    self._max_throttle_retries is not None
                    and retries >= self._max_throttle_retries
                ):
                    raise PageFetchError(
                        offset,
                        f"Still rate limited after {retries} retries",
                        429,
                    ) from exc
                retries += 1
                logger.warning(
                    "Rate limited. Retrying offset %d after %g seconds.",
                    offset,
                    exc.retry_after,
                )
                await self._sleep(exc.retry_after)

    async def _get_page(
        self, credential: Credential, *, offset: int, limit: int
    ) -> SavedTracksPage:
        try:
            response = await self._client.get(
                self.tracks_url,
                headers=credential.authorization_header,
                params={"limit": limit, "offset": offset},
            )
        except (httpx.HTTPError, httpx.StreamError) as exc:
            raise PageFetchError(offset, str(exc) or exc.__class__.__name__) from exc

        if response.status_code == 429:
            raise ThrottleError(
                parse_retry_after(
                    response.headers.get("retry-after"), self._default_retry_after
                )
            )
        if response.status_code >= 400:
            raise PageFetchError(
                offset, extract_error_detail(response.content), response.status_code
            )

        try:
            return SavedTracksPage.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise PageFetchError(
                offset, f"Malformed page response: {exc}", response.status_code
            ) from exc


async def get_liked_songs(
    settings: Settings,
    *,
    client: Optional[httpx.AsyncClient] = None,
    sink: Optional[ResultSink] = None,
    open_browser: Callable[[str], object] = webbrowser.open,
) -> LikedSongCollection:
    """Authorize the user, fetch the whole library and hand it to ``sink``.

    Configuration, authorization and probe failures propagate to the caller.
    """

    settings.require_user_auth()
    if sink is None:
        sink = JsonFileSink(settings.liked_songs_output_path)

    async with http_client_scope(settings, client) as http:
        flow = AuthorizationFlow(settings, http, open_browser=open_browser)
        credential = await flow.run()
        fetcher = LikedSongsFetcher.from_settings(settings, http)
        collection = await fetcher.fetch_all(credential)

    sink.write(collection.tracks)
    return collection


__all__ = [
    "CONCURRENCY",
    "PAGE_SIZE",
    "LikedSongsFetcher",
    "get_liked_songs",
    "page_offsets",
]
