"""YouTube Data API v3 search client.

Per channel query: search.list restricted to a channel, type=video,
eventType=upcoming (100 quota units, which is why the Stream Matcher
enforces a per-invocation call budget), then one videos.list call for
the hits (1 unit) to read liveStreamingDetails. search.list carries no
start time or live state of its own.

A 403 whose reason is quotaExceeded/dailyLimitExceeded is surfaced as
QuotaExceededError so callers can stop issuing searches for the run.
"""

import logging
import time
from collections.abc import Callable
from dataclasses import replace

import httpx

from launchwindow.config import SEARCH_MAX_RESULTS, SEARCH_TIMEOUT, USER_AGENT, Config
from launchwindow.core import MalformedRecordError, QuotaExceededError, SourceError, VideoCandidate
from launchwindow.providers.http import request_json
from launchwindow.utilities.time import parse_iso

logger = logging.getLogger(__name__)

SOURCE = "youtube"

QUOTA_REASONS = {"quotaExceeded", "dailyLimitExceeded", "rateLimitExceeded"}


def _classify_quota(response: httpx.Response, source: str) -> None:
    """Turn a quota 403 into QuotaExceededError."""
    if response.status_code != 403:
        return
    try:
        errors = response.json().get("error", {}).get("errors", [])
    except (ValueError, AttributeError):
        return
    if any(isinstance(e, dict) and e.get("reason") in QUOTA_REASONS for e in errors):
        raise QuotaExceededError(f"{source} quota exhausted", source=source)


def parse_search_item(item: dict) -> VideoCandidate:
    """Convert one search.list item to a VideoCandidate.

    Raises:
        MalformedRecordError: Item has no video id or snippet
    """
    video_id = (item.get("id") or {}).get("videoId")
    snippet = item.get("snippet")
    if not video_id or not isinstance(snippet, dict):
        raise MalformedRecordError("Search item missing videoId or snippet", source=SOURCE)

    thumbnails = snippet.get("thumbnails") or {}
    thumbnail = (thumbnails.get("high") or thumbnails.get("default") or {}).get("url")

    return VideoCandidate(
        video_id=video_id,
        title=snippet.get("title") or "",
        description=snippet.get("description") or "",
        channel_id=snippet.get("channelId") or "",
        channel_name=snippet.get("channelTitle") or "",
        thumbnail_url=thumbnail,
    )


def apply_live_details(candidate: VideoCandidate, item: dict) -> VideoCandidate:
    """Fill start time and live state from a videos.list item.

    scheduledStartTime wins over actualStartTime so ordering follows the
    announced slot even once the stream is up.
    """
    details = item.get("liveStreamingDetails") or {}
    snippet = item.get("snippet") or {}

    try:
        scheduled = parse_iso(details.get("scheduledStartTime") or details.get("actualStartTime"))
    except ValueError:
        scheduled = None

    is_live = snippet.get("liveBroadcastContent") == "live" or (
        bool(details.get("actualStartTime")) and not details.get("actualEndTime")
    )
    return replace(
        candidate,
        scheduled_start=scheduled or candidate.scheduled_start,
        is_live=is_live,
    )


class YouTubeClient:
    """Search client for upcoming live streams on known channels."""

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        retry_count: int = 2,
        transport: httpx.BaseTransport | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._explicit_key = api_key
        self._base_url = (base_url or Config.YOUTUBE_API_BASE).rstrip("/")
        self._retry_count = retry_count
        self._transport = transport
        self._sleep = sleep
        self._client: httpx.Client | None = None

    @property
    def _api_key(self) -> str | None:
        return self._explicit_key or Config.YOUTUBE_API_KEY

    @property
    def is_configured(self) -> bool:
        """True if an API key is available."""
        return bool(self._api_key)

    def _get_client(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(
                timeout=SEARCH_TIMEOUT,
                headers={"User-Agent": USER_AGENT},
                transport=self._transport,
            )
        return self._client

    def search_upcoming(
        self,
        channel_id: str,
        query: str,
        max_results: int = SEARCH_MAX_RESULTS,
    ) -> list[VideoCandidate]:
        """Search one channel for upcoming scheduled videos.

        Unparseable items are dropped.

        Raises:
            QuotaExceededError: Daily quota used up
            SourceError: Any other failure after retries
        """
        data = request_json(
            self._get_client(),
            f"{self._base_url}/search",
            source=SOURCE,
            params={
                "key": self._api_key,
                "part": "snippet",
                "channelId": channel_id,
                "type": "video",
                "eventType": "upcoming",
                "maxResults": max_results,
                "q": query,
            },
            timeout=SEARCH_TIMEOUT,
            retry_count=self._retry_count,
            sleep=self._sleep,
            classify=_classify_quota,
        )

        candidates = []
        for item in data.get("items") or []:
            try:
                candidates.append(parse_search_item(item))
            except MalformedRecordError as e:
                logger.debug(f"Dropping search item: {e}")

        if not candidates:
            return candidates
        return self._with_live_details(candidates)

    def _with_live_details(self, candidates: list[VideoCandidate]) -> list[VideoCandidate]:
        """Attach start time and live state via videos.list.

        A failed lookup keeps the search results without start times.
        """
        try:
            data = request_json(
                self._get_client(),
                f"{self._base_url}/videos",
                source=SOURCE,
                params={
                    "key": self._api_key,
                    "part": "liveStreamingDetails,snippet",
                    "id": ",".join(c.video_id for c in candidates),
                },
                timeout=SEARCH_TIMEOUT,
                retry_count=self._retry_count,
                sleep=self._sleep,
                classify=_classify_quota,
            )
        except SourceError as e:
            logger.warning(f"Live details lookup failed, keeping search results: {e}")
            return candidates

        items = {
            item.get("id"): item
            for item in data.get("items") or []
            if isinstance(item, dict) and isinstance(item.get("id"), str)
        }
        return [
            apply_live_details(candidate, items[candidate.video_id]) if candidate.video_id in items else candidate
            for candidate in candidates
        ]

    def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            self._client.close()
            self._client = None
