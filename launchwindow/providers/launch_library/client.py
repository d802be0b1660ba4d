"""Launch Library 2 API client.

Read-only access to the launch manifest:
- /launch/upcoming/  full upcoming directory (one page, detailed mode)
- /launch/{id}/      single authoritative record (used by scrub checks)

Timeouts differ by call class: the directory page is large and slow,
single-record lookups sit on a user-facing read path and must be quick.

Quota on the free tier is shared per IP; callers bound single-launch
lookups with the keyed RateLimiter in services.rate_limiter.
"""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field

import httpx

from launchwindow.config import (
    MANIFEST_TIMEOUT,
    RETRY_COUNT,
    SINGLE_LAUNCH_TIMEOUT,
    USER_AGENT,
    Config,
)
from launchwindow.core import Launch, MalformedRecordError
from launchwindow.providers.http import request_json
from launchwindow.providers.launch_library.normalizer import SOURCE, normalize_launch

logger = logging.getLogger(__name__)


@dataclass
class ManifestBatch:
    """Normalized result of one directory fetch."""

    launches: list[Launch] = field(default_factory=list)
    rejected: list[str] = field(default_factory=list)  # Reasons for skipped records
    total: int = 0  # Provider-reported count across all pages


class LaunchLibraryClient:
    """Launch Library 2 client with retry and typed errors.

    Usage:
        client = LaunchLibraryClient()
        batch = client.fetch_upcoming()
        launch = client.fetch_launch(batch.launches[0].id)
    """

    def __init__(
        self,
        base_url: str | None = None,
        page_size: int | None = None,
        retry_count: int = RETRY_COUNT,
        transport: httpx.BaseTransport | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._base_url = (base_url or Config.LAUNCH_LIBRARY_BASE_URL).rstrip("/")
        self._page_size = page_size or Config.LAUNCH_LIBRARY_PAGE_SIZE
        self._retry_count = retry_count
        self._transport = transport
        self._sleep = sleep
        self._client: httpx.Client | None = None

    def _get_client(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(
                timeout=MANIFEST_TIMEOUT,
                headers={"User-Agent": USER_AGENT},
                transport=self._transport,
                limits=httpx.Limits(max_connections=10, max_keepalive_connections=5),
            )
        return self._client

    def fetch_upcoming(self) -> ManifestBatch:
        """Fetch and normalize the upcoming launch directory.

        Malformed records are skipped and reported in ManifestBatch.rejected.

        Raises:
            SourceError: Fetch failed after retries, or a 4xx response
        """
        data = request_json(
            self._get_client(),
            f"{self._base_url}/launch/upcoming/",
            source=SOURCE,
            params={"limit": self._page_size, "mode": "detailed"},
            timeout=MANIFEST_TIMEOUT,
            retry_count=self._retry_count,
            sleep=self._sleep,
        )

        results = data.get("results") or []
        batch = ManifestBatch(total=data.get("count") or len(results))
        for record in results:
            try:
                batch.launches.append(normalize_launch(record))
            except MalformedRecordError as e:
                logger.warning(f"[SYNC] Skipping malformed launch record: {e}")
                batch.rejected.append(str(e))

        logger.debug(
            f"Fetched {len(batch.launches)} launches ({len(batch.rejected)} rejected, "
            f"{batch.total} upcoming total)"
        )
        return batch

    def fetch_launch(self, launch_id: str) -> Launch:
        """Fetch one authoritative launch record.

        Raises:
            NotFoundError: Provider doesn't know this id
            MalformedRecordError: Record couldn't be normalized
            SourceError: Any other failure after retries
        """
        data = request_json(
            self._get_client(),
            f"{self._base_url}/launch/{launch_id}/",
            source=SOURCE,
            timeout=SINGLE_LAUNCH_TIMEOUT,
            retry_count=self._retry_count,
            sleep=self._sleep,
        )
        return normalize_launch(data)

    def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            self._client.close()
            self._client = None
