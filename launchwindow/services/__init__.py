"""Cache and coordination services shared by the consumers."""

from launchwindow.services.rate_limiter import RateLimiter, RateLimitStats
from launchwindow.services.single_flight import SingleFlight
from launchwindow.services.staleness import (
    beyond_stream_horizon,
    directory_needs_refresh,
    marker_age,
    needs_refresh,
    streams_need_refresh,
)
from launchwindow.services.stream_cache import StreamCache

__all__ = [
    "RateLimitStats",
    "RateLimiter",
    "SingleFlight",
    "StreamCache",
    "beyond_stream_horizon",
    "directory_needs_refresh",
    "marker_age",
    "needs_refresh",
    "streams_need_refresh",
]
