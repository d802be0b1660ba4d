"""Stream matcher.

Given one launch, searches a roster of known space-coverage channels for
upcoming streams and returns a deduplicated, scored list of associations.

Pipeline:
1. Identity: canonical vehicle + mission class from the launch name
2. Per channel: build a query, search upcoming videos, filter candidates
   with the mission-class predicate against title + description
3. Deduplicate by video id across channels
4. Score each survivor in [0, 1]

A per-invocation call budget caps search calls; channels past the budget
are skipped for this run. One channel failing (timeout, quota) never
aborts the others. Results are NOT persisted here - the caller owns the
Stream Cache.
"""

import logging
import re
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Protocol

from launchwindow.config import SEARCH_MAX_RESULTS, STREAM_CALL_BUDGET
from launchwindow.consumers.stream_matcher.channels import DEFAULT_CHANNELS, ChannelConfig
from launchwindow.consumers.stream_matcher.rules import (
    LaunchIdentity,
    MissionClass,
    batch_pattern,
    extract_identity,
)
from launchwindow.core import (
    Launch,
    QuotaExceededError,
    SourceError,
    StreamAssociation,
    VideoCandidate,
    presentation_order,
)
from launchwindow.utilities.time import utc_now

logger = logging.getLogger(__name__)

# =============================================================================
# SCORING
# =============================================================================
# Points are summed and divided by SCORE_DENOMINATOR, then clamped to 1.0.
# The denominator was tuned so a title with vehicle + exact batch/payload
# lands around 0.8-1.0 and a vehicle-only mention around 0.3.

SCORE_DENOMINATOR = 10.0
POINTS_VEHICLE = 3
POINTS_BATCH = 5
POINTS_PAYLOAD = 4
POINTS_REGIONAL_PAYLOAD = 5
POINTS_FLIGHT = 4
POINTS_KEYWORD = 1

GENERIC_KEYWORDS = ("launch", "live")

# Strict channels need one of these next to a bare vehicle mention
LAUNCH_KEYWORDS = ("launch", "liftoff", "lift-off", "live")


class VideoSearchSource(Protocol):
    """What the matcher needs from a video search provider."""

    @property
    def is_configured(self) -> bool: ...

    def search_upcoming(
        self, channel_id: str, query: str, max_results: int = SEARCH_MAX_RESULTS
    ) -> list[VideoCandidate]: ...


@dataclass
class MatchRun:
    """Outcome of one matcher invocation."""

    launch_id: str
    identity: LaunchIdentity
    streams: list[StreamAssociation] = field(default_factory=list)
    calls_made: int = 0
    candidates_seen: int = 0
    duplicates_dropped: int = 0
    channels_matched: list[str] = field(default_factory=list)
    channels_failed: list[str] = field(default_factory=list)
    channels_skipped: list[str] = field(default_factory=list)  # Budget exhausted
    skipped_reason: str | None = None

    @property
    def complete(self) -> bool:
        """True if every channel was searched successfully."""
        return not self.channels_failed and not self.channels_skipped and self.skipped_reason is None

    def summary(self) -> dict:
        return {
            "launch_id": self.launch_id,
            "vehicle": self.identity.vehicle,
            "mission_class": self.identity.mission_class.value,
            "streams": len(self.streams),
            "calls_made": self.calls_made,
            "candidates_seen": self.candidates_seen,
            "duplicates_dropped": self.duplicates_dropped,
            "channels_failed": list(self.channels_failed),
            "channels_skipped": list(self.channels_skipped),
            "skipped_reason": self.skipped_reason,
        }


# =============================================================================
# QUERY / FILTER / SCORE
# =============================================================================


def build_query(identity: LaunchIdentity, channel: ChannelConfig) -> str:
    """Search query for one channel."""
    if channel.search_by_payload and identity.payload:
        return identity.payload

    if identity.mission_class is MissionClass.HIGH_PROFILE:
        return identity.vehicle
    if identity.mission_class is MissionClass.FREQUENT:
        return f"{identity.vehicle} {identity.constellation.title()}"
    if identity.mission_class is MissionClass.NAMED_PAYLOAD:
        return f"{identity.vehicle} {identity.payload}"
    return identity.vehicle


def _flight_present(text: str, flight_number: str) -> bool:
    return re.search(rf"\bflight\s*{re.escape(flight_number)}\b", text) is not None


def is_candidate_match(candidate: VideoCandidate, identity: LaunchIdentity, channel: ChannelConfig) -> bool:
    """Apply the mission-class predicate to a candidate's title + description."""
    text = candidate.text
    vehicle = identity.vehicle.lower()

    if channel.search_by_payload and identity.payload:
        return identity.payload.lower() in text

    if identity.mission_class is MissionClass.HIGH_PROFILE:
        if vehicle not in text:
            return False
        if channel.strict and identity.flight_number:
            return _flight_present(text, identity.flight_number)
        return True

    if identity.mission_class is MissionClass.FREQUENT:
        # Vehicle-only matches are wrong most of the time at this cadence
        if not batch_pattern(identity.batch).search(text):
            return False
        return identity.constellation in text or vehicle in text

    if identity.mission_class is MissionClass.NAMED_PAYLOAD:
        return vehicle in text and identity.payload.lower() in text

    if vehicle not in text:
        return False
    if channel.strict:
        return any(keyword in text for keyword in LAUNCH_KEYWORDS)
    return True


def score_candidate(candidate: VideoCandidate, identity: LaunchIdentity) -> float:
    """Match confidence in [0, 1] from the candidate's title."""
    title = candidate.title.lower()
    points = 0

    if identity.vehicle.lower() in title:
        points += POINTS_VEHICLE

    if identity.mission_class is MissionClass.FREQUENT and identity.batch:
        if batch_pattern(identity.batch).search(title):
            points += POINTS_BATCH
    elif identity.payload and identity.payload.lower() in title:
        points += POINTS_REGIONAL_PAYLOAD if identity.regional else POINTS_PAYLOAD

    if identity.flight_number and _flight_present(title, identity.flight_number):
        points += POINTS_FLIGHT

    points += sum(POINTS_KEYWORD for keyword in GENERIC_KEYWORDS if keyword in title)

    return max(0.0, min(points / SCORE_DENOMINATOR, 1.0))


def deduplicate(candidates: list[VideoCandidate]) -> tuple[list[VideoCandidate], int]:
    """Keep the first occurrence of each video id.

    Returns:
        (unique candidates, number dropped)
    """
    seen: set[tuple[str, str]] = set()
    unique = []
    for candidate in candidates:
        key = (candidate.platform, candidate.video_id)
        if key in seen:
            continue
        seen.add(key)
        unique.append(candidate)
    return unique, len(candidates) - len(unique)


# =============================================================================
# MATCHER
# =============================================================================


class StreamMatcher:
    """Matches upcoming channel streams to a launch.

    Usage:
        matcher = StreamMatcher(YouTubeClient())
        run = matcher.match(launch)
        stream_cache.put(launch.id, run.streams, now)
    """

    def __init__(
        self,
        search_source: VideoSearchSource,
        channels: tuple[ChannelConfig, ...] = DEFAULT_CHANNELS,
        call_budget: int = STREAM_CALL_BUDGET,
        clock: Callable[[], datetime] = utc_now,
        request_spacing: float = 0.3,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """Initialize the matcher.

        Args:
            search_source: Video search provider
            channels: Channel roster to search, in order
            call_budget: Max search calls per match() invocation
            clock: Source of "now" for association timestamps
            request_spacing: Seconds to pause between channel searches
            sleep: Sleep function (injectable for tests)
        """
        self._source = search_source
        self._channels = channels
        self._call_budget = call_budget
        self._clock = clock
        self._request_spacing = request_spacing
        self._sleep = sleep

    @property
    def channels(self) -> tuple[ChannelConfig, ...]:
        return self._channels

    def match(self, launch: Launch) -> MatchRun:
        """Search every channel for streams of one launch.

        Never raises for upstream failures; failed channels are listed in
        MatchRun.channels_failed.
        """
        identity = extract_identity(launch.name)
        run = MatchRun(launch_id=launch.id, identity=identity)

        logger.info(
            f"[STREAMS] Matching '{launch.name}' as {identity.vehicle} "
            f"({identity.mission_class.value})"
        )

        if not self._source.is_configured:
            logger.warning("[STREAMS] Video search not configured, skipping stream match")
            run.skipped_reason = "search_not_configured"
            return run

        gathered: list[VideoCandidate] = []
        for index, channel in enumerate(self._channels):
            if run.calls_made >= self._call_budget:
                run.channels_skipped.append(channel.name)
                continue

            query = build_query(identity, channel)
            run.calls_made += 1
            try:
                candidates = self._source.search_upcoming(channel.channel_id, query)
            except QuotaExceededError as e:
                logger.warning(f"[STREAMS] {channel.name}: quota exhausted ({e})")
                run.channels_failed.append(channel.name)
                continue
            except SourceError as e:
                logger.warning(f"[STREAMS] {channel.name}: search failed ({e})")
                run.channels_failed.append(channel.name)
                continue

            run.candidates_seen += len(candidates)
            accepted = [c for c in candidates if is_candidate_match(c, identity, channel)]
            if accepted:
                logger.debug(f"[STREAMS] {channel.name}: {len(accepted)}/{len(candidates)} candidate(s) accepted")
                run.channels_matched.append(channel.name)
                gathered.extend(accepted)

            if self._request_spacing and index < len(self._channels) - 1:
                self._sleep(self._request_spacing)

        if run.channels_skipped:
            logger.info(
                f"[STREAMS] Call budget ({self._call_budget}) exhausted, "
                f"skipped {len(run.channels_skipped)} channel(s)"
            )

        unique, run.duplicates_dropped = deduplicate(gathered)
        now = self._clock()
        run.streams = presentation_order(
            [
                StreamAssociation.from_candidate(
                    candidate,
                    launch_id=launch.id,
                    score=score_candidate(candidate, identity),
                    created_at=now,
                )
                for candidate in unique
            ]
        )

        logger.info(
            f"[STREAMS] '{launch.name}': {len(run.streams)} stream(s) from "
            f"{run.calls_made} search(es), {len(run.channels_failed)} failed"
        )
        return run
