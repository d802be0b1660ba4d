"""Stream matching: launch identity, channel roster, search and scoring."""

from launchwindow.consumers.stream_matcher.channels import (
    DEFAULT_CHANNELS,
    ChannelConfig,
    load_channel_roster,
)
from launchwindow.consumers.stream_matcher.matcher import (
    MatchRun,
    StreamMatcher,
    VideoSearchSource,
    build_query,
    deduplicate,
    is_candidate_match,
    score_candidate,
)
from launchwindow.consumers.stream_matcher.rules import (
    FREQUENT_MISSION_RULES,
    VEHICLE_RULES,
    LaunchIdentity,
    MissionClass,
    VehicleRule,
    batch_pattern,
    extract_identity,
)

__all__ = [
    "DEFAULT_CHANNELS",
    "FREQUENT_MISSION_RULES",
    "VEHICLE_RULES",
    "ChannelConfig",
    "LaunchIdentity",
    "MatchRun",
    "MissionClass",
    "StreamMatcher",
    "VehicleRule",
    "VideoSearchSource",
    "batch_pattern",
    "build_query",
    "deduplicate",
    "extract_identity",
    "is_candidate_match",
    "load_channel_roster",
    "score_candidate",
]
