"""Channel roster for stream matching.

The roster is configuration, not code: the matcher consumes whatever
roster it is given. DEFAULT_CHANNELS is the curated built-in list; a JSON
file (CHANNEL_ROSTER_PATH) can replace it without touching matching logic.

JSON format:
    [
      {"channel_id": "UC...", "name": "NASASpaceflight"},
      {"channel_id": "UC...", "name": "ISRO Official", "search_by_payload": true},
      {"channel_id": "UC...", "name": "International Rocket Launches", "strict": true}
    ]
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChannelConfig:
    """One known space-coverage channel.

    strict: vehicle-only matches are not enough; high-profile launches
        must also carry their flight number when one is known, and
        unclassified launches need a launch keyword alongside the vehicle.
    search_by_payload: the channel titles streams by payload rather than
        vehicle (agency channels), so queries use the payload and a
        payload match alone is accepted.
    """

    channel_id: str
    name: str
    strict: bool = False
    search_by_payload: bool = False


DEFAULT_CHANNELS: tuple[ChannelConfig, ...] = (
    ChannelConfig("UC6uKrU_WqJ1R2HMTY3LIx5Q", "Everyday Astronaut"),
    ChannelConfig("UCSUu1lih2RifWkKtDOJdsBA", "NASASpaceflight"),
    ChannelConfig("UCGCndz0n0NHmLHfd64FRjIA", "The Launch Pad"),
    ChannelConfig("UCoLdERT4-TJ82PJOHSrsZLQ", "Spaceflight Now"),
    ChannelConfig("UCVTomc35agH1SM6kCKzwW_g", "VideoFromSpace"),
    ChannelConfig("UC2_vpnza621Sa0cf_xhqJ8Q", "Raw Space"),
    ChannelConfig("UC9T3XwCjQdzpSp7IzGkbtJA", "International Rocket Launches", strict=True),
    ChannelConfig("UCLA_DiR1FfKNvjuUpBHmylQ", "NASA"),
    ChannelConfig("UCw5hEVOTfz_AfzsNFWyNlNg", "ISRO Official", search_by_payload=True),
    ChannelConfig("UCPkKkvT2DNoQt9LwjAE5LGQ", "Launch Heaven"),
)


def load_channel_roster(path: str | Path | None) -> tuple[ChannelConfig, ...]:
    """Load a roster from JSON, or the default roster if path is unset.

    Raises:
        ValueError: File exists but isn't a valid roster
    """
    if not path:
        return DEFAULT_CHANNELS

    roster_path = Path(path)
    if not roster_path.exists():
        logger.warning(f"Channel roster {roster_path} not found, using built-in roster")
        return DEFAULT_CHANNELS

    try:
        entries = json.loads(roster_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ValueError(f"Channel roster {roster_path} is not valid JSON: {e}") from e

    if not isinstance(entries, list):
        raise ValueError(f"Channel roster {roster_path} must be a JSON list")

    channels = []
    seen: set[str] = set()
    for entry in entries:
        if not isinstance(entry, dict) or not entry.get("channel_id") or not entry.get("name"):
            raise ValueError(f"Invalid channel roster entry: {entry!r}")
        if entry["channel_id"] in seen:
            continue
        seen.add(entry["channel_id"])
        channels.append(
            ChannelConfig(
                channel_id=entry["channel_id"],
                name=entry["name"],
                strict=bool(entry.get("strict", False)),
                search_by_payload=bool(entry.get("search_by_payload", False)),
            )
        )

    logger.info(f"Loaded {len(channels)} channel(s) from {roster_path}")
    return tuple(channels)
