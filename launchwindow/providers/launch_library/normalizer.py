"""Launch Library 2 record normalization.

Maps raw manifest records into core Launch objects. Nested fields the
provider omits default to the UNKNOWN sentinel. Provider status strings
are mapped into the internal LaunchStatus vocabulary.
"""

import logging

from launchwindow.core import (
    UNKNOWN,
    Launch,
    LaunchStatus,
    MalformedRecordError,
    Mission,
    Pad,
    Vehicle,
)
from launchwindow.utilities.time import parse_iso

logger = logging.getLogger(__name__)

SOURCE = "launch_library"

# Both the short abbreviation and the long display name are accepted.
STATUS_MAP: dict[str, LaunchStatus] = {
    # Confirmed
    "go": LaunchStatus.GO,
    "go for launch": LaunchStatus.GO,
    "in flight": LaunchStatus.GO,
    "launch in flight": LaunchStatus.GO,
    # Uncertain
    "tbd": LaunchStatus.TBD,
    "to be determined": LaunchStatus.TBD,
    "tbc": LaunchStatus.TBC,
    "to be confirmed": LaunchStatus.TBC,
    # Outcomes
    "success": LaunchStatus.SUCCESS,
    "launch successful": LaunchStatus.SUCCESS,
    "failure": LaunchStatus.FAILURE,
    "launch failure": LaunchStatus.FAILURE,
    "partial failure": LaunchStatus.PARTIAL_FAILURE,
    "launch was a partial failure": LaunchStatus.PARTIAL_FAILURE,
    # Holding
    "hold": LaunchStatus.PENDING,
    "on hold": LaunchStatus.PENDING,
}


def map_status(raw_status: dict | str | None) -> LaunchStatus:
    """Map a provider status (object or string) to LaunchStatus.

    Unrecognized or missing statuses become PENDING.
    """
    if isinstance(raw_status, dict):
        candidates = [raw_status.get("abbrev"), raw_status.get("name")]
    else:
        candidates = [raw_status]

    for candidate in candidates:
        if isinstance(candidate, str):
            status = STATUS_MAP.get(candidate.strip().lower())
            if status is not None:
                return status

    if any(candidates):
        logger.debug(f"Unmapped launch status {raw_status!r}, treating as pending")
    return LaunchStatus.PENDING


def _nested(record: dict, *path: str):
    """Walk nested dicts, returning None on any missing/non-dict step."""
    current = record
    for key in path:
        if not isinstance(current, dict):
            return None
        current = current.get(key)
    return current


def _text(value, default: str | None = UNKNOWN) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return default


def normalize_launch(record: dict) -> Launch:
    """Convert one raw manifest record to a Launch.

    Raises:
        MalformedRecordError: id, name or a parseable net is missing
    """
    if not isinstance(record, dict):
        raise MalformedRecordError("Launch record is not an object", source=SOURCE)

    launch_id = record.get("id")
    name = _text(record.get("name"), default=None)
    if launch_id in (None, "") or not name:
        raise MalformedRecordError(f"Launch record missing id or name: {launch_id!r}", source=SOURCE)

    try:
        scheduled_at = parse_iso(record.get("net"))
    except (TypeError, ValueError) as e:
        raise MalformedRecordError(f"Launch {launch_id} has invalid net: {e}", source=SOURCE) from e
    if scheduled_at is None:
        raise MalformedRecordError(f"Launch {launch_id} has no scheduled time", source=SOURCE)

    try:
        last_modified = parse_iso(record.get("last_updated"))
    except (TypeError, ValueError):
        last_modified = None

    return Launch(
        id=str(launch_id),
        name=name,
        scheduled_at=scheduled_at,
        status=map_status(record.get("status")),
        vehicle=Vehicle(
            name=_text(_nested(record, "rocket", "configuration", "name")),
            configuration=_text(_nested(record, "rocket", "configuration", "full_name")),
        ),
        mission=Mission(
            name=_text(_nested(record, "mission", "name"), default=None),
            description=_text(_nested(record, "mission", "description"), default=None),
            orbit=_text(_nested(record, "mission", "orbit", "name")),
            type=_text(_nested(record, "mission", "type"), default=None),
        ),
        pad=Pad(
            name=_text(_nested(record, "pad", "name")),
            location=_text(_nested(record, "pad", "location", "name")),
        ),
        provider=_text(_nested(record, "launch_service_provider", "name")),
        image_url=_text(record.get("image"), default=None),
        webcast_live=bool(record.get("webcast_live", False)),
        last_modified=last_modified,
    )
