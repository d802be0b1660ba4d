"""Launch identity extraction.

Derives a canonical vehicle name and a mission classification from a
launch's free-text name, e.g.:

    "Falcon 9 Block 5 | Starlink Group 6-87"  -> Falcon 9, FREQUENT, batch 6-87
    "Starship | Flight 7"                      -> Starship, HIGH_PROFILE
    "PSLV-DL | EOS-N1 and others"              -> PSLV, NAMED_PAYLOAD, payload EOS-N1
    "Electron | Owl For You"                   -> Electron, NAMED_PAYLOAD

Vehicle recognition is a declarative rule table checked in order; the
FIRST matching rule wins, so more specific patterns must come before
less specific ones ("falcon heavy" before "falcon 9"). Adding a vehicle
family is a table edit.

Classification drives search strategy in the matcher:
- HIGH_PROFILE: rare, high-interest vehicles - any video mentioning the
  vehicle is accepted
- FREQUENT: constellation batches launched weekly - the exact batch id
  must appear, vehicle-only matches are false positives at this cadence
- NAMED_PAYLOAD: vehicle and payload must both appear
- UNCLASSIFIED: vehicle-only matches are accepted
"""

import re
from dataclasses import dataclass
from enum import Enum

# Separator between vehicle and payload in manifest names
NAME_SEPARATOR = "|"


class MissionClass(Enum):
    """Search strategy for a launch."""

    HIGH_PROFILE = "high_profile"
    FREQUENT = "frequent"
    NAMED_PAYLOAD = "named_payload"
    UNCLASSIFIED = "unclassified"


@dataclass(frozen=True)
class VehicleRule:
    """One vehicle family.

    pattern is matched as a lowercase substring of the launch name.
    If capture is set, its match text (from the original name) becomes the
    canonical name, e.g. "Long March 2C" instead of "Long March".
    """

    pattern: str
    canonical: str
    high_profile: bool = False
    regional: bool = False  # Uses the "VARIANT | PAYLOAD" naming convention
    capture: str | None = None


@dataclass(frozen=True)
class FrequentMissionRule:
    """A high-cadence constellation whose batches need exact id matching."""

    keyword: str  # Must appear in launch name and candidate text
    batch_pattern: str  # Regex with one group capturing the batch id


# Ordered: regional families first, then most specific to least specific.
VEHICLE_RULES: tuple[VehicleRule, ...] = (
    # ISRO names launches "VARIANT | PAYLOAD"; its vehicles never collide
    # with the families below
    VehicleRule("pslv", "PSLV", regional=True),
    VehicleRule("gslv", "GSLV", regional=True),
    VehicleRule("lvm3", "LVM3", regional=True),
    VehicleRule("sslv", "SSLV", regional=True),
    # Low-cadence vehicles
    VehicleRule("new glenn", "New Glenn", high_profile=True),
    VehicleRule("starship", "Starship", high_profile=True),
    VehicleRule("falcon heavy", "Falcon Heavy", high_profile=True),
    VehicleRule("space launch system", "SLS", high_profile=True),
    VehicleRule("sls", "SLS", high_profile=True),
    VehicleRule("ariane 6", "Ariane 6", high_profile=True),
    VehicleRule("vulcan", "Vulcan", high_profile=True),
    # Everything else
    VehicleRule("falcon 9", "Falcon 9"),
    VehicleRule("atlas v", "Atlas V"),
    VehicleRule("electron", "Electron"),
    VehicleRule("long march", "Long March", capture=r"Long March [\w/-]+"),
)

FREQUENT_MISSION_RULES: tuple[FrequentMissionRule, ...] = (
    FrequentMissionRule("starlink", r"starlink group (\d+-\d+)"),
    FrequentMissionRule("kuiper", r"kuiper \(?(k[a-z]-\d+)\)?"),
)

# Flight number for high-profile test campaigns ("Starship | Flight 7")
FLIGHT_PATTERN = re.compile(r"\bflight (\d+)\b", re.IGNORECASE)

# Suffixes stripped from payload names ("EOS-N1 and others" -> "EOS-N1")
PAYLOAD_SUFFIXES = (
    re.compile(r"\s+and\s+others?\b", re.IGNORECASE),
    re.compile(r"\s+etc\.?", re.IGNORECASE),
)


@dataclass(frozen=True)
class LaunchIdentity:
    """What the matcher knows about a launch."""

    vehicle: str
    mission_class: MissionClass
    payload: str | None = None
    batch: str | None = None  # Constellation batch id, e.g. "6-87"
    constellation: str | None = None  # Keyword of the FREQUENT rule that matched
    flight_number: str | None = None
    variant: str | None = None  # Regional vehicle variant, e.g. "PSLV-DL"
    regional: bool = False


def match_vehicle_rule(name: str, rules: tuple[VehicleRule, ...] = VEHICLE_RULES) -> VehicleRule | None:
    """First rule whose pattern occurs in name, or None."""
    lower = name.lower()
    for rule in rules:
        if rule.pattern in lower:
            return rule
    return None


def canonical_vehicle(name: str, rule: VehicleRule | None) -> str:
    """Canonical vehicle name for a launch name.

    Falls back to the text before the first separator.
    """
    if rule is None:
        return name.split(NAME_SEPARATOR)[0].strip()
    if rule.capture:
        match = re.search(rule.capture, name, re.IGNORECASE)
        return match.group(0) if match else rule.canonical
    return rule.canonical


def clean_payload(payload: str | None) -> str | None:
    """Strip "and others"/"etc" tails. None for empty results."""
    if not payload:
        return None
    for suffix in PAYLOAD_SUFFIXES:
        payload = suffix.sub("", payload)
    payload = payload.strip()
    return payload or None


def split_name(name: str) -> tuple[str, str | None]:
    """Split "VEHICLE | PAYLOAD" into its parts."""
    parts = name.split(NAME_SEPARATOR, 1)
    vehicle_part = parts[0].strip()
    payload_part = parts[1].strip() if len(parts) > 1 else None
    return vehicle_part, payload_part or None


def parse_regional_name(name: str, rule: VehicleRule) -> LaunchIdentity:
    """Parse regional "VARIANT | PAYLOAD" names.

    "PSLV-DL | EOS-N1 and others" -> vehicle PSLV, variant PSLV-DL, payload EOS-N1
    """
    variant, payload = split_name(name)
    payload = clean_payload(payload)
    return LaunchIdentity(
        vehicle=rule.canonical,
        mission_class=MissionClass.NAMED_PAYLOAD if payload else MissionClass.UNCLASSIFIED,
        payload=payload,
        variant=variant,
        regional=True,
    )


def _match_frequent(name: str) -> tuple[FrequentMissionRule, str | None] | None:
    lower = name.lower()
    for rule in FREQUENT_MISSION_RULES:
        if rule.keyword in lower:
            match = re.search(rule.batch_pattern, lower)
            return rule, (match.group(1) if match else None)
    return None


def extract_identity(name: str) -> LaunchIdentity:
    """Derive vehicle and mission classification from a launch name.

    Precedence: regional convention, high-profile vehicle, constellation
    batch, named payload, unclassified.
    """
    rule = match_vehicle_rule(name)

    if rule is not None and rule.regional:
        return parse_regional_name(name, rule)

    vehicle = canonical_vehicle(name, rule)
    _, payload = split_name(name)

    if rule is not None and rule.high_profile:
        flight = FLIGHT_PATTERN.search(name)
        return LaunchIdentity(
            vehicle=vehicle,
            mission_class=MissionClass.HIGH_PROFILE,
            payload=payload,
            flight_number=flight.group(1) if flight else None,
        )

    frequent = _match_frequent(name)
    if frequent is not None:
        frequent_rule, batch = frequent
        if batch:
            return LaunchIdentity(
                vehicle=vehicle,
                mission_class=MissionClass.FREQUENT,
                payload=payload,
                batch=batch,
                constellation=frequent_rule.keyword,
            )
        # No batch id to anchor on, match like any named payload

    if payload and "unknown" not in payload.lower():
        return LaunchIdentity(vehicle=vehicle, mission_class=MissionClass.NAMED_PAYLOAD, payload=payload)

    return LaunchIdentity(vehicle=vehicle, mission_class=MissionClass.UNCLASSIFIED)


def batch_pattern(batch: str) -> re.Pattern:
    """Regex for an exact batch id in free text.

    "6-87" matches "6-87" and "6 87" but not "6-88", "16-87" or "6-870".
    """
    parts = [re.escape(p) for p in re.split(r"[-\s]", batch.lower()) if p]
    body = r"[-\s]".join(parts)
    return re.compile(rf"(?<![\w-]){body}(?![\w-]*\d)")
