"""Launch table operations.

Launches are upserted by Directory Sync and conditionally updated by
the Scrub Detector. Nothing in the core deletes them; the retention
sweeps in consumers.cleanup are the only callers of delete_launches.
"""

from datetime import datetime
from sqlite3 import Connection, Row

from launchwindow.core import Launch, LaunchStatus, Mission, Pad, Vehicle
from launchwindow.utilities.time import parse_iso, to_iso, utc_now

_COLUMNS = """
    id, name, scheduled_at, status,
    vehicle_name, vehicle_configuration,
    mission_name, mission_description, mission_orbit, mission_type,
    pad_name, pad_location, provider, image_url, webcast_live,
    last_modified, updated_at
"""


def _row_to_launch(row: Row) -> Launch:
    return Launch(
        id=row["id"],
        name=row["name"],
        scheduled_at=parse_iso(row["scheduled_at"]),
        status=LaunchStatus(row["status"]),
        vehicle=Vehicle(name=row["vehicle_name"], configuration=row["vehicle_configuration"]),
        mission=Mission(
            name=row["mission_name"],
            description=row["mission_description"],
            orbit=row["mission_orbit"],
            type=row["mission_type"],
        ),
        pad=Pad(name=row["pad_name"], location=row["pad_location"]),
        provider=row["provider"],
        image_url=row["image_url"],
        webcast_live=bool(row["webcast_live"]),
        last_modified=parse_iso(row["last_modified"]),
        updated_at=parse_iso(row["updated_at"]),
    )


def upsert_launch(conn: Connection, launch: Launch, now: datetime | None = None) -> None:
    """Insert or fully replace a launch record.

    Args:
        conn: Database connection
        launch: Normalized launch
        now: Bookkeeping timestamp (defaults to current time)
    """
    stamp = to_iso(now or utc_now())
    conn.execute(
        """
        INSERT INTO launches (
            id, name, scheduled_at, status,
            vehicle_name, vehicle_configuration,
            mission_name, mission_description, mission_orbit, mission_type,
            pad_name, pad_location, provider, image_url, webcast_live,
            last_modified, created_at, updated_at
        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        ON CONFLICT(id) DO UPDATE SET
            name = excluded.name,
            scheduled_at = excluded.scheduled_at,
            status = excluded.status,
            vehicle_name = excluded.vehicle_name,
            vehicle_configuration = excluded.vehicle_configuration,
            mission_name = excluded.mission_name,
            mission_description = excluded.mission_description,
            mission_orbit = excluded.mission_orbit,
            mission_type = excluded.mission_type,
            pad_name = excluded.pad_name,
            pad_location = excluded.pad_location,
            provider = excluded.provider,
            image_url = excluded.image_url,
            webcast_live = excluded.webcast_live,
            last_modified = excluded.last_modified,
            updated_at = excluded.updated_at
        """,
        (
            launch.id,
            launch.name,
            to_iso(launch.scheduled_at),
            launch.status.value,
            launch.vehicle.name,
            launch.vehicle.configuration,
            launch.mission.name,
            launch.mission.description,
            launch.mission.orbit,
            launch.mission.type,
            launch.pad.name,
            launch.pad.location,
            launch.provider,
            launch.image_url,
            int(launch.webcast_live),
            to_iso(launch.last_modified),
            stamp,
            stamp,
        ),
    )


def update_launch_schedule(
    conn: Connection,
    launch_id: str,
    *,
    scheduled_at: datetime | None = None,
    status: LaunchStatus | None = None,
    now: datetime | None = None,
) -> Launch | None:
    """Conditionally update time and/or status of one launch.

    Only the fields passed are written.

    Returns:
        The updated Launch, or None if the launch doesn't exist
    """
    updates: dict[str, str] = {"updated_at": to_iso(now or utc_now())}
    if scheduled_at is not None:
        updates["scheduled_at"] = to_iso(scheduled_at)
    if status is not None:
        updates["status"] = status.value

    set_clause = ", ".join(f"{column} = ?" for column in updates)
    cursor = conn.execute(
        f"UPDATE launches SET {set_clause} WHERE id = ?",
        [*updates.values(), launch_id],
    )
    if cursor.rowcount == 0:
        return None
    return get_launch(conn, launch_id)


def get_launch(conn: Connection, launch_id: str) -> Launch | None:
    """Get a launch by external id."""
    cursor = conn.execute(f"SELECT {_COLUMNS} FROM launches WHERE id = ?", (launch_id,))
    row = cursor.fetchone()
    return _row_to_launch(row) if row else None


def get_launches_by_ids(conn: Connection, launch_ids: list[str]) -> dict[str, Launch]:
    """Bulk lookup keyed by id."""
    if not launch_ids:
        return {}
    placeholders = ", ".join("?" for _ in launch_ids)
    cursor = conn.execute(
        f"SELECT {_COLUMNS} FROM launches WHERE id IN ({placeholders})",
        launch_ids,
    )
    return {row["id"]: _row_to_launch(row) for row in cursor.fetchall()}


def list_upcoming_launches(conn: Connection, now: datetime, limit: int = 20) -> list[Launch]:
    """Launches scheduled at or after now, soonest first."""
    cursor = conn.execute(
        f"""
        SELECT {_COLUMNS} FROM launches
        WHERE scheduled_at >= ?
        ORDER BY scheduled_at ASC
        LIMIT ?
        """,
        (to_iso(now), limit),
    )
    return [_row_to_launch(row) for row in cursor.fetchall()]


def list_launches_between(conn: Connection, start: datetime, end: datetime) -> list[Launch]:
    """Launches scheduled in [start, end], soonest first."""
    cursor = conn.execute(
        f"""
        SELECT {_COLUMNS} FROM launches
        WHERE scheduled_at >= ? AND scheduled_at <= ?
        ORDER BY scheduled_at ASC
        """,
        (to_iso(start), to_iso(end)),
    )
    return [_row_to_launch(row) for row in cursor.fetchall()]


def list_launches_before(conn: Connection, cutoff: datetime) -> list[Launch]:
    """Launches scheduled strictly before the cutoff."""
    cursor = conn.execute(
        f"SELECT {_COLUMNS} FROM launches WHERE scheduled_at < ? ORDER BY scheduled_at ASC",
        (to_iso(cutoff),),
    )
    return [_row_to_launch(row) for row in cursor.fetchall()]


def archive_launches_before(conn: Connection, cutoff: datetime, now: datetime | None = None) -> int:
    """Mark old launches archived. Returns number changed."""
    cursor = conn.execute(
        """
        UPDATE launches SET status = ?, updated_at = ?
        WHERE scheduled_at < ? AND status != ?
        """,
        (
            LaunchStatus.ARCHIVED.value,
            to_iso(now or utc_now()),
            to_iso(cutoff),
            LaunchStatus.ARCHIVED.value,
        ),
    )
    return cursor.rowcount


def delete_launches(conn: Connection, launch_ids: list[str]) -> int:
    """Delete launches by id. Returns number deleted."""
    if not launch_ids:
        return 0
    placeholders = ", ".join("?" for _ in launch_ids)
    cursor = conn.execute(f"DELETE FROM launches WHERE id IN ({placeholders})", launch_ids)
    return cursor.rowcount


def get_all_launch_ids(conn: Connection) -> set[str]:
    cursor = conn.execute("SELECT id FROM launches")
    return {row["id"] for row in cursor.fetchall()}


def count_launches(conn: Connection) -> int:
    cursor = conn.execute("SELECT COUNT(*) FROM launches")
    return cursor.fetchone()[0]
