"""Sync marker operations.

One row per tracked resource: the global launch directory and each
launch's stream set.
"""

from datetime import datetime
from sqlite3 import Connection

from launchwindow.core import SyncMarker
from launchwindow.utilities.time import parse_iso, to_iso


def get_marker(conn: Connection, resource_key: str) -> SyncMarker | None:
    """Get the marker for a resource, or None if never refreshed."""
    cursor = conn.execute(
        "SELECT resource_key, last_refreshed FROM sync_markers WHERE resource_key = ?",
        (resource_key,),
    )
    row = cursor.fetchone()
    if not row:
        return None
    return SyncMarker(resource_key=row["resource_key"], last_refreshed=parse_iso(row["last_refreshed"]))


def set_marker(conn: Connection, resource_key: str, refreshed_at: datetime) -> None:
    """Record a successful refresh."""
    conn.execute(
        """
        INSERT INTO sync_markers (resource_key, last_refreshed) VALUES (?, ?)
        ON CONFLICT(resource_key) DO UPDATE SET last_refreshed = excluded.last_refreshed
        """,
        (resource_key, to_iso(refreshed_at)),
    )


def delete_marker(conn: Connection, resource_key: str) -> bool:
    """Forget a resource's refresh time. True if a marker existed."""
    cursor = conn.execute("DELETE FROM sync_markers WHERE resource_key = ?", (resource_key,))
    return cursor.rowcount > 0


def delete_markers(conn: Connection, resource_keys: list[str]) -> int:
    if not resource_keys:
        return 0
    placeholders = ", ".join("?" for _ in resource_keys)
    cursor = conn.execute(
        f"DELETE FROM sync_markers WHERE resource_key IN ({placeholders})",
        resource_keys,
    )
    return cursor.rowcount


def list_markers(conn: Connection, prefix: str = "") -> list[SyncMarker]:
    """All markers whose key starts with prefix."""
    cursor = conn.execute(
        "SELECT resource_key, last_refreshed FROM sync_markers WHERE resource_key LIKE ? ORDER BY resource_key",
        (f"{prefix}%",),
    )
    return [
        SyncMarker(resource_key=row["resource_key"], last_refreshed=parse_iso(row["last_refreshed"]))
        for row in cursor.fetchall()
    ]
