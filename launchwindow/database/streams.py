"""Stream association table operations.

Matched associations for a launch are replaced wholesale on every
refresh; manually added ones are kept.
launch_id is a plain column, not a foreign key.
"""

from datetime import datetime
from sqlite3 import Connection, Row

from launchwindow.core import StreamAssociation, StreamStatus
from launchwindow.utilities.time import parse_iso, to_iso, utc_now


def _row_to_stream(row: Row) -> StreamAssociation:
    return StreamAssociation(
        video_id=row["video_id"],
        launch_id=row["launch_id"],
        platform=row["platform"],
        title=row["title"],
        channel_name=row["channel_name"],
        channel_id=row["channel_id"],
        scheduled_start=parse_iso(row["scheduled_start"]),
        status=StreamStatus(row["status"]),
        score=row["score"],
        url=row["url"],
        thumbnail_url=row["thumbnail_url"],
        language=row["language"],
        is_live=bool(row["is_live"]),
        manual=bool(row["manual"]),
        created_at=parse_iso(row["created_at"]),
    )


def get_streams_for_launch(conn: Connection, launch_id: str) -> list[StreamAssociation]:
    """All associations for a launch, best score first."""
    cursor = conn.execute(
        """
        SELECT * FROM stream_associations
        WHERE launch_id = ?
        ORDER BY score DESC, scheduled_start IS NULL, scheduled_start ASC
        """,
        (launch_id,),
    )
    return [_row_to_stream(row) for row in cursor.fetchall()]


def _write_stream(conn: Connection, launch_id: str, stream: StreamAssociation, stamp: str) -> None:
    """Insert one association, or take over the existing row for its video."""
    conn.execute(
        """
        INSERT INTO stream_associations (
            platform, video_id, launch_id, title, channel_name, channel_id,
            scheduled_start, status, score, url, thumbnail_url, language,
            is_live, manual, created_at
        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        ON CONFLICT(platform, video_id) DO UPDATE SET
            launch_id = excluded.launch_id,
            title = excluded.title,
            channel_name = excluded.channel_name,
            channel_id = excluded.channel_id,
            scheduled_start = excluded.scheduled_start,
            status = excluded.status,
            score = excluded.score,
            url = excluded.url,
            thumbnail_url = excluded.thumbnail_url,
            language = excluded.language,
            is_live = excluded.is_live,
            manual = MAX(stream_associations.manual, excluded.manual),
            created_at = excluded.created_at
        """,
        (
            stream.platform,
            stream.video_id,
            launch_id,
            stream.title,
            stream.channel_name,
            stream.channel_id,
            to_iso(stream.scheduled_start),
            stream.status.value,
            stream.score,
            stream.url,
            stream.thumbnail_url,
            stream.language,
            int(stream.is_live),
            int(stream.manual),
            to_iso(stream.created_at) or stamp,
        ),
    )


def replace_streams_for_launch(
    conn: Connection,
    launch_id: str,
    streams: list[StreamAssociation],
    now: datetime | None = None,
) -> int:
    """Supersede a launch's matched associations with a new set.

    Manually added associations are kept. A video already associated
    with a different launch is moved to this one (primary key is
    platform + video id).

    Returns:
        Number of associations written
    """
    stamp = to_iso(now or utc_now())
    conn.execute("DELETE FROM stream_associations WHERE launch_id = ? AND manual = 0", (launch_id,))
    for stream in streams:
        _write_stream(conn, launch_id, stream, stamp)
    return len(streams)


def add_stream(conn: Connection, stream: StreamAssociation, now: datetime | None = None) -> None:
    """Store a single association without touching the rest of its launch."""
    _write_stream(conn, stream.launch_id, stream, to_iso(now or utc_now()))


def set_stream_status(conn: Connection, launch_id: str, status: StreamStatus) -> int:
    """Set lifecycle status on every association of a launch."""
    cursor = conn.execute(
        "UPDATE stream_associations SET status = ? WHERE launch_id = ?",
        (status.value, launch_id),
    )
    return cursor.rowcount


def delete_streams_for_launches(conn: Connection, launch_ids: list[str]) -> int:
    """Delete associations for the given launches. Returns rows deleted."""
    if not launch_ids:
        return 0
    placeholders = ", ".join("?" for _ in launch_ids)
    cursor = conn.execute(
        f"DELETE FROM stream_associations WHERE launch_id IN ({placeholders})",
        launch_ids,
    )
    return cursor.rowcount


def count_streams_for_launches(conn: Connection, launch_ids: list[str]) -> int:
    if not launch_ids:
        return 0
    placeholders = ", ".join("?" for _ in launch_ids)
    cursor = conn.execute(
        f"SELECT COUNT(*) FROM stream_associations WHERE launch_id IN ({placeholders})",
        launch_ids,
    )
    return cursor.fetchone()[0]


def get_stream_launch_ids(conn: Connection) -> set[str]:
    """Distinct launch ids referenced by any association."""
    cursor = conn.execute("SELECT DISTINCT launch_id FROM stream_associations")
    return {row["launch_id"] for row in cursor.fetchall()}
