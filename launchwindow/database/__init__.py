"""Database layer."""

from launchwindow.database.connection import (
    get_connection,
    get_db,
    init_db,
    make_db_factory,
    reset_db,
)
from launchwindow.database.launches import (
    archive_launches_before,
    count_launches,
    delete_launches,
    get_all_launch_ids,
    get_launch,
    get_launches_by_ids,
    list_launches_before,
    list_launches_between,
    list_upcoming_launches,
    update_launch_schedule,
    upsert_launch,
)
from launchwindow.database.streams import (
    add_stream,
    count_streams_for_launches,
    delete_streams_for_launches,
    get_stream_launch_ids,
    get_streams_for_launch,
    replace_streams_for_launch,
    set_stream_status,
)
from launchwindow.database.sync_markers import (
    delete_marker,
    delete_markers,
    get_marker,
    list_markers,
    set_marker,
)

__all__ = [
    "add_stream",
    "archive_launches_before",
    "count_launches",
    "count_streams_for_launches",
    "delete_launches",
    "delete_marker",
    "delete_markers",
    "delete_streams_for_launches",
    "get_all_launch_ids",
    "get_connection",
    "get_db",
    "get_launch",
    "get_launches_by_ids",
    "get_marker",
    "get_stream_launch_ids",
    "get_streams_for_launch",
    "init_db",
    "list_launches_before",
    "list_launches_between",
    "list_markers",
    "list_upcoming_launches",
    "make_db_factory",
    "replace_streams_for_launch",
    "reset_db",
    "set_marker",
    "set_stream_status",
    "update_launch_schedule",
    "upsert_launch",
]
