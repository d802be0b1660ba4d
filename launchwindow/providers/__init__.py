"""Upstream source adapters.

Each provider issues HTTP calls, normalizes responses into core types and
raises the typed errors from launchwindow.core.errors.
"""

from launchwindow.providers.launch_library import LaunchLibraryClient, ManifestBatch
from launchwindow.providers.youtube import YouTubeClient

__all__ = ["LaunchLibraryClient", "ManifestBatch", "YouTubeClient"]
