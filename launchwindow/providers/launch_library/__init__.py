"""Launch Library 2 manifest provider."""

from launchwindow.providers.launch_library.client import LaunchLibraryClient, ManifestBatch
from launchwindow.providers.launch_library.normalizer import map_status, normalize_launch

__all__ = ["LaunchLibraryClient", "ManifestBatch", "map_status", "normalize_launch"]
