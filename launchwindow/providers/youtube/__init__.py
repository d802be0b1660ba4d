"""YouTube video search provider."""

from launchwindow.providers.youtube.client import YouTubeClient, apply_live_details, parse_search_item

__all__ = ["YouTubeClient", "apply_live_details", "parse_search_item"]
