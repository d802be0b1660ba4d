"""Launch Window - rocket launch schedules with matched live coverage."""

from launchwindow.config import VERSION

__version__ = VERSION
