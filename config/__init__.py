# practice_analytics_root/config/__init__.py
# This file makes the 'config' directory a Python package.
# It exposes the singleton 'settings' instance for easy, clean importing.

import logging
import sys
from typing import Optional

from .settings import AgeBand, AnalyticsConfig, FormattingConfig, Settings, settings


def configure_logging(level: Optional[str] = None) -> None:
    """Applies the project-wide logging configuration from settings."""
    logging.basicConfig(
        level=level or settings.LOG_LEVEL,
        format=settings.LOG_FORMAT,
        datefmt=settings.LOG_DATE_FORMAT,
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True
    )


__all__ = ["settings", "Settings", "AnalyticsConfig", "AgeBand", "FormattingConfig", "configure_logging"]
