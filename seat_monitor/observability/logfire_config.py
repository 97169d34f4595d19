"""
Simple Logfire configuration.
Spans around each seat check are exported when a token is configured.
"""

import logfire

from seat_monitor.config import get_settings

_initialized = False


def initialize_logfire():
    """Initialize Logfire once; skipped when no token is configured."""
    global _initialized
    if _initialized:
        return

    settings = get_settings()
    if not settings.logfire_token:
        return  # Skip if no token configured

    logfire.configure(
        token=settings.logfire_token,
        service_name="seat-monitor",
    )

    _initialized = True
