# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Utility functions and helpers for CoursePulse.

This package contains cross-cutting utilities:
- logging: Structured logging with structlog
- datetime: Timezone-aware datetime operations
"""

from coursepulse.utils.datetime import (
    ensure_utc,
    format_iso,
    parse_iso,
    start_of_day,
    utc_from_timestamp,
    utc_now,
)
from coursepulse.utils.logging import (
    bind_context,
    clear_context,
    get_logger,
    reset_logging,
    setup_logging,
)

__all__ = [
    # Logging
    "setup_logging",
    "get_logger",
    "bind_context",
    "clear_context",
    "reset_logging",
    # Datetime
    "utc_now",
    "utc_from_timestamp",
    "ensure_utc",
    "start_of_day",
    "format_iso",
    "parse_iso",
]
