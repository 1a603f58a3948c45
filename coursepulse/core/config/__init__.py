# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Configuration package for CoursePulse.

Example:
    >>> from coursepulse.core.config import get_settings
    >>> settings = get_settings()
    >>> settings.store.max_concurrency
    8
"""

from coursepulse.core.config.settings import (
    ReportSettings,
    Settings,
    StoreSettings,
    clear_settings_cache,
    get_settings,
)

__all__ = [
    "Settings",
    "get_settings",
    "clear_settings_cache",
    "StoreSettings",
    "ReportSettings",
]
