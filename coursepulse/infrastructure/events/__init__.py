# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Event infrastructure module for CoursePulse.

Components:
- ChangeBus: In-process pub/sub with wildcard topics
- ChangeTopics: Topic name constants
"""

from coursepulse.infrastructure.events.bus import (
    ChangeBus,
    ChangeEvent,
    ChangeHandler,
    ChangeTopics,
)

__all__ = [
    "ChangeBus",
    "ChangeEvent",
    "ChangeHandler",
    "ChangeTopics",
]
