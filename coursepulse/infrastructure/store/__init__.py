# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Record store infrastructure.

- RecordStore: Protocol for the external document collection store
- StoreError: Raised when a read fails or times out
- InMemoryRecordStore: Process-local store for tests and local runs
"""

from coursepulse.infrastructure.store.base import (
    ChangeListener,
    Document,
    RecordStore,
    StoreError,
    Unsubscribe,
)
from coursepulse.infrastructure.store.memory import InMemoryRecordStore

__all__ = [
    "RecordStore",
    "StoreError",
    "Document",
    "ChangeListener",
    "Unsubscribe",
    "InMemoryRecordStore",
]
