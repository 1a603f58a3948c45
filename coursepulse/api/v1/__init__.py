# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""API v1 routes package.

Modules:
    reports: Teacher performance reports and the live summary stream.
"""

from fastapi import APIRouter

from coursepulse.api.v1 import reports

router = APIRouter(prefix="/api/v1")

router.include_router(reports.router, prefix="/reports", tags=["Reports"])
