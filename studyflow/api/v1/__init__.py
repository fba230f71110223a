# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""API v1 routes package.

This package contains all v1 API endpoint definitions.
Each module provides a FastAPI router for a specific domain.

Modules:
    analytics: Study analytics and insights endpoints.
"""

from fastapi import APIRouter

from studyflow.api.v1 import analytics

# Create the main v1 router
router = APIRouter(prefix="/api/v1")

router.include_router(analytics.router, prefix="/analytics", tags=["Analytics"])

__all__ = ["router"]
