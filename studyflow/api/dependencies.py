# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""FastAPI dependency injection definitions.

This module provides dependency functions for FastAPI endpoints.
Dependencies are used to:
- Get the analytics repository bound to the database
- Get the analytics aggregator

Both can be replaced through ``app.dependency_overrides``.

Example:
    @router.get("/{user_id}")
    async def get_analytics(
        user_id: str,
        aggregator: Aggregator,
    ):
        ...
"""

import logging
from typing import Annotated

from fastapi import Depends, HTTPException, status

from studyflow.core.config import get_settings
from studyflow.domains.analytics import (
    AnalyticsAggregator,
    AnalyticsRepository,
    SQLAlchemyAnalyticsRepository,
)
from studyflow.infrastructure.database import DatabaseError, get_sessionmaker

logger = logging.getLogger(__name__)


def get_repository() -> AnalyticsRepository:
    """Get the repository backed by the StudyFlow database.

    Raises:
        HTTPException: 503 if the database is not initialized.
    """
    try:
        sessionmaker = get_sessionmaker()
    except DatabaseError as e:
        logger.error("Analytics repository unavailable: %s", str(e))
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database not available",
        ) from e
    return SQLAlchemyAnalyticsRepository(sessionmaker)


def get_aggregator(
    repository: AnalyticsRepository = Depends(get_repository),
) -> AnalyticsAggregator:
    """Get an aggregator configured from the analytics settings."""
    return AnalyticsAggregator(repository, get_settings().analytics)


# Type aliases for cleaner endpoint signatures
Aggregator = Annotated[AnalyticsAggregator, Depends(get_aggregator)]
