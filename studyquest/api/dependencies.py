"""Service wiring and error translation shared by the routers.

The document store is chosen once at import time, the same way the
cache and Redis pool are: PostgreSQL when DATABASE_URL is set, an
in-process dict otherwise.  Everything above the store is built on top
of that single instance.
"""

from __future__ import annotations

import logging

from fastapi import HTTPException, status

from studyquest.core.config import SETTINGS
from studyquest.db.engine import async_session_factory
from studyquest.db.pg_store import PgDocumentStore
from studyquest.db.store import DocumentStore, InMemoryDocumentStore
from studyquest.services.cache import cache_service
from studyquest.services.content import ContentService
from studyquest.services.errors import (
    AccessDeniedError,
    AlreadyExistsError,
    NotFoundError,
    ProgressionError,
    QuizUnavailableError,
    StorageError,
    ValidationError,
)
from studyquest.services.identity import IdentityService
from studyquest.services.leaderboard import LeaderboardService
from studyquest.services.progression import ProgressionEngine

logger = logging.getLogger(__name__)

if async_session_factory is not None:
    document_store: DocumentStore = PgDocumentStore(async_session_factory)
else:
    document_store = InMemoryDocumentStore()

content_service = ContentService(document_store)
identity_service = IdentityService(document_store, cache_service)
progression_engine = ProgressionEngine(
    document_store,
    content_service,
    cache_service,
    tz=SETTINGS.mission_tz,
)
leaderboard_service = LeaderboardService(
    document_store,
    content_service,
    cache_service,
    ttl_seconds=SETTINGS.leaderboard_cache_ttl,
)


_STATUS_BY_ERROR: tuple[tuple[type[ProgressionError], int], ...] = (
    (ValidationError, status.HTTP_422_UNPROCESSABLE_CONTENT),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (AccessDeniedError, status.HTTP_403_FORBIDDEN),
    (QuizUnavailableError, status.HTTP_409_CONFLICT),
    (AlreadyExistsError, status.HTTP_409_CONFLICT),
    (StorageError, status.HTTP_503_SERVICE_UNAVAILABLE),
)


def http_error(e: ProgressionError) -> HTTPException:
    """Map an engine error to the HTTPException the client sees.

    Usage::

        try:
            ...
        except ProgressionError as e:
            raise http_error(e) from None
    """
    code = next(
        (c for cls, c in _STATUS_BY_ERROR if isinstance(e, cls)),
        status.HTTP_400_BAD_REQUEST,
    )
    if isinstance(e, StorageError):
        logger.error("Storage failure op=%s key=%s", e.operation, e.key, exc_info=e)
    else:
        logger.warning("Request rejected status=%d reason=%s: %s", code, e.reason, e.message)
    return HTTPException(
        status_code=code,
        detail={"reason": e.reason, "message": e.message},
    )
