from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from studyquest.api.courses import router as courses_router
from studyquest.api.health import router as health_router
from studyquest.api.leaderboard import router as leaderboard_router
from studyquest.api.metrics_endpoint import router as metrics_router
from studyquest.api.missions import router as missions_router
from studyquest.api.progress import router as progress_router
from studyquest.api.students import router as students_router
from studyquest.core.config import SETTINGS
from studyquest.core.logging import setup_logging
from studyquest.db.engine import lifespan_db
from studyquest.db.redis import lifespan_redis
from studyquest.middleware.metrics import MetricsMiddleware
from studyquest.middleware.request_context import RequestContextMiddleware

# Configure logging before anything else runs.
setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    # Nested so teardown runs in reverse order.
    async with lifespan_db():
        async with lifespan_redis():
            yield


app = FastAPI(
    title="studyquest",
    lifespan=lifespan,
    docs_url="/docs" if SETTINGS.is_dev else None,
    redoc_url="/redoc" if SETTINGS.is_dev else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Middleware execution order: last-added runs first (outermost layer).
# RequestContext (outermost) → Metrics → CORS → route handler
app.add_middleware(MetricsMiddleware)
app.add_middleware(RequestContextMiddleware)

app.include_router(metrics_router)
app.include_router(health_router)
app.include_router(students_router)
app.include_router(courses_router)
app.include_router(progress_router)
app.include_router(missions_router)
app.include_router(leaderboard_router)

logger.info(
    "studyquest started  env=%s log_level=%s port=%d tz=%s docs=%s",
    SETTINGS.app_env,
    SETTINGS.log_level,
    SETTINGS.port,
    SETTINGS.mission_timezone,
    "on" if SETTINGS.is_dev else "off",
)
