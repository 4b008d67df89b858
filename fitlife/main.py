"""
=============================================================================
FitLife Recommender API
=============================================================================
Features:
  - Explainable weighted scoring of upcoming gym classes
  - Cache-aside serving: Redis -> recent persisted rows -> fresh scoring -> popular
  - Kafka event intake with a consumer that invalidates on bookings
  - Periodic batch refresh and user segmentation workers
=============================================================================
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import Depends, FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import settings
from .db import create_schema
from .dependencies import state, init_resources, close_resources, build_workers, get_db_pool, get_redis
from .exceptions import (
    ServiceUnavailableException,
    global_exception_handler,
    http_exception_handler,
    service_unavailable_handler,
    validation_exception_handler,
)
from .limiter import limiter
from .logging_config import setup_logging
from .middleware import RequestTrackingMiddleware
from .routers import event_router, recommendation_router

setup_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    stop_event = asyncio.Event()
    workers = []
    try:
        await init_resources()
        await create_schema(state.pg_pool)

        workers = build_workers(stop_event)
        for worker in workers:
            worker.start()
        logger.info("All connections initialized", extra={"workers": [w.name for w in workers]})

        yield
    finally:
        stop_event.set()
        results = await asyncio.gather(
            *(w.stop(settings.SHUTDOWN_GRACE_SECONDS) for w in workers), return_exceptions=True
        )
        for worker, result in zip(workers, results):
            if isinstance(result, Exception):
                logger.error("Background worker failed during shutdown", extra={"job": worker.name, "error": str(result)})
        await close_resources()
        logger.info("All connections closed")


app = FastAPI(
    title="FitLife Recommendation API",
    description="Personalized gym class recommendations",
    version="1.0.0",
    lifespan=lifespan,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_exception_handler(ServiceUnavailableException, service_unavailable_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, global_exception_handler)

app.add_middleware(RequestTrackingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",  # web client development server
        "http://127.0.0.1:3000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(recommendation_router.router)
app.include_router(event_router.router)


@app.get("/health")
async def health_check(db = Depends(get_db_pool), redis_client = Depends(get_redis)):
    """Health check endpoint with database and cache probes"""
    checks = {}
    try:
        await db.fetchval("SELECT 1")
        checks["database"] = "ok"
    except Exception as e:
        logger.warning("Database health probe failed", extra={"error": str(e)})
        checks["database"] = "unavailable"
    try:
        await redis_client.ping()
        checks["cache"] = "ok"
    except Exception as e:
        logger.warning("Cache health probe failed", extra={"error": str(e)})
        checks["cache"] = "unavailable"

    healthy = all(v == "ok" for v in checks.values())
    return JSONResponse(
        status_code=200 if healthy else 503,
        content={
            "status": "healthy" if healthy else "degraded",
            "checks": checks,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "version": app.version,
        },
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
