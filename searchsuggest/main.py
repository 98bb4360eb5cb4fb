import logging
from contextlib import asynccontextmanager

import redis.asyncio as aioredis
from fastapi import FastAPI

from searchsuggest.config import settings
from searchsuggest.database import engine
from searchsuggest.middleware.request_logging import RequestLoggingMiddleware

# Configure structured logging
logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s %(levelname)-8s %(name)s %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: initialize Redis connection pool for rate limiting
    app.state.redis = aioredis.from_url(
        settings.redis_url,
        decode_responses=True,
    )
    yield
    # Shutdown: close Redis and the database pool
    await app.state.redis.close()
    await engine.dispose()


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="SearchSuggest - search analytics and moderated, frequency-ranked search suggestions per search page.",
    lifespan=lifespan,
)

app.add_middleware(RequestLoggingMiddleware)

# --- Routers ---
from searchsuggest.api.v1 import admin, analytics, searches, suggestions  # noqa: E402

app.include_router(searches.router, prefix="/api/v1", tags=["Searches"])
app.include_router(suggestions.router, prefix="/api/v1", tags=["Suggestions"])
app.include_router(analytics.router, prefix="/api/v1", tags=["Analytics"])
app.include_router(admin.router, prefix="/api/v1", tags=["Admin"])


@app.get("/api/v1/health", tags=["Health"])
async def health_check():
    redis_ok = False
    try:
        redis_ok = await app.state.redis.ping()
    except Exception:
        pass

    return {
        "status": "healthy" if redis_ok else "degraded",
        "version": settings.app_version,
        "analytics_enabled": settings.enable_analytics,
        "services": {
            "redis": "up" if redis_ok else "down",
        },
    }
