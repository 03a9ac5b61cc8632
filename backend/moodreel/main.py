from contextlib import asynccontextmanager
import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from redis.exceptions import RedisError

from moodreel.core.config import settings
from moodreel.core.redis_client import close_redis, get_redis
from moodreel.services.profile_persistence import MemoryProfilePersistence, RedisProfilePersistence
from moodreel.services.profile_store import PreferenceStore
from moodreel.services.tmdb_client import TMDBClient
from moodreel.utils.logger import logger as _package_logger  # noqa: F401  configures the "moodreel" logger
from moodreel.api import movies, profile, recommendations

logger = logging.getLogger(__name__)

REDIS_SETTINGS_PREFIX = "settings:global:"


async def resolve_tmdb_api_key() -> str:
    """TMDB key from the environment, else from Redis-backed settings."""
    if settings.tmdb_api_key:
        return settings.tmdb_api_key
    if settings.profile_backend != "redis":
        logger.warning("TMDB API key not configured")
        return ""
    try:
        key = await get_redis().get(REDIS_SETTINGS_PREFIX + "tmdb_api_key")
    except RedisError as e:
        logger.warning(f"Failed to read TMDB API key from Redis: {e}")
        return ""
    if not key:
        logger.warning("TMDB API key not configured")
    return key or ""


def build_persistence():
    if settings.profile_backend == "memory":
        return MemoryProfilePersistence()
    return RedisProfilePersistence(get_redis(), profile_key=settings.profile_key)


def create_app(catalog: Optional[TMDBClient] = None, persistence=None) -> FastAPI:
    """Build the API. Tests pass their own catalog and persistence."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owns_catalog = catalog is None
        app.state.catalog = catalog or TMDBClient(api_key=await resolve_tmdb_api_key())
        app.state.store = PreferenceStore(persistence if persistence is not None else build_persistence())
        await app.state.store.start()
        try:
            yield
        finally:
            await app.state.store.close()
            if owns_catalog:
                await app.state.catalog.aclose()
            if persistence is None and settings.profile_backend == "redis":
                await close_redis()

    app = FastAPI(title="MoodReel API", version="1.0.0", lifespan=lifespan)

    app.add_middleware(GZipMiddleware, minimum_size=1000)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(profile.router, prefix="/api/profile", tags=["Profile"])
    app.include_router(movies.router, prefix="/api/movies", tags=["Movies"])
    app.include_router(recommendations.router, prefix="/api/recommendations", tags=["Recommendations"])
    return app


app = create_app()
