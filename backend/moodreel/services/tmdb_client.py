"""
TMDB client for MoodReel.
- Async httpx client; one instance per app, closed on shutdown.
- Handles 429 with exponential backoff and Retry-After.
- Every public call degrades to [] / None on failure; callers never see
  transport exceptions.
- Genre list is cached for the lifetime of the client.
"""
import logging
from typing import Any, Dict, Iterable, List, Optional

import httpx
from pydantic import ValidationError

from moodreel.core.config import settings
from moodreel.schemas import Genre, Movie
from moodreel.services.rate_limit import with_backoff

logger = logging.getLogger(__name__)


def poster_url(poster_path: Optional[str], size: str = "w500") -> str:
    """Full image URL for a poster path, or the local placeholder when absent."""
    if not poster_path:
        return settings.poster_placeholder
    return f"{settings.tmdb_image_base_url.rstrip('/')}/{size}{poster_path}"


def _parse_movies(payload: Optional[Dict], context: str) -> List[Movie]:
    if not isinstance(payload, dict):
        return []
    results = payload.get("results")
    if not isinstance(results, list):
        logger.warning(f"TMDB {context}: response has no results list")
        return []
    movies = []
    for item in results:
        try:
            movies.append(Movie.model_validate(item))
        except ValidationError as e:
            logger.debug(f"TMDB {context}: skipping malformed movie record: {e}")
    return movies


class TMDBClient:
    """Catalog collaborator backed by the TMDB v3 REST API."""

    def __init__(
        self,
        api_key: str,
        base_url: Optional[str] = None,
        language: Optional[str] = None,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        backoff_base_delay: float = 1.0,
    ):
        self.api_key = api_key
        self.base_url = (base_url or settings.tmdb_base_url).rstrip("/")
        self.language = language or settings.tmdb_language
        self.max_retries = max_retries if max_retries is not None else settings.tmdb_max_retries
        self.backoff_base_delay = backoff_base_delay
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            timeout=timeout if timeout is not None else settings.tmdb_timeout_seconds
        )
        self._genres: Optional[List[Genre]] = None

    async def __aenter__(self) -> "TMDBClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _get(self, path: str, **params: Any) -> Any:
        query = {"api_key": self.api_key, "language": self.language}
        query.update({k: v for k, v in params.items() if v is not None})
        url = f"{self.base_url}{path}"

        async def make_request():
            resp = await self._client.get(url, params=query)
            resp.raise_for_status()
            return resp.json()

        return await with_backoff(
            make_request,
            max_retries=self.max_retries,
            service="tmdb_api",
            base_delay=self.backoff_base_delay,
        )

    async def fetch_popular(self, page: int = 1) -> List[Movie]:
        try:
            payload = await self._get("/movie/popular", page=page)
        except Exception as e:
            logger.error(f"TMDB popular movies failed: {e}")
            return []
        return _parse_movies(payload, "popular")

    async def search(self, query: str, page: int = 1) -> List[Movie]:
        if not query or not query.strip():
            return []
        try:
            payload = await self._get("/search/movie", query=query.strip(), page=page, include_adult=False)
        except Exception as e:
            logger.error(f"TMDB movie search failed for '{query}': {e}")
            return []
        return _parse_movies(payload, "search")

    async def fetch_details(self, movie_id: int) -> Optional[Movie]:
        try:
            payload = await self._get(f"/movie/{movie_id}")
        except Exception as e:
            logger.error(f"TMDB details failed for movie {movie_id}: {e}")
            return None
        if not isinstance(payload, dict):
            return None
        try:
            return Movie.model_validate(payload)
        except ValidationError as e:
            logger.warning(f"TMDB details for movie {movie_id} malformed: {e}")
            return None

    async def fetch_genres(self) -> List[Genre]:
        if self._genres is not None:
            return list(self._genres)
        try:
            payload = await self._get("/genre/movie/list")
        except Exception as e:
            logger.error(f"TMDB genre list failed: {e}")
            return []
        raw = payload.get("genres") if isinstance(payload, dict) else None
        if not isinstance(raw, list):
            logger.warning("TMDB genre list: response has no genres list")
            return []
        genres = []
        for item in raw:
            try:
                genres.append(Genre.model_validate(item))
            except ValidationError:
                logger.debug(f"TMDB genre list: skipping malformed genre {item!r}")
        if genres:
            self._genres = genres
        return list(genres)

    async def fetch_recommendations_for(self, movie_id: int) -> List[Movie]:
        try:
            payload = await self._get(f"/movie/{movie_id}/recommendations")
        except Exception as e:
            logger.error(f"TMDB recommendations failed for movie {movie_id}: {e}")
            return []
        return _parse_movies(payload, f"recommendations/{movie_id}")

    async def fetch_by_genres(self, genre_ids: Optional[Iterable[int]] = None, page: int = 1) -> List[Movie]:
        """Discover movies sorted by popularity, optionally restricted to genres."""
        with_genres = ",".join(str(g) for g in genre_ids) if genre_ids else None
        try:
            payload = await self._get(
                "/discover/movie",
                with_genres=with_genres or None,
                sort_by="popularity.desc",
                include_adult=False,
                page=page,
            )
        except Exception as e:
            logger.error(f"TMDB discover movies failed (genres={with_genres}): {e}")
            return []
        return _parse_movies(payload, "discover")
