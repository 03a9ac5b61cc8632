"""
movies.py - Catalog lookups passed through to TMDB.
Failures upstream show up as empty lists, never as 5xx.
"""
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException, Query

from moodreel.api.deps import get_catalog
from moodreel.schemas import Movie
from moodreel.services.tmdb_client import TMDBClient, poster_url

router = APIRouter()


def movie_payload(movie: Movie) -> Dict[str, Any]:
    data = movie.model_dump(mode="json")
    data["poster_url"] = poster_url(movie.poster_path)
    return data


def movies_payload(movies: List[Movie]) -> List[Dict[str, Any]]:
    return [movie_payload(m) for m in movies]


@router.get("/popular")
async def popular_movies(page: int = Query(1, ge=1), catalog: TMDBClient = Depends(get_catalog)):
    return movies_payload(await catalog.fetch_popular(page=page))


@router.get("/search")
async def search_movies(
    q: str = Query("", description="Search query"),
    page: int = Query(1, ge=1),
    catalog: TMDBClient = Depends(get_catalog),
):
    return movies_payload(await catalog.search(q, page=page))


@router.get("/genres")
async def list_genres(catalog: TMDBClient = Depends(get_catalog)):
    return [g.model_dump() for g in await catalog.fetch_genres()]


@router.get("/{movie_id}")
async def movie_details(movie_id: int, catalog: TMDBClient = Depends(get_catalog)):
    movie = await catalog.fetch_details(movie_id)
    if movie is None:
        raise HTTPException(status_code=404, detail="Movie not found")
    return movie_payload(movie)


@router.get("/{movie_id}/recommendations")
async def movie_recommendations(movie_id: int, catalog: TMDBClient = Depends(get_catalog)):
    return movies_payload(await catalog.fetch_recommendations_for(movie_id))
