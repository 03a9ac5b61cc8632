from fastapi import APIRouter, Depends, HTTPException, Query
from typing import Optional

from moodreel.api.deps import get_catalog, get_store
from moodreel.api.movies import movies_payload
from moodreel.api.profile import profile_payload
from moodreel.services.profile_store import PreferenceStore
from moodreel.services.recommendations import (
    auto_tags_for_profile,
    derive_mood_candidates,
    recommend_for_profile,
    similar_to_liked,
)
from moodreel.services.tmdb_client import TMDBClient

router = APIRouter()


@router.get("")
async def tag_recommendations(
    page: int = Query(1, ge=1),
    store: PreferenceStore = Depends(get_store),
    catalog: TMDBClient = Depends(get_catalog),
):
    """
    Recommendations from the profile's genre tags, minus disliked and avoided
    movies. A profile with no genre tags and no liked movies gets popular movies.
    """
    return movies_payload(await recommend_for_profile(catalog, store.profile, page=page))


@router.get("/mood")
async def mood_recommendations(
    mood: Optional[str] = Query(None, description="Mood to use instead of the profile's current mood"),
    page: int = Query(1, ge=1),
    store: PreferenceStore = Depends(get_store),
    catalog: TMDBClient = Depends(get_catalog),
):
    """Popular movies in the genres mapped to a mood."""
    selected = mood if mood is not None else store.profile.current_mood
    if selected is None:
        raise HTTPException(status_code=400, detail="No mood given and no current mood set")
    return movies_payload(await derive_mood_candidates(catalog, selected, page=page))


@router.get("/similar")
async def similar_recommendations(
    limit: int = Query(20, ge=1, le=100),
    store: PreferenceStore = Depends(get_store),
    catalog: TMDBClient = Depends(get_catalog),
):
    """TMDB recommendations for the most recently liked movies."""
    return movies_payload(await similar_to_liked(catalog, store.profile, limit=limit))


@router.get("/auto-tags")
async def preview_auto_tags(
    store: PreferenceStore = Depends(get_store),
    catalog: TMDBClient = Depends(get_catalog),
):
    tags = await auto_tags_for_profile(catalog, store.profile)
    return [t.model_dump(mode="json") for t in tags]


@router.post("/auto-tags")
async def apply_auto_tags(
    store: PreferenceStore = Depends(get_store),
    catalog: TMDBClient = Depends(get_catalog),
):
    """Derive genre tags from the liked movies and add the new ones to the profile."""
    tags = await auto_tags_for_profile(catalog, store.profile)
    profile = store.profile
    for tag in tags:
        profile = await store.add_tag(tag)
    await store.flush()
    return {
        "tags": [t.model_dump(mode="json") for t in tags],
        "profile": profile_payload(profile),
        "warning": store.last_persist_error,
    }
