"""
profile.py

API endpoints for the preference profile (liked / disliked / avoided movies,
tags, current mood). Every mutation waits for the profile write and reports a
failed write as a warning instead of an error.
"""
from typing import Any, Dict

from fastapi import APIRouter, Depends

from moodreel.api.deps import get_store
from moodreel.schemas import Movie, MoodUpdate, Tag, UserProfile
from moodreel.services.profile_store import PreferenceStore

router = APIRouter()


def profile_payload(profile: UserProfile) -> Dict[str, Any]:
    return profile.model_dump(mode="json", by_alias=True)


async def _mutation_response(store: PreferenceStore, profile: UserProfile) -> Dict[str, Any]:
    await store.flush()
    return {"profile": profile_payload(profile), "warning": store.last_persist_error}


@router.get("")
async def get_profile(store: PreferenceStore = Depends(get_store)):
    return {"profile": profile_payload(store.profile), "warning": store.last_persist_error}


@router.delete("")
async def clear_profile(store: PreferenceStore = Depends(get_store)):
    return await _mutation_response(store, await store.clear())


@router.post("/liked")
async def like_movie(movie: Movie, store: PreferenceStore = Depends(get_store)):
    return await _mutation_response(store, await store.add_liked(movie))


@router.delete("/liked/{movie_id}")
async def unlike_movie(movie_id: int, store: PreferenceStore = Depends(get_store)):
    return await _mutation_response(store, await store.remove_liked(movie_id))


@router.post("/disliked")
async def dislike_movie(movie: Movie, store: PreferenceStore = Depends(get_store)):
    return await _mutation_response(store, await store.add_disliked(movie))


@router.delete("/disliked/{movie_id}")
async def undislike_movie(movie_id: int, store: PreferenceStore = Depends(get_store)):
    return await _mutation_response(store, await store.remove_disliked(movie_id))


@router.post("/avoided")
async def avoid_movie(movie: Movie, store: PreferenceStore = Depends(get_store)):
    return await _mutation_response(store, await store.add_avoided(movie))


@router.delete("/avoided/{movie_id}")
async def unavoid_movie(movie_id: int, store: PreferenceStore = Depends(get_store)):
    return await _mutation_response(store, await store.remove_avoided(movie_id))


@router.post("/tags")
async def add_tag(tag: Tag, store: PreferenceStore = Depends(get_store)):
    return await _mutation_response(store, await store.add_tag(tag))


@router.delete("/tags/{tag_id}")
async def remove_tag(tag_id: str, store: PreferenceStore = Depends(get_store)):
    return await _mutation_response(store, await store.remove_tag(tag_id))


@router.put("/mood")
async def set_mood(payload: MoodUpdate, store: PreferenceStore = Depends(get_store)):
    return await _mutation_response(store, await store.set_mood(payload.mood))
