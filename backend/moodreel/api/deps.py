"""
deps.py

FastAPI dependencies for the objects built in the app lifespan.
A missing store or catalog means the app was wired without its lifespan;
that is a programming error and fails immediately.
"""
from fastapi import Request

from moodreel.services.profile_store import PreferenceStore, StoreNotInitializedError
from moodreel.services.tmdb_client import TMDBClient


def get_store(request: Request) -> PreferenceStore:
    store = getattr(request.app.state, "store", None)
    if store is None or not store.started:
        raise StoreNotInitializedError("Preference store is not initialized for this app")
    return store


def get_catalog(request: Request) -> TMDBClient:
    catalog = getattr(request.app.state, "catalog", None)
    if catalog is None:
        raise RuntimeError("Catalog client is not initialized for this app")
    return catalog
