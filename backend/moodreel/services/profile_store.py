"""
profile_store.py

Single source of truth for the user's preference state.

The module-level functions are pure reducers: they take a UserProfile and
return the next one, handing back the same object when nothing changes.
PreferenceStore funnels them through one asyncio.Lock, publishes each new
snapshot to subscribers and persists it in the background.

Invariants kept after every operation:
- a movie id is in at most one of liked / disliked / avoided
- tag ids are unique
"""
import asyncio
import inspect
import logging
from typing import Callable, List, Optional

from moodreel.schemas import PREFERENCE_FIELDS, Mood, Movie, Tag, UserProfile

logger = logging.getLogger(__name__)


class StoreNotInitializedError(RuntimeError):
    """The profile snapshot was read outside a started store."""


def _without(movies: List[Movie], movie_id: int) -> List[Movie]:
    return [m for m in movies if m.id != movie_id]


def _add_to_set(profile: UserProfile, field: str, movie: Movie) -> UserProfile:
    current = getattr(profile, field)
    if any(m.id == movie.id for m in current):
        return profile
    update = {
        other: _without(getattr(profile, other), movie.id)
        for other in PREFERENCE_FIELDS
        if other != field
    }
    update[field] = [*current, movie]
    return profile.model_copy(update=update)


def _remove_from_set(profile: UserProfile, field: str, movie_id: int) -> UserProfile:
    current = getattr(profile, field)
    if not any(m.id == movie_id for m in current):
        return profile
    return profile.model_copy(update={field: _without(current, movie_id)})


def add_liked(profile: UserProfile, movie: Movie) -> UserProfile:
    return _add_to_set(profile, "liked_movies", movie)


def remove_liked(profile: UserProfile, movie_id: int) -> UserProfile:
    return _remove_from_set(profile, "liked_movies", movie_id)


def add_disliked(profile: UserProfile, movie: Movie) -> UserProfile:
    return _add_to_set(profile, "disliked_movies", movie)


def remove_disliked(profile: UserProfile, movie_id: int) -> UserProfile:
    return _remove_from_set(profile, "disliked_movies", movie_id)


def add_avoided(profile: UserProfile, movie: Movie) -> UserProfile:
    return _add_to_set(profile, "avoided_movies", movie)


def remove_avoided(profile: UserProfile, movie_id: int) -> UserProfile:
    return _remove_from_set(profile, "avoided_movies", movie_id)


def add_tag(profile: UserProfile, tag: Tag) -> UserProfile:
    if any(t.id == tag.id for t in profile.tags):
        return profile
    return profile.model_copy(update={"tags": [*profile.tags, tag]})


def remove_tag(profile: UserProfile, tag_id: str) -> UserProfile:
    if not any(t.id == tag_id for t in profile.tags):
        return profile
    return profile.model_copy(update={"tags": [t for t in profile.tags if t.id != tag_id]})


def set_mood(profile: UserProfile, mood: Optional[Mood]) -> UserProfile:
    return profile.model_copy(update={"current_mood": mood})


def empty_profile() -> UserProfile:
    return UserProfile()


# Marker values for the pending write slot
_NOTHING = object()
_DELETE = object()

Subscriber = Callable[[UserProfile], object]


class PreferenceStore:
    """
    Owned, explicitly started store for one profile.

    Usage:
        store = PreferenceStore(persistence)
        await store.start()
        await store.add_liked(movie)
        ...
        await store.close()

    Every committed mutation is published to subscribers (sync or async
    callables) while the update lock is held, so subscribers see snapshots in
    commit order. Subscribers must not mutate the store from inside the
    callback.

    Writes are fire-and-forget for the caller. One writer task drains a
    single pending slot; when snapshots pile up during a slow write only the
    newest one is written next. A failed write keeps the in-memory state and
    is reported through ``last_persist_error``.
    """

    def __init__(self, persistence):
        self.persistence = persistence
        self.last_persist_error: Optional[str] = None
        self._profile: Optional[UserProfile] = None
        self._lock = asyncio.Lock()
        self._subscribers: List[Subscriber] = []
        self._pending = _NOTHING
        self._wakeup = asyncio.Event()
        self._idle = asyncio.Event()
        self._idle.set()
        self._closing = False
        self._writer_task: Optional[asyncio.Task] = None

    @property
    def started(self) -> bool:
        return self._profile is not None

    @property
    def profile(self) -> UserProfile:
        if self._profile is None:
            raise StoreNotInitializedError("PreferenceStore used before start() or after close()")
        return self._profile

    async def start(self) -> UserProfile:
        if self._profile is not None:
            return self._profile
        try:
            loaded = await self.persistence.load()
        except Exception as e:
            logger.warning(f"Failed to load persisted profile, starting empty: {e}")
            loaded = None
        self._profile = loaded if loaded is not None else empty_profile()
        self._closing = False
        self._writer_task = asyncio.create_task(self._run_writer())
        logger.info(
            f"Preference store started ({len(self._profile.liked_movies)} liked, "
            f"{len(self._profile.disliked_movies)} disliked, {len(self._profile.avoided_movies)} avoided, "
            f"{len(self._profile.tags)} tags)"
        )
        return self._profile

    async def close(self) -> None:
        if self._writer_task is None:
            self._profile = None
            return
        await self.flush()
        self._closing = True
        self._wakeup.set()
        if not self._writer_task.done():
            await self._writer_task
        self._writer_task = None
        self._subscribers.clear()
        self._profile = None
        logger.info("Preference store closed")

    async def flush(self) -> None:
        """Wait until every scheduled write has been attempted."""
        if self._writer_task is not None and not self._writer_task.done():
            await self._idle.wait()

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    # Mutations

    async def add_liked(self, movie: Movie) -> UserProfile:
        return await self._commit(add_liked, movie)

    async def remove_liked(self, movie_id: int) -> UserProfile:
        return await self._commit(remove_liked, movie_id)

    async def add_disliked(self, movie: Movie) -> UserProfile:
        return await self._commit(add_disliked, movie)

    async def remove_disliked(self, movie_id: int) -> UserProfile:
        return await self._commit(remove_disliked, movie_id)

    async def add_avoided(self, movie: Movie) -> UserProfile:
        return await self._commit(add_avoided, movie)

    async def remove_avoided(self, movie_id: int) -> UserProfile:
        return await self._commit(remove_avoided, movie_id)

    async def add_tag(self, tag: Tag) -> UserProfile:
        return await self._commit(add_tag, tag)

    async def remove_tag(self, tag_id: str) -> UserProfile:
        return await self._commit(remove_tag, tag_id)

    async def set_mood(self, mood: Optional[Mood]) -> UserProfile:
        return await self._commit(set_mood, mood)

    async def clear(self) -> UserProfile:
        async with self._lock:
            if self._profile is None:
                raise StoreNotInitializedError("PreferenceStore used before start() or after close()")
            cleared = empty_profile()
            self._profile = cleared
            self._schedule(_DELETE)
            await self._publish(cleared)
            logger.debug("Profile cleared")
            return cleared

    async def _commit(self, reducer, *args) -> UserProfile:
        async with self._lock:
            current = self.profile
            updated = reducer(current, *args)
            if updated is current or updated == current:
                return current
            self._profile = updated
            self._schedule(updated)
            await self._publish(updated)
            logger.debug(f"Profile updated by {reducer.__name__}")
            return updated

    async def _publish(self, profile: UserProfile) -> None:
        for callback in list(self._subscribers):
            try:
                result = callback(profile)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception(f"Profile subscriber {callback!r} failed")

    # Persistence

    def _schedule(self, op) -> None:
        # Whole-profile writes: the newest pending op supersedes older ones
        self._pending = op
        self._idle.clear()
        self._wakeup.set()

    async def _run_writer(self) -> None:
        try:
            while True:
                await self._wakeup.wait()
                self._wakeup.clear()
                while self._pending is not _NOTHING:
                    op, self._pending = self._pending, _NOTHING
                    await self._write(op)
                self._idle.set()
                if self._closing:
                    return
        finally:
            # Writer gone: nothing will drain the slot, so flush() must not wait on it
            if not self._closing:
                self.last_persist_error = "Profile writer stopped; changes are no longer saved"
                logger.warning(self.last_persist_error)
            self._idle.set()

    async def _write(self, op) -> None:
        try:
            if op is _DELETE:
                await self.persistence.delete()
            else:
                await self.persistence.save(op)
        except Exception as e:
            self.last_persist_error = f"Profile could not be saved: {e}"
            logger.warning(self.last_persist_error)
        else:
            self.last_persist_error = None
