import asyncio

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from moodreel.schemas import Mood, Movie, Tag, UserProfile
from moodreel.services.profile_persistence import (
    MemoryProfilePersistence,
    PersistenceError,
    RedisProfilePersistence,
)


class FakeRedis:
    """Just the string commands the persistence layer uses."""

    def __init__(self, fail=False):
        self.data = {}
        self.fail = fail

    def _check(self):
        if self.fail:
            raise RedisConnectionError("redis down")

    async def get(self, key):
        self._check()
        return self.data.get(key)

    async def set(self, key, value):
        self._check()
        self.data[key] = value

    async def delete(self, key):
        self._check()
        self.data.pop(key, None)


def sample_profile():
    return UserProfile(
        liked_movies=[Movie(id=10, title="Amelie", genre_ids=[35, 10749])],
        tags=[Tag(id="genre-35", name="Comedy")],
        current_mood=Mood.HAPPY,
    )


def test_redis_round_trip_under_profile_key():
    redis = FakeRedis()
    persistence = RedisProfilePersistence(redis, profile_key="alice")

    async def scenario():
        assert await persistence.load() is None
        await persistence.save(sample_profile())
        loaded = await persistence.load()
        await persistence.delete()
        return loaded, await persistence.load()

    loaded, after_delete = asyncio.run(scenario())
    assert loaded == sample_profile()
    assert after_delete is None


def test_redis_blob_lands_at_expected_key():
    redis = FakeRedis()
    asyncio.run(RedisProfilePersistence(redis, profile_key="alice").save(sample_profile()))
    assert list(redis.data) == ["user_profile:alice"]


def test_unreadable_blob_loads_as_none():
    redis = FakeRedis()
    redis.data["user_profile:default"] = '{"likedMovies": "not a list"}'
    assert asyncio.run(RedisProfilePersistence(redis).load()) is None


def test_redis_errors_become_persistence_errors():
    persistence = RedisProfilePersistence(FakeRedis(fail=True))
    with pytest.raises(PersistenceError):
        asyncio.run(persistence.save(sample_profile()))
    with pytest.raises(PersistenceError):
        asyncio.run(persistence.load())


def test_memory_backend_round_trip():
    persistence = MemoryProfilePersistence()
    asyncio.run(persistence.save(sample_profile()))
    assert asyncio.run(persistence.load()) == sample_profile()
