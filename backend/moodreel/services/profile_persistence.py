"""
profile_persistence.py

Load/save of the whole UserProfile as a single JSON blob.

Backends:
- RedisProfilePersistence: one string key per profile (user_profile:{key})
- MemoryProfilePersistence: process-local, for local runs and tests
"""
import logging
from typing import Optional

from pydantic import ValidationError
from redis.exceptions import RedisError

from moodreel.schemas import UserProfile

logger = logging.getLogger(__name__)


class PersistenceError(Exception):
    """Raised when the profile blob cannot be read or written."""


class RedisProfilePersistence:
    def __init__(self, redis, profile_key: str = "default"):
        self.redis = redis
        self.cache_key = f"user_profile:{profile_key}"

    async def load(self) -> Optional[UserProfile]:
        try:
            raw = await self.redis.get(self.cache_key)
        except RedisError as e:
            raise PersistenceError(f"Failed to read {self.cache_key}: {e}") from e
        if not raw:
            return None
        try:
            profile = UserProfile.from_json(raw)
        except ValidationError as e:
            logger.warning(f"Discarding unreadable profile blob at {self.cache_key}: {e}")
            return None
        logger.debug(f"Loaded profile from {self.cache_key}")
        return profile

    async def save(self, profile: UserProfile) -> None:
        try:
            await self.redis.set(self.cache_key, profile.to_json())
        except RedisError as e:
            raise PersistenceError(f"Failed to write {self.cache_key}: {e}") from e

    async def delete(self) -> None:
        try:
            await self.redis.delete(self.cache_key)
        except RedisError as e:
            raise PersistenceError(f"Failed to delete {self.cache_key}: {e}") from e


class MemoryProfilePersistence:
    def __init__(self, initial: Optional[UserProfile] = None):
        self.blob: Optional[str] = initial.to_json() if initial is not None else None

    async def load(self) -> Optional[UserProfile]:
        if self.blob is None:
            return None
        return UserProfile.from_json(self.blob)

    async def save(self, profile: UserProfile) -> None:
        self.blob = profile.to_json()

    async def delete(self) -> None:
        self.blob = None
