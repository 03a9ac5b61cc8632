"""
Async Redis access for the profile blob and the TMDB key setting.

redis.asyncio connections belong to the loop that opened them, so clients are
kept per running loop. TestClient and the uvicorn server each get their own.
"""
import asyncio
from typing import Dict, Optional

from redis import asyncio as aioredis

from ..core.config import settings

_clients: Dict[int, aioredis.Redis] = {}


def _loop_id() -> int:
    # Only called from coroutines or code scheduled on the loop
    return id(asyncio.get_running_loop())


def get_redis(url: Optional[str] = None) -> aioredis.Redis:
    """Redis client for the running loop, created on first use."""
    loop_id = _loop_id()
    client = _clients.get(loop_id)
    if client is None:
        client = aioredis.from_url(
            url or settings.redis_url,
            decode_responses=True,
            max_connections=10,
            socket_connect_timeout=5,
            socket_timeout=5,
            retry_on_timeout=True,
        )
        _clients[loop_id] = client
    return client


async def close_redis() -> None:
    client = _clients.pop(_loop_id(), None)
    if client is not None:
        await client.aclose()
