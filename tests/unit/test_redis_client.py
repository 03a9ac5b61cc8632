import asyncio

from moodreel.core import redis_client


def test_one_client_per_loop_and_close_forgets_it():
    async def same_loop():
        first = redis_client.get_redis("redis://localhost:6379/0")
        second = redis_client.get_redis()
        assert first is second
        await redis_client.close_redis()
        third = redis_client.get_redis("redis://localhost:6379/0")
        assert third is not first
        await redis_client.close_redis()
        return first

    a = asyncio.run(same_loop())
    b = asyncio.run(same_loop())
    assert a is not b
    assert redis_client._clients == {}


def test_close_without_client_is_noop():
    asyncio.run(redis_client.close_redis())
