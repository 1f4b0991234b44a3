import io

import pytest

from speechmatics_sdk import ProviderAuth
from speechmatics_sdk import Speechmatics
from speechmatics_sdk.realtime import ServerMessageType


@pytest.mark.asyncio
async def test_batch_and_realtime_share_one_key(batch_service, rt_service):
    calls = 0

    async def provider():
        nonlocal calls
        calls += 1
        return "valid-key"

    transcripts = []

    async with Speechmatics(provider, batch_url=batch_service.url, realtime_url=rt_service.url) as sm:
        assert isinstance(sm.auth, ProviderAuth)
        assert sm.batch is sm.batch
        assert sm.batch.auth is sm.auth

        await sm.batch.list_jobs()

        session = sm.realtime()
        session.on(ServerMessageType.ADD_TRANSCRIPT, transcripts.append)
        await session.transcribe(io.BytesIO(b"\x00" * 100))

    assert calls == 1
    assert batch_service.seen_keys == ["valid-key"]
    assert rt_service.seen_keys == ["valid-key"]
    assert len(transcripts) == 1


@pytest.mark.asyncio
async def test_refresh_in_one_client_is_seen_by_the_other(batch_service, rt_service):
    keys = iter(["firstKey", "valid-key"])

    async def provider():
        return next(keys)

    async with Speechmatics(provider, batch_url=batch_service.url, realtime_url=rt_service.url) as sm:
        await sm.batch.list_jobs()
        await sm.realtime().transcribe(io.BytesIO(b"\x00" * 100))

    assert batch_service.seen_keys == ["firstKey", "valid-key"]
    assert rt_service.seen_keys == ["valid-key"]
