import asyncio
import io

import aiofiles
import pytest

from speechmatics_sdk import AuthenticationError
from speechmatics_sdk import ConnectionError
from speechmatics_sdk import JobError
from speechmatics_sdk import ResponseError
from speechmatics_sdk import TimeoutError
from speechmatics_sdk._version import sdk_tag
from speechmatics_sdk.batch import AsyncClient
from speechmatics_sdk.batch import FetchData
from speechmatics_sdk.batch import FormatType
from speechmatics_sdk.batch import JobConfig
from speechmatics_sdk.batch import JobStatus
from speechmatics_sdk.batch import Transcript
from speechmatics_sdk.batch import TranscriptionConfig


class KeyRotation:
    """Async key provider handing out keys in order, then repeating the last."""

    def __init__(self, *keys: str):
        self.keys = list(keys)
        self.calls = 0

    async def __call__(self) -> str:
        self.calls += 1
        return self.keys[min(self.calls, len(self.keys)) - 1]


@pytest.mark.asyncio
async def test_static_key_is_exposed(batch_service):
    async with AsyncClient(api_key="valid-key", url=batch_service.url) as client:
        assert client.api_key == "valid-key"
        assert await client.refresh_api_key() == "valid-key"


@pytest.mark.asyncio
async def test_url_from_environment(monkeypatch, batch_service):
    monkeypatch.setenv("SPEECHMATICS_BATCH_URL", batch_service.url)

    async with AsyncClient(api_key="valid-key") as client:
        jobs = await client.list_jobs()

    assert len(jobs) == 2


@pytest.mark.asyncio
async def test_refresh_api_key_calls_provider(batch_service):
    provider = KeyRotation("first", "second")

    async with AsyncClient(api_key=provider, url=batch_service.url) as client:
        assert client.api_key is None
        assert await client.refresh_api_key() == "first"
        assert client.api_key == "first"
        assert await client.refresh_api_key() == "second"

    assert provider.calls == 2


@pytest.mark.asyncio
async def test_provider_called_once_across_requests(batch_service):
    provider = KeyRotation("valid-key")

    async with AsyncClient(api_key=provider, url=batch_service.url) as client:
        await client.list_jobs()
        await client.list_jobs()

    assert provider.calls == 1
    assert batch_service.seen_keys == ["valid-key", "valid-key"]


@pytest.mark.asyncio
async def test_rejected_key_is_refreshed_and_retried(batch_service):
    provider = KeyRotation("firstKey", "valid-key")

    async with AsyncClient(api_key=provider, url=batch_service.url) as client:
        jobs = await client.list_jobs()

    assert [job.id for job in jobs] == ["job-1", "job-2"]
    assert provider.calls == 2
    assert batch_service.seen_keys == ["firstKey", "valid-key"]


@pytest.mark.asyncio
async def test_second_rejection_is_raised(batch_service):
    provider = KeyRotation("firstKey", "secondKey")

    async with AsyncClient(api_key=provider, url=batch_service.url) as client:
        with pytest.raises(AuthenticationError) as exc_info:
            await client.list_jobs()

    assert exc_info.value.status == 401
    assert provider.calls == 2
    assert batch_service.seen_keys == ["firstKey", "secondKey"]


@pytest.mark.asyncio
async def test_static_key_rejection_is_not_retried(batch_service):
    async with AsyncClient(api_key="wrong-key", url=batch_service.url) as client:
        with pytest.raises(AuthenticationError):
            await client.list_jobs()

    assert batch_service.seen_keys == ["wrong-key"]


@pytest.mark.asyncio
async def test_server_error_is_not_retried(batch_service):
    batch_service.fail_with = 500
    provider = KeyRotation("valid-key")

    async with AsyncClient(api_key=provider, url=batch_service.url) as client:
        with pytest.raises(ResponseError) as exc_info:
            await client.list_jobs()

    assert exc_info.value.status == 500
    assert exc_info.value.error == "Internal Server Error"
    assert exc_info.value.detail == "try later"
    assert provider.calls == 1
    assert len(batch_service.seen_keys) == 1


@pytest.mark.asyncio
async def test_network_error_is_raised_without_refresh():
    provider = KeyRotation("valid-key")

    async with AsyncClient(api_key=provider, url="http://127.0.0.1:1/v2") as client:
        with pytest.raises(ConnectionError):
            await client.list_jobs()

    assert provider.calls == 1


@pytest.mark.asyncio
async def test_concurrent_requests_share_key_resolution(batch_service):
    provider = KeyRotation("valid-key")

    async with AsyncClient(api_key=provider, url=batch_service.url) as client:
        await asyncio.gather(client.list_jobs(), client.list_jobs(), client.get_job_info("job-1"))

    assert provider.calls == 1


@pytest.mark.asyncio
async def test_sdk_and_app_query_params(batch_service):
    async with AsyncClient(api_key="valid-key", url=batch_service.url, app_id="my-app") as client:
        await client.list_jobs(limit=10, include_deleted=True)

    query = batch_service.seen_queries[0]
    assert query["sm-sdk"] == sdk_tag()
    assert query["sm-sdk"].startswith("python-v")
    assert query["sm-app"] == "my-app"
    assert query["limit"] == "10"
    assert query["include_deleted"] == "true"


@pytest.mark.asyncio
async def test_submit_job_uploads_file(batch_service, tmp_path):
    audio = tmp_path / "speech.wav"
    audio.write_bytes(b"RIFF....WAVEfmt ")

    async with AsyncClient(api_key="valid-key", url=batch_service.url) as client:
        job = await client.submit_job(str(audio), transcription_config=TranscriptionConfig(language="de"))

    assert job.id == "job-1"
    assert job.status == JobStatus.RUNNING
    assert job.data_name == "speech.wav"

    upload = batch_service.uploads[0]
    assert upload["filename"] == "speech.wav"
    assert upload["data"] == b"RIFF....WAVEfmt "
    assert upload["config"]["type"] == "transcription"
    assert upload["config"]["transcription_config"]["language"] == "de"


@pytest.mark.asyncio
async def test_submit_job_from_file_object(batch_service):
    audio = io.BytesIO(b"\x00\x01\x02")
    audio.name = "/tmp/recordings/meeting.mp3"

    async with AsyncClient(api_key="valid-key", url=batch_service.url) as client:
        job = await client.submit_job(audio)

    assert job.data_name == "meeting.mp3"
    assert batch_service.uploads[0]["data"] == b"\x00\x01\x02"


@pytest.mark.asyncio
async def test_retried_upload_resends_whole_file(batch_service):
    provider = KeyRotation("firstKey", "valid-key")

    async with AsyncClient(api_key=provider, url=batch_service.url) as client:
        await client.submit_job(b"full-audio-payload")

    assert batch_service.uploads == [
        {
            "config": {"type": "transcription", "transcription_config": {"language": "en", "operating_point": "enhanced"}},
            "filename": "audio",
            "data": b"full-audio-payload",
        }
    ]


@pytest.mark.asyncio
async def test_submit_job_with_fetch_data(batch_service):
    config = JobConfig(
        fetch_data=FetchData(url="https://example.com/audio.mp3"),
        transcription_config=TranscriptionConfig(language="en"),
    )

    async with AsyncClient(api_key="valid-key", url=batch_service.url) as client:
        job = await client.submit_job(None, config=config)

    assert job.data_name == "https://example.com/audio.mp3"
    upload = batch_service.uploads[0]
    assert upload["data"] is None
    assert upload["config"]["fetch_data"] == {"url": "https://example.com/audio.mp3"}


@pytest.mark.asyncio
async def test_submit_job_requires_exactly_one_source(batch_service):
    config = JobConfig(fetch_data=FetchData(url="https://example.com/audio.mp3"))

    async with AsyncClient(api_key="valid-key", url=batch_service.url) as client:
        with pytest.raises(ValueError):
            await client.submit_job(b"audio", config=config)
        with pytest.raises(ValueError):
            await client.submit_job(None)

    assert batch_service.uploads == []


@pytest.mark.asyncio
async def test_get_job_info(batch_service):
    async with AsyncClient(api_key="valid-key", url=batch_service.url) as client:
        job = await client.get_job_info("job-9")

    assert job.id == "job-9"
    assert job.status == JobStatus.DONE
    assert job.config.transcription_config.language == "en"


@pytest.mark.asyncio
async def test_delete_job_with_force(batch_service):
    async with AsyncClient(api_key="valid-key", url=batch_service.url) as client:
        job = await client.delete_job("job-1", force=True)

    assert job.status == JobStatus.DELETED
    assert batch_service.seen_queries[0]["force"] == "true"


@pytest.mark.asyncio
async def test_get_transcript_formats(batch_service):
    async with AsyncClient(api_key="valid-key", url=batch_service.url) as client:
        transcript = await client.get_transcript("job-1")
        text = await client.get_transcript("job-1", format_type=FormatType.TXT)
        srt = await client.get_transcript("job-1", format_type="srt")

    assert isinstance(transcript, Transcript)
    assert transcript.transcript_text == "Hello world."
    assert text == "Hello world."
    assert srt.startswith("1\n00:00:00,100")
    assert [q["format"] for q in batch_service.seen_queries] == ["json-v2", "txt", "srt"]


@pytest.mark.asyncio
async def test_get_data_file(batch_service):
    async with AsyncClient(api_key="valid-key", url=batch_service.url) as client:
        data = await client.get_data_file("job-1")

    assert data == b"RIFF-audio-bytes"


@pytest.mark.asyncio
async def test_feature_discovery_uses_unversioned_path(batch_service):
    async with AsyncClient(api_key="valid-key", url=batch_service.url) as client:
        features = await client.get_feature_discovery()

    assert features["batch"]["transcription"][0]["locale"] == "en"


@pytest.mark.asyncio
async def test_transcribe_polls_until_done(batch_service):
    batch_service.statuses = ["running", "running", "done"]

    async with AsyncClient(api_key="valid-key", url=batch_service.url) as client:
        result = await client.transcribe(b"audio", polling_interval=0.01, format_type=FormatType.TXT)

    assert result == "Hello world."


@pytest.mark.asyncio
async def test_wait_for_rejected_job(batch_service):
    batch_service.statuses = ["rejected"]
    batch_service.errors = [{"timestamp": "2024-01-01T00:00:01Z", "message": "unsupported audio"}]

    async with AsyncClient(api_key="valid-key", url=batch_service.url) as client:
        with pytest.raises(JobError, match="unsupported audio"):
            await client.wait_for_completion("job-1", polling_interval=0.01)


@pytest.mark.asyncio
async def test_wait_for_completion_timeout(batch_service):
    batch_service.statuses = ["running"]

    async with AsyncClient(api_key="valid-key", url=batch_service.url) as client:
        with pytest.raises(TimeoutError):
            await client.wait_for_completion("job-1", polling_interval=0.01, timeout=0.1)


@pytest.mark.asyncio
async def test_concurrent_rejections_refresh_once(batch_service):
    provider = KeyRotation("stale", "valid-key")

    async with AsyncClient(api_key=provider, url=batch_service.url) as client:
        results = await asyncio.gather(*(client.list_jobs() for _ in range(5)))

    assert all(len(jobs) == 2 for jobs in results)
    assert provider.calls == 2
    assert sorted(batch_service.seen_keys) == ["stale"] * 5 + ["valid-key"] * 5


@pytest.mark.asyncio
async def test_submit_job_from_async_file(batch_service, tmp_path):
    audio = tmp_path / "async.wav"
    audio.write_bytes(b"async-audio")

    async with AsyncClient(api_key="valid-key", url=batch_service.url) as client:
        async with aiofiles.open(audio, "rb") as handle:
            job = await client.submit_job(handle)

    assert job.data_name == "async.wav"
    assert batch_service.uploads[0]["data"] == b"async-audio"


@pytest.mark.asyncio
async def test_delete_job_without_job_in_response(batch_service):
    batch_service.delete_returns_job = False

    async with AsyncClient(api_key="valid-key", url=batch_service.url) as client:
        with pytest.raises(JobError):
            await client.delete_job("job-1")
