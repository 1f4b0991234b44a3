"""
Asynchronous client for Speechmatics batch transcription.

This module provides the AsyncClient class that submits audio to the
Speechmatics batch API, tracks jobs and fetches their transcripts.
"""

from __future__ import annotations

import asyncio
import os
import time
import uuid
from typing import Any
from typing import Optional
from typing import Union

from .._auth import ApiKeySource
from .._auth import AuthBase
from .._auth import create_auth
from .._exceptions import AuthenticationError
from .._exceptions import BatchError
from .._exceptions import JobError
from .._exceptions import TimeoutError
from .._logging import get_logger
from ._helpers import AudioFile
from ._helpers import discovery_base_url
from ._helpers import prepare_audio_file
from ._models import ConnectionConfig
from ._models import FormatType
from ._models import JobConfig
from ._models import JobDetails
from ._models import JobStatus
from ._models import JobType
from ._models import Transcript
from ._models import TranscriptionConfig
from ._transport import Transport

DEFAULT_BATCH_URL = "https://asr.api.speechmatics.com/v2"

_FAILED_STATUSES = (JobStatus.REJECTED, JobStatus.DELETED, JobStatus.EXPIRED)


class AsyncClient:
    """
    Asynchronous client for Speechmatics batch speech transcription.

    The client handles the complete batch workflow: job submission with an
    uploaded file or a remote URL, status polling, and transcript retrieval.

    Authentication is lazy. The key is resolved on the first request and
    reused afterwards. When the key comes from an async provider and the
    service rejects it with HTTP 401, the client fetches a new key and repeats
    the request once.

    Args:
        auth: Authentication instance (StaticKeyAuth, ProviderAuth, JWTAuth).
        api_key: API key string or async provider, used if auth is not given.
            Defaults to the SPEECHMATICS_API_KEY environment variable.
        url: REST API endpoint URL. If not provided, uses SPEECHMATICS_BATCH_URL
             environment variable or defaults to production endpoint.
        app_id: Optional application identifier reported to the service.
        conn_config: Connection timeouts.

    Raises:
        ConfigurationError: If no API key can be found.

    Examples:
        Basic usage:
            >>> async with AsyncClient(api_key="your-key") as client:
            ...     job = await client.submit_job("audio.wav")
            ...     result = await client.wait_for_completion(job.id)
            ...     print(result.transcript_text)

        With a key provider:
            >>> async def fetch_key() -> str:
            ...     return await my_backend.issue_key()
            >>> async with AsyncClient(api_key=fetch_key) as client:
            ...     jobs = await client.list_jobs()
    """

    def __init__(
        self,
        auth: Optional[AuthBase] = None,
        *,
        api_key: ApiKeySource = None,
        url: Optional[str] = None,
        app_id: Optional[str] = None,
        conn_config: Optional[ConnectionConfig] = None,
    ) -> None:
        self._auth = auth or create_auth(api_key)
        self._url = url or os.environ.get("SPEECHMATICS_BATCH_URL") or DEFAULT_BATCH_URL
        self._conn_config = conn_config or ConnectionConfig()
        self._request_id = str(uuid.uuid4())
        self._transport = Transport(self._url, self._conn_config, self._request_id, app_id)

        self._logger = get_logger(__name__)
        self._logger.debug("AsyncClient initialized (request_id=%s, url=%s)", self._request_id, self._url)

    async def __aenter__(self) -> AsyncClient:
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    @property
    def auth(self) -> AuthBase:
        return self._auth

    @property
    def api_key(self) -> Optional[str]:
        """The key currently cached by the key source, if any."""
        return getattr(self._auth, "api_key", None)

    async def refresh_api_key(self) -> str:
        """
        Discard the cached key and resolve a new one.

        Returns:
            The new key. For a static key this is the same key.
        """
        self._auth.invalidate()
        return await self._auth.get_api_key()

    async def submit_job(
        self,
        audio_file: Optional[AudioFile],
        *,
        config: Optional[JobConfig] = None,
        transcription_config: Optional[TranscriptionConfig] = None,
    ) -> JobDetails:
        """
        Submit a new transcription job.

        Args:
            audio_file: Path, bytes or binary file-like object with the audio,
                or None when the config carries fetch_data.
            config: Complete job configuration. If not provided, one is built
                from transcription_config.
            transcription_config: Transcription settings used when config is
                not provided.

        Returns:
            JobDetails with the job ID and initial status.

        Raises:
            ValueError: If both or neither of audio_file and fetch_data are given.
            BatchError: If the service does not return a job ID.
            AuthenticationError: If the API key is rejected.

        Examples:
            >>> job = await client.submit_job("audio.wav")

            >>> config = JobConfig(
            ...     fetch_data=FetchData(url="https://example.com/audio.mp3"),
            ...     transcription_config=TranscriptionConfig(language="es"),
            ... )
            >>> job = await client.submit_job(None, config=config)
        """
        if config is None:
            config = JobConfig(
                type=JobType.TRANSCRIPTION,
                transcription_config=transcription_config or TranscriptionConfig(),
            )

        config_dict = config.to_dict()
        has_fetch_data = "fetch_data" in config_dict

        if audio_file is not None and has_fetch_data:
            raise ValueError("Cannot specify both audio_file and fetch_data")
        if audio_file is None and not has_fetch_data:
            raise ValueError("Must provide either audio_file or fetch_data in config")

        if has_fetch_data:
            filename = config_dict["fetch_data"]["url"]
            response = await self._request("POST", "/jobs", multipart_data={"config": config_dict})
        else:
            assert audio_file is not None
            async with prepare_audio_file(audio_file) as (filename, file_data):
                multipart_data = {
                    "config": config_dict,
                    "data_file": (filename, file_data, "application/octet-stream"),
                }
                response = await self._request("POST", "/jobs", multipart_data=multipart_data)

        job_id = response.get("id")
        if not job_id:
            raise BatchError("No job ID returned from server")

        self._logger.debug("Job submitted (job_id=%s, data_name=%s)", job_id, filename)
        return JobDetails(
            id=job_id,
            status=JobStatus.RUNNING,
            created_at=response.get("created_at", ""),
            data_name=filename,
            config=config,
        )

    async def get_job_info(self, job_id: str) -> JobDetails:
        """
        Get the current status and metadata of a job.

        Raises:
            JobError: If the response carries no job.
            ResponseError: If the job does not exist or the request fails.
        """
        self._logger.debug("Retrieving job info (job_id=%s)", job_id)
        response = await self._request("GET", f"/jobs/{job_id}")
        job = response.get("job")
        if job is None:
            raise JobError(f"No job information found for job ID: {job_id}")
        return JobDetails.from_dict(job)

    async def list_jobs(
        self,
        *,
        limit: Optional[int] = None,
        created_before: Optional[str] = None,
        include_deleted: Optional[bool] = None,
    ) -> list[JobDetails]:
        """
        List jobs, most recent first.

        Args:
            limit: Maximum number of jobs to return.
            created_before: Only return jobs created before this ISO 8601 timestamp.
            include_deleted: Also return jobs that have been deleted.

        Returns:
            List of JobDetails objects.
        """
        params: dict[str, Any] = {}
        if limit is not None:
            params["limit"] = limit
        if created_before:
            params["created_before"] = created_before
        if include_deleted is not None:
            params["include_deleted"] = str(include_deleted).lower()

        response = await self._request("GET", "/jobs", params=params)
        jobs_data = response.get("jobs", [])
        self._logger.debug("Jobs retrieved (%d jobs)", len(jobs_data))
        return [JobDetails.from_dict(job) for job in jobs_data]

    async def delete_job(self, job_id: str, *, force: bool = False) -> JobDetails:
        """
        Delete a job and its results.

        Args:
            job_id: The unique job identifier.
            force: Delete the job even if it is still running.

        Returns:
            The deleted job's details.
        """
        params = {"force": "true"} if force else None
        self._logger.debug("Deleting job (job_id=%s, force=%s)", job_id, force)
        response = await self._request("DELETE", f"/jobs/{job_id}", params=params)
        job = response.get("job")
        if job is None:
            raise JobError(f"No job information returned when deleting job ID: {job_id}")
        return JobDetails.from_dict(job)

    async def get_transcript(self, job_id: str, *, format_type: FormatType = FormatType.JSON) -> Union[Transcript, str]:
        """
        Get the transcript for a completed job.

        Args:
            job_id: The unique job identifier.
            format_type: FormatType.JSON, FormatType.TXT or FormatType.SRT.

        Returns:
            Transcript for JSON format, or the text of TXT and SRT transcripts.
        """
        format_type = FormatType(format_type)
        self._logger.debug("Retrieving transcript (job_id=%s, format=%s)", job_id, format_type.value)
        response = await self._request("GET", f"/jobs/{job_id}/transcript", params={"format": format_type.value})

        if format_type == FormatType.JSON:
            return Transcript.from_dict(response)
        return response.get("content", "")  # type: ignore[no-any-return]

    async def get_data_file(self, job_id: str) -> bytes:
        """Download the audio file that was submitted for a job."""
        self._logger.debug("Retrieving data file (job_id=%s)", job_id)
        return await self._request("GET", f"/jobs/{job_id}/data", raw=True)  # type: ignore[no-any-return]

    async def get_feature_discovery(self) -> dict[str, Any]:
        """
        Get the languages and features the service currently supports.

        Returns:
            The feature discovery document.
        """
        url = f"{discovery_base_url(self._url)}/v1/discovery/features"
        return await self._request("GET", url)  # type: ignore[no-any-return]

    async def _poll_job_status(self, job_id: str, polling_interval: float) -> None:
        """Poll job status until completion or failure."""
        self._logger.debug("Starting job status polling (job_id=%s, interval=%.1fs)", job_id, polling_interval)
        poll_count = 0
        last_log_time = 0.0

        while True:
            poll_count += 1
            job_info = await self.get_job_info(job_id)

            if job_info.status == JobStatus.DONE:
                self._logger.info("Job completed (job_id=%s, polls=%d)", job_id, poll_count)
                return
            if job_info.status in _FAILED_STATUSES:
                self._logger.warning("Job ended without a transcript (job_id=%s, status=%s)", job_id, job_info.status.value)
                reason = "; ".join(e.message for e in job_info.errors or [] if e.message)
                message = f"Job {job_id} was {job_info.status.value}"
                raise JobError(f"{message}: {reason}" if reason else message)

            current_time = time.monotonic()
            if current_time - last_log_time >= 30.0:
                self._logger.debug("Job still running (job_id=%s, polls=%d)", job_id, poll_count)
                last_log_time = current_time
            await asyncio.sleep(polling_interval)

    async def wait_for_completion(
        self,
        job_id: str,
        *,
        format_type: FormatType = FormatType.JSON,
        polling_interval: float = 5.0,
        timeout: Optional[float] = None,
    ) -> Union[Transcript, str]:
        """
        Wait for a job to complete and return its transcript.

        Args:
            job_id: The unique job identifier.
            format_type: Transcript format to return.
            polling_interval: Time in seconds between status checks.
            timeout: Maximum time in seconds to wait for completion.

        Raises:
            TimeoutError: If the job doesn't complete within timeout.
            JobError: If the job is rejected, deleted or expired.
        """
        try:
            await asyncio.wait_for(self._poll_job_status(job_id, polling_interval), timeout=timeout)
        except asyncio.TimeoutError:
            raise TimeoutError(f"Job {job_id} did not complete within {timeout} seconds") from None

        return await self.get_transcript(job_id, format_type=format_type)

    async def transcribe(
        self,
        audio_file: Optional[AudioFile],
        *,
        config: Optional[JobConfig] = None,
        transcription_config: Optional[TranscriptionConfig] = None,
        format_type: FormatType = FormatType.JSON,
        polling_interval: float = 5.0,
        timeout: Optional[float] = None,
    ) -> Union[Transcript, str]:
        """
        Submit a job and wait for its transcript.

        Examples:
            >>> result = await client.transcribe("audio.wav")
            >>> print(result.transcript_text)

            >>> text = await client.transcribe(
            ...     None,
            ...     config=JobConfig(fetch_data=FetchData(url="https://example.com/a.mp3")),
            ...     format_type=FormatType.TXT,
            ... )
        """
        job = await self.submit_job(audio_file, config=config, transcription_config=transcription_config)

        self._logger.debug("Waiting for job completion (job_id=%s)", job.id)
        result = await self.wait_for_completion(
            job.id,
            format_type=format_type,
            polling_interval=polling_interval,
            timeout=timeout,
        )
        self._logger.info("Transcription job completed (job_id=%s)", job.id)
        return result

    async def close(self) -> None:
        """
        Close the client and its HTTP session.

        Safe to call multiple times.
        """
        await self._transport.close()

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        """
        Send a request with the cached key, refreshing it once on HTTP 401.

        Only a refreshable key source is asked for a new key. Any other
        failure, and a second 401, propagate to the caller.
        """
        api_key = await self._auth.get_api_key()
        try:
            return await self._transport.request(method, path, api_key=api_key, **kwargs)
        except AuthenticationError as exc:
            if exc.status != 401 or not self._auth.refreshable:
                raise
            self._logger.info("API key rejected, refreshing and retrying (%s %s)", method, path)

        self._auth.invalidate(api_key)
        api_key = await self._auth.get_api_key()
        return await self._transport.request(method, path, api_key=api_key, **kwargs)
