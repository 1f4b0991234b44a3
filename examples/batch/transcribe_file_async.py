"""
Async example showing batch transcription with a key fetched from your backend.
"""

import asyncio
import os

import aiohttp

from speechmatics_sdk.batch import AsyncClient
from speechmatics_sdk.batch import JobConfig
from speechmatics_sdk.batch import JobType
from speechmatics_sdk.batch import Transcript
from speechmatics_sdk.batch import TranscriptionConfig

audio_file = os.getenv("AUDIO_FILE_PATH", os.path.join(os.path.dirname(__file__), "../example.wav"))
key_endpoint = os.getenv("KEY_ENDPOINT_URL")


async def fetch_key() -> str:
    """Ask our own backend for a short-lived Speechmatics key."""
    async with aiohttp.ClientSession() as session:
        async with session.post(key_endpoint) as response:
            response.raise_for_status()
            data = await response.json()
            return data["key_value"]


async def main() -> None:
    """Run async batch transcription example."""

    # Static key from the environment, or a provider that is asked again when the key expires
    api_key = fetch_key if key_endpoint else os.getenv("SPEECHMATICS_API_KEY")

    async with AsyncClient(api_key=api_key) as client:
        try:
            print(f"Submitting job for: {audio_file}")

            config = JobConfig(
                type=JobType.TRANSCRIPTION,
                transcription_config=TranscriptionConfig(language="en", enable_entities=True),
            )

            job = await client.submit_job(audio_file, config=config)

            print(f"Job submitted: {job.id}")
            print("Waiting for completion...")

            result = await client.wait_for_completion(
                job.id,
                polling_interval=2.0,
                timeout=300.0,
            )

            print("Transcription completed!")
            if isinstance(result, Transcript):
                print(f"Transcript: {result.transcript_text}")
            else:
                print(f"Transcript: {result}")

            for recent in await client.list_jobs(limit=5):
                print(f"{recent.id} {recent.status.value} {recent.data_name}")

        except FileNotFoundError:
            print(f"Audio file not found: {audio_file}")
            print("Set AUDIO_FILE_PATH environment variable to specify audio file")

        except Exception as e:
            print(f"Transcription failed: {e}")


if __name__ == "__main__":
    asyncio.run(main())
