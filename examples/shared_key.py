"""
Realtime session authenticated with a temporary key.

JWTAuth keys are issued for one API: key_type="rt" keys are rejected by the
batch API, so create a separate JWTAuth(key_type="batch") for batch jobs.
A new key is requested whenever the current one is rejected.
"""

import asyncio
import os

from speechmatics_sdk import JWTAuth
from speechmatics_sdk import Speechmatics
from speechmatics_sdk.realtime import ServerMessageType
from speechmatics_sdk.realtime import TranscriptResult

audio_file = os.getenv("AUDIO_FILE_PATH", os.path.join(os.path.dirname(__file__), "example.wav"))


async def main() -> None:
    auth = JWTAuth(os.getenv("SPEECHMATICS_API_KEY"), ttl=600, key_type="rt")

    async with Speechmatics(auth, app_id="shared-key-example") as sm:
        session = sm.realtime()
        session.on(
            ServerMessageType.ADD_TRANSCRIPT,
            lambda message: print(TranscriptResult.from_message(message).transcript, end="", flush=True),
        )

        with open(audio_file, "rb") as audio:
            await session.transcribe(audio, timeout=600)

        print(f"\nSession {session.session.session_id} finished")


if __name__ == "__main__":
    asyncio.run(main())
