"""
Async example showing real-time transcription.
"""

import asyncio
import os

from speechmatics_sdk.realtime import AsyncClient
from speechmatics_sdk.realtime import ServerMessageType
from speechmatics_sdk.realtime import SessionEvent
from speechmatics_sdk.realtime import TranscriptionConfig
from speechmatics_sdk.realtime import TranscriptResult

audio_file = os.getenv("AUDIO_FILE_PATH", os.path.join(os.path.dirname(__file__), "../example.wav"))


async def main() -> None:
    """Run async transcription example."""
    transcript_parts = []

    async with AsyncClient() as client:

        @client.on(ServerMessageType.ADD_TRANSCRIPT)
        def handle_final_transcript(message):
            result = TranscriptResult.from_message(message)
            print(f"[final]: {result.transcript}")
            transcript_parts.append(result.transcript)

        def handle_partial_transcript(message):
            result = TranscriptResult.from_message(message)
            print(f"[partial]: {result.transcript}")

        client.on(ServerMessageType.ADD_PARTIAL_TRANSCRIPT, handle_partial_transcript)
        client.on(SessionEvent.SOCKET_STATE_CHANGE, lambda state: print(f"[socket]: {state.value}"))

        try:
            with open(audio_file, "rb") as audio:
                await client.transcribe(audio, transcription_config=TranscriptionConfig(enable_partials=True))

            print(f"\nComplete transcript: {''.join(transcript_parts)}")
        except Exception as e:
            print(f"Transcription error: {e}")


if __name__ == "__main__":
    asyncio.run(main())
