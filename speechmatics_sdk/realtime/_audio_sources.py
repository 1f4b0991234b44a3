from __future__ import annotations

import asyncio
import inspect
from collections.abc import AsyncIterator
from typing import Any

CHUNK_SIZE = 4096


class FileSource:
    """
    Audio source that reads a file-like object in fixed-size chunks.

    Both blocking (``open(..., "rb")``, ``io.BytesIO``) and async
    (``aiofiles``) handles are supported; blocking reads run in the default
    executor so the event loop keeps serving the WebSocket.

    Args:
        fh: Object with a ``read(size)`` method returning bytes.
        chunk_size: Number of bytes to read per chunk.

    Example:
        >>> async with aiofiles.open("speech.wav", "rb") as audio_file:
        ...     async for chunk in FileSource(audio_file, chunk_size=4096):
        ...         await client.send_audio(chunk)
    """

    def __init__(self, fh: Any, *, chunk_size: int = CHUNK_SIZE):
        if not hasattr(fh, "read"):
            raise TypeError("Audio source must have a read() method")
        if chunk_size <= 0:
            raise ValueError("chunk_size must be > 0")

        self._fh, self._n = fh, chunk_size

    async def __aiter__(self) -> AsyncIterator[bytes]:
        loop = asyncio.get_running_loop()

        while True:
            if inspect.iscoroutinefunction(self._fh.read):
                data = await self._fh.read(self._n)
            else:
                data = await loop.run_in_executor(None, self._fh.read, self._n)
            if not data:
                break
            yield data
