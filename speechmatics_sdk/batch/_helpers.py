"""
Utility functions for the Speechmatics batch client.
"""

from __future__ import annotations

import inspect
import os
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import BinaryIO
from typing import Union

import aiofiles

AudioFile = Union[str, "os.PathLike[str]", bytes, BinaryIO]


@asynccontextmanager
async def prepare_audio_file(audio_file: AudioFile) -> AsyncGenerator[tuple[str, bytes], None]:
    """
    Async context manager that loads audio for upload.

    The whole file is read into memory so the upload body can be sent again
    if the request has to be retried.

    Args:
        audio_file: Path to an audio file, raw audio bytes, or a binary
            file-like object with a blocking or async ``read()``.

    Yields:
        Tuple of (filename, file_data)

    Examples:
        >>> async with prepare_audio_file("audio.wav") as (filename, file_data):
        ...     # Use file_data for upload
        ...     pass
    """
    if isinstance(audio_file, (str, os.PathLike)):
        async with aiofiles.open(audio_file, "rb") as f:
            content = await f.read()
        yield os.path.basename(os.fspath(audio_file)), content
    elif isinstance(audio_file, (bytes, bytearray)):
        yield "audio", bytes(audio_file)
    else:
        filename = getattr(audio_file, "name", "audio")
        if isinstance(filename, str):
            filename = os.path.basename(filename)
        else:
            filename = "audio"
        if inspect.iscoroutinefunction(audio_file.read):
            content = await audio_file.read()
        else:
            content = audio_file.read()
        yield filename, content


def discovery_base_url(batch_url: str) -> str:
    """
    Strip the API version path from the batch URL.

    Feature discovery lives at ``/v1/discovery/features`` on the same host as
    the versioned batch API.

    Examples:
        >>> discovery_base_url("https://asr.api.speechmatics.com/v2")
        'https://asr.api.speechmatics.com'
    """
    base = batch_url.rstrip("/")
    head, _, tail = base.rpartition("/")
    if head and tail[:1] == "v" and tail[1:].isdigit():
        return head
    return base
