# Copyright (c) 2025 Bytedance Ltd. and/or its affiliates
# SPDX-License-Identifier: MIT

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import AsyncIterator, Awaitable, Callable, Optional, Union

from src.config.configuration import DEFAULT_WAKE_WORD

logger = logging.getLogger(__name__)

DetectionCallback = Callable[[], Union[None, Awaitable[None]]]
ErrorCallback = Callable[[BaseException], Union[None, Awaitable[None]]]
TranscriptSource = Callable[[], AsyncIterator[str]]


class WakeWordDetector:
    """Watches recognised transcripts for the wake word on its own task.

    Transcripts come either from ``source`` (an async iterator factory wrapping
    a speech recogniser) or from :meth:`feed`. A failing source stops the
    detector and reports the error through ``on_error``.
    """

    def __init__(
        self,
        on_detected: DetectionCallback,
        wake_word: str = DEFAULT_WAKE_WORD,
        on_error: Optional[ErrorCallback] = None,
        source: Optional[TranscriptSource] = None,
    ) -> None:
        if not wake_word.strip():
            raise ValueError("Wake word must not be empty")
        self._on_detected = on_detected
        self._on_error = on_error
        self._wake_word = wake_word.strip().lower()
        self._source = source or self._queued_transcripts
        self._queue: asyncio.Queue[str] = asyncio.Queue()
        self._task: Optional[asyncio.Task[None]] = None

    @property
    def wake_word(self) -> str:
        return self._wake_word

    @property
    def is_listening(self) -> bool:
        return self._task is not None and not self._task.done()

    def matches(self, transcript: str) -> bool:
        return self._wake_word in transcript.lower()

    def start(self) -> None:
        if self.is_listening:
            logger.debug("Wake word detector already started")
            return
        self._task = asyncio.get_running_loop().create_task(self._listen())
        logger.debug("Listening for wake word '%s'", self._wake_word)

    async def stop(self) -> None:
        if self._task is None:
            logger.debug("Wake word detector already stopped")
            return
        task, self._task = self._task, None
        if task is not asyncio.current_task():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        logger.debug("Stopped listening for wake word")

    def feed(self, transcript: str) -> None:
        self._queue.put_nowait(transcript)

    async def _queued_transcripts(self) -> AsyncIterator[str]:
        while True:
            yield await self._queue.get()

    async def process(self, transcript: str) -> bool:
        """Check one transcript and run the detection callback on a match."""
        logger.debug("Recognized: '%s'", transcript)
        if not self.matches(transcript):
            return False
        logger.info("Wake word detected: '%s'", transcript)
        await _call(self._on_detected)
        return True

    async def _listen(self) -> None:
        try:
            async for transcript in self._source():
                if await self.process(transcript):
                    if self._task is not asyncio.current_task():
                        # Stopped from inside the callback.
                        break
        except asyncio.CancelledError:
            raise
        except Exception as exc:  # noqa: BLE001 - reported to the owning service
            logger.error("Wake word detection failed: %s", exc)
            self._task = None
            if self._on_error is None:
                raise
            await _call(self._on_error, exc)


async def _call(callback: Callable[..., object], *args: object) -> None:
    result = callback(*args)
    if inspect.isawaitable(result):
        await result
