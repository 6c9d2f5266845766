# Copyright (c) 2025 Bytedance Ltd. and/or its affiliates
# SPDX-License-Identifier: MIT

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Callable, Optional

from src.agents.service import ConversationalAgentService
from src.config.configuration import WakeWordConfiguration

from .broadcast import Broadcaster
from .constants import ACTION_WAKE_WORD_FAILED, CHANNEL_ID, PERMISSION_DENIED_NOTICE
from .detector import TranscriptSource, WakeWordDetector

logger = logging.getLogger(__name__)

PermissionCheck = Callable[[], bool]
NoticeHandler = Callable[[str], None]


class WakeWordState(str, Enum):
    IDLE = "idle"
    LISTENING = "listening"
    DETECTED = "detected"
    HANDOFF_REQUESTED = "handoff_requested"
    AGENT_RUNNING = "agent_running"
    FAILED = "failed"


class WakeWordService:
    """Listens for the wake word and hands off to the conversational agent.

    ``Idle -> Listening -> Detected -> HandoffRequested -> AgentRunning``.
    A denied microphone permission or a detector failure moves the service to
    ``Failed``, broadcasts ``ACTION_WAKE_WORD_FAILED`` and stops it; there is
    no retry.
    """

    channel_id = CHANNEL_ID

    def __init__(
        self,
        agent_service: ConversationalAgentService,
        broadcaster: Broadcaster,
        configuration: Optional[WakeWordConfiguration] = None,
        permission_check: Optional[PermissionCheck] = None,
        notify: Optional[NoticeHandler] = None,
        transcript_source: Optional[TranscriptSource] = None,
    ) -> None:
        self._configuration = configuration or WakeWordConfiguration()
        self._agent_service = agent_service
        self._broadcaster = broadcaster
        self._permission_check = permission_check or (lambda: self._configuration.microphone_permission)
        self._notify = notify or (lambda text: logger.info("Notice: %s", text))
        self._transcript_source = transcript_source
        self._detector: Optional[WakeWordDetector] = None
        self._state = WakeWordState.IDLE
        self.failure_reason: Optional[str] = None
        agent_service.add_stop_listener(self._on_agent_stopped)

    @property
    def state(self) -> WakeWordState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._detector is not None

    @property
    def wake_word(self) -> str:
        return self._configuration.wake_word

    async def submit_transcript(self, transcript: str) -> bool:
        """Run a recognised transcript through the detector; returns whether it matched."""
        if self._detector is None:
            raise RuntimeError("Wake word service is not running")
        return await self._detector.process(transcript)

    async def start(self) -> WakeWordState:
        if self._detector is not None:
            logger.debug("Wake word service already running")
            return self._state

        logger.info("Wake word service starting")
        self.failure_reason = None
        if not self._permission_check():
            logger.error("Microphone permission not granted; cannot start wake word service")
            self._notify(PERMISSION_DENIED_NOTICE)
            self._fail("microphone permission denied")
            return self._state

        try:
            detector = WakeWordDetector(
                on_detected=self._on_wake_word_detected,
                wake_word=self._configuration.wake_word,
                on_error=self._on_detector_error,
                source=self._transcript_source,
            )
            detector.start()
        except Exception as exc:  # noqa: BLE001 - any start failure falls back
            logger.error("Error starting wake word detection: %s", exc)
            self._fail(str(exc))
            return self._state

        self._detector = detector
        self._state = WakeWordState.AGENT_RUNNING if self._agent_service.is_running else WakeWordState.LISTENING
        return self._state

    async def stop(self) -> None:
        detector, self._detector = self._detector, None
        if detector is not None:
            await detector.stop()
        if self._state is not WakeWordState.FAILED:
            self._state = WakeWordState.IDLE
        logger.info("Wake word service stopped")

    async def _on_wake_word_detected(self) -> None:
        self._state = WakeWordState.DETECTED
        if self._agent_service.is_running:
            logger.debug("Conversational agent is already running")
            self._state = WakeWordState.AGENT_RUNNING
            return

        self._state = WakeWordState.HANDOFF_REQUESTED
        try:
            await self._agent_service.start()
        except Exception as exc:  # noqa: BLE001 - service boundary
            logger.error("Failed to start conversational agent: %s", exc)
            await self._fail_and_stop(str(exc))
            return
        self._state = WakeWordState.AGENT_RUNNING
        self._notify(f"{self._configuration.wake_word} listening...")

    async def _on_detector_error(self, exc: BaseException) -> None:
        logger.warning("Wake word detector failed, requesting fallback trigger")
        await self._fail_and_stop(str(exc))

    def _on_agent_stopped(self) -> None:
        if self._detector is not None and self._state is WakeWordState.AGENT_RUNNING:
            self._state = WakeWordState.LISTENING

    async def _fail_and_stop(self, reason: str) -> None:
        self._fail(reason)
        await self.stop()

    def _fail(self, reason: str) -> None:
        self._state = WakeWordState.FAILED
        self.failure_reason = reason
        extras: dict[str, Any] = {"reason": reason}
        self._broadcaster.send(ACTION_WAKE_WORD_FAILED, extras)
