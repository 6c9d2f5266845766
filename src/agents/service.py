# Copyright (c) 2025 Bytedance Ltd. and/or its affiliates
# SPDX-License-Identifier: MIT

from __future__ import annotations

import inspect
import logging
from typing import Awaitable, Callable, Optional, Union

from . import factory
from .agent import ConversationalAgent

logger = logging.getLogger(__name__)

StopListener = Callable[[], Union[None, Awaitable[None]]]
NoticeHandler = Callable[[str], None]


class ConversationalAgentService:
    """Long-running agent session started by the wake-word flow."""

    def __init__(
        self,
        agent_provider: Callable[[], ConversationalAgent] = factory.get_agent,
        notify: Optional[NoticeHandler] = None,
    ) -> None:
        self._agent_provider = agent_provider
        self._notify = notify or (lambda text: logger.info("Notice: %s", text))
        self._stop_listeners: list[StopListener] = []
        self._is_running = False
        self.project_name: Optional[str] = None

    @property
    def is_running(self) -> bool:
        return self._is_running

    def add_stop_listener(self, listener: StopListener) -> None:
        self._stop_listeners.append(listener)

    async def start(self, project_name: Optional[str] = None, start_with_ai: bool = False) -> None:
        if self._is_running:
            logger.debug("Conversational agent service already running")
            return

        agent = self._agent_provider()
        if project_name:
            manager = agent.conversation_manager
            await manager.create_conversation(title=project_name)
            if start_with_ai:
                await manager.add_system_message(f"The user is working on the project '{project_name}'.")
        self.project_name = project_name
        self._is_running = True
        logger.info("Conversational agent service started")

    async def handle_utterance(self, text: str) -> Optional[str]:
        """Run one agent turn; failures become a notice and ``None``."""
        if not self._is_running:
            logger.warning("Ignoring utterance while the agent service is stopped")
            return None
        try:
            response = await self._agent_provider().process_message(text)
        except Exception as exc:  # noqa: BLE001 - service boundary
            logger.error("Agent turn failed: %s", exc)
            self._notify("The assistant could not answer right now")
            return None
        return response.text

    async def stop(self) -> None:
        if not self._is_running:
            return
        self._is_running = False
        self.project_name = None
        logger.info("Conversational agent service stopped")
        for listener in list(self._stop_listeners):
            result = listener()
            if inspect.isawaitable(result):
                await result
