# Copyright (c) 2025 Bytedance Ltd. and/or its affiliates
# SPDX-License-Identifier: MIT

from __future__ import annotations

from typing import Callable

from . import factory
from .agent import ConversationalAgent


class ToolExecutor:
    """Single entry point for callers that only need a prompt in and text out."""

    def __init__(self, agent_provider: Callable[[], ConversationalAgent] = factory.get_agent) -> None:
        self._agent_provider = agent_provider

    async def execute_task(self, prompt: str) -> str:
        response = await self._agent_provider().process_message(prompt)
        return response.text
