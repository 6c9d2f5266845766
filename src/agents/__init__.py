# Copyright (c) 2025 Bytedance Ltd. and/or its affiliates
# SPDX-License-Identifier: MIT

"""Conversational agent, its factory and the tool-executor bridge."""

from .agent import AgentError, AgentResponse, ConversationalAgent
from .conversation_manager import ConversationManager
from .tool_executor import ToolExecutor

__all__ = [
    "AgentError",
    "AgentResponse",
    "ConversationManager",
    "ConversationalAgent",
    "ToolExecutor",
]
