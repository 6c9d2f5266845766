# Copyright (c) 2025 Bytedance Ltd. and/or its affiliates
# SPDX-License-Identifier: MIT

from typing import Optional

from pydantic import BaseModel, Field


class TranscriptRequest(BaseModel):
    text: str = Field(..., min_length=1, description="Text recognised by the speech recogniser")


class WakeWordStatusResponse(BaseModel):
    state: str = Field(..., description="Current wake word service state")
    running: bool
    wake_word: str
    channel_id: str
    agent_running: bool
    fallback_active: bool = Field(False, description="Whether the fallback trigger was requested")
    failure_reason: Optional[str] = None
