# Copyright (c) 2025 Bytedance Ltd. and/or its affiliates
# SPDX-License-Identifier: MIT

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from src.wakeword.constants import EXTRA_PROJECT_NAME, EXTRA_START_WITH_AI


class AgentTaskRequest(BaseModel):
    prompt: str = Field(..., min_length=1, description="The prompt to hand to the agent")


class AgentTaskResponse(BaseModel):
    text: str


class AgentStartRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    project_name: Optional[str] = Field(
        None, alias=EXTRA_PROJECT_NAME, description="Project the agent session is about"
    )
    start_with_ai: bool = Field(
        False, alias=EXTRA_START_WITH_AI, description="Seed the session with project context"
    )


class AgentUtteranceResponse(BaseModel):
    text: Optional[str] = None
    running: bool
