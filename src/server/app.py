# Copyright (c) 2025 Bytedance Ltd. and/or its affiliates
# SPDX-License-Identifier: MIT

import logging
from contextlib import asynccontextmanager
from typing import Any, Dict

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware

from src.agents.agent import AgentError
from src.agents.service import ConversationalAgentService
from src.agents.tool_executor import ToolExecutor
from src.config.configuration import WakeWordConfiguration
from src.config.loader import get_str_env
from src.server.agent_request import (
    AgentStartRequest,
    AgentTaskRequest,
    AgentTaskResponse,
    AgentUtteranceResponse,
)
from src.server.conversation.dependencies import (
    close_conversation_store,
    open_conversation_store,
)
from src.server.conversation.router import router as conversation_router
from src.server.wakeword_request import TranscriptRequest, WakeWordStatusResponse
from src.wakeword.broadcast import Broadcaster
from src.wakeword.constants import ACTION_WAKE_WORD_FAILED
from src.wakeword.service import WakeWordService

logger = logging.getLogger(__name__)

INTERNAL_SERVER_ERROR_DETAIL = "Internal Server Error"


@asynccontextmanager
async def lifespan(app: FastAPI):
    await open_conversation_store()

    configuration = WakeWordConfiguration.from_env()
    broadcaster = Broadcaster()
    agent_service = ConversationalAgentService()
    wake_word_service = WakeWordService(agent_service, broadcaster, configuration=configuration)

    app.state.fallback_active = False

    def _on_wake_word_failed(action: str, extras: Dict[str, Any]) -> None:
        logger.warning("Wake word failed (%s), activating fallback trigger", extras.get("reason"))
        app.state.fallback_active = True

    broadcaster.register(ACTION_WAKE_WORD_FAILED, _on_wake_word_failed)
    app.state.broadcaster = broadcaster
    app.state.agent_service = agent_service
    app.state.wake_word_service = wake_word_service

    if configuration.autostart:
        await wake_word_service.start()
    try:
        yield
    finally:
        await wake_word_service.stop()
        await agent_service.stop()
        await close_conversation_store()


app = FastAPI(
    title="Voice Assistant API",
    description="Conversation storage and wake word handoff for the voice assistant",
    version="0.1.0",
    lifespan=lifespan,
)

allowed_origins_str = get_str_env("ALLOWED_ORIGINS", "http://localhost:3000")
allowed_origins = [origin.strip() for origin in allowed_origins_str.split(",")]

logger.info(f"Allowed origins: {allowed_origins}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

app.include_router(conversation_router)


def get_wake_word_service(request: Request) -> WakeWordService:
    return request.app.state.wake_word_service


def get_agent_service(request: Request) -> ConversationalAgentService:
    return request.app.state.agent_service


def get_tool_executor() -> ToolExecutor:
    return ToolExecutor()


def _wake_word_status(request: Request, service: WakeWordService) -> WakeWordStatusResponse:
    return WakeWordStatusResponse(
        state=service.state.value,
        running=service.is_running,
        wake_word=service.wake_word,
        channel_id=service.channel_id,
        agent_running=request.app.state.agent_service.is_running,
        fallback_active=request.app.state.fallback_active,
        failure_reason=service.failure_reason,
    )


@app.get("/healthz")
async def healthz():
    return {"status": "ok"}


@app.get("/api/wakeword/status", response_model=WakeWordStatusResponse)
async def wake_word_status(
    request: Request,
    service: WakeWordService = Depends(get_wake_word_service),
):
    return _wake_word_status(request, service)


@app.post("/api/wakeword/start", response_model=WakeWordStatusResponse)
async def start_wake_word(
    request: Request,
    service: WakeWordService = Depends(get_wake_word_service),
):
    request.app.state.fallback_active = False
    await service.start()
    return _wake_word_status(request, service)


@app.post("/api/wakeword/stop", response_model=WakeWordStatusResponse)
async def stop_wake_word(
    request: Request,
    service: WakeWordService = Depends(get_wake_word_service),
):
    await service.stop()
    return _wake_word_status(request, service)


@app.post("/api/wakeword/transcript", response_model=WakeWordStatusResponse)
async def submit_transcript(
    request: Request,
    payload: TranscriptRequest,
    service: WakeWordService = Depends(get_wake_word_service),
):
    if not service.is_running:
        raise HTTPException(status_code=409, detail="Wake word service is not running")
    await service.submit_transcript(payload.text)
    return _wake_word_status(request, service)


@app.post("/api/agent/execute", response_model=AgentTaskResponse)
async def execute_agent_task(
    payload: AgentTaskRequest,
    executor: ToolExecutor = Depends(get_tool_executor),
):
    try:
        text = await executor.execute_task(payload.prompt)
    except AgentError as e:
        raise HTTPException(status_code=502, detail=f"Agent failed: {e}")
    except Exception as e:
        logger.exception(f"Error in agent execute endpoint: {str(e)}")
        raise HTTPException(status_code=500, detail=INTERNAL_SERVER_ERROR_DETAIL)
    return AgentTaskResponse(text=text)


@app.post("/api/agent/start", response_model=AgentUtteranceResponse)
async def start_agent(
    payload: AgentStartRequest,
    service: ConversationalAgentService = Depends(get_agent_service),
):
    try:
        await service.start(project_name=payload.project_name, start_with_ai=payload.start_with_ai)
    except Exception as e:
        logger.exception(f"Error starting agent service: {str(e)}")
        raise HTTPException(status_code=500, detail=INTERNAL_SERVER_ERROR_DETAIL)
    return AgentUtteranceResponse(running=service.is_running)


@app.post("/api/agent/utterance", response_model=AgentUtteranceResponse)
async def agent_utterance(
    payload: AgentTaskRequest,
    service: ConversationalAgentService = Depends(get_agent_service),
):
    if not service.is_running:
        raise HTTPException(status_code=409, detail="Agent service is not running")
    text = await service.handle_utterance(payload.prompt)
    return AgentUtteranceResponse(text=text, running=service.is_running)


@app.post("/api/agent/stop", response_model=AgentUtteranceResponse)
async def stop_agent(service: ConversationalAgentService = Depends(get_agent_service)):
    await service.stop()
    return AgentUtteranceResponse(running=service.is_running)
