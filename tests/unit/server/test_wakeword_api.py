import asyncio

import pytest
from fastapi.testclient import TestClient
from langchain_core.messages import AIMessage

from src.agents import factory
from src.agents.agent import ConversationalAgent
from src.agents.conversation_manager import ConversationManager
from src.server.conversation.dependencies import set_conversation_store
from src.server.conversation.store import SQLiteConversationStore


class EchoLLM:
    async def ainvoke(self, messages):
        return AIMessage(content=f"echo: {messages[-1].content}")


class BrokenLLM:
    async def ainvoke(self, messages):
        raise RuntimeError("model offline")


def _client(tmp_path, monkeypatch, llm, **env):
    for key, value in env.items():
        monkeypatch.setenv(key, value)
    store = SQLiteConversationStore(str(tmp_path / "wakeword_api.db"))
    asyncio.run(store.init())
    set_conversation_store(store)
    factory.set_agent(ConversationalAgent(llm, ConversationManager(store)))

    from src.server.app import app

    return TestClient(app)


@pytest.fixture
def client(tmp_path, monkeypatch):
    with _client(tmp_path, monkeypatch, EchoLLM()) as test_client:
        yield test_client
    factory.clear_cache()
    set_conversation_store(None)


def test_wake_word_handoff_flow(client: TestClient):
    status = client.get("/api/wakeword/status").json()
    assert status["state"] == "idle"
    assert status["wake_word"] == "Panda"
    assert status["channel_id"] == "EnhancedWakeWordServiceChannel"

    assert client.post("/api/wakeword/transcript", json={"text": "panda"}).status_code == 409

    status = client.post("/api/wakeword/start").json()
    assert status["state"] == "listening"
    assert status["running"] is True

    status = client.post("/api/wakeword/transcript", json={"text": "Hey Panda"}).json()
    assert status["state"] == "agent_running"
    assert status["agent_running"] is True

    response = client.post("/api/agent/utterance", json={"prompt": "what time is it"})
    assert response.json() == {"text": "echo: what time is it", "running": True}

    assert client.post("/api/agent/stop").json()["running"] is False
    assert client.get("/api/wakeword/status").json()["state"] == "listening"

    status = client.post("/api/wakeword/stop").json()
    assert status["state"] == "idle"
    assert status["running"] is False


def test_agent_start_accepts_extras(client: TestClient):
    response = client.post("/api/agent/start", json={"projectName": "Album art", "startWithAi": True})
    assert response.json()["running"] is True

    conversations = client.get("/api/conversations").json()["conversations"]
    assert conversations[0]["title"] == "Album art"
    assert conversations[0]["message_count"] == 1


def test_execute_task(client: TestClient):
    response = client.post("/api/agent/execute", json={"prompt": "hello"})
    assert response.status_code == 200
    assert response.json() == {"text": "echo: hello"}
    assert client.post("/api/agent/utterance", json={"prompt": "hi"}).status_code == 409


def test_execute_task_agent_failure(tmp_path, monkeypatch):
    with _client(tmp_path, monkeypatch, BrokenLLM()) as test_client:
        response = test_client.post("/api/agent/execute", json={"prompt": "hello"})
    factory.clear_cache()
    set_conversation_store(None)
    assert response.status_code == 502


def test_permission_denied_activates_fallback(tmp_path, monkeypatch):
    with _client(tmp_path, monkeypatch, EchoLLM(), WAKE_WORD_MIC_PERMISSION="false") as test_client:
        status = test_client.post("/api/wakeword/start").json()
    factory.clear_cache()
    set_conversation_store(None)

    assert status["state"] == "failed"
    assert status["fallback_active"] is True
    assert status["failure_reason"] == "microphone permission denied"
