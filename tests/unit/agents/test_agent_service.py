import pytest
import pytest_asyncio
from langchain_core.messages import AIMessage

from src.agents.agent import AgentError, ConversationalAgent
from src.agents.conversation_manager import ConversationManager
from src.agents.service import ConversationalAgentService
from src.server.conversation.models import MessageRole
from src.server.conversation.store import SQLiteConversationStore


class EchoLLM:
    async def ainvoke(self, messages):
        return AIMessage(content=f"echo: {messages[-1].content}")


@pytest_asyncio.fixture
async def agent(tmp_path):
    store = SQLiteConversationStore(str(tmp_path / "service.db"))
    await store.init()
    return ConversationalAgent(EchoLLM(), ConversationManager(store))


@pytest.mark.asyncio
async def test_start_with_project_seeds_conversation(agent):
    service = ConversationalAgentService(agent_provider=lambda: agent)

    await service.start(project_name="Podcast edit", start_with_ai=True)
    assert service.is_running
    assert service.project_name == "Podcast edit"

    manager = agent.conversation_manager
    conversation = await manager.store.get_conversation(manager.current_conversation_id)
    assert conversation.title == "Podcast edit"
    assert [m.role for m in manager.get_all_messages()] == [MessageRole.SYSTEM]


@pytest.mark.asyncio
async def test_handle_utterance_and_stop_listeners(agent):
    stopped = []
    service = ConversationalAgentService(agent_provider=lambda: agent)
    service.add_stop_listener(lambda: stopped.append(True))

    assert await service.handle_utterance("ignored") is None
    await service.start()
    assert await service.handle_utterance("hello") == "echo: hello"

    await service.stop()
    await service.stop()
    assert not service.is_running
    assert stopped == [True]


@pytest.mark.asyncio
async def test_handle_utterance_failure_becomes_notice():
    notices = []

    class FailingAgent:
        async def process_message(self, prompt):
            raise AgentError("model offline")

    service = ConversationalAgentService(agent_provider=FailingAgent, notify=notices.append)
    await service.start()

    assert await service.handle_utterance("hello") is None
    assert notices == ["The assistant could not answer right now"]
    assert service.is_running
