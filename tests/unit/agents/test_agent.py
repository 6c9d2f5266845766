import pytest
import pytest_asyncio
from langchain_core.messages import AIMessage, HumanMessage, SystemMessage

from src.agents.agent import AgentError, ConversationalAgent
from src.agents.conversation_manager import ConversationManager
from src.server.conversation.models import MessageRole
from src.server.conversation.store import SQLiteConversationStore


class RecordingLLM:
    def __init__(self, *replies: str) -> None:
        self.replies = list(replies)
        self.calls = []

    async def ainvoke(self, messages):
        self.calls.append(messages)
        return AIMessage(
            content=self.replies.pop(0),
            usage_metadata={"input_tokens": 5, "output_tokens": 7, "total_tokens": 12},
        )


class BrokenLLM:
    async def ainvoke(self, messages):
        raise RuntimeError("model offline")


@pytest_asyncio.fixture
async def store(tmp_path):
    store = SQLiteConversationStore(str(tmp_path / "agent.db"))
    await store.init()
    return store


@pytest.mark.asyncio
async def test_process_message_persists_both_turns(store):
    llm = RecordingLLM(" Hello there ", "Still here")
    agent = ConversationalAgent(llm, ConversationManager(store))

    first = await agent.process_message("Hi Panda")
    assert first.text == "Hello there"
    assert first.token_count == 7

    second = await agent.process_message("Are you there?")
    assert second.conversation_id == first.conversation_id

    messages = await store.get_messages(first.conversation_id)
    assert [m.role for m in messages] == [
        MessageRole.USER,
        MessageRole.ASSISTANT,
        MessageRole.USER,
        MessageRole.ASSISTANT,
    ]
    conversation = await store.get_conversation(first.conversation_id)
    assert conversation.message_count == 4
    assert conversation.title == "Hi Panda"
    assert await store.get_total_token_count(first.conversation_id) == 14

    history = llm.calls[1]
    assert [type(m) for m in history] == [HumanMessage, AIMessage, HumanMessage]
    assert history[-1].content == "Are you there?"


@pytest.mark.asyncio
async def test_model_failure_raises_agent_error(store):
    manager = ConversationManager(store)
    agent = ConversationalAgent(BrokenLLM(), manager)

    with pytest.raises(AgentError):
        await agent.process_message("hello")

    # The user turn is still recorded.
    messages = await store.get_messages(manager.current_conversation_id)
    assert [m.role for m in messages] == [MessageRole.USER]


@pytest.mark.asyncio
async def test_context_is_limited_and_maps_roles(store):
    manager = ConversationManager(store, max_context_messages=3)
    await manager.add_system_message("be brief")
    await manager.add_user_message("look at this", images=["a.png"])
    await manager.add_tool_result("vision", "a cat")
    await manager.add_assistant_message("It is a cat")

    context = manager.get_text_context()
    assert context == [
        ("user", "look at this\n[1 image(s) attached]"),
        ("assistant", "a cat"),
        ("assistant", "It is a cat"),
    ]
    assert manager.get_message_count() == 4

    llm = RecordingLLM("ok")
    agent = ConversationalAgent(llm, manager)
    await agent.process_message("thanks")
    assert not any(isinstance(m, SystemMessage) for m in llm.calls[0])
