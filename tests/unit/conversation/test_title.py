import pytest
import pytest_asyncio
from langchain_core.language_models.fake_chat_models import FakeListChatModel

from src.server.conversation import title as title_module
from src.server.conversation.export import render_transcript
from src.server.conversation.models import ConversationRecord, MessageRecord
from src.server.conversation.store import SQLiteConversationStore
from src.server.conversation.title import (
    derive_fallback_title,
    ensure_conversation_title,
    truncate_title,
)


class _BrokenLLM:
    async def ainvoke(self, messages):
        raise RuntimeError("model offline")


@pytest_asyncio.fixture
async def store(tmp_path):
    store = SQLiteConversationStore(str(tmp_path / "titles"))
    await store.init()
    return store


def test_store_path_gets_db_suffix(tmp_path):
    store = SQLiteConversationStore(str(tmp_path / "titles"))
    assert store.db_path.endswith("titles.db")


def test_truncate_title():
    assert truncate_title("  short\nquestion ") == "short question"
    long_text = "x" * 60
    assert truncate_title(long_text) == "x" * 47 + "..."
    assert len(truncate_title(long_text)) == 50
    assert truncate_title("   ") == "New Conversation"


def test_fallback_title_uses_first_user_message():
    messages = [
        MessageRecord.system("conv", "rules"),
        MessageRecord.user("conv", "What is the weather?"),
    ]
    assert derive_fallback_title(messages) == "What is the weather?"
    assert derive_fallback_title([]) == "New Conversation"


@pytest.fixture
def unconfigured_llm(monkeypatch):
    def _raise(llm_type):
        raise ValueError(f"LLM type '{llm_type}' is not configured")

    monkeypatch.setattr(title_module, "get_llm_by_type", _raise)


@pytest.mark.asyncio
async def test_ensure_title_without_llm(store, unconfigured_llm):
    conversation = ConversationRecord.create()
    await store.create_conversation_with_message(conversation, MessageRecord.user(conversation.id, "Book a table"))

    assert await ensure_conversation_title(store, conversation.id) == "Book a table"
    assert (await store.get_conversation(conversation.id)).title == "Book a table"
    # Already titled.
    assert await ensure_conversation_title(store, conversation.id) is None


@pytest.mark.asyncio
async def test_ensure_title_with_llm(store):
    conversation = ConversationRecord.create()
    await store.create_conversation_with_message(conversation, MessageRecord.user(conversation.id, "Book a table"))

    llm = FakeListChatModel(responses=['"Dinner reservation"'])
    assert await ensure_conversation_title(store, conversation.id, llm=llm) == "Dinner reservation"


@pytest.mark.asyncio
async def test_ensure_title_uses_configured_basic_model(store, monkeypatch):
    conversation = ConversationRecord.create()
    await store.create_conversation_with_message(conversation, MessageRecord.user(conversation.id, "Book a table"))

    requested = []

    def _get_llm(llm_type):
        requested.append(llm_type)
        return FakeListChatModel(responses=["Dinner reservation"])

    monkeypatch.setattr(title_module, "get_llm_by_type", _get_llm)

    assert await ensure_conversation_title(store, conversation.id) == "Dinner reservation"
    assert requested == ["basic"]


@pytest.mark.asyncio
async def test_ensure_title_falls_back_when_llm_fails(store):
    conversation = ConversationRecord.create()
    await store.create_conversation_with_message(conversation, MessageRecord.user(conversation.id, "Book a table"))

    assert await ensure_conversation_title(store, conversation.id, llm=_BrokenLLM()) == "Book a table"


@pytest.mark.asyncio
async def test_ensure_title_skips_conversations_without_user_turns(store, unconfigured_llm):
    conversation = ConversationRecord.create()
    await store.create_conversation_with_message(conversation, MessageRecord.system(conversation.id, "rules"))

    assert await ensure_conversation_title(store, conversation.id) is None
    assert await ensure_conversation_title(store, "conv_missing") is None


def test_render_transcript():
    conversation = ConversationRecord.create("Lisbon")
    messages = [
        MessageRecord.user(conversation.id, "Show me", images=["a.png", "b.png"]),
        MessageRecord.assistant(conversation.id, "Here you go"),
    ]
    text = render_transcript(conversation, messages)

    lines = text.splitlines()
    assert lines[0] == "Conversation: Lisbon"
    assert lines[2] == "Messages: 2"
    assert "=" * 50 in lines
    assert any(line.startswith("[USER] ") for line in lines)
    assert "  (2 image(s))" in lines
    assert "Here you go" in lines
    assert render_transcript(None, []).startswith("Conversation: Untitled")
    assert render_transcript(None, []).splitlines()[1] == "Created: 1970-01-01 00:00:00"
