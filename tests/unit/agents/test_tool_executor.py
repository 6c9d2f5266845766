import pytest

from src.agents import factory
from src.agents.agent import AgentResponse
from src.agents.tool_executor import ToolExecutor


class StubAgent:
    def __init__(self) -> None:
        self.prompts = []

    async def process_message(self, prompt):
        self.prompts.append(prompt)
        return AgentResponse(text=f"done: {prompt}", conversation_id="conv_1", message_id="msg_1")


@pytest.fixture
def stub_agent():
    agent = StubAgent()
    factory.set_agent(agent)
    yield agent
    factory.clear_cache()


@pytest.mark.asyncio
async def test_execute_task_delegates_to_factory_agent(stub_agent):
    executor = ToolExecutor()

    assert await executor.execute_task("open the editor") == "done: open the editor"
    assert stub_agent.prompts == ["open the editor"]


@pytest.mark.asyncio
async def test_execute_task_uses_given_provider():
    agent = StubAgent()
    executor = ToolExecutor(agent_provider=lambda: agent)

    assert await executor.execute_task("hi") == "done: hi"


def test_get_agent_is_cached(stub_agent):
    assert factory.get_agent() is stub_agent
    factory.clear_cache()
    factory.set_agent(stub_agent)
    assert factory.get_agent() is factory.get_agent()
