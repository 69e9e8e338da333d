# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Tests for the code-writing agent."""
import pytest

from pydantic import Field

from stepwise_agent.src.agents import CodeAgent
from stepwise_agent.src.agents.code_agent import format_code_observation
from stepwise_agent.src.tools.base_tool import BaseTool, tool_registry
from stepwise_agent.src.types.tool_types import ToolResult


def code(body: str) -> str:
    return f"Thought: do it\nCode:\n```py\n{body}\n```<end_code>"


@pytest.fixture
def code_agent_factory(scripted_model):
    agents = []

    def factory(responses, **kwargs):
        agent = CodeAgent(scripted_model(responses), **kwargs)
        agents.append(agent)
        return agent

    yield factory
    for agent in agents:
        agent.close()


@pytest.mark.parametrize("logs, result, expected", [
    ("hi\n", "3", "Execution logs: hi\n\nResult: 3"),
    ("hi\n", None, "Execution logs: hi\n"),
    ("", "3", "Result: 3"),
    ("", None, "No output or logs generated"),
])
def test_format_code_observation(logs, result, expected):
    assert format_code_observation(logs, result) == expected


@pytest.mark.asyncio
async def test_final_answer_from_code(code_agent_factory):
    agent = code_agent_factory([code("x = 6 * 7\nfinal_answer(x)")])

    assert await agent.run("compute") == "42"
    step = agent.logs[-1].step
    assert step.final_answer == "42"
    assert step.observations == ["Final answer: 42"]
    assert step.tool_calls[0].name == "python_interpreter"
    assert step.tool_calls[0].function.arguments == {"code": "x = 6 * 7\nfinal_answer(x)"}


@pytest.mark.asyncio
async def test_state_persists_across_steps(code_agent_factory):
    agent = code_agent_factory([
        code("total = 10\nprint(total)"),
        code("final_answer(total + 5)"),
    ])

    assert await agent.run("accumulate") == "15"
    first = agent.logs[2].step
    assert first.observations == ["Execution logs: 10\n"]
    assert first.final_answer is None


@pytest.mark.asyncio
async def test_result_observation(code_agent_factory):
    agent = code_agent_factory([code("2 ** 8"), code("final_answer('ok')")])
    await agent.run("power")
    assert agent.logs[2].step.observations == ["Result: 256"]


@pytest.mark.asyncio
async def test_request_uses_code_stop_sequences(code_agent_factory):
    agent = code_agent_factory([code("final_answer('x')")])
    await agent.run("stop")
    request = agent.model.calls[0]
    assert request["tools"] is None
    assert request["options"] == {"stop": ["Observation:", "<end_code>"]}


@pytest.mark.asyncio
async def test_parsing_error_is_recorded(code_agent_factory):
    agent = code_agent_factory(["I forgot the code", code("final_answer('second try')")])

    assert await agent.run("oops") == "second try"
    first = agent.logs[2].step
    assert first.error.kind == "Parsing"
    assert first.tool_calls is None

    retry_messages = agent.model.calls[1]["messages"]
    assert retry_messages[-1].content.startswith("Error: The code blob is invalid.")


@pytest.mark.asyncio
async def test_execution_error_is_recorded(code_agent_factory):
    agent = code_agent_factory([code("print(missing)"), code("final_answer('fixed')")])

    assert await agent.run("oops") == "fixed"
    first = agent.logs[2].step
    assert first.error.kind == "Execution"
    assert first.error.message == "Runtime Error: Variable 'missing' used before assignment"
    assert first.observations is None


@pytest.mark.asyncio
async def test_host_error_outside_a_call_does_not_abort_the_run(code_agent_factory):
    agent = code_agent_factory([code("x = {[1]: 2}"), code("final_answer(answer='ok')")])

    assert await agent.run("unhashable") == "ok"
    first = agent.logs[2].step
    assert first.error.kind == "Execution"
    assert first.error.message.startswith("Runtime Error: TypeError: ")


@pytest.mark.asyncio
async def test_unauthorized_import_is_recorded(code_agent_factory):
    agent = code_agent_factory([code("import os"), code("final_answer('no os')")])
    await agent.run("imports")
    assert "Unauthorized import of module: os" in agent.logs[2].step.error.message


def test_system_prompt_lists_imports(code_agent_factory):
    agent = code_agent_factory([], authorized_imports=["math", "json"])
    assert "{{" not in agent.system_prompt
    assert "math, json" in agent.system_prompt


class TestCodeAgentTools:

    def setup_method(self):
        self.original_registry = dict(tool_registry)

        class Lookup(BaseTool):
            TOOL_NAME = "lookup"
            TOOL_DESCRIPTION = "Look up a word"

            word: str = Field(..., description="the word")

            async def run(self) -> ToolResult:
                return ToolResult(tool_name=self.TOOL_NAME, success=True, output=f"definition of {self.word}")

        self.tool = Lookup

    def teardown_method(self):
        tool_registry.clear()
        tool_registry.update(self.original_registry)

    @pytest.mark.asyncio
    async def test_tool_called_from_code(self, code_agent_factory):
        agent = code_agent_factory(
            [code("d = lookup('cat')\nprint(d)"), code("final_answer(d)")],
            tools=[self.tool],
        )

        assert await agent.run("define cat") == "definition of cat"
        assert agent.logs[2].step.observations == ["Execution logs: definition of cat\n"]
        assert "lookup: Look up a word" in agent.system_prompt
