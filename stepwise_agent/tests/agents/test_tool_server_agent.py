# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Tests for the agent backed by external tool servers."""
import asyncio

from typing import Any

import pytest

from stepwise_agent.src.agents import ToolServerAgent
from stepwise_agent.src.errors import ExecutionError, ToolNotFoundError
from stepwise_agent.src.tool_servers import CallToolResult, ServerTool, ToolServer


class FakeServer(ToolServer):
    """An in-process tool server with canned replies."""

    def __init__(self, name: str, replies: dict[str, Any], delay: float = 0.0):
        self.name = name
        self.replies = replies
        self.delay = delay
        self.received: list[tuple[str, dict]] = []

    async def list_tools(self) -> list[ServerTool]:
        return [
            ServerTool(
                name=tool_name,
                description=f"{tool_name} on {self.name}",
                inputSchema={"type": "object", "properties": {"query": {"type": "string"}}},
            )
            for tool_name in self.replies
        ]

    async def call_tool(self, name: str, arguments: dict[str, Any]) -> CallToolResult:
        self.received.append((name, arguments))
        await asyncio.sleep(self.delay)
        reply = self.replies[name]
        if isinstance(reply, Exception):
            raise reply
        if isinstance(reply, CallToolResult):
            return reply
        return CallToolResult(content=[{"type": "text", "text": reply}])


@pytest.mark.asyncio
async def test_create_merges_tools(scripted_model):
    servers = [
        FakeServer("alpha", {"search": "a", "fetch": "f"}),
        FakeServer("beta", {"search": "b"}),
    ]
    agent = await ToolServerAgent.create(scripted_model([]), servers)

    names = [info.name for info in agent.tool_infos()]
    assert names == ["search", "fetch", "final_answer"]
    assert "search: search on alpha" in agent.system_prompt
    assert agent.tool_infos()[0].parameter_names() == ["query"]


@pytest.mark.asyncio
async def test_fan_out_joins_results_in_server_order(scripted_model, make_call, respond):
    servers = [
        FakeServer("slow", {"search": "from slow"}, delay=0.1),
        FakeServer("fast", {"search": "from fast"}),
        FakeServer("other", {"fetch": "unused"}),
    ]
    model = scripted_model([
        respond(make_call("search", query="pydantic")),
        respond(make_call("final_answer", answer="found")),
    ])
    agent = await ToolServerAgent.create(model, servers)

    assert await agent.run("look it up") == "found"
    assert agent.logs[2].step.observations == ["Observation from search: from slow\nfrom fast"]
    assert servers[0].received == [("search", {"query": "pydantic"})]
    assert servers[2].received == []

    # Server tools are offered to the model
    offered = [tool.name for tool in model.calls[0]["tools"]]
    assert offered == ["search", "fetch", "final_answer"]


@pytest.mark.asyncio
async def test_partial_failure_keeps_successes(scripted_model, make_call):
    servers = [
        FakeServer("broken", {"search": RuntimeError("connection reset")}),
        FakeServer("ok", {"search": "result"}),
    ]
    agent = await ToolServerAgent.create(scripted_model([]), servers)

    assert await agent.execute_tool_call(make_call("search", query="x")) == "result"


@pytest.mark.asyncio
async def test_all_failures_raise(scripted_model, make_call):
    servers = [
        FakeServer("one", {"search": RuntimeError("boom")}),
        FakeServer(
            "two",
            {"search": CallToolResult(content=[{"type": "text", "text": "bad query"}], isError=True)},
        ),
    ]
    agent = await ToolServerAgent.create(scripted_model([]), servers)

    with pytest.raises(ExecutionError) as exc_info:
        await agent.execute_tool_call(make_call("search", query="x"))
    assert str(exc_info.value) == "Error from one: boom\nError from two: bad query"


@pytest.mark.asyncio
async def test_unknown_tool(scripted_model, make_call, respond):
    model = scripted_model([
        respond(make_call("missing")),
        respond(make_call("final_answer", answer="none")),
    ])
    agent = await ToolServerAgent.create(model, [FakeServer("alpha", {"search": "a"})])

    with pytest.raises(ToolNotFoundError):
        await agent.execute_tool_call(make_call("missing"))

    assert await agent.run("call something") == "none"
    assert agent.logs[2].step.observations == ["Observation from missing: Tool 'missing' not found"]


def test_call_result_text_skips_non_text_parts():
    result = CallToolResult.model_validate({
        "content": [
            {"type": "text", "text": "a"},
            {"type": "image", "data": "...", "mimeType": "image/png"},
            {"type": "text", "text": "b"},
        ],
        "isError": False,
    })
    assert result.text() == "ab"
    assert result.is_error is False
