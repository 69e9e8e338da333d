# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Shared fixtures for agent tests: a model that replays canned responses."""
import itertools

from typing import Any, Optional

import pytest

from stepwise_agent.src.llm.base import Model
from stepwise_agent.src.types.llm_types import FunctionCall, Message, ModelResponse, ToolCall
from stepwise_agent.src.types.tool_types import ToolInfo

_ids = itertools.count(1)


class ScriptedModel(Model):
    """Replays a list of responses and records every request.

    Entries may be a ModelResponse, a plain string (text only) or an
    exception instance to raise.
    """

    model_id = "scripted"

    def __init__(self, responses: list[Any]):
        self.responses = list(responses)
        self.calls: list[dict[str, Any]] = []

    async def run(
        self,
        messages: list[Message],
        tools: Optional[list[ToolInfo]] = None,
        max_tokens: Optional[int] = None,
        options: Optional[dict[str, Any]] = None,
    ) -> ModelResponse:
        self.calls.append(
            {"messages": list(messages), "tools": tools, "options": options}
        )
        if not self.responses:
            raise AssertionError("ScriptedModel ran out of responses")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        if isinstance(response, str):
            return ModelResponse(content=response)
        return response


def tool_call(name: str, **arguments: Any) -> ToolCall:
    return ToolCall(id=f"call_{next(_ids)}", function=FunctionCall(name=name, arguments=arguments))


def calls(*tool_calls: ToolCall, content: str = "") -> ModelResponse:
    return ModelResponse(content=content, tool_calls=list(tool_calls))


@pytest.fixture
def scripted_model():
    """Factory: ``scripted_model([...responses])``."""
    return ScriptedModel


@pytest.fixture
def make_call():
    return tool_call


@pytest.fixture
def respond():
    return calls
