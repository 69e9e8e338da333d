# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Model capability interface shared by every backend."""

from abc import ABC, abstractmethod
from typing import Any, Optional

from ..types.llm_types import Message, ModelResponse
from ..types.tool_types import ToolInfo


class Model(ABC):
    """Takes a conversation and the available tools, returns text and tool calls.

    ``options`` carries provider options such as ``{"stop": [...]}``.
    Implementations raise GenerationError when the request fails.
    """

    model_id: str

    @abstractmethod
    async def run(
        self,
        messages: list[Message],
        tools: Optional[list[ToolInfo]] = None,
        max_tokens: Optional[int] = None,
        options: Optional[dict[str, Any]] = None,
    ) -> ModelResponse:
        pass


def build_chat_request(
    model_id: str,
    messages: list[Message],
    tools: Optional[list[ToolInfo]],
    max_tokens: int,
    temperature: float,
    options: Optional[dict[str, Any]] = None,
) -> dict[str, Any]:
    """The body of a chat-completions request.

    Offered tools are forced with ``tool_choice="required"``; ``options`` are
    merged in last.
    """
    body: dict[str, Any] = {
        "model": model_id,
        "messages": [message.to_wire() for message in messages],
        "temperature": temperature,
        "max_tokens": max_tokens,
    }
    if tools:
        body["tools"] = [tool.model_dump() for tool in tools]
        body["tool_choice"] = "required"
    for key, value in (options or {}).items():
        body[key] = value
    return body
