# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Conversation and tool-call data types shared by agents and model backends."""

import json

from enum import Enum
from typing import Any, Optional
from pydantic import BaseModel, Field, field_serializer, field_validator


class MessageRole(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL_CALL = "tool_calls"
    TOOL_RESPONSE = "tool"

    def __str__(self) -> str:
        return self.value


class FunctionCall(BaseModel):
    """The function half of a tool call.

    Providers disagree on whether ``arguments`` is a JSON object or a
    JSON-encoded string. On the way in it is normalised to a value; on the way
    out it is always a string.
    """

    name: str
    arguments: Any = Field(default_factory=dict)

    @field_validator("arguments", mode="before")
    @classmethod
    def _parse_arguments(cls, value: Any) -> Any:
        if isinstance(value, str):
            try:
                return json.loads(value)
            except json.JSONDecodeError:
                return value
        if value is None:
            return {}
        return value

    @field_serializer("arguments")
    def _dump_arguments(self, value: Any) -> str:
        if isinstance(value, str):
            return value
        return json.dumps(value)


class ToolCall(BaseModel):
    """A tool invocation requested by the model."""

    id: Optional[str] = None
    call_type: Optional[str] = Field(default="function", alias="type")
    function: FunctionCall

    model_config = {"populate_by_name": True}

    @property
    def name(self) -> str:
        return self.function.name

    def __str__(self) -> str:
        return f"{self.function.name}({self.function.model_dump()['arguments']}) (id: {self.id})"


class Message(BaseModel):
    """A single turn of the model-visible conversation."""

    role: MessageRole
    content: str = ""
    tool_call_id: Optional[str] = None
    tool_calls: Optional[list[ToolCall]] = None

    def __str__(self) -> str:
        parts = [f"Message from role={self.role}"]
        if self.content:
            parts.append(f"Text {'-'*10}\n{self.content}")
        for call in self.tool_calls or []:
            parts.append(f"{'-'*10}\nTool call {call}\n{'-'*10}")
        return "\n".join(parts)

    def to_wire(self) -> dict[str, Any]:
        """Render the message in the chat-completions request shape."""
        data: dict[str, Any] = {"role": self.role.value, "content": self.content}
        if self.tool_call_id is not None:
            data["tool_call_id"] = self.tool_call_id
        if self.tool_calls:
            data["tool_calls"] = [
                call.model_dump(by_alias=True) for call in self.tool_calls
            ]
        return data


class ModelResponse(BaseModel):
    """What a model backend hands back: free text plus requested tool calls."""

    content: str = ""
    tool_calls: list[ToolCall] = Field(default_factory=list)

    def get_response(self) -> str:
        return self.content

    def get_tools_used(self) -> list[ToolCall]:
        return self.tool_calls

    @classmethod
    def from_completion(cls, data: dict[str, Any]) -> "ModelResponse":
        """Parse an OpenAI-shaped chat completion body."""
        choices = data.get("choices") or []
        if not choices:
            raise ValueError("No choices in completion response")
        message = choices[0].get("message") or {}
        return cls(
            content=message.get("content") or "",
            tool_calls=[
                ToolCall.model_validate(call)
                for call in message.get("tool_calls") or []
            ],
        )
