# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Interface to out-of-process tool servers."""

from abc import ABC, abstractmethod
from typing import Any, Optional
from pydantic import BaseModel, Field

from ..types.tool_types import ToolFunctionInfo, ToolInfo


class ServerTool(BaseModel):
    """A tool advertised by a server."""

    name: str
    description: str = ""
    input_schema: Optional[dict[str, Any]] = Field(default=None, alias="inputSchema")

    model_config = {"populate_by_name": True}

    def tool_info(self) -> ToolInfo:
        return ToolInfo(
            function=ToolFunctionInfo(
                name=self.name,
                description=self.description,
                parameters=self.input_schema or {"type": "object", "properties": {}},
            )
        )


class ContentPart(BaseModel):
    """One typed part of a tool result. Only text parts carry ``text``."""

    type: str
    text: Optional[str] = None

    model_config = {"extra": "allow"}


class CallToolResult(BaseModel):
    content: list[ContentPart] = Field(default_factory=list)
    is_error: bool = Field(default=False, alias="isError")

    model_config = {"populate_by_name": True}

    def text(self) -> str:
        return "".join(part.text or "" for part in self.content if part.type == "text")


class ToolServer(ABC):
    name: str

    @abstractmethod
    async def list_tools(self) -> list[ServerTool]:
        pass

    @abstractmethod
    async def call_tool(self, name: str, arguments: dict[str, Any]) -> CallToolResult:
        pass
