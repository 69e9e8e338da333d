# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
import json

from abc import ABC, abstractmethod
from typing import Any, ClassVar, Literal
from pydantic import BaseModel, Field


class ToolFunctionInfo(BaseModel):
    name: str
    description: str
    parameters: dict[str, Any] = Field(
        default_factory=lambda: {"type": "object", "properties": {}}
    )


class ToolInfo(BaseModel):
    """Provider wire format for a tool, also used to render tool prompts."""

    type: Literal["function"] = "function"
    function: ToolFunctionInfo

    @property
    def name(self) -> str:
        return self.function.name

    def parameter_names(self) -> list[str]:
        return list(self.function.parameters.get("properties", {}).keys())

    def parameter_type(self, name: str) -> str | None:
        prop = self.function.parameters.get("properties", {}).get(name, {})
        return prop.get("type")

    def to_prompt_format(self) -> str:
        """Human readable description embedded in system prompts."""
        return (
            f"\n{self.function.name}: {self.function.description}\n"
            f"    Takes inputs: {json.dumps(self.function.parameters.get('properties', {}))}\n"
        )


class ToolResult(BaseModel):
    """Represents the result of a tool execution."""

    tool_name: str
    success: bool
    duration: float = 0.0  # on tool error paths, duration is often 0
    output: str | None = None
    errors: str | None = None

    def __str__(self):
        if self.success:
            return self.output or ""
        return self.errors or f"{self.tool_name} failed"


class ToolInterface(BaseModel, ABC):
    """Abstract interface for all tools"""

    # Class variables
    TOOL_NAME: ClassVar[str]
    TOOL_DESCRIPTION: ClassVar[str]

    class Config:
        extra = "forbid"

    @abstractmethod
    async def run(self) -> ToolResult:
        """Execute the tool's functionality"""
        pass

    @classmethod
    @abstractmethod
    def tool_info(cls) -> ToolInfo:
        """The tool's name, description and JSON parameter schema."""
        pass
