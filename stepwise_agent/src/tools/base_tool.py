# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
import time
import logging

from typing import Any, ClassVar, Iterable
from pydantic import TypeAdapter, ValidationError

from ..errors import ExecutionError, ToolNotFoundError
from ..types.llm_types import FunctionCall
from ..types.tool_types import ToolFunctionInfo, ToolInfo, ToolInterface, ToolResult

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)


# Every concrete tool class, keyed by TOOL_NAME.
tool_registry: dict[str, type["BaseTool"]] = {}


class BaseTool(ToolInterface):
    """Abstract base class for all tools.

    The pydantic fields of a subclass are the tool's parameters: one instance
    is one validated invocation.
    """

    # Class variables for tool metadata
    TOOL_NAME: ClassVar[str]
    TOOL_DESCRIPTION: ClassVar[str]

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        # Skip registering the BaseTool class itself.
        if cls.__name__ != "BaseTool":
            tool_registry[cls.TOOL_NAME] = cls

    @classmethod
    def parameters_schema(cls) -> dict[str, Any]:
        schema = cls.model_json_schema()
        schema.pop("title", None)
        for prop in schema.get("properties", {}).values():
            prop.pop("title", None)
        schema.setdefault("properties", {})
        return schema

    @classmethod
    def tool_info(cls) -> ToolInfo:
        return ToolInfo(
            function=ToolFunctionInfo(
                name=cls.TOOL_NAME,
                description=cls.TOOL_DESCRIPTION,
                parameters=cls.parameters_schema(),
            )
        )

    @classmethod
    async def invoke(cls, arguments: Any) -> str:
        """Validate JSON arguments against the parameter model and run the tool.

        Returns the tool's text output, raising ExecutionError on invalid
        arguments or on a failed ToolResult.
        """
        if not isinstance(arguments, dict):
            raise ExecutionError(
                f"Arguments for tool '{cls.TOOL_NAME}' must be a JSON object, got: {arguments!r}"
            )
        try:
            validated_tool = TypeAdapter(cls).validate_python(arguments)
        except ValidationError as e:
            raise ExecutionError(f"Invalid arguments for tool '{cls.TOOL_NAME}': {e}")

        start_time = time.time()
        tool_result = await validated_tool.run()
        tool_result.duration = time.time() - start_time
        logger.debug(f"{cls.TOOL_NAME} finished in {tool_result.duration:.3f}s")

        if not tool_result.success:
            raise ExecutionError(str(tool_result))
        return tool_result.output or ""


class ToolGroup:
    """The tools available to one agent, resolved by exact name."""

    def __init__(self, tools: Iterable[type[BaseTool]] = ()):
        self._tools: dict[str, type[BaseTool]] = {}
        for tool_cls in tools:
            self.add(tool_cls)

    def add(self, tool_cls: type[BaseTool]) -> None:
        self._tools[tool_cls.TOOL_NAME] = tool_cls

    def get(self, name: str) -> type[BaseTool]:
        tool_cls = self._tools.get(name)
        if tool_cls is None:
            raise ToolNotFoundError(name)
        return tool_cls

    def __contains__(self, name: str) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    @property
    def names(self) -> list[str]:
        return list(self._tools.keys())

    def tool_infos(self) -> list[ToolInfo]:
        return [tool_cls.tool_info() for tool_cls in self._tools.values()]

    async def call(self, function_call: FunctionCall) -> str:
        tool_cls = self.get(function_call.name)
        logger.info(f"Calling tool {function_call.name}")
        return await tool_cls.invoke(function_call.arguments)


def get_tools(names: Iterable[str]) -> list[type[BaseTool]]:
    """Look tool classes up in the class registry by name."""
    tools = []
    for name in names:
        tool_cls = tool_registry.get(name)
        if tool_cls is None:
            raise ToolNotFoundError(name)
        tools.append(tool_cls)
    return tools
