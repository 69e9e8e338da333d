# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
import asyncio
import logging

from typing import Any

from .tool_calling_agent import ToolCallingAgent
from ..errors import ExecutionError, ToolNotFoundError
from ..llm.base import Model
from ..tool_servers.base import ServerTool, ToolServer
from ..tools.final_answer import FinalAnswerTool
from ..types.llm_types import ToolCall
from ..types.tool_types import ToolInfo

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)


class ToolServerAgent(ToolCallingAgent):
    """A tool-calling agent whose tools live in external tool servers.

    Build it with ``await ToolServerAgent.create(model, servers)``, which
    enumerates every server's tools first.
    """

    AGENT_NAME = "mcp"

    def __init__(
        self,
        model: Model,
        servers: list[ToolServer],
        server_tools: list[list[ServerTool]],
        **kwargs: Any,
    ):
        self.servers = servers
        self.server_tools = server_tools
        super().__init__(model, **kwargs)

    @classmethod
    async def create(
        cls, model: Model, servers: list[ToolServer], **kwargs: Any
    ) -> "ToolServerAgent":
        server_tools = await asyncio.gather(*(server.list_tools() for server in servers))
        for server, tools in zip(servers, server_tools):
            logger.info(f"Server {server.name} offers: {', '.join(t.name for t in tools)}")
        return cls(model, servers, list(server_tools), **kwargs)

    def tool_infos(self) -> list[ToolInfo]:
        infos: dict[str, ToolInfo] = {}
        for tools in self.server_tools:
            for tool in tools:
                infos.setdefault(tool.name, tool.tool_info())
        infos.setdefault(FinalAnswerTool.TOOL_NAME, FinalAnswerTool.tool_info())
        return list(infos.values())

    async def execute_tool_call(self, tool_call: ToolCall) -> str:
        servers = [
            server
            for server, tools in zip(self.servers, self.server_tools)
            if any(tool.name == tool_call.name for tool in tools)
        ]
        if not servers:
            raise ToolNotFoundError(tool_call.name)

        arguments = tool_call.function.arguments
        if not isinstance(arguments, dict):
            raise ExecutionError(
                f"Arguments for tool '{tool_call.name}' must be a JSON object, got: {arguments!r}"
            )

        results = await asyncio.gather(
            *(server.call_tool(tool_call.name, arguments) for server in servers),
            return_exceptions=True,
        )

        texts = []
        errors = []
        for server, result in zip(servers, results):
            if isinstance(result, Exception):
                logger.warning(f"Server {server.name} failed on {tool_call.name}: {result}")
                errors.append(f"Error from {server.name}: {result}")
            elif isinstance(result, BaseException):
                raise result
            elif result.is_error:
                errors.append(f"Error from {server.name}: {result.text()}")
            else:
                texts.append(result.text())

        if texts:
            return "\n".join(texts)
        if errors:
            raise ExecutionError("\n".join(errors))
        return ""
