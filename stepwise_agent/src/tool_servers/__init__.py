# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
from .base import CallToolResult, ContentPart, ServerTool, ToolServer
from .stdio import StdioToolServer, ToolServerError

__all__ = [
    "CallToolResult",
    "ContentPart",
    "ServerTool",
    "StdioToolServer",
    "ToolServer",
    "ToolServerError",
]
