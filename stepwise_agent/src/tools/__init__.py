# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""
A module of Agent tools
"""

from .base_tool import BaseTool, ToolGroup, get_tools, tool_registry
from .final_answer import FINAL_ANSWER_TOOL_NAME, FinalAnswerTool
from .python_interpreter import PythonInterpreterTool

__all__ = [
    "BaseTool",
    "FINAL_ANSWER_TOOL_NAME",
    "FinalAnswerTool",
    "PythonInterpreterTool",
    "ToolGroup",
    "get_tools",
    "tool_registry",
]
