# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
from pydantic import Field

from .base_tool import BaseTool
from ..types.tool_types import ToolResult

FINAL_ANSWER_TOOL_NAME = "final_answer"


class FinalAnswerTool(BaseTool):
    TOOL_NAME = FINAL_ANSWER_TOOL_NAME
    TOOL_DESCRIPTION = "This tool is used to provide the final answer to the question"

    answer: str = Field(..., description="The final answer to the problem")

    async def run(self) -> ToolResult:
        return ToolResult(tool_name=self.TOOL_NAME, success=True, output=self.answer)
