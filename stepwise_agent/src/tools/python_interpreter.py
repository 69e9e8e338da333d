# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
from pydantic import Field

from .base_tool import BaseTool
from ..sandbox import CodeSandbox, FinalAnswer, InterpreterError
from ..sandbox.builtins import AUTHORIZED_IMPORTS
from ..types.tool_types import ToolResult


class PythonInterpreterTool(BaseTool):
    TOOL_NAME = "python_interpreter"
    TOOL_DESCRIPTION = f"""This is a tool that evaluates python code. It can be used to perform calculations.

The code runs in a restricted interpreter without access to the file system or the network.
It can only import the following modules: {", ".join(AUTHORIZED_IMPORTS)}.
Use print() to see intermediate values."""

    code: str = Field(
        ...,
        description="The python code to run. All variables used must be defined in this same snippet.",
    )

    async def run(self) -> ToolResult:
        sandbox = CodeSandbox()
        try:
            output = await sandbox.aforward(self.code)
        except FinalAnswer as e:
            return ToolResult(tool_name=self.TOOL_NAME, success=True, output=str(e))
        except InterpreterError as e:
            return ToolResult(tool_name=self.TOOL_NAME, success=False, errors=str(e))

        return ToolResult(
            tool_name=self.TOOL_NAME,
            success=True,
            output=f"Stdout:\n{output.logs}\nOutput: {output.result}",
        )
