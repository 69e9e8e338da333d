# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Agent error taxonomy.

Parsing and execution errors are recoverable: they are recorded on the step
that raised them and shown to the model on the next turn. Generation errors
mean the model backend itself is unusable, and abort the run.
"""

from typing import Any


class AgentError(Exception):
    """Base class for errors raised while driving an agent."""

    kind: str = "Agent"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "message": self.message}


class ParsingError(AgentError):
    """No tool call or code block could be extracted from the model output."""

    kind = "Parsing"


class ExecutionError(AgentError):
    """A tool or the code sandbox failed while executing."""

    kind = "Execution"


class ToolNotFoundError(ExecutionError):
    def __init__(self, name: str):
        super().__init__(f"Tool '{name}' not found")
        self.name = name


class GenerationError(AgentError):
    """The model request failed outright."""

    kind = "Generation"


class MaxStepsError(AgentError):
    kind = "MaxSteps"
