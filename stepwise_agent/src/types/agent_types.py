# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""The step log: the only persistent memory of an agent run."""

from typing import Annotated, Literal, Optional, Union
from pydantic import BaseModel, Field

from .llm_types import Message, ToolCall


class StepError(BaseModel):
    """A recoverable error recorded on the step that produced it."""

    kind: str
    message: str

    def __str__(self) -> str:
        return self.message


class AgentStep(BaseModel):
    """One think-act-observe iteration."""

    step: int
    agent_memory: Optional[list[Message]] = None
    llm_output: Optional[str] = None
    tool_calls: Optional[list[ToolCall]] = None
    error: Optional[StepError] = None
    observations: Optional[list[str]] = None
    final_answer: Optional[str] = None

    def __str__(self) -> str:
        parts = [f"Step {self.step}"]
        if self.llm_output:
            parts.append(f"Output {'-'*10}\n{self.llm_output}")
        for call in self.tool_calls or []:
            parts.append(f"Tool call: {call}")
        for obs in self.observations or []:
            parts.append(f"Observation {'-'*10}\n{obs}")
        if self.error is not None:
            parts.append(f"Error ({self.error.kind}): {self.error.message}")
        if self.final_answer is not None:
            parts.append(f"Final answer: {self.final_answer}")
        return "\n".join(parts)


class PlanningStep(BaseModel):
    type: Literal["planning"] = "planning"
    plan: str
    facts: str


class TaskStep(BaseModel):
    type: Literal["task"] = "task"
    task: str


class SystemPromptStep(BaseModel):
    type: Literal["system_prompt"] = "system_prompt"
    prompt: str


class ActionStep(BaseModel):
    type: Literal["action"] = "action"
    step: AgentStep


class ToolCallStep(BaseModel):
    """Echo of a raw tool call. Kept in the log but never sent to the model."""

    type: Literal["tool_call"] = "tool_call"
    tool_call: ToolCall


Step = Annotated[
    Union[PlanningStep, TaskStep, SystemPromptStep, ActionStep, ToolCallStep],
    Field(discriminator="type"),
]
