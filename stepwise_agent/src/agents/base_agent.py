# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
import logging

from abc import ABC, abstractmethod
from typing import Any, AsyncIterator, ClassVar, Iterable, Optional
from datetime import datetime

from .prompts import (
    FINAL_ANSWER_PREAMBLE,
    FINAL_ANSWER_REQUEST,
    RETRY_ADMONITION,
    SYSTEM_PROMPT_FACTS,
    SYSTEM_PROMPT_FACTS_UPDATE,
    SYSTEM_PROMPT_PLAN,
    SYSTEM_PROMPT_PLAN_UPDATE,
    TOOL_CALLING_SYSTEM_PROMPT,
    USER_PROMPT_FACTS_UPDATE,
    USER_PROMPT_PLAN,
    USER_PROMPT_PLAN_UPDATE,
    format_managed_agents_descriptions,
    format_tool_descriptions,
    format_tools_json,
)
from ..errors import AgentError, GenerationError, MaxStepsError
from ..llm.base import Model
from ..tools.base_tool import BaseTool, ToolGroup
from ..tools.final_answer import FINAL_ANSWER_TOOL_NAME, FinalAnswerTool
from ..types.agent_types import (
    ActionStep,
    AgentStep,
    PlanningStep,
    Step,
    StepError,
    SystemPromptStep,
    TaskStep,
    ToolCallStep,
)
from ..types.llm_types import Message, MessageRole
from ..types.tool_types import ToolInfo

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

MAX_STEPS_FALLBACK = "Max steps reached without final answer"
PLANNING_STOP_SEQUENCES = ["Observation:", "<end_plan>"]


# Create an empty registry dictionary.
agent_registry: dict[str, type["MultiStepAgent"]] = {}


class MultiStepAgent(ABC):
    """
    Abstract base class for all agents.

    Owns the step log, the current task and the step counter, and drives the
    think-act-observe loop. Subclasses implement ``step``.
    """

    # Required class-level attributes
    AGENT_NAME: ClassVar[str]
    AGENT_DESCRIPTION: ClassVar[str] = (
        "A multi-step agent that can solve tasks using a series of tools"
    )
    SYSTEM_PROMPT: ClassVar[str] = TOOL_CALLING_SYSTEM_PROMPT

    # Optional class-level configuration
    MAX_STEPS: ClassVar[int] = 10
    INITIAL_STEP: ClassVar[int] = 1

    def __init__(
        self,
        model: Model,
        tools: ToolGroup | Iterable[type[BaseTool]] = (),
        system_prompt: Optional[str] = None,
        max_steps: Optional[int] = None,
        planning_interval: Optional[int] = None,
        managed_agents: Optional[dict[str, str]] = None,
        description: Optional[str] = None,
        tool_response_pairing: bool = False,
    ):
        self.model = model
        self.tools = tools if isinstance(tools, ToolGroup) else ToolGroup(tools)
        if FINAL_ANSWER_TOOL_NAME not in self.tools:
            self.tools.add(FinalAnswerTool)

        self.system_prompt_template = system_prompt or self.SYSTEM_PROMPT
        self.max_steps = max_steps if max_steps is not None else self.MAX_STEPS
        self.planning_interval = planning_interval
        self.managed_agents = managed_agents or {}
        self.description = description or self.AGENT_DESCRIPTION
        self.tool_response_pairing = tool_response_pairing

        self.logs: list[Step] = []
        self.task: str = ""
        self.step_number: int = self.INITIAL_STEP
        self.system_prompt = self.initialize_system_prompt()

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        if "AGENT_NAME" in cls.__dict__:
            agent_registry[cls.AGENT_NAME] = cls

    @abstractmethod
    async def step(self, log_entry: AgentStep) -> Optional[AgentStep]:
        """Run one iteration, recording outputs and errors on ``log_entry``.

        Returns ``log_entry`` once it carries a final answer, None otherwise.
        """
        pass

    def tool_infos(self) -> list[ToolInfo]:
        return self.tools.tool_infos()

    def initialize_system_prompt(self) -> str:
        tool_infos = self.tool_infos()
        return (
            self.system_prompt_template.replace(
                "{{tool_descriptions}}", format_tool_descriptions(tool_infos)
            )
            .replace("{{tool_names}}", ", ".join(tool.name for tool in tool_infos))
            .replace(
                "{{managed_agents_descriptions}}",
                format_managed_agents_descriptions(self.managed_agents),
            )
            .replace("{{current_time}}", datetime.now().strftime("%Y-%m-%d %H:%M:%S"))
        )

    # Driving loop

    def start_run(self, task: str, reset: bool = True) -> None:
        """Seed the log for a new task.

        With ``reset`` (or an empty log) the log restarts from the system
        prompt; otherwise history is kept and only slot 0 is refreshed.
        """
        self.task = task
        self.system_prompt = self.initialize_system_prompt()
        if reset or not self.logs:
            self.logs = [SystemPromptStep(prompt=self.system_prompt)]
        else:
            self.logs[0] = SystemPromptStep(prompt=self.system_prompt)
        self.logs.append(TaskStep(task=task))
        self.step_number = self.INITIAL_STEP

    async def run(self, task: str, reset: bool = True) -> str:
        """Run ``task`` to completion and return the final answer."""
        self.start_run(task, reset)
        return await self.direct_run(task)

    async def direct_run(self, task: str) -> str:
        final_answer = None
        while final_answer is None and self.step_number < self.max_steps:
            step_log = await self.execute_step()
            final_answer = step_log.final_answer

        if final_answer is None:
            final_answer = await self._answer_after_max_steps(task)
        return final_answer

    async def stream_run(self, task: str, reset: bool = True) -> AsyncIterator[AgentStep]:
        """Run ``task``, yielding each step as soon as it completes.

        When the step budget runs out, one last AgentStep carrying the forced
        final answer and a MaxSteps error is yielded. Nothing runs while the
        caller is not consuming.
        """
        self.start_run(task, reset)
        final_answer = None
        while final_answer is None and self.step_number < self.max_steps:
            step_log = await self.execute_step()
            final_answer = step_log.final_answer
            yield step_log

        if final_answer is None:
            final_step = AgentStep(
                step=self.step_number,
                final_answer=await self._answer_after_max_steps(task),
            )
            self.record_error(
                final_step, MaxStepsError(f"Reached max steps ({self.max_steps}) without a final answer")
            )
            yield final_step

    async def execute_step(self) -> AgentStep:
        """Plan if due, run one step and append it to the log."""
        await self.planning_step(
            self.task,
            is_first_step=self.step_number == self.INITIAL_STEP,
            step=self.step_number,
        )

        logger.info(f"Awaiting completion for step {self.step_number}")
        step_log = AgentStep(step=self.step_number)
        await self.step(step_log)
        if step_log.error is not None:
            logger.warning(f"Step {self.step_number} failed: {step_log.error}")

        self.logs.append(ActionStep(step=step_log))
        self.step_number += 1
        return step_log

    async def _answer_after_max_steps(self, task: str) -> str:
        logger.info(f"Reached max steps ({self.max_steps}) without a final answer")
        try:
            answer = await self.provide_final_answer(task)
        except GenerationError as e:
            logger.error(f"Could not force a final answer: {e}")
            answer = None
        return answer or MAX_STEPS_FALLBACK

    @staticmethod
    def record_error(log_entry: AgentStep, error: AgentError) -> None:
        log_entry.error = StepError(**error.to_dict())

    # Memory

    def write_inner_memory_from_logs(self, summary_mode: bool = False) -> list[Message]:
        """Rebuild the model-visible conversation from the step log."""
        memory: list[Message] = []
        for entry in self.logs:
            if isinstance(entry, ToolCallStep):
                continue
            elif isinstance(entry, PlanningStep):
                memory.append(Message(role=MessageRole.ASSISTANT, content="[PLAN]:\n" + entry.plan))
                if not summary_mode:
                    memory.append(
                        Message(role=MessageRole.ASSISTANT, content="[FACTS]:\n" + entry.facts)
                    )
            elif isinstance(entry, TaskStep):
                memory.append(Message(role=MessageRole.USER, content="New Task: " + entry.task))
            elif isinstance(entry, SystemPromptStep):
                memory.append(Message(role=MessageRole.SYSTEM, content=entry.prompt))
            elif isinstance(entry, ActionStep):
                memory.extend(self._action_step_messages(entry.step, summary_mode))
        return memory

    def _action_step_messages(self, step: AgentStep, summary_mode: bool) -> list[Message]:
        messages = []
        paired = self.tool_response_pairing and not summary_mode
        tool_calls = step.tool_calls or []
        observations = step.observations or []

        if step.llm_output is not None and not summary_mode:
            messages.append(
                Message(
                    role=MessageRole.ASSISTANT,
                    content=step.llm_output,
                    tool_calls=tool_calls if paired and tool_calls else None,
                )
            )

        if tool_calls and observations and len(tool_calls) == len(observations):
            for call, observation in zip(tool_calls, observations):
                if paired:
                    messages.append(
                        Message(
                            role=MessageRole.TOOL_RESPONSE,
                            content=observation,
                            tool_call_id=call.id,
                        )
                    )
                else:
                    messages.append(
                        Message(
                            role=MessageRole.USER,
                            content=f"Call id: {call.id}\nObservation: {observation}",
                        )
                    )
        elif observations:
            messages.append(
                Message(
                    role=MessageRole.USER,
                    content="Observations: " + "\n".join(observations),
                )
            )

        if step.error is not None:
            messages.append(
                Message(
                    role=MessageRole.USER,
                    content=f"Error: {step.error.message}\n{RETRY_ADMONITION}",
                )
            )
        return messages

    # Planning and forced answers

    async def planning_step(
        self, task: str, is_first_step: bool, step: int
    ) -> Optional[PlanningStep]:
        """Write a facts survey and a plan into the log when planning is due.

        Planning only happens with a ``planning_interval``: on the first step,
        then on every step where ``step % planning_interval == 1``.
        """
        if self.planning_interval is None or (step - 1) % self.planning_interval != 0:
            return None

        tool_descriptions = format_tools_json(self.tool_infos())
        agents_descriptions = format_managed_agents_descriptions(self.managed_agents)

        if is_first_step:
            facts_response = await self.model.run(
                [
                    Message(role=MessageRole.USER, content=SYSTEM_PROMPT_FACTS),
                    Message(
                        role=MessageRole.USER,
                        content=f"Here is the task:\n```\n{task}\n```\nNow Begin!",
                    ),
                ]
            )
            facts = facts_response.get_response()

            plan_response = await self.model.run(
                [
                    Message(role=MessageRole.SYSTEM, content=SYSTEM_PROMPT_PLAN),
                    Message(
                        role=MessageRole.USER,
                        content=USER_PROMPT_PLAN.format(
                            task=task,
                            tool_descriptions=tool_descriptions,
                            managed_agents_descriptions=agents_descriptions,
                            answer_facts=facts,
                        ),
                    ),
                ],
                options={"stop": PLANNING_STOP_SEQUENCES},
            )
            planning = PlanningStep(
                plan="Here is the plan of action that I will follow for the task: \n"
                + plan_response.get_response(),
                facts="Here are the facts that I know so far: \n" + facts,
            )
        else:
            memory = self.write_inner_memory_from_logs(summary_mode=False)[1:]
            facts_response = await self.model.run(
                [Message(role=MessageRole.SYSTEM, content=SYSTEM_PROMPT_FACTS_UPDATE)]
                + memory
                + [Message(role=MessageRole.USER, content=USER_PROMPT_FACTS_UPDATE)]
            )
            facts = facts_response.get_response()

            plan_response = await self.model.run(
                [
                    Message(
                        role=MessageRole.SYSTEM,
                        content=SYSTEM_PROMPT_PLAN_UPDATE.format(task=task),
                    )
                ]
                + memory
                + [
                    Message(
                        role=MessageRole.USER,
                        content=USER_PROMPT_PLAN_UPDATE.format(
                            task=task,
                            tool_descriptions=tool_descriptions,
                            managed_agents_descriptions=agents_descriptions,
                            facts_update=facts,
                            remaining_steps=self.max_steps - step,
                        ),
                    )
                ],
                options={"stop": PLANNING_STOP_SEQUENCES},
            )
            planning = PlanningStep(
                plan=f"I still need to solve the task I was given:\n```\n{task}\n```\n\n"
                f"Here is my new/updated plan of action to solve the task:\n```\n{plan_response.get_response()}\n```",
                facts=f"Here is the updated list of the facts that I know:\n```\n{facts}\n```",
            )

        logger.info(f"Planning at step {step}:\n{planning.plan}")
        self.logs.append(planning)
        return planning

    async def provide_final_answer(self, task: str) -> str:
        """Ask the model for a best-effort answer from the whole memory."""
        messages = [Message(role=MessageRole.SYSTEM, content=FINAL_ANSWER_PREAMBLE)]
        messages.extend(self.write_inner_memory_from_logs(summary_mode=True)[1:])
        messages.append(
            Message(role=MessageRole.USER, content=FINAL_ANSWER_REQUEST.format(task=task))
        )
        response = await self.model.run(messages)
        return response.get_response()

    def extract_answer(self, arguments: Any) -> str:
        """The answer carried by a final_answer call's arguments."""
        if isinstance(arguments, dict):
            answer = arguments.get("answer", arguments)
        else:
            answer = arguments
        return answer if isinstance(answer, str) else str(answer)
