# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
import asyncio
import logging

from typing import Optional

from .base_agent import MultiStepAgent
from ..errors import AgentError
from ..tools.final_answer import FINAL_ANSWER_TOOL_NAME
from ..types.agent_types import AgentStep
from ..types.llm_types import ToolCall
from ..utils.parsing import MAX_OBSERVATION_LENGTH, parse_tool_call_from_text, truncate

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

NO_TOOL_CALL_OBSERVATION = (
    "No tool call was made. If this is the final answer, use the final_answer tool to return your answer."
)


class ToolCallingAgent(MultiStepAgent):
    """Asks the model for structured tool calls and runs them concurrently."""

    AGENT_NAME = "function-calling"
    STOP_SEQUENCES = ["Observation:"]

    async def step(self, log_entry: AgentStep) -> Optional[AgentStep]:
        memory = self.write_inner_memory_from_logs()
        log_entry.agent_memory = list(memory)

        response = await self.model.run(
            memory, self.tool_infos(), options={"stop": self.STOP_SEQUENCES}
        )
        log_entry.llm_output = response.get_response()

        tool_calls = list(response.get_tools_used())
        if not tool_calls and log_entry.llm_output:
            parsed = parse_tool_call_from_text(log_entry.llm_output)
            if parsed is not None:
                tool_calls = [parsed]

        if not tool_calls:
            log_entry.observations = [NO_TOOL_CALL_OBSERVATION]
            logger.info(NO_TOOL_CALL_OBSERVATION)
            return None

        log_entry.tool_calls = tool_calls
        results = await asyncio.gather(*(self._dispatch(call) for call in tool_calls))

        log_entry.observations = [observation for observation, _ in results]
        combined = "\n".join(log_entry.observations)
        logger.info(f"Observation: {truncate(combined)}")

        for _, final_answer in results:
            if final_answer is not None:
                log_entry.final_answer = final_answer
                return log_entry
        return None

    async def _dispatch(self, tool_call: ToolCall) -> tuple[str, Optional[str]]:
        """Run one call; returns its observation and, for final_answer, the answer."""
        if tool_call.name == FINAL_ANSWER_TOOL_NAME:
            answer = self.extract_answer(tool_call.function.arguments)
            return f"Final answer: {answer}", answer

        try:
            observation = await self.execute_tool_call(tool_call)
        except AgentError as e:
            observation = str(e)
        except Exception as e:
            logger.error(f"Error during tool execution: {e}")
            observation = str(e)
        return f"Observation from {tool_call.name}: {observation[:MAX_OBSERVATION_LENGTH]}", None

    async def execute_tool_call(self, tool_call: ToolCall) -> str:
        return await self.tools.call(tool_call.function)
