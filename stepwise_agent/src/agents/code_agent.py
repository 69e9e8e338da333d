# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
import uuid
import logging

from typing import Optional

from .base_agent import MultiStepAgent
from .prompts import CODE_SYSTEM_PROMPT
from ..errors import ExecutionError, ParsingError
from ..sandbox import CodeSandbox, FinalAnswer, InterpreterError
from ..sandbox.builtins import AUTHORIZED_IMPORTS
from ..types.agent_types import AgentStep
from ..types.llm_types import FunctionCall, ToolCall
from ..utils.parsing import parse_code_blobs, truncate

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)


def format_code_observation(logs: str, result: Optional[str]) -> str:
    if logs and result:
        return f"Execution logs: {logs}\nResult: {result}"
    if logs:
        return f"Execution logs: {logs}"
    if result:
        return f"Result: {result}"
    return "No output or logs generated"


class CodeAgent(MultiStepAgent):
    """Asks the model for python code and runs it in a persistent sandbox."""

    AGENT_NAME = "code"
    SYSTEM_PROMPT = CODE_SYSTEM_PROMPT
    STOP_SEQUENCES = ["Observation:", "<end_code>"]

    def __init__(self, *args, authorized_imports: Optional[list[str]] = None, **kwargs):
        self.authorized_imports = (
            list(AUTHORIZED_IMPORTS) if authorized_imports is None else authorized_imports
        )
        super().__init__(*args, **kwargs)
        self.sandbox = CodeSandbox(
            tools=self.tools, authorized_imports=self.authorized_imports
        )

    def initialize_system_prompt(self) -> str:
        return super().initialize_system_prompt().replace(
            "{{authorized_imports}}", ", ".join(self.authorized_imports)
        )

    async def step(self, log_entry: AgentStep) -> Optional[AgentStep]:
        memory = self.write_inner_memory_from_logs()
        log_entry.agent_memory = list(memory)

        response = await self.model.run(memory, options={"stop": self.STOP_SEQUENCES})
        log_entry.llm_output = response.get_response()

        try:
            code = parse_code_blobs(log_entry.llm_output)
        except ParsingError as e:
            self.record_error(log_entry, e)
            return None

        log_entry.tool_calls = [
            ToolCall(
                id=f"call_{uuid.uuid4().hex[:24]}",
                function=FunctionCall(name="python_interpreter", arguments={"code": code}),
            )
        ]

        try:
            output = await self.sandbox.aforward(code)
        except FinalAnswer as e:
            log_entry.final_answer = e.answer
            log_entry.observations = [f"Final answer: {e.answer}"]
            return log_entry
        except InterpreterError as e:
            self.record_error(log_entry, ExecutionError(str(e)))
            return None

        result = None if output.result is None else str(output.result)
        observation = truncate(format_code_observation(output.logs, result))
        log_entry.observations = [observation]
        logger.info(observation)
        return None

    def close(self) -> None:
        self.sandbox.close()
