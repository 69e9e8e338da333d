# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""
The main entrypoint to the system.
"""

import time
import signal
import asyncio
import logging

from pathlib import Path
from typing import Optional

from .src.agents import CodeAgent, MultiStepAgent, ToolServerAgent, agent_registry
from .src.config import Settings, load_server_configs, settings
from .src.llm import Model, get_model
from .src.tool_servers import StdioToolServer
from .src.tools import get_tools
from .src.utils.step_log import StepLogWriter

logger = logging.getLogger(__name__)


class Agent:
    """
    The Agent class acts as the 'root' of the application state: it builds the
    model, tools and tool servers, owns the multi-step agent and streams its
    steps to stdout and the step log.
    """

    def __init__(
        self,
        agent_type: str = "function-calling",
        model: Optional[Model] = None,
        tool_names: tuple[str, ...] = (),
        config: Settings = settings,
        log_file: Optional[Path] = None,
        servers_config: Optional[Path] = None,
    ):
        if agent_type not in agent_registry:
            raise ValueError(
                f"Unknown agent type '{agent_type}', expected one of {sorted(agent_registry)}"
            )
        self.agent_type = agent_type
        self.config = config
        self.model = model or get_model(
            config.MODEL_TYPE,
            model_id=config.MODEL_ID,
            base_url=config.OPENAI_BASE_URL if config.MODEL_TYPE == "openai" else config.OLLAMA_BASE_URL,
            api_key=config.OPENAI_API_KEY,
            ctx_length=config.OLLAMA_CTX_LENGTH,
        )
        self.tool_names = tool_names
        self.step_log = StepLogWriter(log_file or config.STEP_LOG)
        self.servers_config = Path(servers_config or config.SERVERS_CONFIG)

        self.servers: list[StdioToolServer] = []
        self.agent: Optional[MultiStepAgent] = None
        self._shutdown_event = asyncio.Event()
        self._main_task: Optional[asyncio.Task] = None

    async def setup(self) -> MultiStepAgent:
        kwargs = dict(
            max_steps=self.config.MAX_STEPS,
            planning_interval=self.config.PLANNING_INTERVAL,
        )
        agent_cls = agent_registry[self.agent_type]

        if issubclass(agent_cls, ToolServerAgent):
            for name, server_config in load_server_configs(self.servers_config).items():
                server = StdioToolServer(name, server_config)
                await server.connect()
                self.servers.append(server)
            self.agent = await agent_cls.create(self.model, self.servers, **kwargs)
        else:
            self.agent = agent_cls(self.model, get_tools(self.tool_names), **kwargs)

        self._register_signal_handlers()
        return self.agent

    def _register_signal_handlers(self):
        """Register signal handlers for graceful shutdown"""
        try:
            loop = asyncio.get_running_loop()
            for sig in (signal.SIGINT, signal.SIGTERM):
                loop.add_signal_handler(sig, lambda s=sig: self._signal_handler(s))
        except (NotImplementedError, RuntimeError) as e:
            logger.debug(f"Signal handlers not registered: {e}")

    def _signal_handler(self, sig: signal.Signals):
        logger.info(f"Agent received signal {sig.name}, shutting down...")
        self._shutdown_event.set()
        if self._main_task and not self._main_task.done():
            self._main_task.cancel()

    async def exec(self, task: str, reset: bool = True) -> Optional[str]:
        """
        Runs the agent on a task, printing and logging every step as it
        completes. Returns the final answer, or None if the run was cancelled.
        """
        if self.agent is None:
            await self.setup()

        exec_start = time.time()
        self._main_task = asyncio.current_task()
        final_answer = None
        steps = self.agent.stream_run(task, reset=reset)
        try:
            async for step in steps:
                print(step, flush=True)
                self.step_log.append(step)
                if step.final_answer is not None:
                    final_answer = step.final_answer
        except asyncio.CancelledError:
            logger.info("Run cancelled")
            if not self._shutdown_event.is_set():
                raise
        finally:
            await steps.aclose()
            self._main_task = None

        logger.info(f"Task finished in {time.time() - exec_start:.2f}s")
        return final_answer

    async def interactive(self) -> None:
        """Prompt for tasks until EOF, keeping the conversation across tasks."""
        reset = True
        while not self._shutdown_event.is_set():
            try:
                task = await asyncio.to_thread(input, "task> ")
            except EOFError:
                break
            if not task.strip():
                continue
            if task.strip() in ("exit", "quit"):
                break
            answer = await self.exec(task, reset=reset)
            print(f"\nFinal answer: {answer}\n", flush=True)
            reset = False

    async def close(self) -> None:
        if isinstance(self.agent, CodeAgent):
            self.agent.close()
        for server in self.servers:
            await server.disconnect()
        self.servers = []
