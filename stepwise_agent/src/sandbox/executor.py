# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""
The code sandbox: persistent variable state plus tool callbacks.

Sandboxed code is synchronous but tools are coroutines. Tool calls made from a
snippet are scheduled on an event loop owned by the sandbox and running in its
own thread, so a snippet can block on a tool without touching the caller's
loop.
"""

import asyncio
import logging
import threading
import concurrent.futures

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Optional

from .errors import ExecutionCancelledError, InterpreterRuntimeError
from .evaluator import DEFAULT_MAX_OPERATIONS, Evaluator
from ..errors import AgentError
from ..types.tool_types import ToolInfo

if TYPE_CHECKING:
    from ..tools.base_tool import ToolGroup

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)


@dataclass
class CodeOutput:
    """What a successful snippet produced."""

    result: Any
    logs: str


class SandboxTool:
    """A tool exposed to sandboxed code as an ordinary callable.

    Positional arguments bind to the tool's parameters in declaration order;
    keyword arguments override them. Values for string parameters are
    stringified.
    """

    def __init__(self, info: ToolInfo, call: Callable[[str, dict[str, Any]], str]):
        self.info = info
        self._call = call

    def __call__(self, *args, **kwargs) -> str:
        names = self.info.parameter_names()
        if len(args) > len(names):
            raise InterpreterRuntimeError(
                f"Tool '{self.info.name}' takes {len(names)} arguments but {len(args)} were given"
            )
        arguments = dict(zip(names, args))
        arguments.update(kwargs)
        for key, value in arguments.items():
            if self.info.parameter_type(key) == "string" and not isinstance(value, str):
                arguments[key] = str(value)
        return self._call(self.info.name, arguments)

    def __repr__(self) -> str:
        return f"<tool {self.info.name}>"


class CodeSandbox:
    """Evaluates snippets one at a time against a state that outlives them."""

    def __init__(
        self,
        tools: Optional["ToolGroup"] = None,
        authorized_imports: Optional[list[str]] = None,
        max_operations: int = DEFAULT_MAX_OPERATIONS,
    ):
        self.tools = tools
        self.authorized_imports = authorized_imports
        self.max_operations = max_operations
        self.state: dict[str, Any] = {}

        self._lock = threading.Lock()
        self._cancelled: Optional[threading.Event] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._thread: Optional[threading.Thread] = None

    def forward(self, code: str, cancelled: Optional[threading.Event] = None) -> CodeOutput:
        """Evaluate ``code``, raising an InterpreterError subclass on failure.

        Bindings made before a failure stay in ``state``. Once ``cancelled`` is
        set the snippet stops at its next loop iteration or tool call.
        """
        with self._lock:
            self._cancelled = cancelled
            evaluator = Evaluator(
                self.state,
                tools={
                    info.name: SandboxTool(info, self._call_tool)
                    for info in (self.tools.tool_infos() if self.tools else [])
                },
                authorized_imports=self.authorized_imports,
                max_operations=self.max_operations,
                cancelled=cancelled,
            )
            try:
                result = evaluator.evaluate(code)
            finally:
                self._cancelled = None
            return CodeOutput(result=result, logs=evaluator.logs)

    async def aforward(self, code: str) -> CodeOutput:
        """Evaluate ``code`` in a worker thread, off the caller's event loop."""
        cancelled = threading.Event()
        try:
            return await asyncio.to_thread(self.forward, code, cancelled)
        except asyncio.CancelledError:
            logger.info("Cancelling the running snippet")
            cancelled.set()
            raise

    def _call_tool(self, name: str, arguments: dict[str, Any]) -> str:
        cancelled = self._cancelled
        if cancelled is not None and cancelled.is_set():
            raise ExecutionCancelledError()
        tool_cls = self.tools.get(name)
        future = asyncio.run_coroutine_threadsafe(
            tool_cls.invoke(arguments), self._ensure_loop()
        )
        try:
            return self._wait(future, cancelled)
        except ExecutionCancelledError:
            raise
        except AgentError as e:
            raise InterpreterRuntimeError(str(e))
        except Exception as e:
            logger.warning(f"Tool {name} raised inside the sandbox: {e}")
            raise InterpreterRuntimeError(f"Tool '{name}' failed: {e}")

    @staticmethod
    def _wait(future: concurrent.futures.Future, cancelled: Optional[threading.Event]) -> str:
        while not future.done():
            if cancelled is not None and cancelled.is_set():
                future.cancel()
                raise ExecutionCancelledError()
            concurrent.futures.wait([future], timeout=0.05)
        return future.result()

    def _ensure_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.new_event_loop()
            self._thread = threading.Thread(
                target=self._loop.run_forever, name="sandbox-tools", daemon=True
            )
            self._thread.start()
        return self._loop

    def close(self) -> None:
        """Stop the tool loop, if one was started. State is kept."""
        if self._loop is None:
            return
        self._loop.call_soon_threadsafe(self._loop.stop)
        self._thread.join()
        self._loop.close()
        self._loop = None
        self._thread = None

    def __enter__(self) -> "CodeSandbox":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
