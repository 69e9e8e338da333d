# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""
Tool server client speaking JSON-RPC 2.0 over a subprocess's stdin/stdout.

Messages are newline-delimited JSON. The client performs the ``initialize``
handshake on connect and then serves ``tools/list`` and ``tools/call``.
"""

import os
import json
import uuid
import asyncio
import logging

from typing import Any, Optional

from .base import CallToolResult, ServerTool, ToolServer
from ..config import ServerConfig

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

PROTOCOL_VERSION = "2024-11-05"
CLIENT_INFO = {"name": "stepwise-agent", "version": "0.1.0"}


class ToolServerError(Exception):
    """The server returned a JSON-RPC error or could not be reached."""


class StdioToolServer(ToolServer):
    def __init__(self, name: str, config: ServerConfig, timeout: float = 30.0):
        self.name = name
        self.config = config
        self.timeout = timeout
        self._proc: Optional[asyncio.subprocess.Process] = None
        self._pending: dict[str, asyncio.Future] = {}
        self._reader_task: Optional[asyncio.Task] = None

    async def connect(self) -> None:
        env = dict(os.environ)
        env.update(self.config.env or {})
        logger.info(f"Starting tool server {self.name}: {self.config.command} {' '.join(self.config.args)}")
        self._proc = await asyncio.create_subprocess_exec(
            self.config.command,
            *self.config.args,
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.DEVNULL,
            env=env,
        )
        self._reader_task = asyncio.create_task(self._read_loop())
        await self._rpc(
            "initialize",
            {
                "protocolVersion": PROTOCOL_VERSION,
                "capabilities": {},
                "clientInfo": CLIENT_INFO,
            },
        )
        await self._notify("notifications/initialized")

    async def list_tools(self) -> list[ServerTool]:
        result = await self._rpc("tools/list", {})
        return [ServerTool.model_validate(tool) for tool in result.get("tools", [])]

    async def call_tool(self, name: str, arguments: dict[str, Any]) -> CallToolResult:
        result = await self._rpc("tools/call", {"name": name, "arguments": arguments})
        return CallToolResult.model_validate(result)

    async def disconnect(self) -> None:
        if self._reader_task is not None:
            self._reader_task.cancel()
            try:
                await self._reader_task
            except asyncio.CancelledError:
                pass
            self._reader_task = None
        if self._proc is not None:
            if self._proc.returncode is None:
                self._proc.kill()
            await self._proc.wait()
            self._proc = None
        for future in self._pending.values():
            if not future.done():
                future.set_exception(ToolServerError(f"Tool server {self.name} disconnected"))
        self._pending.clear()
        logger.info(f"Stopped tool server {self.name}")

    async def __aenter__(self) -> "StdioToolServer":
        await self.connect()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.disconnect()

    async def _send(self, message: dict[str, Any]) -> None:
        if self._proc is None or self._proc.stdin is None:
            raise ToolServerError(f"Tool server {self.name} is not connected")
        self._proc.stdin.write((json.dumps(message) + "\n").encode())
        await self._proc.stdin.drain()

    async def _rpc(self, method: str, params: Any) -> Any:
        request_id = uuid.uuid4().hex[:12]
        future: asyncio.Future = asyncio.get_running_loop().create_future()
        self._pending[request_id] = future
        try:
            await self._send(
                {"jsonrpc": "2.0", "id": request_id, "method": method, "params": params}
            )
            return await asyncio.wait_for(future, timeout=self.timeout)
        except asyncio.TimeoutError:
            raise ToolServerError(f"Tool server {self.name} timed out on {method}")
        finally:
            self._pending.pop(request_id, None)

    async def _notify(self, method: str) -> None:
        await self._send({"jsonrpc": "2.0", "method": method})

    async def _read_loop(self) -> None:
        assert self._proc is not None and self._proc.stdout is not None
        while True:
            line = await self._proc.stdout.readline()
            if not line:
                break
            try:
                message = json.loads(line)
            except json.JSONDecodeError:
                logger.debug(f"Ignoring non-JSON line from {self.name}: {line[:200]!r}")
                continue
            if not isinstance(message, dict):
                continue
            future = self._pending.get(message.get("id"))
            if future is None or future.done():
                continue
            if message.get("error"):
                future.set_exception(
                    ToolServerError(message["error"].get("message", "RPC error"))
                )
            else:
                future.set_result(message.get("result", {}))

        for future in self._pending.values():
            if not future.done():
                future.set_exception(ToolServerError(f"Tool server {self.name} exited"))
