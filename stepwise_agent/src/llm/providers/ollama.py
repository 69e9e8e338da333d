# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""
Local LLM backend using Ollama for free, private LLM inference.

Ollama exposes an OpenAI-compatible chat-completions endpoint. Many local
models do not support native tool calling; with ``native_tools=False`` tools
are not sent and the agent falls back to parsing tool calls out of the text.
"""

import asyncio
import logging
import requests

from typing import Any, Optional

from ..base import Model, build_chat_request
from ...errors import GenerationError
from ...types.llm_types import Message, ModelResponse
from ...types.tool_types import ToolInfo

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)


class OllamaModel(Model):
    def __init__(
        self,
        model_id: str = "qwen2.5",
        url: str = "http://localhost:11434",
        temperature: float = 0.5,
        ctx_length: int = 2048,
        max_tokens: int = 1500,
        native_tools: bool = False,
        timeout: float = 300,  # large local models are slow
    ):
        self.model_id = model_id
        self.url = url.rstrip("/")
        self.temperature = temperature
        self.ctx_length = ctx_length
        self.max_tokens = max_tokens
        self.native_tools = native_tools
        self.timeout = timeout

    async def run(
        self,
        messages: list[Message],
        tools: Optional[list[ToolInfo]] = None,
        max_tokens: Optional[int] = None,
        options: Optional[dict[str, Any]] = None,
    ) -> ModelResponse:
        body = build_chat_request(
            self.model_id,
            messages,
            tools if self.native_tools else None,
            max_tokens or self.max_tokens,
            self.temperature,
            options,
        )
        body["stream"] = False
        body["options"] = {"num_ctx": self.ctx_length}

        try:
            response = await asyncio.to_thread(
                requests.post,
                f"{self.url}/v1/chat/completions",
                json=body,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error(f"Ollama request failed: {e}")
            raise GenerationError(f"Failed to get response from Ollama: {e}")

        if response.status_code != 200:
            raise GenerationError(
                f"Ollama API error: {response.status_code} - {response.text}"
            )

        try:
            return ModelResponse.from_completion(response.json())
        except ValueError as e:
            raise GenerationError(f"Failed to parse Ollama response: {e}")
