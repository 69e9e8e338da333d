# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""OpenAI-compatible chat-completions backend."""

import logging

from typing import Any, Optional
from datetime import datetime
from openai import AsyncOpenAI, OpenAIError

from ..base import Model, build_chat_request
from ...errors import GenerationError
from ...types.llm_types import Message, ModelResponse
from ...types.tool_types import ToolInfo

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)


class OpenAIServerModel(Model):
    """Any server speaking the OpenAI chat-completions protocol."""

    def __init__(
        self,
        model_id: str = "gpt-4o-mini",
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        temperature: float = 0.5,
        max_tokens: int = 4500,
        client: Optional[AsyncOpenAI] = None,
    ):
        self.model_id = model_id
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.client = client or AsyncOpenAI(api_key=api_key, base_url=base_url)

    async def run(
        self,
        messages: list[Message],
        tools: Optional[list[ToolInfo]] = None,
        max_tokens: Optional[int] = None,
        options: Optional[dict[str, Any]] = None,
    ) -> ModelResponse:
        args = build_chat_request(
            self.model_id,
            messages,
            tools,
            max_tokens or self.max_tokens,
            self.temperature,
            options,
        )

        start_time = datetime.now()
        try:
            response = await self.client.chat.completions.create(**args)
            result = ModelResponse.from_completion(response.model_dump())
        except (OpenAIError, ValueError) as e:
            logger.error(f"OpenAI request failed: {e}")
            raise GenerationError(f"Failed to get response from OpenAI: {e}")

        logger.info(
            f"{self.model_id} responded in {(datetime.now() - start_time).total_seconds():.2f}s"
        )
        return result
