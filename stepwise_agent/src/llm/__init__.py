# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""LLM integration module.

This module provides a unified interface over chat-completion backends: any
OpenAI-compatible server, and a local Ollama server.
"""

import logging

from typing import Optional

from .base import Model, build_chat_request
from .providers import OllamaModel, OpenAIServerModel

# Quieten LLM API call logs to make stdout more useful
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("openai").setLevel(logging.WARNING)

MODEL_TYPES = ("openai", "ollama")


def get_model(
    model_type: str,
    model_id: Optional[str] = None,
    base_url: Optional[str] = None,
    api_key: Optional[str] = None,
    ctx_length: int = 2048,
    native_tools: bool = False,
) -> Model:
    """Build a model backend by type name."""
    if model_type == "openai":
        return OpenAIServerModel(
            model_id=model_id or "gpt-4o-mini", base_url=base_url, api_key=api_key
        )
    if model_type == "ollama":
        return OllamaModel(
            model_id=model_id or "qwen2.5",
            url=base_url or "http://localhost:11434",
            ctx_length=ctx_length,
            native_tools=native_tools,
        )
    raise ValueError(f"Unknown model type '{model_type}', expected one of {MODEL_TYPES}")


__all__ = [
    "MODEL_TYPES",
    "Model",
    "OllamaModel",
    "OpenAIServerModel",
    "build_chat_request",
    "get_model",
]
