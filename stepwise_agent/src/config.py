# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""
Runtime configuration.

Settings are read from the environment (and a ``.env`` file, if present) once
at import time into the module-level ``settings`` object. External tool
servers are described in a YAML file:

    servers:
      fetch:
        command: uvx
        args: [mcp-server-fetch]
        env:
          SOME_KEY: value
"""

import os
import yaml
import logging

from pathlib import Path
from typing import Optional
from dotenv import load_dotenv
from pydantic import BaseModel, field_validator

logger = logging.getLogger(__name__)

load_dotenv()


def _optional_int(name: str) -> Optional[int]:
    value = os.getenv(name)
    return int(value) if value else None


class Settings(BaseModel):
    LOG_LEVEL: str = "INFO"
    MODEL_TYPE: str = "openai"
    MODEL_ID: Optional[str] = None
    OPENAI_API_KEY: Optional[str] = None
    OPENAI_BASE_URL: Optional[str] = None
    OLLAMA_BASE_URL: str = "http://localhost:11434"
    OLLAMA_CTX_LENGTH: int = 2048
    MAX_STEPS: int = 10
    PLANNING_INTERVAL: Optional[int] = None
    STEP_LOG: str = "logs.txt"
    SERVERS_CONFIG: str = "servers.yaml"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            LOG_LEVEL=os.getenv("STEPWISE_LOG_LEVEL", "INFO"),
            MODEL_TYPE=os.getenv("STEPWISE_MODEL_TYPE", "openai"),
            MODEL_ID=os.getenv("STEPWISE_MODEL_ID"),
            OPENAI_API_KEY=os.getenv("OPENAI_API_KEY"),
            OPENAI_BASE_URL=os.getenv("OPENAI_BASE_URL"),
            OLLAMA_BASE_URL=os.getenv("OLLAMA_BASE_URL", "http://localhost:11434"),
            OLLAMA_CTX_LENGTH=int(os.getenv("OLLAMA_CTX_LENGTH", "2048")),
            MAX_STEPS=int(os.getenv("STEPWISE_MAX_STEPS", "10")),
            PLANNING_INTERVAL=_optional_int("STEPWISE_PLANNING_INTERVAL"),
            STEP_LOG=os.getenv("STEPWISE_STEP_LOG", "logs.txt"),
            SERVERS_CONFIG=os.getenv("STEPWISE_SERVERS_CONFIG", "servers.yaml"),
        )


settings = Settings.from_env()


class ServerConfig(BaseModel):
    """How to launch one external tool server."""

    command: str
    args: list[str]
    env: Optional[dict[str, str]] = None

    @field_validator("command")
    @classmethod
    def _command_not_empty(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("command must not be empty")
        return value

    @field_validator("args")
    @classmethod
    def _args_not_empty(cls, value: list[str]) -> list[str]:
        if not value:
            raise ValueError("args must not be empty")
        return value


def load_server_configs(path: str | Path) -> dict[str, ServerConfig]:
    """Read server definitions from a YAML file, keyed by server name."""
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    servers = data.get("servers", data)
    if not isinstance(servers, dict):
        raise ValueError(f"Expected a mapping of servers in {path}")
    configs = {name: ServerConfig.model_validate(spec) for name, spec in servers.items()}
    logger.info(f"Loaded {len(configs)} tool server definitions from {path}")
    return configs
