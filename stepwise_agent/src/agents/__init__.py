# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
from .base_agent import MAX_STEPS_FALLBACK, MultiStepAgent, agent_registry
from .code_agent import CodeAgent
from .tool_calling_agent import NO_TOOL_CALL_OBSERVATION, ToolCallingAgent
from .tool_server_agent import ToolServerAgent

__all__ = [
    "CodeAgent",
    "MAX_STEPS_FALLBACK",
    "MultiStepAgent",
    "NO_TOOL_CALL_OBSERVATION",
    "ToolCallingAgent",
    "ToolServerAgent",
    "agent_registry",
]
