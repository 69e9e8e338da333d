# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
from .errors import (
    ExecutionCancelledError,
    FinalAnswer,
    InterpreterError,
    InterpreterRuntimeError,
    InterpreterSyntaxError,
    OperationLimitExceededError,
    UnauthorizedImportError,
    UnsupportedOperationError,
)
from .evaluator import Evaluator
from .executor import CodeOutput, CodeSandbox, SandboxTool

__all__ = [
    "CodeOutput",
    "CodeSandbox",
    "Evaluator",
    "ExecutionCancelledError",
    "FinalAnswer",
    "InterpreterError",
    "InterpreterRuntimeError",
    "InterpreterSyntaxError",
    "OperationLimitExceededError",
    "SandboxTool",
    "UnauthorizedImportError",
    "UnsupportedOperationError",
]
