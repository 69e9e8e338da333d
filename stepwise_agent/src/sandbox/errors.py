# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Errors raised by the code sandbox.

FinalAnswer is not a failure: it is how a snippet hands its answer back,
unwinding the rest of the evaluation.
"""


class InterpreterError(Exception):
    prefix: str = ""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"{self.prefix}{self.message}"


class InterpreterSyntaxError(InterpreterError):
    prefix = "Syntax Error: "


class InterpreterRuntimeError(InterpreterError):
    prefix = "Runtime Error: "


class UnauthorizedImportError(InterpreterError):
    def __init__(self, module: str):
        super().__init__(f"Unauthorized import of module: {module}")
        self.module = module


class UnsupportedOperationError(InterpreterError):
    def __init__(self, operation: str):
        super().__init__(f"Unsupported operation: {operation}")
        self.operation = operation


class OperationLimitExceededError(InterpreterError):
    def __init__(self):
        super().__init__("Operation limit exceeded. Possible infinite loop detected.")


class ExecutionCancelledError(InterpreterError):
    def __init__(self):
        super().__init__("Execution cancelled.")


class FinalAnswer(InterpreterError):
    def __init__(self, answer: str):
        super().__init__(answer)
        self.answer = answer

    def __str__(self) -> str:
        return f"Final answer: {self.answer}"
