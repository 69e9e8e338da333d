# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""
A tree-walking evaluator for a restricted subset of Python.

Source is parsed with the standard ``ast`` module and every node is evaluated
by hand: nothing is handed to ``exec`` or ``eval``. Only the node types with a
``visit_*`` method below are supported; anything else raises
UnsupportedOperationError.
"""

import ast
import re
import string
import logging
import operator
import importlib
import threading

from types import ModuleType
from typing import Any, Callable, Optional

from .builtins import AUTHORIZED_IMPORTS, FORBIDDEN_ATTRIBUTES, STATIC_TOOLS
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

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

DEFAULT_MAX_OPERATIONS = 1_000_000

_INT64_MASK = (1 << 64) - 1

BINARY_OPERATORS: dict[type, Callable[[Any, Any], Any]] = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.FloorDiv: operator.floordiv,
    ast.Mod: operator.mod,
    ast.Pow: operator.pow,
}

BITWISE_OPERATORS: dict[type, Callable[[Any, Any], Any]] = {
    ast.BitAnd: operator.and_,
    ast.BitOr: operator.or_,
    ast.BitXor: operator.xor,
    ast.LShift: operator.lshift,
    ast.RShift: operator.rshift,
}

COMPARISON_OPERATORS: dict[type, Callable[[Any, Any], bool]] = {
    ast.Eq: operator.eq,
    ast.NotEq: operator.ne,
    ast.Lt: operator.lt,
    ast.LtE: operator.le,
    ast.Gt: operator.gt,
    ast.GtE: operator.ge,
    ast.In: lambda a, b: a in b,
    ast.NotIn: lambda a, b: a not in b,
    ast.Is: operator.is_,
    ast.IsNot: operator.is_not,
}


def to_int64(value: int) -> int:
    """Wrap an integer into the signed 64-bit range."""
    value &= _INT64_MASK
    if value >= 1 << 63:
        value -= 1 << 64
    return value


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _host_error(e: Exception) -> InterpreterRuntimeError:
    return InterpreterRuntimeError(f"{type(e).__name__}: {e}")


class _BreakLoop(Exception):
    pass


class _ContinueLoop(Exception):
    pass


class Evaluator(ast.NodeVisitor):
    """Evaluates one parsed snippet against a persistent state mapping.

    ``state`` is mutated in place. ``tools`` maps names to plain callables
    that sandboxed code may call; they are resolved after ``state`` and
    before the static builtins.
    Setting ``cancelled`` stops the snippet at its next loop iteration.
    """

    def __init__(
        self,
        state: dict[str, Any],
        tools: Optional[dict[str, Callable[..., Any]]] = None,
        authorized_imports: Optional[list[str]] = None,
        max_operations: int = DEFAULT_MAX_OPERATIONS,
        cancelled: Optional[threading.Event] = None,
    ):
        self.state = state
        self.cancelled = cancelled
        self.authorized_imports = (
            AUTHORIZED_IMPORTS if authorized_imports is None else authorized_imports
        )
        self.max_operations = max_operations
        self.operations = 0
        self.print_outputs: list[str] = []
        self._scopes: list[dict[str, Any]] = []

        self.namespace: dict[str, Any] = dict(STATIC_TOOLS)
        self.namespace.update(tools or {})
        self.namespace["print"] = self._print
        self.namespace["final_answer"] = self._final_answer

    # Entry point

    def evaluate(self, code: str) -> Any:
        """Run every statement of ``code``; return the last expression's value."""
        try:
            tree = ast.parse(code)
        except SyntaxError as e:
            raise InterpreterSyntaxError(f"{e.msg} at line {e.lineno}, column {e.offset}")

        result = None
        try:
            for node in tree.body:
                if isinstance(node, ast.Expr):
                    result = self.visit(node.value)
                else:
                    self.visit(node)
                    result = None
        except (_BreakLoop, _ContinueLoop):
            raise InterpreterSyntaxError("'break' or 'continue' outside loop")
        except RecursionError:
            raise InterpreterRuntimeError("Maximum recursion depth exceeded")
        except InterpreterError:
            raise
        except Exception as e:
            raise _host_error(e)
        return result

    @property
    def logs(self) -> str:
        return "".join(self.print_outputs)

    # Sandbox builtins

    def _print(self, *args, sep: str = " ", end: str = "\n") -> None:
        self.print_outputs.append(sep.join(str(a) for a in args) + end)

    def _final_answer(self, *args, answer: Any = None) -> None:
        if answer is None:
            answer = " ".join(str(a) for a in args)
        raise FinalAnswer(str(answer))

    def _tick(self) -> None:
        if self.cancelled is not None and self.cancelled.is_set():
            raise ExecutionCancelledError()
        self.operations += 1
        if self.operations > self.max_operations:
            raise OperationLimitExceededError()

    def generic_visit(self, node: ast.AST) -> Any:
        raise UnsupportedOperationError(type(node).__name__)

    # Statements

    def _run_body(self, body: list[ast.stmt]) -> None:
        for stmt in body:
            self.visit(stmt)

    def visit_Expr(self, node: ast.Expr) -> Any:
        return self.visit(node.value)

    def visit_Pass(self, node: ast.Pass) -> None:
        return None

    def visit_Break(self, node: ast.Break) -> None:
        raise _BreakLoop()

    def visit_Continue(self, node: ast.Continue) -> None:
        raise _ContinueLoop()

    def visit_Assign(self, node: ast.Assign) -> None:
        value = self.visit(node.value)
        for target in node.targets:
            self._assign(target, value)

    def visit_AnnAssign(self, node: ast.AnnAssign) -> None:
        if node.value is not None:
            self._assign(node.target, self.visit(node.value))

    def visit_AugAssign(self, node: ast.AugAssign) -> None:
        if isinstance(node.target, ast.Name):
            current = self._lookup(node.target.id)
        elif isinstance(node.target, ast.Subscript):
            current = self.visit_Subscript(node.target)
        else:
            raise UnsupportedOperationError(f"augmented assignment to {type(node.target).__name__}")
        self._assign(node.target, self._binary_op(node.op, current, self.visit(node.value)))

    def _assign(self, target: ast.expr, value: Any) -> None:
        if isinstance(target, ast.Name):
            scope = self._scopes[-1] if self._scopes else self.state
            scope[target.id] = value
        elif isinstance(target, (ast.Tuple, ast.List)):
            try:
                values = list(value)
            except TypeError:
                raise InterpreterRuntimeError(
                    f"Cannot unpack non-iterable {type(value).__name__} object"
                )
            if len(values) != len(target.elts):
                raise InterpreterRuntimeError(
                    f"Tuple unpacking failed. Expected {len(target.elts)} values, got {len(values)}"
                )
            for elt, item in zip(target.elts, values):
                self._assign(elt, item)
        elif isinstance(target, ast.Subscript):
            container = self.visit(target.value)
            if not isinstance(container, (list, dict)):
                raise InterpreterRuntimeError(
                    f"'{type(container).__name__}' object does not support item assignment"
                )
            key = self.visit(target.slice)
            try:
                container[key] = value
            except (IndexError, TypeError, ValueError) as e:
                raise _host_error(e)
        else:
            raise UnsupportedOperationError(f"assignment to {type(target).__name__}")

    def visit_For(self, node: ast.For) -> None:
        iterable = self.visit(node.iter)
        try:
            iterator = iter(iterable)
        except TypeError:
            raise InterpreterRuntimeError(f"'{type(iterable).__name__}' object is not iterable")

        broke = False
        for item in iterator:
            self._tick()
            self._assign(node.target, item)
            try:
                self._run_body(node.body)
            except _BreakLoop:
                broke = True
                break
            except _ContinueLoop:
                continue
        if not broke:
            self._run_body(node.orelse)

    def visit_While(self, node: ast.While) -> None:
        broke = False
        while self.visit(node.test):
            self._tick()
            try:
                self._run_body(node.body)
            except _BreakLoop:
                broke = True
                break
            except _ContinueLoop:
                continue
        if not broke:
            self._run_body(node.orelse)

    def visit_If(self, node: ast.If) -> None:
        if self.visit(node.test):
            self._run_body(node.body)
        else:
            self._run_body(node.orelse)

    def visit_Import(self, node: ast.Import) -> None:
        for alias in node.names:
            module = self._import(alias.name)
            if alias.asname:
                self.state[alias.asname] = module
            else:
                # `import a.b` binds `a`
                self.state[alias.name.split(".")[0]] = self._import(alias.name.split(".")[0])

    def visit_ImportFrom(self, node: ast.ImportFrom) -> None:
        if node.module is None or node.level:
            raise UnsupportedOperationError("relative import")
        module = self._import(node.module)
        for alias in node.names:
            if alias.name == "*":
                raise UnsupportedOperationError("import *")
            self.state[alias.asname or alias.name] = self._get_attribute(module, alias.name)

    def _import(self, name: str) -> ModuleType:
        if name.split(".")[0] not in self.authorized_imports:
            logger.info(f"Blocked import of {name}")
            raise UnauthorizedImportError(name)
        try:
            return importlib.import_module(name)
        except ImportError as e:
            raise _host_error(e)

    # Expressions

    def visit_Constant(self, node: ast.Constant) -> Any:
        return node.value

    def visit_Name(self, node: ast.Name) -> Any:
        return self._lookup(node.id)

    def _lookup(self, name: str) -> Any:
        for scope in reversed(self._scopes):
            if name in scope:
                return scope[name]
        if name in self.state:
            return self.state[name]
        if name in self.namespace:
            return self.namespace[name]
        raise InterpreterRuntimeError(f"Variable '{name}' used before assignment")

    def visit_List(self, node: ast.List) -> list:
        return self._elements(node.elts)

    def visit_Tuple(self, node: ast.Tuple) -> tuple:
        return tuple(self._elements(node.elts))

    def visit_Set(self, node: ast.Set) -> set:
        return set(self._elements(node.elts))

    def _elements(self, elts: list[ast.expr]) -> list:
        values = []
        for elt in elts:
            if isinstance(elt, ast.Starred):
                values.extend(self.visit(elt.value))
            else:
                values.append(self.visit(elt))
        return values

    def visit_Dict(self, node: ast.Dict) -> dict:
        result = {}
        for key, value in zip(node.keys, node.values):
            if key is None:
                result.update(self.visit(value))
            else:
                result[self.visit(key)] = self.visit(value)
        return result

    def visit_BinOp(self, node: ast.BinOp) -> Any:
        return self._binary_op(node.op, self.visit(node.left), self.visit(node.right))

    def _binary_op(self, op: ast.operator, left: Any, right: Any) -> Any:
        try:
            if type(op) in BITWISE_OPERATORS:
                func = BITWISE_OPERATORS[type(op)]
                if _is_number(left) or _is_number(right):
                    return to_int64(func(to_int64(int(left)), to_int64(int(right))))
                return func(left, right)
            if type(op) in BINARY_OPERATORS:
                return BINARY_OPERATORS[type(op)](left, right)
        except (ArithmeticError, TypeError, ValueError) as e:
            raise _host_error(e)
        raise UnsupportedOperationError(type(op).__name__)

    def visit_UnaryOp(self, node: ast.UnaryOp) -> Any:
        operand = self.visit(node.operand)
        try:
            if isinstance(node.op, ast.Not):
                return not operand
            if isinstance(node.op, ast.USub):
                return -operand
            if isinstance(node.op, ast.UAdd):
                return +operand
            if isinstance(node.op, ast.Invert):
                return to_int64(~to_int64(int(operand)))
        except (TypeError, ValueError) as e:
            raise _host_error(e)
        raise UnsupportedOperationError(type(node.op).__name__)

    def visit_BoolOp(self, node: ast.BoolOp) -> Any:
        value = None
        for operand in node.values:
            value = self.visit(operand)
            if isinstance(node.op, ast.And) and not value:
                return value
            if isinstance(node.op, ast.Or) and value:
                return value
        return value

    def visit_Compare(self, node: ast.Compare) -> bool:
        left = self.visit(node.left)
        for op, comparator in zip(node.ops, node.comparators):
            right = self.visit(comparator)
            try:
                if not COMPARISON_OPERATORS[type(op)](left, right):
                    return False
            except TypeError as e:
                raise _host_error(e)
            left = right
        return True

    def visit_IfExp(self, node: ast.IfExp) -> Any:
        return self.visit(node.body) if self.visit(node.test) else self.visit(node.orelse)

    def visit_JoinedStr(self, node: ast.JoinedStr) -> str:
        parts = []
        for value in node.values:
            if isinstance(value, ast.Constant):
                parts.append(str(value.value))
            else:
                parts.append(self.visit(value))
        return "".join(parts)

    def visit_FormattedValue(self, node: ast.FormattedValue) -> str:
        value = self.visit(node.value)
        if node.conversion == ord("r"):
            value = repr(value)
        elif node.conversion == ord("a"):
            value = ascii(value)
        elif node.conversion == ord("s"):
            value = str(value)
        spec = self.visit(node.format_spec) if node.format_spec is not None else ""
        try:
            return format(value, spec)
        except (TypeError, ValueError) as e:
            raise _host_error(e)

    def visit_Slice(self, node: ast.Slice) -> slice:
        lower = self.visit(node.lower) if node.lower is not None else None
        upper = self.visit(node.upper) if node.upper is not None else None
        step = self.visit(node.step) if node.step is not None else None
        return slice(lower, upper, step)

    def visit_Subscript(self, node: ast.Subscript) -> Any:
        container = self.visit(node.value)
        key = self.visit(node.slice)
        if isinstance(container, (str, list, tuple)) and isinstance(key, int):
            length = len(container)
            if not -length <= key < length:
                if isinstance(container, str):
                    what = "characters in the string"
                else:
                    what = f"elements in the {type(container).__name__}"
                raise InterpreterRuntimeError(
                    f"Index out of bounds: {key}. There are only {length} {what}."
                )
        try:
            return container[key]
        except KeyError:
            raise InterpreterRuntimeError(f"Key {key!r} not found")
        except (IndexError, TypeError, ValueError) as e:
            raise _host_error(e)

    def visit_Attribute(self, node: ast.Attribute) -> Any:
        return self._get_attribute(self.visit(node.value), node.attr)

    def _get_attribute(self, obj: Any, attr: str) -> Any:
        if attr.startswith("_") or attr in FORBIDDEN_ATTRIBUTES:
            raise UnsupportedOperationError(f"access to attribute '{attr}'")
        if isinstance(obj, str) and attr in ("format", "format_map"):
            self._check_format_template(obj)
        if obj is str and attr in ("format", "format_map"):
            return self._checked_format(getattr(str, attr))
        try:
            value = getattr(obj, attr)
        except AttributeError as e:
            raise _host_error(e)
        if isinstance(value, ModuleType) and value.__name__.split(".")[0] not in self.authorized_imports:
            raise UnauthorizedImportError(value.__name__)
        return value

    def _checked_format(self, method: Callable[..., str]) -> Callable[..., str]:
        def checked(template, *args, **kwargs):
            if isinstance(template, str):
                self._check_format_template(template)
            return method(template, *args, **kwargs)

        return checked

    def _check_format_template(self, template: str) -> None:
        try:
            fields = list(string.Formatter().parse(template))
        except ValueError as e:
            raise _host_error(e)
        for _, field_name, format_spec, _ in fields:
            if field_name and re.search(r"[.\[]\s*_", field_name):
                raise UnsupportedOperationError(f"access to attribute in format field '{field_name}'")
            if field_name and any(part in FORBIDDEN_ATTRIBUTES for part in re.split(r"[.\[\]]", field_name)):
                raise UnsupportedOperationError(f"access to attribute in format field '{field_name}'")
            if format_spec:
                self._check_format_template(format_spec)

    def visit_Call(self, node: ast.Call) -> Any:
        if isinstance(node.func, ast.Name):
            try:
                func = self._lookup(node.func.id)
            except InterpreterRuntimeError:
                raise InterpreterRuntimeError(f"Function '{node.func.id}' not found")
        else:
            func = self.visit(node.func)

        args = self._elements(node.args)
        kwargs = {}
        for keyword in node.keywords:
            if keyword.arg is None:
                kwargs.update(self.visit(keyword.value))
            else:
                kwargs[keyword.arg] = self.visit(keyword.value)

        if not callable(func):
            raise InterpreterRuntimeError(f"'{type(func).__name__}' object is not callable")
        try:
            return func(*args, **kwargs)
        except InterpreterError:
            raise
        except Exception as e:
            raise _host_error(e)

    # Comprehensions

    def visit_ListComp(self, node: ast.ListComp) -> list:
        results: list = []
        self._comprehension(node.generators, lambda: results.append(self.visit(node.elt)))
        return results

    def visit_GeneratorExp(self, node: ast.GeneratorExp) -> list:
        return self.visit_ListComp(node)

    def visit_SetComp(self, node: ast.SetComp) -> set:
        results: set = set()
        self._comprehension(node.generators, lambda: results.add(self.visit(node.elt)))
        return results

    def visit_DictComp(self, node: ast.DictComp) -> dict:
        results: dict = {}

        def emit():
            results[self.visit(node.key)] = self.visit(node.value)

        self._comprehension(node.generators, emit)
        return results

    def _comprehension(self, generators: list[ast.comprehension], emit: Callable[[], None]) -> None:
        self._scopes.append({})
        try:
            self._generate(generators, 0, emit)
        finally:
            self._scopes.pop()

    def _generate(self, generators: list[ast.comprehension], index: int, emit: Callable[[], None]) -> None:
        if index == len(generators):
            emit()
            return
        generator = generators[index]
        if generator.is_async:
            raise UnsupportedOperationError("async comprehension")
        iterable = self.visit(generator.iter)
        try:
            iterator = iter(iterable)
        except TypeError:
            raise InterpreterRuntimeError(f"'{type(iterable).__name__}' object is not iterable")
        for item in iterator:
            self._tick()
            self._assign(generator.target, item)
            if all(self.visit(condition) for condition in generator.ifs):
                self._generate(generators, index + 1, emit)
