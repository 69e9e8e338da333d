# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Tests for the restricted python evaluator."""
import pytest

from stepwise_agent.src.sandbox import (
    CodeSandbox,
    FinalAnswer,
    InterpreterRuntimeError,
    InterpreterSyntaxError,
    OperationLimitExceededError,
    UnauthorizedImportError,
    UnsupportedOperationError,
)
from stepwise_agent.src.sandbox.evaluator import to_int64


def run(code: str) -> str:
    return CodeSandbox().forward(code).logs


@pytest.mark.parametrize("code, expected", [
    ("print('Hello, world!')", "Hello, world!\n"),
    (
        "word = 'strawberry'\n"
        "r_count = word.count('r')\n"
        "print(f\"The letter 'r' appears {r_count} times in the word '{word}'.\")",
        "The letter 'r' appears 3 times in the word 'strawberry'.\n",
    ),
    ("for i in range(5):\n    print(i)", "0\n1\n2\n3\n4\n"),
    ("my_dict = {'a': 1}\nprint(f\"my_dict['a'] is {my_dict['a']}\")", "my_dict['a'] is 1\n"),
    ("a = [1, 2, 3]\nprint([x for x in a])", "[1, 2, 3]\n"),
    ("a = [1, 2, 3]\na.append(4)\nprint(a)", "[1, 2, 3, 4]\n"),
    ("print([1, 2, 3])", "[1, 2, 3]\n"),
    ("print(['a', 'b'])", "['a', 'b']\n"),
    ("print({'a': 1, 'b': [1, 2]})", "{'a': 1, 'b': [1, 2]}\n"),
    ("print('a', 1, 2.5, True, None)", "a 1 2.5 True None\n"),
    ("a, b = 1, 2\nprint(a + b)", "3\n"),
    ("(a, b), c = (1, 2), 3\nprint(a, b, c)", "1 2 3\n"),
    ("for k, v in {'x': 1, 'y': 2}.items():\n    print(k, v)", "x 1\ny 2\n"),
    ("print(7 / 2, 7 // 2, 7 % 2, 2 ** 10, 1 + 2.5, -3)", "3.5 3 1 1024 3.5 -3\n"),
    ("print('ab' * 2 + 'c')", "ababc\n"),
    ("print(1 < 2 <= 2, 3 in [1, 2], 'a' not in 'bcd')", "True False True\n"),
    ("print(True and 0, 0 or 'x', not [])", "0 x True\n"),
    ("x = 5\nprint('big' if x > 3 else 'small')", "big\n"),
    ("x = 1\nx += 2\nx *= 3\nprint(x)", "9\n"),
    ("d = {}\nd['k'] = 1\nd['k'] += 1\nprint(d)", "{'k': 2}\n"),
    ("print(f'{3.14159:.2f}|{42:>5}|{\"q\"!r}')", "3.14|   42|'q'\n"),
    ("print({x: x * x for x in range(3)})", "{0: 0, 1: 1, 2: 4}\n"),
    ("print(sum(x for x in range(5) if x % 2 == 0))", "6\n"),
    ("print(sorted({3, 1, 2}))", "[1, 2, 3]\n"),
    ("print([(i, j) for i in range(2) for j in range(2)])", "[(0, 0), (0, 1), (1, 0), (1, 1)]\n"),
    ("import math\nprint(math.sqrt(16))", "4.0\n"),
    ("from collections import Counter\nprint(Counter('aab')['a'])", "2\n"),
    ("print(sqrt(9), floor(2.7), ceil(2.1), abs(-4))", "3.0 2 3 4\n"),
    ("print('{} + {}'.format(1, 2))", "1 + 2\n"),
    ("print(*[1, 2], sep='-', end='!\\n')", "1-2!\n"),
])
def test_print_output(code, expected):
    """Captured print output matches the literal rendering."""
    assert run(code) == expected


@pytest.mark.parametrize("code, expected", [
    ("word = 'strawberry'\nprint(word[3])", "a\n"),
    ("word = 'strawberry'\nprint(word[-3])", "r\n"),
    ("word = 'strawberry'\nprint(word[9])", "y\n"),
    ("word = 'strawberry'\nprint(word[-10])", "s\n"),
    ("numbers = [1, 2, 3, 4, 5]\nprint(numbers[1:3])", "[2, 3]\n"),
    ("numbers = [1, 2, 3, 4, 5, 6, 7, 8, 9, 10]\nprint(numbers[1:5:2])", "[2, 4]\n"),
    ("numbers = [1, 2, 3, 4, 5, 6, 7, 8, 9, 10]\nprint(numbers[5:1:-2])", "[6, 4]\n"),
    ("word = 'strawberry'\nprint(word[::-1])", "yrrebwarts\n"),
    ("numbers = [1, 2, 3, 4, 5]\nprint(numbers[::-1])", "[5, 4, 3, 2, 1]\n"),
    ("numbers = [1, 2, 3, 4, 5]\nprint(numbers[:2], numbers[3:])", "[1, 2] [4, 5]\n"),
    ("t = (1, 2, 3)\nprint(t[-1], t[::2])", "3 (1, 3)\n"),
])
def test_indexing_and_slicing(code, expected):
    assert run(code) == expected


@pytest.mark.parametrize("code, message", [
    ("word = 'strawberry'\nword[10]", "Index out of bounds: 10. There are only 10 characters in the string."),
    ("word = 'strawberry'\nword[-11]", "Index out of bounds: -11. There are only 10 characters in the string."),
    ("a = [1, 2, 3]\na[-4]", "Index out of bounds: -4. There are only 3 elements in the list."),
    ("t = (1, 2)\nt[2]", "Index out of bounds: 2. There are only 2 elements in the tuple."),
])
def test_index_out_of_bounds(code, message):
    """Out-of-range indexes cite the index and the container length."""
    with pytest.raises(InterpreterRuntimeError) as exc_info:
        run(code)
    assert exc_info.value.message == message
    assert str(exc_info.value) == f"Runtime Error: {message}"


def test_undefined_variable():
    with pytest.raises(InterpreterRuntimeError) as exc_info:
        run("print(x)")
    assert str(exc_info.value) == "Runtime Error: Variable 'x' used before assignment"


def test_undefined_function():
    with pytest.raises(InterpreterRuntimeError) as exc_info:
        run("foo(1)")
    assert exc_info.value.message == "Function 'foo' not found"


def test_tuple_unpacking_mismatch():
    with pytest.raises(InterpreterRuntimeError) as exc_info:
        run("a, b = (1, 2, 3)")
    assert exc_info.value.message == "Tuple unpacking failed. Expected 2 values, got 3"


def test_host_errors_become_runtime_errors():
    with pytest.raises(InterpreterRuntimeError) as exc_info:
        run("1 / 0")
    assert "ZeroDivisionError" in exc_info.value.message

    with pytest.raises(InterpreterRuntimeError):
        run("d = {}\nd['missing']")


@pytest.mark.parametrize("code, error_type", [
    ("x = {[1]: 2}", "TypeError"),
    ("s = {[1]}", "TypeError"),
    ("for x in map(int, ['a']):\n    pass", "ValueError"),
    ("a, b = map(int, ['x', 'y'])", "ValueError"),
    ("d = {**5}", "TypeError"),
    ("print(*5)", "TypeError"),
    ("print(**5)", "TypeError"),
    ("[x for x in map(int, ['a'])]", "ValueError"),
])
def test_host_errors_outside_calls_become_runtime_errors(code, error_type):
    with pytest.raises(InterpreterRuntimeError) as exc_info:
        run(code)
    assert exc_info.value.message.startswith(f"{error_type}: ")


def test_syntax_error():
    with pytest.raises(InterpreterSyntaxError) as exc_info:
        run("x = 1 +")
    assert str(exc_info.value).startswith("Syntax Error: ")


@pytest.mark.parametrize("code", ["import os", "import subprocess", "from os import path"])
def test_unauthorized_import(code):
    with pytest.raises(UnauthorizedImportError) as exc_info:
        run(code)
    assert str(exc_info.value).startswith("Unauthorized import of module: ")


@pytest.mark.parametrize("code", [
    "def f():\n    return 1",
    "f = lambda x: x",
    "class A:\n    pass",
    "x = (1).__class__",
    "'{0.__class__}'.format(1)",
    "with open('x') as f:\n    pass",
])
def test_unsupported_operations(code):
    with pytest.raises(UnsupportedOperationError):
        run(code)


@pytest.mark.parametrize("code", [
    "str.format('{0.__class__}', 1)",
    "str.format_map('{a.__class__}', {'a': 1})",
    "fmt = str.format\nfmt('{0.__class__.__mro__}', 1)",
    "list(map(str.format, ['{0.__class__}'], [1]))",
    "import random\nstr.format('{0.__func__.__globals__}', random.choice)",
])
def test_format_templates_through_str_are_checked(code):
    with pytest.raises(UnsupportedOperationError):
        run(code)


def test_str_format_still_works():
    assert run("print(str.format('{0}-{1}', 1, 2))") == "1-2\n"
    assert run("print(str.format_map('{a}!', {'a': 'hi'}))") == "hi!\n"


def test_open_is_not_available():
    with pytest.raises(InterpreterRuntimeError) as exc_info:
        run("open('/etc/passwd')")
    assert exc_info.value.message == "Function 'open' not found"


def test_operation_limit():
    sandbox = CodeSandbox(max_operations=100)
    with pytest.raises(OperationLimitExceededError) as exc_info:
        sandbox.forward("while True:\n    pass")
    assert str(exc_info.value) == "Operation limit exceeded. Possible infinite loop detected."


def test_loop_control_flow():
    code = """
total = 0
for i in range(10):
    if i == 2:
        continue
    if i == 5:
        break
    total += i
else:
    total = -1
print(total)
n = 0
while n < 3:
    n += 1
print(n)
"""
    assert run(code) == "8\n3\n"


def test_bitwise_operations_truncate_to_64_bits():
    assert run("print(5 & 3, 5 | 3, 5 ^ 3, 1 << 3, 16 >> 2, ~0)") == "1 7 6 8 4 -1\n"
    assert run("print(2.9 & 3)") == "2\n"
    assert run("print(1 << 63)") == f"{-(1 << 63)}\n"
    assert to_int64((1 << 64) + 5) == 5


class TestFinalAnswer:
    """final_answer unwinds the rest of the snippet."""

    def test_keyword_answer(self):
        with pytest.raises(FinalAnswer) as exc_info:
            run("final_answer(answer='X')")
        assert exc_info.value.answer == "X"

    def test_positional_answer_is_stringified(self):
        with pytest.raises(FinalAnswer) as exc_info:
            run("result = 5 + 3\nfinal_answer(result)")
        assert exc_info.value.answer == "8"

    def test_rest_of_snippet_is_skipped(self):
        sandbox = CodeSandbox()
        with pytest.raises(FinalAnswer):
            sandbox.forward("a = 1\nfinal_answer('done')\nb = 2")
        assert sandbox.state["a"] == 1
        assert "b" not in sandbox.state
