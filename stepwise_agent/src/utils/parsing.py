# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""
Some parsing utilities.

This module provides utilities for pulling code blocks and tool calls out of
free-form model output, and for truncating long observations.
"""

import re
import json
import uuid
import logging

from typing import Literal, Optional
from json_repair import repair_json

from ..errors import ParsingError
from ..types.llm_types import FunctionCall, ToolCall

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

MAX_OBSERVATION_LENGTH = 30000
TRUNCATION_NOTICE = (
    f" \n....This content has been truncated due to the {MAX_OBSERVATION_LENGTH} character limit....."
)

CODE_BLOB_PATTERN = re.compile(r"```(?:py|python)?\n([\s\S]*?)\n```")
_CONTROL_CHARS = re.compile(r"[\x00-\x09\x0b-\x1f\x7f]")


def extract_between_patterns(
    s: str,
    pattern_a: str,
    pattern_b: str,
    a_occurrence: Literal["first"] | Literal["last"] = "first",
    b_occurrence: Literal["first"] | Literal["last"] = "last",
) -> str | None:
    # Validate both occurrences upfront
    if a_occurrence not in ("first", "last"):
        raise ValueError("Invalid value for a_occurrence. Use 'first' or 'last'.")
    if b_occurrence not in ("first", "last"):
        raise ValueError("Invalid value for b_occurrence. Use 'first' or 'last'.")

    start_index = s.find(pattern_a) if a_occurrence == "first" else s.rfind(pattern_a)
    if start_index == -1:
        return None
    start_index += len(pattern_a)

    if b_occurrence == "first":
        end_index = s.find(pattern_b, start_index)
    else:
        end_index = s.rfind(pattern_b)
    if end_index == -1 or end_index < start_index:
        return None

    return s[start_index:end_index]


def truncate(text: str, limit: int = MAX_OBSERVATION_LENGTH) -> str:
    """Cut ``text`` to ``limit`` characters, appending a notice if it was cut."""
    if len(text) <= limit:
        return text
    return text[:limit] + TRUNCATION_NOTICE


def parse_code_blobs(text: str) -> str:
    """Join the bodies of every ```py / ```python / ``` block in ``text``."""
    matches = CODE_BLOB_PATTERN.findall(text)
    if not matches:
        if "final" in text and "answer" in text:
            raise ParsingError(
                "The code blob is invalid. It seems like you're trying to return the final answer. Use:\n"
                "Code:\n"
                "```py\n"
                'final_answer("YOUR FINAL ANSWER HERE")\n'
                "```"
            )
        raise ParsingError(
            "The code blob is invalid. Make sure to include code with the correct pattern, for instance:\n"
            "Thoughts: Your thoughts\n"
            "Code:\n"
            "```py\n"
            "# Your python code here\n"
            "```"
        )
    return "\n\n".join(match.strip() for match in matches)


def escape_control_chars(text: str) -> str:
    """Escape raw control characters that appear inside JSON string literals.

    Newlines, tabs and carriage returns become escapes; other control
    characters inside strings are dropped. Text outside strings is untouched.
    """
    out = []
    in_string = False
    escaped = False
    for ch in text:
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            elif ch == "\n":
                ch = "\\n"
            elif ch == "\t":
                ch = "\\t"
            elif ch == "\r":
                ch = "\\r"
            elif _CONTROL_CHARS.match(ch):
                continue
        elif ch == '"':
            in_string = True
        out.append(ch)
    return "".join(out)


def _loads_tool_json(blob: str) -> Optional[dict]:
    try:
        data = json.loads(escape_control_chars(blob))
    except json.JSONDecodeError:
        repaired = repair_json(blob, return_objects=True)
        data = repaired if isinstance(repaired, dict) else None
    return data if isinstance(data, dict) else None


def parse_tool_call_from_text(text: str) -> Optional[ToolCall]:
    """Recover a tool call the model wrote as text instead of a native call.

    Understands an ``Action:`` prefix followed by a JSON object, or a JSON
    object inside ``<tool_call>...</tool_call>`` tags. The object must have a
    ``name`` and may have ``arguments``. When the ``Action:`` form does not
    parse, the tagged form is tried next.
    """
    blobs = []
    if "Action:" in text:
        after = text[text.find("Action:") + len("Action:"):]
        start, end = after.find("{"), after.rfind("}")
        if start != -1 and end > start:
            blobs.append(after[start:end + 1])
    tagged = extract_between_patterns(text, "<tool_call>", "</tool_call>", b_occurrence="first")
    if tagged is not None:
        blobs.append(tagged)

    for blob in blobs:
        data = _loads_tool_json(blob.strip())
        if data is not None and isinstance(data.get("name"), str):
            return ToolCall(
                id=f"call_{uuid.uuid4().hex[:24]}",
                function=FunctionCall(name=data["name"], arguments=data.get("arguments", {})),
            )
        logger.info(f"Could not parse a tool call from: {blob[:200]}")
    return None
