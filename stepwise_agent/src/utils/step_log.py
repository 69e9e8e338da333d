# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""
Step log persistence.

Each step is appended as a pretty-printed JSON document with no separator, so
the file as a whole is not valid JSON. Use read_step_log to load it back.
"""

import json
import logging

from pathlib import Path
from typing import Any, Iterator

from ..types.agent_types import AgentStep

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)


class StepLogWriter:
    def __init__(self, path: str | Path):
        self.path = Path(path)

    def append(self, step: AgentStep) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("a", encoding="utf-8") as f:
            f.write(step.model_dump_json(indent=2))
        logger.debug(f"Appended step {step.step} to {self.path}")


def iter_json_documents(text: str) -> Iterator[Any]:
    """Yield each JSON document from a string of concatenated documents."""
    decoder = json.JSONDecoder()
    index = 0
    while True:
        while index < len(text) and text[index].isspace():
            index += 1
        if index >= len(text):
            return
        document, index = decoder.raw_decode(text, index)
        yield document


def read_step_log(path: str | Path) -> list[AgentStep]:
    text = Path(path).read_text(encoding="utf-8")
    return [AgentStep.model_validate(document) for document in iter_json_documents(text)]
