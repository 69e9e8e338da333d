# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""
Main entrypoint when running the agent with `python -m stepwise_agent`.
"""

import logging
import asyncio
import argparse

from pathlib import Path

from .agent import Agent
from .src.agents import agent_registry
from .src.config import settings
from .src.llm import MODEL_TYPES, get_model
from .src.tools import tool_registry

logging.captureWarnings(True)
logger = logging.getLogger(__name__)


def setup_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Run a multi-step agent on a task, streaming each step."
    )
    parser.add_argument(
        "--task",
        "-t",
        type=str,
        default=None,
        help="The task to solve. Without it, tasks are read interactively.",
    )
    parser.add_argument(
        "--agent-type",
        "-a",
        type=str,
        choices=sorted(agent_registry),
        default="function-calling",
        help="Which agent variant to run",
    )
    parser.add_argument(
        "--model-type",
        type=str,
        choices=MODEL_TYPES,
        default=settings.MODEL_TYPE,
        help="The model backend",
    )
    parser.add_argument("--model-id", type=str, default=settings.MODEL_ID)
    parser.add_argument(
        "--base-url",
        type=str,
        default=None,
        help="Base URL of the model server",
    )
    parser.add_argument("--api-key", type=str, default=settings.OPENAI_API_KEY)
    parser.add_argument(
        "--native-tools",
        action="store_true",
        help="Send tool schemas to local models that support native tool calling",
    )
    parser.add_argument(
        "--tools",
        nargs="*",
        default=[],
        choices=sorted(tool_registry),
        help="Tools to give the agent (final_answer is always included)",
    )
    parser.add_argument("--max-steps", type=int, default=settings.MAX_STEPS)
    parser.add_argument(
        "--planning-interval",
        type=int,
        default=settings.PLANNING_INTERVAL,
        help="Re-plan every N steps. Planning is off when unset.",
    )
    parser.add_argument(
        "--servers-config",
        type=str,
        default=settings.SERVERS_CONFIG,
        help="YAML file describing the external tool servers (for the mcp agent)",
    )
    parser.add_argument(
        "--log-file",
        type=str,
        default=settings.STEP_LOG,
        help="File each step is appended to as JSON",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Whether to output more verbose logs than usual.",
    )
    return parser


async def main():
    parser = setup_parser()
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.debug else settings.LOG_LEVEL,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[logging.StreamHandler()],
    )

    default_url = settings.OPENAI_BASE_URL if args.model_type == "openai" else settings.OLLAMA_BASE_URL
    model = get_model(
        args.model_type,
        model_id=args.model_id,
        base_url=args.base_url or default_url,
        api_key=args.api_key,
        ctx_length=settings.OLLAMA_CTX_LENGTH,
        native_tools=args.native_tools,
    )
    config = settings.model_copy(
        update=dict(MAX_STEPS=args.max_steps, PLANNING_INTERVAL=args.planning_interval)
    )

    agent = Agent(
        agent_type=args.agent_type,
        model=model,
        tool_names=tuple(args.tools),
        config=config,
        log_file=Path(args.log_file),
        servers_config=Path(args.servers_config),
    )
    try:
        await agent.setup()
        if args.task:
            answer = await agent.exec(args.task)
            print(f"\nFinal answer: {answer}")
        else:
            await agent.interactive()
    finally:
        await agent.close()


def cli():
    asyncio.run(main())


if __name__ == "__main__":
    cli()
