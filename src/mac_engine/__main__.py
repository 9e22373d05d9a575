"""CLI entry point for mac-engine.

This module runs a single prompt through an Ollama-backed agent that has a
`utc-now` tool. It can be invoked as `mac-engine` (via the script entry
point) or `python -m mac_engine`.
"""

import argparse
import asyncio
import json
import logging
import sys
from datetime import datetime, timezone

from mac_engine import __version__
from mac_engine.config import MacSettings
from mac_engine.mac import Mac
from mac_engine.models import CompletionResult
from mac_engine.ollama import OllamaAdapter
from mac_engine.orchestrator import Bridge
from mac_engine.schema import ObjectSchema, StringSchema

logger = logging.getLogger(__name__)


def utc_now() -> dict:
    """Report the current UTC time as text and structured content."""
    now = datetime.now(timezone.utc).isoformat()
    return {
        "content": [{"type": "text", "text": now}],
        "structuredContent": {"utc": now},
    }


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mac-engine",
        description="Answer a prompt with an Ollama model, tools and policies",
    )

    parser.add_argument("prompt", help="The prompt to answer")

    parser.add_argument(
        "--version",
        action="version",
        version=f"mac-engine {__version__}",
    )

    parser.add_argument(
        "--model",
        type=str,
        default=None,
        help="Ollama model name (default: llama3.2:latest, can be set via MAC_OLLAMA_MODEL)",
    )

    parser.add_argument(
        "--ollama-host",
        type=str,
        default=None,
        help="Ollama server URL (default: http://localhost:11434, can be set via MAC_OLLAMA_HOST)",
    )

    parser.add_argument(
        "--max-chain-length",
        type=int,
        default=None,
        help="Maximum tool/resource requests per prompt (default: 10, can be set via MAC_MAX_ACTION_CHAIN_LENGTH)",
    )

    parser.add_argument(
        "--timeout-ms",
        type=int,
        default=None,
        help="Default tool timeout in milliseconds (default: 10000, can be set via MAC_DEFAULT_TOOL_TIMEOUT_MS)",
    )

    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level (default: INFO, can be set via MAC_LOG_LEVEL)",
    )

    return parser


async def run(prompt: str, settings: MacSettings) -> CompletionResult:
    """Run one prompt through a freshly built agent."""
    adapter = OllamaAdapter(host=settings.ollama_host, model=settings.ollama_model)
    results: list[CompletionResult] = []

    agent = Mac(
        Bridge(
            name="ollama",
            prompt_executor=adapter,
            completion_handler=results.append,
        ),
        settings=settings,
    )
    agent.add_tool(
        "utc-now",
        utc_now,
        description="Get the current date and time in UTC (ISO 8601)",
        output_schema=ObjectSchema({"utc": StringSchema()}),
    )

    try:
        return await agent.handle_prompt(prompt)
    finally:
        await adapter.close()


def main() -> int:
    """Main entry point for the mac-engine CLI.

    Parses command-line arguments, answers the prompt and prints the
    completion as JSON.

    Returns:
        int: 0 on success, 1 if the completion carries an error
    """
    args = build_parser().parse_args()

    # Build settings, CLI args override environment variables
    settings_kwargs = {}
    if args.model is not None:
        settings_kwargs["ollama_model"] = args.model
    if args.ollama_host is not None:
        settings_kwargs["ollama_host"] = args.ollama_host
    if args.max_chain_length is not None:
        settings_kwargs["max_action_chain_length"] = args.max_chain_length
    if args.timeout_ms is not None:
        settings_kwargs["default_tool_timeout_ms"] = args.timeout_ms
    if args.log_level is not None:
        settings_kwargs["log_level"] = args.log_level

    settings = MacSettings(**settings_kwargs)

    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    result = asyncio.run(run(args.prompt, settings))
    print(json.dumps(result.model_dump(by_alias=True, exclude_none=True), indent=2))
    return 1 if result.is_error else 0


if __name__ == "__main__":
    sys.exit(main())
