"""Pytest configuration and shared fixtures for mac-engine tests.

This module provides common fixtures used across all test modules,
including a scripted model adapter, a recording completion sink and
isolated settings.
"""

import json
from typing import Any

import pytest

from mac_engine.config import MacSettings
from mac_engine.models import CompletionResult, ModelMessage, ModelRequest
from mac_engine.orchestrator import Bridge
from mac_engine.policies import PolicyManager
from mac_engine.registry import Registry


class ScriptedAdapter:
    """Model adapter that replays canned answers, one per round.

    Dict answers are JSON-encoded into the message text, strings are sent
    verbatim and ModelMessage instances are returned as-is. Every received
    envelope is kept (decoded) in `envelopes`.
    """

    def __init__(self, answers: list[Any]) -> None:
        self.answers = list(answers)
        self.envelopes: list[dict[str, Any]] = []

    async def __call__(self, request: ModelRequest) -> ModelMessage:
        self.envelopes.append(json.loads(request.input))
        if not self.answers:
            raise AssertionError("Model adapter called more often than scripted")

        answer = self.answers.pop(0)
        if isinstance(answer, ModelMessage):
            return answer
        if isinstance(answer, dict):
            answer = json.dumps(answer)
        return ModelMessage(content={"type": "text", "text": answer})


class RecordingSink:
    """Completion sink that remembers every result it receives."""

    def __init__(self) -> None:
        self.results: list[CompletionResult] = []

    def __call__(self, result: CompletionResult) -> None:
        self.results.append(result)

    @property
    def only(self) -> CompletionResult:
        assert len(self.results) == 1, f"expected one result, got {len(self.results)}"
        return self.results[0]


@pytest.fixture
def test_settings():
    """Create settings isolated from MAC_ environment variables.

    Returns:
        MacSettings: Settings instance configured for testing.
    """
    return MacSettings(
        default_tool_timeout_ms=1_000,
        max_action_chain_length=10,
        ollama_host="http://localhost:11434",
        ollama_model="llama3.2:latest",
        log_level="DEBUG",
    )


@pytest.fixture
def registry():
    return Registry(default_timeout_ms=1_000)


@pytest.fixture
def policy_manager():
    return PolicyManager()


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def make_bridge(sink):
    """Build a bridge around a scripted adapter and the shared sink."""

    def factory(answers: list[Any], name: str = "scripted") -> Bridge:
        return Bridge(
            name=name,
            prompt_executor=ScriptedAdapter(answers),
            completion_handler=sink,
        )

    return factory
