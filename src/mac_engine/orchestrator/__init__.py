"""Prompt orchestration.

This package provides the Orchestrator state machine, the bridges it talks to
models through, the action log it records executions in, and the prompt
envelopes exchanged with the model.
"""

from mac_engine.orchestrator.action_log import (
    ActionLog,
    ActionLogEntry,
    ActionType,
)
from mac_engine.orchestrator.bridge import Bridge, CompletionHandler, PromptExecutor
from mac_engine.orchestrator.orchestrator import (
    DEFAULT_MAX_ACTION_CHAIN_LENGTH,
    Orchestrator,
)
from mac_engine.orchestrator.prompts import (
    DiscoveryOutput,
    FollowUpEnvelope,
    FollowUpOutput,
    PromptEnvelope,
    parse_model_output,
    strip_markdown_fence,
)

__all__ = [
    "Orchestrator",
    "DEFAULT_MAX_ACTION_CHAIN_LENGTH",
    # Bridges
    "Bridge",
    "CompletionHandler",
    "PromptExecutor",
    # Action log
    "ActionLog",
    "ActionLogEntry",
    "ActionType",
    # Prompts
    "DiscoveryOutput",
    "FollowUpOutput",
    "PromptEnvelope",
    "FollowUpEnvelope",
    "parse_model_output",
    "strip_markdown_fence",
]
