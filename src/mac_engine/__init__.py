"""mac-engine: model-agnostic orchestration of LLMs, tools and resources.

This package lets an application plug any language model in through a bridge,
expose tools and resources to it, constrain it with policies, and drive a
prompt through a bounded discovery/follow-up loop.
"""

from mac_engine.config import MacSettings, get_settings
from mac_engine.errors import ErrorCode, MacError
from mac_engine.mac import Mac
from mac_engine.models import (
    CompletionError,
    CompletionResult,
    ModelMessage,
    ModelRequest,
    ReadResourceResult,
    TextContent,
    ToolResult,
)
from mac_engine.orchestrator import Bridge, Orchestrator
from mac_engine.policies import Policy, PolicyBuilder, PolicyManager
from mac_engine.registry import CancellationToken, Registry

__version__ = "0.1.0"

__all__ = [
    "__version__",
    # Entry points
    "Mac",
    "Orchestrator",
    "Bridge",
    "Registry",
    "PolicyManager",
    "Policy",
    "PolicyBuilder",
    "CancellationToken",
    # Configuration
    "MacSettings",
    "get_settings",
    # Errors
    "ErrorCode",
    "MacError",
    # Messages
    "CompletionError",
    "CompletionResult",
    "ModelMessage",
    "ModelRequest",
    "ReadResourceResult",
    "TextContent",
    "ToolResult",
]
