"""Pydantic models for the envelopes crossing mac-engine's boundaries.

This package contains the models used for tool and resource requests and
results, content items, and the model adapter / completion sink messages.
"""

from mac_engine.models.content import (
    AudioContent,
    Content,
    ImageContent,
    TextContent,
)
from mac_engine.models.messages import (
    CompletionError,
    CompletionResult,
    ModelMessage,
    ModelRequest,
)
from mac_engine.models.resources import (
    ReadResourceRequest,
    ReadResourceResult,
    ResourceContents,
)
from mac_engine.models.tools import ToolRequest, ToolResult

__all__ = [
    # Content
    "AudioContent",
    "Content",
    "ImageContent",
    "TextContent",
    # Tools
    "ToolRequest",
    "ToolResult",
    # Resources
    "ReadResourceRequest",
    "ReadResourceResult",
    "ResourceContents",
    # Adapter / sink
    "CompletionError",
    "CompletionResult",
    "ModelMessage",
    "ModelRequest",
]
