"""Tool and resource registry.

This package provides the Registry that owns tool, resource and resource
template descriptors and mediates their validated, timeout-bounded execution.
"""

from mac_engine.registry.registry import (
    Handle,
    Registry,
    ResourceHandle,
    ResourceTemplateHandle,
    ToolHandle,
)
from mac_engine.registry.runner import CancellationToken, run_with_timeout
from mac_engine.registry.types import (
    DEFAULT_TIMEOUT_MS,
    Resource,
    ResourceTemplate,
    Tool,
)
from mac_engine.registry.uri_template import UriTemplate

__all__ = [
    # Core classes
    "Registry",
    "UriTemplate",
    "CancellationToken",
    "run_with_timeout",
    # Entries
    "Tool",
    "Resource",
    "ResourceTemplate",
    "DEFAULT_TIMEOUT_MS",
    # Handles
    "Handle",
    "ToolHandle",
    "ResourceHandle",
    "ResourceTemplateHandle",
]
