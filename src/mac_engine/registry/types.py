"""Data types for registered tools, resources and resource templates."""

from dataclasses import dataclass, field
from typing import Any, Callable

from mac_engine.registry.uri_template import UriTemplate
from mac_engine.schema import Schema

# Default per-call timeout for tools and resources
DEFAULT_TIMEOUT_MS = 10_000

ToolCallback = Callable[..., Any]
ResourceCallback = Callable[..., Any]


@dataclass
class Tool:
    """A side-effecting callable the model may invoke.

    Attributes:
        name: Unique registry key
        callback: Called with the validated arguments dict (or nothing when
            the tool has no input schema)
        description: Shown to the model
        input_schema: Contract for the model-chosen arguments
        output_schema: Contract for the result's structured content
        timeout_ms: Per-call timer
        enabled: Disabled tools never execute
    """

    name: str
    callback: ToolCallback
    description: str | None = None
    input_schema: Schema | None = None
    output_schema: Schema | None = None
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    enabled: bool = True

    def to_prompt(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "parameterSchema": (
                self.input_schema.to_json_schema() if self.input_schema else "None"
            ),
            "responseSchema": (
                self.output_schema.to_json_schema() if self.output_schema else "None"
            ),
        }


@dataclass
class Resource:
    """A read-only data source addressed by a literal URI."""

    name: str
    uri: str
    callback: ResourceCallback
    metadata: dict[str, Any] = field(default_factory=dict)
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    enabled: bool = True

    def to_prompt(self) -> dict[str, Any]:
        return {"name": self.name, "uri": self.uri, "metadata": self.metadata}


@dataclass
class ResourceTemplate:
    """A read-only data source addressed by a URI pattern.

    The callback receives the requested URI and the variables extracted
    from it.
    """

    name: str
    uri_template: UriTemplate
    callback: ResourceCallback
    metadata: dict[str, Any] = field(default_factory=dict)
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    enabled: bool = True

    def to_prompt(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "uriTemplate": self.uri_template.template,
            "metadata": self.metadata,
        }
