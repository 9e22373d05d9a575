"""Pydantic models for tool invocation requests and results."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from mac_engine.models.content import Content, TextContent


class ToolRequest(BaseModel):
    """A request by the model to invoke a tool.

    The arguments are untyped here; they are validated against the tool's
    own input schema by the registry.
    """

    name: str = Field(description="Name of the tool to invoke")
    arguments: dict[str, Any] = Field(
        default_factory=dict,
        description="Arguments matching the tool's parameter schema",
    )


class ToolResult(BaseModel):
    """Result of an executed tool."""

    content: list[Content] = Field(default_factory=list)
    structured_content: Any = Field(
        default=None,
        alias="structuredContent",
        description="Structured payload, checked against the output schema if one is declared",
    )
    is_error: bool = Field(default=False, alias="isError")

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    @classmethod
    def error(cls, message: str) -> "ToolResult":
        """Build an error-flagged result carrying a single text item."""
        return cls(content=[TextContent(text=message)], is_error=True)

    @classmethod
    def text(cls, text: str) -> "ToolResult":
        return cls(content=[TextContent(text=text)])

    def to_log_payload(self) -> dict[str, Any]:
        """Payload stored in the action log and shown to the model."""
        return self.model_dump(by_alias=True, exclude_none=True, exclude={"is_error"})
