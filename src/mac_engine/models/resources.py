"""Pydantic models for resource read requests and results."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ReadResourceRequest(BaseModel):
    """A request by the model to read a resource by URI."""

    uri: str = Field(description="URI of the resource, or one matching a resource template")


class ResourceContents(BaseModel):
    """A single content item returned by a resource, tagged with its origin."""

    uri: str
    mime_type: str = Field(default="text/plain", alias="mimeType")
    text: str

    model_config = ConfigDict(populate_by_name=True, extra="allow")


class ReadResourceResult(BaseModel):
    """Result of reading a resource."""

    contents: list[ResourceContents] = Field(default_factory=list)
    is_error: bool = Field(default=False, alias="isError")

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    @classmethod
    def error(cls, uri: str, message: str) -> "ReadResourceResult":
        return cls(contents=[ResourceContents(uri=uri, text=message)], is_error=True)

    def to_log_payload(self) -> dict[str, Any]:
        """Payload stored in the action log and shown to the model."""
        return self.model_dump(by_alias=True, exclude_none=True, exclude={"is_error"})
