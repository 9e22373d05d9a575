"""Pydantic models for the model adapter and completion sink boundaries."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from mac_engine.models.content import Content


class ModelRequest(BaseModel):
    """Serialized prompt handed to a model adapter."""

    input: str = Field(description="The JSON-serialized prompt envelope")


class ModelMessage(BaseModel):
    """Message returned by a model adapter.

    A non-empty `error` means the adapter (or provider) failed and the round
    is short-circuited. Unknown fields are preserved and passed through to the
    completion sink on adapter errors.
    """

    role: Literal["user", "assistant"] = "assistant"
    content: Content | None = None
    error: str | None = None

    model_config = ConfigDict(extra="allow")


class CompletionError(BaseModel):
    """Structured error delivered to a completion sink.

    `code` is None when the error text came verbatim from the model adapter.
    """

    code: int | None = None
    message: str


class CompletionResult(BaseModel):
    """Final outcome of a top-level prompt, delivered once to the sink."""

    content: Content | None = None
    embedded_content_response: str | None = Field(
        default=None, alias="embeddedContentResponse"
    )
    error: CompletionError | None = None

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    @property
    def is_error(self) -> bool:
        return self.error is not None
