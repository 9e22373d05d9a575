"""Pydantic models for content items exchanged with the model."""

from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class TextContent(BaseModel):
    """Plain text content."""

    type: Literal["text"] = "text"
    text: str = Field(description="The text payload")

    model_config = ConfigDict(extra="allow")


class ImageContent(BaseModel):
    """Image content; `text` carries the encoded image or a reference to it."""

    type: Literal["image"] = "image"
    text: str = Field(description="Encoded image data or an image reference")

    model_config = ConfigDict(extra="allow")


class AudioContent(BaseModel):
    """Audio content; `text` carries the encoded audio or a reference to it."""

    type: Literal["audio"] = "audio"
    text: str = Field(description="Encoded audio data or an audio reference")

    model_config = ConfigDict(extra="allow")


Content = Annotated[
    Union[TextContent, ImageContent, AudioContent],
    Field(discriminator="type"),
]
