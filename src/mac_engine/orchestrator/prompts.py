"""Prompt envelopes sent to the model and the schemas its answers must follow.

The discovery envelope asks the model whether and how the prompt can be
answered with the available tools and resources. The follow-up envelope adds
the serialized action log so the model can answer, or request another action.
"""

import json
import re
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from mac_engine.errors import InvalidResponseError
from mac_engine.models import Content, ReadResourceRequest, ToolRequest

OutputT = TypeVar("OutputT", bound=BaseModel)

_OPENING_FENCE = re.compile(r"^```[A-Za-z0-9_-]*")
_CLOSING_FENCE = re.compile(r"```$")

DISCOVERY_TASK = (
    "Generate a structured JSON response to the given prompt using the given "
    "checklist, policies, context, tools and resources. The tool or resource you "
    "select will be invoked for you using the parameters you choose, and the "
    "resulting data will be fed back to you as context in a follow-up prompt."
)

DISCOVERY_CHECKLIST = [
    "Follow the system policies",
    "Can the user's prompt be answered in accordance with the policies described? (if any)",
    "Are the available tools and resources sufficient to answer the prompt?",
    "Can the user's prompt be answered without exceeding the maximum allowed amount of sequential actions (e.g. tool requests)?",
    "If a valid response is not possible fail gracefully and generate a descriptive error message for the end user.",
    "If a valid response is possible then select the tool or resource you wish to use, and provide the parameters you wish to plug in for it.",
]

FOLLOW_UP_TASK = (
    "The actions you've selected have been executed and their data is available "
    "in the 'actionsTaken' field. Using the available context, generate a "
    "structured JSON response to the given prompt. Follow the checklist and "
    "policies. If the data and context provided is enough to answer the "
    "'promptToAnswer' field then answer it in the expected format. If the given "
    "context isn't enough then you can perform another tool or resource request "
    "using the available tools and resources, if necessary."
)

FOLLOW_UP_CHECKLIST = [
    "Follow the system policies",
    "Can the user's prompt be answered in accordance with the policies described? (if any)",
    "Can the user's prompt be answered without exceeding the maximum allowed amount of sequential actions (e.g. tool requests)?",
    "Is the available context enough to answer the prompt? If so then answer it.",
    "If a valid response is not possible fail gracefully and generate a descriptive error message for the end user.",
    "If more context is needed and the available tools or resources are adequate, then select the one you want to use, and provide the parameters you wish to plug in.",
]


# --- Model output schemas ---


class ModelGeneratedError(BaseModel):
    """An error authored by the model itself."""

    error_message: str = Field(alias="errorMessage")
    error_code: int = Field(alias="errorCode")

    model_config = ConfigDict(populate_by_name=True)


class DiscoveryOutput(BaseModel):
    """Answer to a discovery envelope: one request, or an error."""

    tool_invocation_request: ToolRequest | None = Field(
        default=None, alias="toolInvocationRequest"
    )
    resource_read_request: ReadResourceRequest | None = Field(
        default=None, alias="resourceReadRequest"
    )
    error: ModelGeneratedError | None = None

    model_config = ConfigDict(populate_by_name=True)

    @property
    def request(self) -> ToolRequest | ReadResourceRequest | None:
        """The requested action; a tool request outranks a resource read."""
        return self.tool_invocation_request or self.resource_read_request


class FollowUpOutput(DiscoveryOutput):
    """Answer to a follow-up envelope: final content, another request, or an error.

    Unknown fields are kept and passed through to the completion sink.
    """

    content: Content | None = None
    embedded_content_response: str | None = Field(
        default=None, alias="embeddedContentResponse"
    )

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    @property
    def has_content(self) -> bool:
        return self.content is not None or bool(self.embedded_content_response)


# --- Envelopes ---


class PromptEnvelope(BaseModel):
    """Material shared by every round."""

    task: str
    checklist: list[str]
    max_sequential_actions: int = Field(alias="maxSequentialActions")
    system_policies: list[str] = Field(alias="systemPolicies")
    user_policies: list[str] = Field(alias="userPolicies")
    tools: list[dict[str, Any]]
    resources: list[dict[str, Any]]
    resource_templates: list[dict[str, Any]] = Field(alias="resourceTemplates")
    response_schema: dict[str, Any] = Field(alias="responseSchema")
    error_codes: dict[str, int] = Field(alias="errorCodes")
    prompt_to_answer: str = Field(alias="promptToAnswer")

    model_config = ConfigDict(populate_by_name=True)

    def serialize(self) -> str:
        return self.model_dump_json(by_alias=True)


class FollowUpEnvelope(PromptEnvelope):
    actions_taken: list[str] = Field(alias="actionsTaken")


def strip_markdown_fence(text: str) -> str:
    """Remove a leading and a trailing markdown code fence (```json ... ```).

    Each fence is stripped on its own, so a reply missing its closing fence
    still parses.
    """
    text = _OPENING_FENCE.sub("", text.strip(), count=1)
    text = _CLOSING_FENCE.sub("", text.rstrip(), count=1)
    return text.strip()


def parse_model_output(text: str, output_model: type[OutputT]) -> OutputT:
    """Parse and validate the model's answer.

    Args:
        text: Raw text content of the model's message
        output_model: DiscoveryOutput or FollowUpOutput

    Returns:
        The validated output

    Raises:
        InvalidResponseError: If the text is not JSON or fails validation
    """
    try:
        data = json.loads(strip_markdown_fence(text))
    except json.JSONDecodeError as e:
        raise InvalidResponseError(f"Model response is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise InvalidResponseError(
            f"Model response must be a JSON object, got {type(data).__name__}"
        )

    try:
        return output_model.model_validate(data)
    except ValidationError as e:
        raise InvalidResponseError(
            f"Model response does not match the response schema: {e}"
        ) from e
