"""Error codes and the exception hierarchy for mac-engine.

The ErrorCode table is transmitted to the model with every prompt, so the
numeric values are part of the protocol and must stay stable.
"""

from enum import IntEnum
from typing import Any


class ErrorCode(IntEnum):
    """Protocol error codes shared with the model."""

    POLICY_VIOLATION = 100
    INVALID_REQUEST = 101
    INVALID_PARAMS = 102
    INTERNAL_ERROR = 103
    INSUFFICIENT_TOOLING = 104
    TIMEOUT = 105
    INVALID_TOOL_REQUEST = 106
    INVALID_TOOL_RESPONSE = 107
    INVALID_RESPONSE = 108
    BRIDGE_MISSING = 109
    MAX_ACTION_CHAIN_LENGTH_EXCEEDED = 110
    INVALID_RESOURCE_REQUEST = 111
    INVALID_RESOURCE_RESPONSE = 112

    @classmethod
    def to_prompt(cls) -> dict[str, int]:
        """Render the table the way the model sees it (PascalCase names)."""
        return {
            "".join(part.capitalize() for part in code.name.split("_")): int(code)
            for code in cls
        }


class MacError(Exception):
    """Base class for every error raised by mac-engine.

    Attributes:
        code: The protocol error code
        message: Human-readable message without the code prefix
        data: Optional extra payload (diagnostics, offending names, ...)
    """

    default_code: ErrorCode = ErrorCode.INTERNAL_ERROR

    def __init__(
        self,
        message: str,
        code: ErrorCode | int | None = None,
        data: Any = None,
    ) -> None:
        self.code = code if code is not None else self.default_code
        self.message = message
        self.data = data
        super().__init__(f"MAC error {int(self.code)}: {message}")

    def to_completion_error(self) -> dict[str, Any]:
        """Build the structured payload delivered to a completion sink."""
        return {"code": int(self.code), "message": self.message}


# Configuration errors: raised synchronously to the calling API.


class NameConflictError(MacError):
    """A registration collided with an existing key."""

    default_code = ErrorCode.INVALID_REQUEST


class UnknownNameError(MacError):
    """A name, URI or handle does not refer to a registered entry."""

    default_code = ErrorCode.INVALID_REQUEST


class PolicyStateError(MacError):
    """A policy was already in the requested activation state."""

    default_code = ErrorCode.INVALID_REQUEST


class SystemPolicyError(MacError):
    """System policies are fixed and cannot be toggled or removed."""

    default_code = ErrorCode.POLICY_VIOLATION


class BridgeMissingError(MacError):
    default_code = ErrorCode.BRIDGE_MISSING


# Execution errors: raised by the registry, converted by the orchestrator.


class NotFoundError(MacError):
    default_code = ErrorCode.INVALID_TOOL_REQUEST


class DisabledError(MacError):
    default_code = ErrorCode.INVALID_TOOL_REQUEST


class InvalidParamsError(MacError):
    default_code = ErrorCode.INVALID_PARAMS


class ToolTimeoutError(MacError):
    """The callback did not settle before its timer fired."""

    default_code = ErrorCode.TIMEOUT

    def __init__(self, name: str, timeout_ms: int) -> None:
        super().__init__(
            f"'{name}' did not finish within the allotted time limit: "
            f"{timeout_ms} [ms]",
            data={"name": name, "timeout_ms": timeout_ms},
        )
        self.timeout_ms = timeout_ms


# Protocol errors: terminate the current prompt, delivered to the sink.


class InvalidResponseError(MacError):
    default_code = ErrorCode.INVALID_RESPONSE


class ModelReportedError(MacError):
    """The model itself answered with an error object."""


class MaxActionChainLengthExceededError(MacError):
    default_code = ErrorCode.MAX_ACTION_CHAIN_LENGTH_EXCEEDED

    def __init__(self, limit: int) -> None:
        super().__init__(
            f"Maximum action chain length ({limit}) exceeded, increase limit.",
            data={"limit": limit},
        )
        self.limit = limit
