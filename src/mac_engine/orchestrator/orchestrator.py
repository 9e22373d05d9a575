"""Prompt execution state machine.

This module provides the Orchestrator class which drives one top-level prompt
through its rounds:

    Idle -> Discovery -> Chaining(1) -> ... -> Chaining(n) -> Terminal

The discovery round asks the model for a first tool or resource request. Each
executed request is appended to the action log and a follow-up round shows the
whole log to the model, which answers, requests another action, or reports an
error. Every terminal state reaches the bridge's completion sink exactly once.
"""

import asyncio
import inspect
import logging

from pydantic import ValidationError

from mac_engine.errors import (
    BridgeMissingError,
    ErrorCode,
    InvalidResponseError,
    MacError,
    MaxActionChainLengthExceededError,
    ModelReportedError,
    NameConflictError,
    UnknownNameError,
)
from mac_engine.models import (
    CompletionError,
    CompletionResult,
    ModelMessage,
    ModelRequest,
    ReadResourceRequest,
    ToolRequest,
)
from mac_engine.orchestrator.action_log import (
    ActionLog,
    ActionLogEntry,
    ActionType,
    now_ms,
)
from mac_engine.orchestrator.bridge import Bridge
from mac_engine.orchestrator.prompts import (
    DISCOVERY_CHECKLIST,
    DISCOVERY_TASK,
    FOLLOW_UP_CHECKLIST,
    FOLLOW_UP_TASK,
    DiscoveryOutput,
    FollowUpEnvelope,
    FollowUpOutput,
    PromptEnvelope,
    parse_model_output,
)
from mac_engine.policies import PolicyManager
from mac_engine.registry import Registry

logger = logging.getLogger(__name__)

DEFAULT_MAX_ACTION_CHAIN_LENGTH = 10


class Orchestrator:
    """Drives the discovery/follow-up protocol for one agent.

    Each instance owns its own policies, registry, bridges and action log, so
    several orchestrators can coexist in one process. Prompt execution is
    single-flight per instance: a second execute_prompt() waits until the
    first one reaches a terminal state.

    Attributes:
        policy_manager: System and user policies injected into every prompt
        registry: Tools, resources and resource templates
        max_action_chain_length: Maximum executed actions per top-level prompt
        action_log: Actions executed for the current (or last) prompt
    """

    def __init__(
        self,
        policy_manager: PolicyManager | None = None,
        registry: Registry | None = None,
        max_action_chain_length: int = DEFAULT_MAX_ACTION_CHAIN_LENGTH,
    ) -> None:
        self.policy_manager = policy_manager or PolicyManager()
        self.registry = registry or Registry()
        self.max_action_chain_length = max_action_chain_length
        self.action_log = ActionLog()

        self._bridges: dict[str, Bridge] = {}
        self._current_bridge: Bridge | None = None
        self._lock = asyncio.Lock()

    # --- Bridges ---

    def register_bridge(self, bridge: Bridge) -> None:
        """Register a bridge.

        Raises:
            NameConflictError: If a bridge with the same name exists
        """
        if bridge.name in self._bridges:
            raise NameConflictError(f"Bridge: {bridge.name} is already registered.")
        self._bridges[bridge.name] = bridge
        logger.info(f"Registered bridge '{bridge.name}'")

    def use_bridge(self, name: str) -> None:
        """Select the bridge used by execute_prompt() by default.

        Raises:
            UnknownNameError: If no bridge has this name
        """
        bridge = self._bridges.get(name)
        if bridge is None:
            raise UnknownNameError(f"Bridge: {name} is not a registered bridge.")
        self._current_bridge = bridge

    def remove_bridge(self, name: str) -> None:
        """Deregister a bridge.

        If it was the current bridge, the first remaining bridge (if any)
        becomes current.

        Raises:
            UnknownNameError: If no bridge has this name
        """
        bridge = self._bridges.pop(name, None)
        if bridge is None:
            raise UnknownNameError(f"Bridge: {name} is not a registered bridge.")

        if self._current_bridge is bridge:
            self._current_bridge = next(iter(self._bridges.values()), None)
            if self._current_bridge is not None:
                logger.info(
                    f"Removed current bridge '{name}', "
                    f"falling back to '{self._current_bridge.name}'"
                )

    @property
    def current_bridge(self) -> str | None:
        return self._current_bridge.name if self._current_bridge else None

    @property
    def bridges(self) -> dict[str, Bridge]:
        return dict(self._bridges)

    # --- Prompt execution ---

    async def execute_prompt(
        self, prompt: str, bridge_name: str | None = None
    ) -> CompletionResult:
        """Answer a prompt, delivering the outcome to the bridge's sink.

        Protocol failures never propagate: they reach the sink (and the return
        value) as a CompletionResult carrying an error.

        Args:
            prompt: The natural-language request to answer
            bridge_name: Bridge to use instead of the current one

        Returns:
            The CompletionResult that was delivered to the sink

        Raises:
            BridgeMissingError: If no bridge is selected or the name is unknown
        """
        bridge = self._resolve_bridge(bridge_name)

        async with self._lock:
            self.action_log.clear()
            logger.info(f"Executing prompt via bridge '{bridge.name}'")

            try:
                result = await self._run(bridge, prompt)
            except MacError as e:
                logger.info(f"Prompt terminated with error {int(e.code)}: {e.message}")
                result = CompletionResult(
                    error=CompletionError(**e.to_completion_error())
                )
            except Exception as e:
                logger.exception("Unexpected failure while executing prompt")
                result = CompletionResult(
                    error=CompletionError(
                        code=ErrorCode.INTERNAL_ERROR,
                        message=f"Internal error encountered: {e}",
                    )
                )

            await self._deliver(bridge, result)
            return result

    async def _run(self, bridge: Bridge, prompt: str) -> CompletionResult:
        envelope: PromptEnvelope = self._discovery_envelope(prompt)
        output_model: type[DiscoveryOutput] = DiscoveryOutput
        depth = 0

        while True:
            logger.debug(f"Round {depth} ({'discovery' if depth == 0 else 'follow-up'})")
            message = await self._submit(bridge, envelope)
            if message.error:
                return self._adapter_failure(message)

            if message.content is None:
                raise InvalidResponseError("Model message carries no content")
            output = parse_model_output(message.content.text, output_model)

            request = self._next_request(output)
            if request is None:
                if isinstance(output, FollowUpOutput) and output.has_content:
                    logger.info(f"Prompt answered after {len(self.action_log)} action(s)")
                    return self._success(output)
                raise InvalidResponseError(
                    "Model response carries neither a request, an error, nor content"
                )

            await self._execute(request)
            depth += 1
            envelope = self._follow_up_envelope(prompt)
            output_model = FollowUpOutput

    def _next_request(
        self, output: DiscoveryOutput
    ) -> ToolRequest | ReadResourceRequest | None:
        """Pick the next step, resolving ambiguity as ERROR > REQUEST > CONTENT."""
        has_content = isinstance(output, FollowUpOutput) and output.has_content
        has_both_requests = (
            output.tool_invocation_request is not None
            and output.resource_read_request is not None
        )

        if output.error is not None:
            if output.request is not None or has_content:
                logger.warning("Model output is ambiguous, the error takes precedence")
            raise ModelReportedError(
                output.error.error_message, code=output.error.error_code
            )

        if has_both_requests:
            logger.warning("Model requested a tool and a resource, using the tool request")
        elif output.request is not None and has_content:
            logger.warning("Model output has content and a request, following the request")
        return output.request

    async def _execute(self, request: ToolRequest | ReadResourceRequest) -> None:
        """Execute one action and append it to the log.

        Raises:
            MaxActionChainLengthExceededError: If the log is already full
            MacError: If the execution failed (after logging the failure)
        """
        if len(self.action_log) >= self.max_action_chain_length:
            raise MaxActionChainLengthExceededError(self.max_action_chain_length)

        if isinstance(request, ToolRequest):
            action_type = ActionType.TOOL_REQUEST
            name = request.name
            arguments = request.arguments
            failure_code = ErrorCode.INVALID_TOOL_RESPONSE
        else:
            action_type = ActionType.RESOURCE_REQUEST
            name = request.uri
            arguments = None
            failure_code = ErrorCode.INVALID_RESOURCE_RESPONSE

        logger.debug(f"Executing {action_type.value} '{name}'")
        try:
            if isinstance(request, ToolRequest):
                result = await self.registry.execute_tool(request)
            else:
                result = await self.registry.read_resource(request)
        except MacError as e:
            self.action_log.append(
                ActionLogEntry(
                    type=action_type,
                    name=name,
                    arguments=arguments,
                    time_executed=now_ms(),
                    response=[{"type": "text", "text": e.message}],
                    is_error=True,
                )
            )
            raise

        self.action_log.append(
            ActionLogEntry(
                type=action_type,
                name=name,
                arguments=arguments,
                time_executed=now_ms(),
                response=result.to_log_payload(),
                is_error=result.is_error,
            )
        )

        if result.is_error:
            raise MacError(
                f"Internal error encountered. '{name}' returned an error result.",
                code=failure_code,
                data=result.to_log_payload(),
            )

    # --- Envelopes ---

    def _envelope_fields(self, output_model: type[DiscoveryOutput]) -> dict:
        self.policy_manager.refresh_active_policies()
        return {
            "max_sequential_actions": self.max_action_chain_length,
            "system_policies": self.policy_manager.system_policies_to_prompt(),
            "user_policies": self.policy_manager.active_policies_to_prompt(),
            "tools": self.registry.tools_to_prompt(),
            "resources": self.registry.resources_to_prompt(),
            "resource_templates": self.registry.resource_templates_to_prompt(),
            "response_schema": output_model.model_json_schema(by_alias=True),
            "error_codes": ErrorCode.to_prompt(),
        }

    def _discovery_envelope(self, prompt: str) -> PromptEnvelope:
        return PromptEnvelope(
            task=DISCOVERY_TASK,
            checklist=DISCOVERY_CHECKLIST,
            prompt_to_answer=prompt,
            **self._envelope_fields(DiscoveryOutput),
        )

    def _follow_up_envelope(self, prompt: str) -> FollowUpEnvelope:
        return FollowUpEnvelope(
            task=FOLLOW_UP_TASK,
            checklist=FOLLOW_UP_CHECKLIST,
            prompt_to_answer=prompt,
            actions_taken=self.action_log.to_prompt(),
            **self._envelope_fields(FollowUpOutput),
        )

    # --- Bridge I/O ---

    def _resolve_bridge(self, bridge_name: str | None) -> Bridge:
        if bridge_name is None:
            if self._current_bridge is None:
                raise BridgeMissingError(
                    "Can't process prompt, no registered bridge has been selected."
                )
            return self._current_bridge

        bridge = self._bridges.get(bridge_name)
        if bridge is None:
            raise BridgeMissingError(
                f"Can't process prompt, bridge '{bridge_name}' is not registered."
            )
        return bridge

    async def _submit(self, bridge: Bridge, envelope: PromptEnvelope) -> ModelMessage:
        request = ModelRequest(input=envelope.serialize())
        try:
            raw = bridge.prompt_executor(request)
            if inspect.isawaitable(raw):
                raw = await raw
        except Exception as e:
            logger.exception(f"Model adapter for bridge '{bridge.name}' failed")
            raise MacError(
                f"Model adapter failed: {e}", code=ErrorCode.INTERNAL_ERROR
            ) from e

        if isinstance(raw, ModelMessage):
            return raw
        try:
            return ModelMessage.model_validate(raw)
        except ValidationError as e:
            raise InvalidResponseError(
                f"Model adapter returned an invalid message: {e}"
            ) from e

    @staticmethod
    def _adapter_failure(message: ModelMessage) -> CompletionResult:
        """Forward an adapter-reported error verbatim, keeping other fields."""
        logger.info(f"Model adapter reported an error: {message.error}")
        passthrough = message.model_dump(exclude={"error"}, exclude_none=True)
        passthrough["error"] = {"code": None, "message": message.error}
        return CompletionResult.model_validate(passthrough)

    @staticmethod
    def _success(output: FollowUpOutput) -> CompletionResult:
        data = output.model_dump(
            by_alias=True,
            exclude_none=True,
            exclude={"tool_invocation_request", "resource_read_request", "error"},
        )
        return CompletionResult.model_validate(data)

    @staticmethod
    async def _deliver(bridge: Bridge, result: CompletionResult) -> None:
        try:
            outcome = bridge.completion_handler(result)
            if inspect.isawaitable(outcome):
                await outcome
        except Exception:
            logger.exception(f"Completion handler for bridge '{bridge.name}' failed")
