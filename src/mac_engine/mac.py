"""High level facade over the orchestrator.

Typical setup:

1. Wrap a model (Ollama, a hosted API, a test script) in a Bridge
2. Add tools and resources for the model to use, with optional timeouts
3. Add the policies the agent should follow and activate them
4. Call handle_prompt(); the bridge's completion handler gets the result
"""

import logging
from typing import Any, Iterable

from mac_engine.config import MacSettings, get_settings
from mac_engine.models import CompletionResult
from mac_engine.orchestrator import Bridge, Orchestrator
from mac_engine.policies import Policy, PolicyManager
from mac_engine.registry import (
    Registry,
    ResourceHandle,
    ResourceTemplateHandle,
    ToolHandle,
)
from mac_engine.registry.types import ResourceCallback, ToolCallback
from mac_engine.schema import Schema

logger = logging.getLogger(__name__)


class Mac:
    """One agent: a bridge, its tools and resources, and its policies.

    Every Mac builds its own Orchestrator, so several agents can live in the
    same process without sharing state.

    Attributes:
        orchestrator: The underlying orchestrator
    """

    def __init__(
        self,
        bridge: Bridge,
        *,
        settings: MacSettings | None = None,
        max_action_chain_length: int | None = None,
    ) -> None:
        """Initialize the agent and select `bridge` as its current bridge.

        Args:
            bridge: The initial bridge
            settings: Settings to use instead of the MAC_ environment
            max_action_chain_length: Overrides the configured chain limit
        """
        settings = settings or get_settings()
        self.orchestrator = Orchestrator(
            policy_manager=PolicyManager(),
            registry=Registry(default_timeout_ms=settings.default_tool_timeout_ms),
            max_action_chain_length=(
                max_action_chain_length
                if max_action_chain_length is not None
                else settings.max_action_chain_length
            ),
        )
        self.orchestrator.register_bridge(bridge)
        self.orchestrator.use_bridge(bridge.name)

    @property
    def registry(self) -> Registry:
        return self.orchestrator.registry

    @property
    def policy_manager(self) -> PolicyManager:
        return self.orchestrator.policy_manager

    # --- Tools and resources ---

    def add_tool(
        self,
        name: str,
        callback: ToolCallback,
        *,
        description: str | None = None,
        input_schema: Schema | None = None,
        output_schema: Schema | None = None,
        timeout_ms: int | None = None,
        enabled: bool = True,
    ) -> ToolHandle:
        return self.registry.register_tool(
            name,
            callback,
            description=description,
            input_schema=input_schema,
            output_schema=output_schema,
            timeout_ms=timeout_ms,
            enabled=enabled,
        )

    def add_tools(self, tools: Iterable[dict[str, Any]]) -> list[ToolHandle]:
        """Register several tools given as add_tool() keyword dicts."""
        return [self.add_tool(**tool) for tool in tools]

    def remove_tool(self, name: str) -> None:
        self.registry.remove_tool(name)

    def add_resource(
        self,
        name: str,
        uri: str,
        callback: ResourceCallback,
        *,
        metadata: dict[str, Any] | None = None,
        timeout_ms: int | None = None,
        enabled: bool = True,
    ) -> ResourceHandle:
        return self.registry.register_resource(
            name,
            uri,
            callback,
            metadata=metadata,
            timeout_ms=timeout_ms,
            enabled=enabled,
        )

    def remove_resource(self, uri: str) -> None:
        self.registry.remove_resource(uri)

    def add_resource_template(
        self,
        name: str,
        uri_template: str,
        callback: ResourceCallback,
        *,
        metadata: dict[str, Any] | None = None,
        timeout_ms: int | None = None,
        enabled: bool = True,
    ) -> ResourceTemplateHandle:
        return self.registry.register_resource_template(
            name,
            uri_template,
            callback,
            metadata=metadata,
            timeout_ms=timeout_ms,
            enabled=enabled,
        )

    def remove_resource_template(self, name: str) -> None:
        self.registry.remove_resource_template(name)

    # --- Policies ---

    def add_policy(self, policy: Policy) -> None:
        self.policy_manager.add_policy(policy)

    def add_policies(self, policies: Iterable[Policy]) -> None:
        self.policy_manager.add_policies(policies)

    def remove_policy(self, name: str) -> None:
        self.policy_manager.remove_policy(name)

    def remove_policies(self, names: Iterable[str]) -> None:
        self.policy_manager.remove_policies(names)

    def get_policy(self, name: str) -> Policy | None:
        return self.policy_manager.get_policy(name)

    def activate_policy(self, name: str) -> None:
        self.policy_manager.activate_policy(name)

    def set_active_policies_with_names(self, names: Iterable[str]) -> None:
        self.policy_manager.set_active_policies_with_names(names)

    def set_active_policies_with_tags(self, tags: Iterable[str]) -> list[str]:
        return self.policy_manager.set_active_policies_with_tags(tags)

    def activate_all_policies(self) -> None:
        self.policy_manager.activate_all_policies()

    def deactivate_policy(self, name: str) -> None:
        self.policy_manager.deactivate_policy(name)

    def deactivate_policies_with_names(self, names: Iterable[str]) -> None:
        self.policy_manager.deactivate_policies_with_names(names)

    def deactivate_policies_with_tags(self, tags: Iterable[str]) -> list[str]:
        return self.policy_manager.deactivate_policies_with_tags(tags)

    def deactivate_all_policies(self) -> None:
        self.policy_manager.deactivate_all_policies()

    def refresh_active_policies(self) -> list[str]:
        """Drop stale active references; returns the dropped names."""
        return self.policy_manager.refresh_active_policies()

    def list_all_policies(self) -> list[str]:
        return self.policy_manager.list_all_policies()

    def list_active_policies(self) -> list[str]:
        return self.policy_manager.list_active_policies()

    def list_inactive_policies(self) -> list[str]:
        return self.policy_manager.list_inactive_policies()

    def list_system_policies(self) -> list[str]:
        return self.policy_manager.list_system_policies()

    def system_policies_to_prompt(self) -> list[str]:
        return self.policy_manager.system_policies_to_prompt()

    def active_policies_to_prompt(self) -> list[str]:
        return self.policy_manager.active_policies_to_prompt()

    def all_policies_to_prompt(self) -> list[str]:
        return self.policy_manager.all_policies_to_prompt()

    def inactive_policies_to_prompt(self) -> list[str]:
        return self.policy_manager.inactive_policies_to_prompt()

    # --- Bridges ---

    def add_bridge(self, bridge: Bridge) -> None:
        self.orchestrator.register_bridge(bridge)

    def remove_bridge(self, name: str) -> None:
        self.orchestrator.remove_bridge(name)

    def use_bridge(self, name: str) -> None:
        self.orchestrator.use_bridge(name)

    # --- Prompts ---

    async def handle_prompt(self, prompt: str) -> CompletionResult:
        """Answer a prompt through the current bridge.

        Returns:
            The result that was delivered to the bridge's completion handler

        Raises:
            BridgeMissingError: If no bridge is selected
        """
        return await self.orchestrator.execute_prompt(prompt)
