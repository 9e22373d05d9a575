"""Registry for tools, resources and resource templates.

This module provides the Registry class which handles:
- Registering capabilities (duplicate keys are rejected, never overwritten)
- Updating, enabling, disabling and removing them through handles
- Serializing the enabled catalog for prompts
- Executing tool calls and resource reads with schema checks and timeouts
"""

import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Generic, TypeVar

from pydantic import ValidationError

from mac_engine.errors import (
    DisabledError,
    ErrorCode,
    InvalidParamsError,
    NameConflictError,
    NotFoundError,
    ToolTimeoutError,
    UnknownNameError,
)
from mac_engine.models import (
    ReadResourceRequest,
    ReadResourceResult,
    ResourceContents,
    TextContent,
    ToolRequest,
    ToolResult,
)
from mac_engine.registry.runner import run_with_timeout
from mac_engine.registry.types import (
    DEFAULT_TIMEOUT_MS,
    Resource,
    ResourceCallback,
    ResourceTemplate,
    Tool,
    ToolCallback,
)
from mac_engine.registry.uri_template import UriTemplate
from mac_engine.schema import Schema

logger = logging.getLogger(__name__)

EntryT = TypeVar("EntryT", Tool, Resource, ResourceTemplate)

_TOOL_FIELDS = {
    "name",
    "callback",
    "description",
    "input_schema",
    "output_schema",
    "timeout_ms",
    "enabled",
}
_TOOL_RESULT_KEYS = {
    "content",
    "structuredContent",
    "structured_content",
    "isError",
    "is_error",
}
_RESOURCE_FIELDS = {"name", "uri", "callback", "metadata", "timeout_ms", "enabled"}
_TEMPLATE_FIELDS = {
    "name",
    "uri_template",
    "callback",
    "metadata",
    "timeout_ms",
    "enabled",
}


def _rekey(mapping: dict[str, Any], old_key: str, new_key: str) -> None:
    """Rename a key in place, keeping its position in iteration order."""
    items = [(new_key if key == old_key else key, value) for key, value in mapping.items()]
    mapping.clear()
    mapping.update(items)


class Handle(ABC, Generic[EntryT]):
    """Control surface returned by a registration.

    The handle keeps a reference to the registered entry itself, so it stays
    valid across renames. After remove() every mutating call raises
    UnknownNameError.
    """

    def __init__(self, registry: "Registry", entry: EntryT) -> None:
        self._registry = registry
        self._entry = entry

    @property
    def entry(self) -> EntryT:
        return self._entry

    @property
    def name(self) -> str:
        return self._entry.name

    @property
    def enabled(self) -> bool:
        return self._entry.enabled

    def enable(self) -> None:
        self.update(enabled=True)

    def disable(self) -> None:
        self.update(enabled=False)

    @abstractmethod
    def update(self, **changes: Any) -> None:
        """Apply field changes to the entry; unknown fields raise TypeError."""

    @abstractmethod
    def remove(self) -> None:
        """Detach the entry from the registry."""


class ToolHandle(Handle[Tool]):
    def update(self, **changes: Any) -> None:
        self._registry._update_tool(self._entry, changes)

    def remove(self) -> None:
        self._registry._detach_tool(self._entry)


class ResourceHandle(Handle[Resource]):
    @property
    def uri(self) -> str:
        return self._entry.uri

    def update(self, **changes: Any) -> None:
        self._registry._update_resource(self._entry, changes)

    def remove(self) -> None:
        self._registry._detach_resource(self._entry)


class ResourceTemplateHandle(Handle[ResourceTemplate]):
    def update(self, **changes: Any) -> None:
        self._registry._update_template(self._entry, changes)

    def remove(self) -> None:
        self._registry._detach_template(self._entry)


class Registry:
    """Single source of truth for invocable capabilities.

    Tools are keyed by name, resources by literal URI and resource templates
    by name. Templates are matched in registration order.

    Attributes:
        default_timeout_ms: Timeout applied when a registration gives none
    """

    def __init__(self, default_timeout_ms: int = DEFAULT_TIMEOUT_MS) -> None:
        self.default_timeout_ms = default_timeout_ms
        self._tools: dict[str, Tool] = {}
        self._resources: dict[str, Resource] = {}
        self._templates: dict[str, ResourceTemplate] = {}

    # --- Registration ---

    def register_tool(
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
        """Register a tool.

        Args:
            name: Unique tool name
            callback: Sync or async callable receiving the validated arguments.
                It may return a ToolResult, a string (wrapped as text content),
                a dict shaped like a ToolResult (content, structuredContent,
                isError), or any other dict, which becomes the structured
                content and is echoed as JSON text
            description: Human-readable description shown to the model
            input_schema: Schema for the arguments; None means no arguments
            output_schema: Schema the result's structured content must satisfy.
                Any node is accepted, so the content need not be an object
            timeout_ms: Per-call timeout (defaults to the registry default)
            enabled: Initial state

        Returns:
            A handle for enabling, disabling, updating and removing the tool

        Raises:
            NameConflictError: If a tool with this name already exists
        """
        if name in self._tools:
            raise NameConflictError(f"Tool: {name} is already registered")

        tool = Tool(
            name=name,
            callback=callback,
            description=description,
            input_schema=input_schema,
            output_schema=output_schema,
            timeout_ms=timeout_ms if timeout_ms is not None else self.default_timeout_ms,
            enabled=enabled,
        )
        self._tools[name] = tool
        logger.info(f"Registered tool '{name}'")
        return ToolHandle(self, tool)

    def register_resource(
        self,
        name: str,
        uri: str,
        callback: ResourceCallback,
        *,
        metadata: dict[str, Any] | None = None,
        timeout_ms: int | None = None,
        enabled: bool = True,
    ) -> ResourceHandle:
        """Register a resource under a literal URI.

        Raises:
            NameConflictError: If a resource with this URI already exists
        """
        if uri in self._resources:
            raise NameConflictError(f"Resource: {uri} is already registered")

        resource = Resource(
            name=name,
            uri=uri,
            callback=callback,
            metadata=dict(metadata or {}),
            timeout_ms=timeout_ms if timeout_ms is not None else self.default_timeout_ms,
            enabled=enabled,
        )
        self._resources[uri] = resource
        logger.info(f"Registered resource '{name}' at {uri}")
        return ResourceHandle(self, resource)

    def register_resource_template(
        self,
        name: str,
        uri_template: str,
        callback: ResourceCallback,
        *,
        metadata: dict[str, Any] | None = None,
        timeout_ms: int | None = None,
        enabled: bool = True,
    ) -> ResourceTemplateHandle:
        """Register a resource template.

        The callback is invoked as ``callback(uri, variables)``.

        Raises:
            NameConflictError: If a template with this name already exists
            ValueError: If the URI template cannot be parsed
        """
        if name in self._templates:
            raise NameConflictError(f"Resource template: {name} is already registered")

        template = ResourceTemplate(
            name=name,
            uri_template=UriTemplate(uri_template),
            callback=callback,
            metadata=dict(metadata or {}),
            timeout_ms=timeout_ms if timeout_ms is not None else self.default_timeout_ms,
            enabled=enabled,
        )
        self._templates[name] = template
        logger.info(f"Registered resource template '{name}' ({uri_template})")
        return ResourceTemplateHandle(self, template)

    # --- Removal ---

    def remove_tool(self, name: str) -> None:
        """Soft-remove a tool: disable it and detach it from the registry.

        Raises:
            UnknownNameError: If no tool has this name
        """
        tool = self._tools.get(name)
        if tool is None:
            raise UnknownNameError(f"Tool: {name} is not registered")
        self._detach_tool(tool)

    def remove_resource(self, uri: str) -> None:
        resource = self._resources.get(uri)
        if resource is None:
            raise UnknownNameError(f"Resource: {uri} is not registered")
        self._detach_resource(resource)

    def remove_resource_template(self, name: str) -> None:
        template = self._templates.get(name)
        if template is None:
            raise UnknownNameError(f"Resource template: {name} is not registered")
        self._detach_template(template)

    # --- Lookup and catalog ---

    def get_tool(self, name: str) -> Tool | None:
        return self._tools.get(name)

    def list_tools(self) -> list[Tool]:
        return list(self._tools.values())

    def list_resources(self) -> list[Resource]:
        return list(self._resources.values())

    def list_resource_templates(self) -> list[ResourceTemplate]:
        return list(self._templates.values())

    def tools_to_prompt(self) -> list[dict[str, Any]]:
        """Describe every enabled tool for the model."""
        return [tool.to_prompt() for tool in self._tools.values() if tool.enabled]

    def resources_to_prompt(self) -> list[dict[str, Any]]:
        return [r.to_prompt() for r in self._resources.values() if r.enabled]

    def resource_templates_to_prompt(self) -> list[dict[str, Any]]:
        return [t.to_prompt() for t in self._templates.values() if t.enabled]

    # --- Execution ---

    async def execute_tool(self, request: ToolRequest) -> ToolResult:
        """Execute a tool request issued by the model.

        Callback failures are converted into an error-flagged ToolResult so a
        single bad tool cannot abort the prompt loop; contract violations and
        timeouts are raised.

        Args:
            request: The model's tool request

        Returns:
            The tool's result

        Raises:
            NotFoundError: If no tool has this name
            DisabledError: If the tool is disabled
            InvalidParamsError: If the arguments or the structured result
                violate the declared schemas
            ToolTimeoutError: If the callback did not settle in time
        """
        tool = self._tools.get(request.name)
        if tool is None:
            raise NotFoundError(f"Tool: {request.name} does not exist.")
        if not tool.enabled:
            raise DisabledError(f"Tool: {request.name} is disabled.")

        if tool.input_schema is not None:
            validation = tool.input_schema.validate(request.arguments)
            if not validation:
                raise InvalidParamsError(
                    f"Invalid arguments provided for tool: {tool.name}: "
                    f"{validation.message}",
                    data={"errors": validation.errors},
                )
            args: tuple[Any, ...] = (validation.value,)
        elif request.arguments:
            raise InvalidParamsError(
                f"Tool: {tool.name} does not accept arguments, got "
                f"{sorted(request.arguments)}"
            )
        else:
            args = ()

        logger.debug(f"Executing tool '{tool.name}' (timeout {tool.timeout_ms}ms)")
        try:
            raw = await run_with_timeout(
                tool.name, tool.callback, *args, timeout_ms=tool.timeout_ms
            )
        except ToolTimeoutError:
            raise
        except Exception as e:
            logger.warning(f"Tool '{tool.name}' raised: {e}")
            return ToolResult.error(str(e) or type(e).__name__)

        result = self._to_tool_result(tool, raw)

        if tool.output_schema is not None and not result.is_error:
            if result.structured_content is None:
                raise InvalidParamsError(
                    f"Tool: {tool.name} has an output schema but did not return "
                    f"structured content"
                )
            validation = tool.output_schema.validate(result.structured_content)
            if not validation:
                raise InvalidParamsError(
                    f"Invalid structured content returned by tool: {tool.name}: "
                    f"{validation.message}",
                    data={"errors": validation.errors},
                )
            result.structured_content = validation.value

        return result

    async def read_resource(self, request: ReadResourceRequest) -> ReadResourceResult:
        """Read a resource by exact URI, falling back to templates.

        Raises:
            NotFoundError: If neither a resource nor a template matches
            DisabledError: If the matched resource or template is disabled
            ToolTimeoutError: If the callback did not settle in time
        """
        uri = request.uri
        resource = self._resources.get(uri)

        if resource is not None:
            entry: Resource | ResourceTemplate = resource
            args: tuple[Any, ...] = (uri,)
        else:
            for template in self._templates.values():
                variables = template.uri_template.match(uri)
                if variables is not None:
                    entry = template
                    args = (uri, variables)
                    break
            else:
                raise NotFoundError(
                    f"Resource: {uri} does not exist.",
                    code=ErrorCode.INVALID_RESOURCE_REQUEST,
                )

        if not entry.enabled:
            raise DisabledError(
                f"Resource: {entry.name} is disabled.",
                code=ErrorCode.INVALID_RESOURCE_REQUEST,
            )

        logger.debug(f"Reading resource {uri} via '{entry.name}'")
        try:
            raw = await run_with_timeout(
                uri, entry.callback, *args, timeout_ms=entry.timeout_ms
            )
        except ToolTimeoutError:
            raise
        except Exception as e:
            logger.warning(f"Resource '{entry.name}' raised: {e}")
            return ReadResourceResult.error(uri, str(e) or type(e).__name__)

        return self._to_resource_result(uri, raw)

    # --- Internals ---

    @staticmethod
    def _to_tool_result(tool: Tool, raw: Any) -> ToolResult:
        if isinstance(raw, ToolResult):
            return raw
        if isinstance(raw, str):
            return ToolResult.text(raw)
        if isinstance(raw, dict) and not raw.keys() <= _TOOL_RESULT_KEYS:
            # A plain payload becomes the structured content, echoed as JSON text
            return ToolResult(
                content=[TextContent(text=json.dumps(raw, default=str))],
                structured_content=raw,
            )
        if isinstance(raw, dict):
            try:
                return ToolResult.model_validate(raw)
            except ValidationError as e:
                raise InvalidParamsError(
                    f"Tool: {tool.name} returned a malformed result: {e}"
                ) from e
        raise InvalidParamsError(
            f"Tool: {tool.name} returned unsupported type {type(raw).__name__}"
        )

    @staticmethod
    def _to_resource_result(uri: str, raw: Any) -> ReadResourceResult:
        if isinstance(raw, ReadResourceResult):
            return raw
        if isinstance(raw, str):
            return ReadResourceResult(contents=[ResourceContents(uri=uri, text=raw)])
        if isinstance(raw, dict):
            try:
                return ReadResourceResult.model_validate(raw)
            except ValidationError as e:
                raise InvalidParamsError(
                    f"Resource: {uri} returned a malformed result: {e}",
                    code=ErrorCode.INVALID_RESOURCE_RESPONSE,
                ) from e
        raise InvalidParamsError(
            f"Resource: {uri} returned unsupported type {type(raw).__name__}",
            code=ErrorCode.INVALID_RESOURCE_RESPONSE,
        )

    @staticmethod
    def _check_changes(changes: dict[str, Any], allowed: set[str], kind: str) -> None:
        unknown = set(changes) - allowed
        if unknown:
            raise TypeError(f"Unknown {kind} field(s): {', '.join(sorted(unknown))}")

    def _require_attached(
        self, mapping: dict[str, Any], key: str, entry: Any, kind: str
    ) -> None:
        if mapping.get(key) is not entry:
            raise UnknownNameError(f"{kind}: {entry.name} is no longer registered")

    def _update_tool(self, tool: Tool, changes: dict[str, Any]) -> None:
        self._check_changes(changes, _TOOL_FIELDS, "tool")
        self._require_attached(self._tools, tool.name, tool, "Tool")

        new_name = changes.pop("name", tool.name)
        if new_name != tool.name:
            if new_name in self._tools:
                raise NameConflictError(f"Tool: {new_name} is already registered")
            _rekey(self._tools, tool.name, new_name)
            logger.info(f"Renamed tool '{tool.name}' to '{new_name}'")
            tool.name = new_name

        for field_name, value in changes.items():
            setattr(tool, field_name, value)
        logger.debug(f"Updated tool '{tool.name}': {sorted(changes)}")

    def _update_resource(self, resource: Resource, changes: dict[str, Any]) -> None:
        self._check_changes(changes, _RESOURCE_FIELDS, "resource")
        self._require_attached(self._resources, resource.uri, resource, "Resource")

        new_uri = changes.pop("uri", resource.uri)
        if new_uri != resource.uri:
            if new_uri in self._resources:
                raise NameConflictError(f"Resource: {new_uri} is already registered")
            _rekey(self._resources, resource.uri, new_uri)
            resource.uri = new_uri

        for field_name, value in changes.items():
            setattr(resource, field_name, value)
        logger.debug(f"Updated resource '{resource.name}': {sorted(changes)}")

    def _update_template(
        self, template: ResourceTemplate, changes: dict[str, Any]
    ) -> None:
        self._check_changes(changes, _TEMPLATE_FIELDS, "resource template")
        self._require_attached(self._templates, template.name, template, "Resource template")

        if "uri_template" in changes and isinstance(changes["uri_template"], str):
            changes["uri_template"] = UriTemplate(changes["uri_template"])

        new_name = changes.pop("name", template.name)
        if new_name != template.name:
            if new_name in self._templates:
                raise NameConflictError(
                    f"Resource template: {new_name} is already registered"
                )
            _rekey(self._templates, template.name, new_name)
            template.name = new_name

        for field_name, value in changes.items():
            setattr(template, field_name, value)
        logger.debug(f"Updated resource template '{template.name}': {sorted(changes)}")

    def _detach_tool(self, tool: Tool) -> None:
        self._require_attached(self._tools, tool.name, tool, "Tool")
        tool.enabled = False
        del self._tools[tool.name]
        logger.info(f"Removed tool '{tool.name}'")

    def _detach_resource(self, resource: Resource) -> None:
        self._require_attached(self._resources, resource.uri, resource, "Resource")
        resource.enabled = False
        del self._resources[resource.uri]
        logger.info(f"Removed resource '{resource.name}' at {resource.uri}")

    def _detach_template(self, template: ResourceTemplate) -> None:
        self._require_attached(self._templates, template.name, template, "Resource template")
        template.enabled = False
        del self._templates[template.name]
        logger.info(f"Removed resource template '{template.name}'")
