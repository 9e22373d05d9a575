"""Unit tests for the Registry.

Tests registration, handles, catalog serialization, and the validated,
timeout-bounded execution of tools and resource reads.
"""

import asyncio
import subprocess
import sys
import textwrap
import threading
import time

import pytest

from mac_engine.errors import (
    DisabledError,
    ErrorCode,
    InvalidParamsError,
    NameConflictError,
    NotFoundError,
    ToolTimeoutError,
    UnknownNameError,
)
from mac_engine.models import ReadResourceRequest, ToolRequest, ToolResult
from mac_engine.registry import CancellationToken, Handle, Registry
from mac_engine.schema import (
    ArraySchema,
    NumberSchema,
    ObjectSchema,
    StringSchema,
    UnionSchema,
    object_schema,
)


def echo(args):
    return args["text"]


class TestRegistration:
    """Tests for registering, updating and removing entries."""

    def test_duplicate_tool_rejected(self, registry: Registry):
        registry.register_tool("echo", echo, description="first")

        with pytest.raises(NameConflictError):
            registry.register_tool("echo", lambda: "second", description="second")

        assert registry.get_tool("echo").description == "first"
        assert len(registry.list_tools()) == 1

    def test_duplicate_resource_uri_rejected(self, registry: Registry):
        registry.register_resource("a", "docs://a", lambda uri: "a")
        with pytest.raises(NameConflictError):
            registry.register_resource("b", "docs://a", lambda uri: "b")

    def test_duplicate_template_rejected(self, registry: Registry):
        registry.register_resource_template("user", "users://{id}", lambda uri, v: "")
        with pytest.raises(NameConflictError):
            registry.register_resource_template("user", "people://{id}", lambda uri, v: "")

    def test_default_timeout_applied(self):
        registry = Registry(default_timeout_ms=250)
        handle = registry.register_tool("t", lambda: "x")
        override = registry.register_tool("u", lambda: "x", timeout_ms=5)

        assert handle.entry.timeout_ms == 250
        assert override.entry.timeout_ms == 5

    def test_rename_through_handle_keeps_order(self, registry: Registry):
        registry.register_tool("a", lambda: "a")
        handle = registry.register_tool("b", lambda: "b")
        registry.register_tool("c", lambda: "c")

        handle.update(name="renamed", description="now described")

        assert [tool.name for tool in registry.list_tools()] == ["a", "renamed", "c"]
        assert registry.get_tool("b") is None
        assert registry.get_tool("renamed").description == "now described"

    def test_rename_onto_existing_name_rejected(self, registry: Registry):
        registry.register_tool("a", lambda: "a")
        handle = registry.register_tool("b", lambda: "b")

        with pytest.raises(NameConflictError):
            handle.update(name="a")

    def test_update_unknown_field_rejected(self, registry: Registry):
        handle = registry.register_tool("a", lambda: "a")
        with pytest.raises(TypeError):
            handle.update(colour="blue")

    def test_removed_handle_is_inert(self, registry: Registry):
        handle = registry.register_tool("a", lambda: "a")
        handle.remove()

        assert registry.get_tool("a") is None
        assert handle.enabled is False
        with pytest.raises(UnknownNameError):
            handle.enable()

    def test_base_handle_is_abstract(self, registry: Registry):
        handle = registry.register_tool("a", lambda: "a")

        with pytest.raises(TypeError):
            Handle(registry, handle.entry)

    def test_remove_unknown_tool(self, registry: Registry):
        with pytest.raises(UnknownNameError):
            registry.remove_tool("missing")

    def test_catalog_lists_enabled_entries_only(self, registry: Registry):
        registry.register_tool(
            "echo",
            echo,
            description="Echo text",
            input_schema=object_schema(text=StringSchema()),
        )
        registry.register_tool("hidden", lambda: "x", enabled=False)
        registry.register_resource("readme", "docs://readme", lambda uri: "")
        registry.register_resource_template(
            "user", "users://{id}", lambda uri, v: "", metadata={"kind": "user"}
        )

        assert registry.tools_to_prompt() == [
            {
                "name": "echo",
                "description": "Echo text",
                "parameterSchema": {
                    "type": "object",
                    "properties": {"text": {"type": "string"}},
                    "required": ["text"],
                },
                "responseSchema": "None",
            }
        ]
        assert registry.resources_to_prompt() == [
            {"name": "readme", "uri": "docs://readme", "metadata": {}}
        ]
        assert registry.resource_templates_to_prompt() == [
            {"name": "user", "uriTemplate": "users://{id}", "metadata": {"kind": "user"}}
        ]


class TestToolExecution:
    """Tests for execute_tool()."""

    @pytest.mark.asyncio
    async def test_executes_with_validated_arguments(self, registry: Registry):
        registry.register_tool(
            "echo", echo, input_schema=object_schema(text=StringSchema())
        )

        result = await registry.execute_tool(
            ToolRequest(name="echo", arguments={"text": "hi"})
        )

        assert result.is_error is False
        assert result.content[0].text == "hi"

    @pytest.mark.asyncio
    async def test_async_callback(self, registry: Registry):
        async def fetch(args):
            await asyncio.sleep(0)
            return ToolResult(structured_content={"n": args["n"] * 2})

        registry.register_tool(
            "double", fetch, input_schema=object_schema(n=NumberSchema())
        )

        result = await registry.execute_tool(
            ToolRequest(name="double", arguments={"n": 2})
        )
        assert result.structured_content == {"n": 4}

    @pytest.mark.asyncio
    async def test_unknown_tool(self, registry: Registry):
        with pytest.raises(NotFoundError) as exc_info:
            await registry.execute_tool(ToolRequest(name="missing"))

        assert exc_info.value.code == ErrorCode.INVALID_TOOL_REQUEST
        assert exc_info.value.message == "Tool: missing does not exist."

    @pytest.mark.asyncio
    async def test_disabled_tool_never_runs(self, registry: Registry):
        calls = []
        handle = registry.register_tool("t", lambda: calls.append(1) or "ran")
        handle.disable()

        for _ in range(2):
            with pytest.raises(DisabledError):
                await registry.execute_tool(ToolRequest(name="t"))
        assert calls == []

        handle.enable()
        result = await registry.execute_tool(ToolRequest(name="t"))
        assert result.content[0].text == "ran"
        assert calls == [1]

    @pytest.mark.asyncio
    async def test_invalid_arguments(self, registry: Registry):
        calls = []
        registry.register_tool(
            "weather",
            lambda args: calls.append(args),
            input_schema=object_schema(city=StringSchema(), state=StringSchema()),
        )

        with pytest.raises(InvalidParamsError) as exc_info:
            await registry.execute_tool(
                ToolRequest(name="weather", arguments={"city": "Austin"})
            )

        assert exc_info.value.code == ErrorCode.INVALID_PARAMS
        assert exc_info.value.data == {"errors": ["$.state: required property is missing"]}
        assert calls == []

    @pytest.mark.asyncio
    async def test_arguments_for_tool_without_schema(self, registry: Registry):
        registry.register_tool("now", lambda: "noon")

        assert (await registry.execute_tool(ToolRequest(name="now"))).content[0].text == "noon"
        with pytest.raises(InvalidParamsError):
            await registry.execute_tool(ToolRequest(name="now", arguments={"tz": "UTC"}))

    @pytest.mark.asyncio
    async def test_callback_exception_becomes_error_result(self, registry: Registry):
        def broken():
            raise RuntimeError("upstream unavailable")

        registry.register_tool("broken", broken)

        result = await registry.execute_tool(ToolRequest(name="broken"))

        assert result.is_error is True
        assert result.content[0].text == "upstream unavailable"

    @pytest.mark.asyncio
    async def test_output_schema_requires_structured_content(self, registry: Registry):
        registry.register_tool(
            "point",
            lambda: ToolResult.text("no structure"),
            output_schema=ObjectSchema(properties={"x": NumberSchema()}),
        )

        with pytest.raises(InvalidParamsError):
            await registry.execute_tool(ToolRequest(name="point"))

    @pytest.mark.asyncio
    async def test_output_schema_validated(self, registry: Registry):
        schema = ObjectSchema(properties={"x": NumberSchema()})
        registry.register_tool("good", lambda: {"structuredContent": {"x": 1}}, output_schema=schema)
        registry.register_tool("bad", lambda: {"structuredContent": {"x": "1"}}, output_schema=schema)

        result = await registry.execute_tool(ToolRequest(name="good"))
        assert result.structured_content == {"x": 1}

        with pytest.raises(InvalidParamsError):
            await registry.execute_tool(ToolRequest(name="bad"))

    @pytest.mark.asyncio
    async def test_plain_dict_becomes_structured_content(self, registry: Registry):
        registry.register_tool("weather", lambda: {"temp": 20})

        result = await registry.execute_tool(ToolRequest(name="weather"))

        assert result.is_error is False
        assert result.structured_content == {"temp": 20}
        assert result.content[0].text == '{"temp": 20}'

    @pytest.mark.asyncio
    async def test_plain_dict_checked_against_output_schema(self, registry: Registry):
        schema = ObjectSchema(properties={"temp": NumberSchema()})
        registry.register_tool("good", lambda: {"temp": 20}, output_schema=schema)
        registry.register_tool("bad", lambda: {"temp": "warm"}, output_schema=schema)

        assert (await registry.execute_tool(ToolRequest(name="good"))).structured_content == {"temp": 20}
        with pytest.raises(InvalidParamsError):
            await registry.execute_tool(ToolRequest(name="bad"))

    @pytest.mark.asyncio
    async def test_non_object_output_schema(self, registry: Registry):
        registry.register_tool(
            "series",
            lambda: {"structuredContent": [1, 2]},
            output_schema=ArraySchema(items=NumberSchema()),
        )
        registry.register_tool(
            "label",
            lambda: ToolResult(structured_content="warm"),
            output_schema=UnionSchema(options=[NumberSchema(), StringSchema()]),
        )

        series = await registry.execute_tool(ToolRequest(name="series"))
        label = await registry.execute_tool(ToolRequest(name="label"))

        assert series.structured_content == [1, 2]
        assert label.structured_content == "warm"

    @pytest.mark.asyncio
    async def test_malformed_result_rejected(self, registry: Registry):
        registry.register_tool("odd", lambda: {"content": "not a list"})
        registry.register_tool("number", lambda: 42)

        with pytest.raises(InvalidParamsError):
            await registry.execute_tool(ToolRequest(name="odd"))
        with pytest.raises(InvalidParamsError):
            await registry.execute_tool(ToolRequest(name="number"))


class TestTimeouts:
    """Tests for the callback-versus-timer race."""

    @pytest.mark.asyncio
    async def test_never_settling_callback_times_out(self, registry: Registry):
        release = asyncio.Event()

        async def hang():
            await release.wait()
            return "too late"

        registry.register_tool("hang", hang, timeout_ms=50)

        started = time.monotonic()
        with pytest.raises(ToolTimeoutError) as exc_info:
            await registry.execute_tool(ToolRequest(name="hang"))
        elapsed = time.monotonic() - started

        assert exc_info.value.code == ErrorCode.TIMEOUT
        assert exc_info.value.message == (
            "'hang' did not finish within the allotted time limit: 50 [ms]"
        )
        assert elapsed < 1.0

        release.set()
        await asyncio.sleep(0.01)

    @pytest.mark.asyncio
    async def test_late_outcome_is_discarded(self, registry: Registry):
        finished = asyncio.Event()

        async def slow():
            await asyncio.sleep(0.1)
            finished.set()
            raise RuntimeError("late failure")

        registry.register_tool("slow", slow, timeout_ms=10)

        with pytest.raises(ToolTimeoutError):
            await registry.execute_tool(ToolRequest(name="slow"))

        await asyncio.wait_for(finished.wait(), timeout=1.0)
        await asyncio.sleep(0.01)

    @pytest.mark.asyncio
    async def test_cancellation_token_signalled(self, registry: Registry):
        observed = threading.Event()

        def poll(cancellation: CancellationToken):
            while not cancellation.cancelled:
                time.sleep(0.005)
            observed.set()
            return "stopped"

        registry.register_tool("poll", poll, timeout_ms=30)

        with pytest.raises(ToolTimeoutError):
            await registry.execute_tool(ToolRequest(name="poll"))

        for _ in range(100):
            if observed.is_set():
                break
            await asyncio.sleep(0.01)
        assert observed.is_set()

    def test_hung_sync_callback_does_not_block_shutdown(self):
        """asyncio.run() returns right after the timeout, not when the thread ends."""
        script = textwrap.dedent(
            """
            import asyncio
            import threading

            from mac_engine.errors import ToolTimeoutError
            from mac_engine.models import ToolRequest
            from mac_engine.registry import Registry

            async def main():
                registry = Registry()
                registry.register_tool(
                    "stuck", lambda: threading.Event().wait(), timeout_ms=100
                )
                try:
                    await registry.execute_tool(ToolRequest(name="stuck"))
                except ToolTimeoutError:
                    print("timed out")

            asyncio.run(main())
            """
        )

        started = time.monotonic()
        completed = subprocess.run(
            [sys.executable, "-c", script], capture_output=True, text=True, timeout=30
        )

        assert completed.returncode == 0, completed.stderr
        assert completed.stdout.strip() == "timed out"
        assert time.monotonic() - started < 30

    @pytest.mark.asyncio
    async def test_sync_callback_result_after_thread_returns(self, registry: Registry):
        registry.register_tool("sleepy", lambda: time.sleep(0.02) or "awake")

        result = await registry.execute_tool(ToolRequest(name="sleepy"))

        assert result.content[0].text == "awake"

    @pytest.mark.asyncio
    async def test_resource_reads_time_out(self, registry: Registry):
        release = asyncio.Event()

        async def hang(uri):
            await release.wait()

        registry.register_resource("slow", "docs://slow", hang, timeout_ms=20)

        with pytest.raises(ToolTimeoutError):
            await registry.read_resource(ReadResourceRequest(uri="docs://slow"))

        release.set()
        await asyncio.sleep(0.01)


class TestResourceReads:
    """Tests for read_resource()."""

    @pytest.mark.asyncio
    async def test_exact_uri(self, registry: Registry):
        registry.register_resource("readme", "docs://readme", lambda uri: "# Readme")

        result = await registry.read_resource(ReadResourceRequest(uri="docs://readme"))

        assert result.is_error is False
        assert result.contents[0].uri == "docs://readme"
        assert result.contents[0].text == "# Readme"
        assert result.contents[0].mime_type == "text/plain"

    @pytest.mark.asyncio
    async def test_template_receives_variables(self, registry: Registry):
        seen = []

        def read_user(uri, variables):
            seen.append((uri, variables))
            return f"user {variables['id']}"

        registry.register_resource_template("user", "users://{id}", read_user)

        result = await registry.read_resource(ReadResourceRequest(uri="users://42"))

        assert result.contents[0].text == "user 42"
        assert seen == [("users://42", {"id": "42"})]

    @pytest.mark.asyncio
    async def test_exact_uri_beats_template(self, registry: Registry):
        registry.register_resource_template("user", "users://{id}", lambda uri, v: "template")
        registry.register_resource("admin", "users://admin", lambda uri: "exact")

        result = await registry.read_resource(ReadResourceRequest(uri="users://admin"))
        assert result.contents[0].text == "exact"

    @pytest.mark.asyncio
    async def test_templates_matched_in_registration_order(self, registry: Registry):
        registry.register_resource_template("first", "files://{+path}", lambda uri, v: "first")
        registry.register_resource_template("second", "files://{name}", lambda uri, v: "second")

        result = await registry.read_resource(ReadResourceRequest(uri="files://a"))
        assert result.contents[0].text == "first"

    @pytest.mark.asyncio
    async def test_unknown_uri(self, registry: Registry):
        with pytest.raises(NotFoundError) as exc_info:
            await registry.read_resource(ReadResourceRequest(uri="docs://missing"))
        assert exc_info.value.code == ErrorCode.INVALID_RESOURCE_REQUEST

    @pytest.mark.asyncio
    async def test_disabled_resource(self, registry: Registry):
        handle = registry.register_resource("readme", "docs://readme", lambda uri: "x")
        handle.disable()

        with pytest.raises(DisabledError) as exc_info:
            await registry.read_resource(ReadResourceRequest(uri="docs://readme"))
        assert exc_info.value.code == ErrorCode.INVALID_RESOURCE_REQUEST

        handle.enable()
        result = await registry.read_resource(ReadResourceRequest(uri="docs://readme"))
        assert result.contents[0].text == "x"

    @pytest.mark.asyncio
    async def test_callback_exception_becomes_error_result(self, registry: Registry):
        def broken(uri):
            raise OSError("disk gone")

        registry.register_resource("broken", "docs://broken", broken)

        result = await registry.read_resource(ReadResourceRequest(uri="docs://broken"))

        assert result.is_error is True
        assert result.contents[0].text == "disk gone"
