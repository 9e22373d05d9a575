"""Unit tests for the OllamaAdapter model adapter."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from mac_engine.models import ModelRequest
from mac_engine.ollama import OllamaAdapter


@pytest.fixture
def mock_ollama_async_client():
    """Create a mock ollama.AsyncClient."""
    with patch("mac_engine.ollama.client.ollama.AsyncClient") as mock_class:
        mock_instance = AsyncMock()
        mock_class.return_value = mock_instance
        yield mock_instance


@pytest.fixture
def adapter(mock_ollama_async_client):
    """Create an OllamaAdapter with mocked AsyncClient."""
    return OllamaAdapter(host="http://localhost:11434", model="llama3.2:latest")


def stream_of(*chunks):
    """Build an async iterator over the given chunks."""

    async def generator():
        for chunk in chunks:
            yield chunk

    return generator()


def test_adapter_initialization():
    """Test that OllamaAdapter initializes correctly."""
    with patch("mac_engine.ollama.client.ollama.AsyncClient") as mock_class:
        adapter = OllamaAdapter(host="http://test:11434", model="qwen2.5:14b")

        assert adapter.host == "http://test:11434"
        assert adapter.model == "qwen2.5:14b"
        mock_class.assert_called_once_with(host="http://test:11434")


@pytest.mark.asyncio
async def test_check_connection_success(adapter, mock_ollama_async_client):
    """Test successful connection check."""
    mock_ollama_async_client.list.return_value = {"models": []}

    assert await adapter.check_connection() is True
    mock_ollama_async_client.list.assert_called_once()


@pytest.mark.asyncio
async def test_check_connection_failure(adapter, mock_ollama_async_client):
    """Test connection check when Ollama is unreachable."""
    mock_ollama_async_client.list.side_effect = Exception("Connection refused")

    assert await adapter.check_connection() is False


@pytest.mark.asyncio
async def test_call_collects_streamed_chunks(adapter, mock_ollama_async_client):
    """Test that streamed chunks are joined into one text message."""
    mock_ollama_async_client.chat.return_value = stream_of(
        {"message": {"role": "assistant", "content": '{"error": '}, "done": False},
        {"message": {"role": "assistant", "content": "null}"}, "done": False},
        {"message": {"role": "assistant", "content": ""}, "done": True},
    )

    message = await adapter(ModelRequest(input='{"promptToAnswer": "hi"}'))

    assert message.error is None
    assert message.role == "assistant"
    assert message.content.text == '{"error": null}'

    call_kwargs = mock_ollama_async_client.chat.call_args.kwargs
    assert call_kwargs["model"] == "llama3.2:latest"
    assert call_kwargs["messages"] == [
        {"role": "user", "content": '{"promptToAnswer": "hi"}'}
    ]
    assert call_kwargs["stream"] is True
    assert call_kwargs["format"] == "json"


@pytest.mark.asyncio
async def test_call_accepts_model_chunks(adapter, mock_ollama_async_client):
    """Test chunks exposing model_dump(), like ollama's ChatResponse."""
    chunk = MagicMock()
    chunk.model_dump.return_value = {"message": {"content": "{}"}, "done": True}
    mock_ollama_async_client.chat.return_value = stream_of(chunk)

    message = await adapter(ModelRequest(input="{}"))

    assert message.content.text == "{}"


@pytest.mark.asyncio
async def test_call_reports_failure_as_error(adapter, mock_ollama_async_client):
    """Test that provider failures are returned, not raised."""
    mock_ollama_async_client.chat.side_effect = Exception("model not found")

    message = await adapter(ModelRequest(input="{}"))

    assert message.content is None
    assert "model not found" in message.error


@pytest.mark.asyncio
async def test_close(adapter):
    """Test that close completes without error."""
    await adapter.close()
