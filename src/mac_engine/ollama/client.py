"""Async Ollama model adapter.

This module provides a model adapter around ollama.AsyncClient. An adapter
instance is a callable suitable for Bridge.prompt_executor: it receives the
serialized prompt envelope and returns the model's message.
"""

import logging
from typing import Any, AsyncIterator

import ollama

from mac_engine.models import ModelMessage, ModelRequest, TextContent

logger = logging.getLogger(__name__)


class OllamaAdapter:
    """Model adapter backed by an Ollama server.

    Provider failures are reported through ModelMessage.error instead of
    being raised, so the orchestrator forwards them to the completion sink.

    Attributes:
        host: The Ollama server URL (e.g., "http://localhost:11434")
        model: The model name used for every request
        options: Optional model parameters (temperature, etc.)
        _client: The underlying ollama.AsyncClient instance
    """

    def __init__(
        self, host: str, model: str, options: dict[str, Any] | None = None
    ) -> None:
        """Initialize the adapter.

        Args:
            host: The Ollama server URL
            model: The model name
            options: Optional model parameters
        """
        self.host = host
        self.model = model
        self.options = options
        self._client = ollama.AsyncClient(host=host)
        logger.info(f"OllamaAdapter initialized with host: {host}, model: {model}")

    async def check_connection(self) -> bool:
        """Check if the Ollama server is reachable.

        Returns:
            bool: True if connection is successful, False otherwise
        """
        try:
            await self._client.list()
            logger.debug("Ollama connection check: successful")
            return True
        except Exception as e:
            logger.warning(f"Ollama connection check failed: {e}")
            return False

    async def __call__(self, request: ModelRequest) -> ModelMessage:
        """Send a prompt envelope and collect the streamed answer.

        Args:
            request: The serialized prompt envelope

        Returns:
            ModelMessage: The assistant's text, or an error message
        """
        parts: list[str] = []
        try:
            async for chunk in self._chat_stream(
                [{"role": "user", "content": request.input}]
            ):
                message = chunk.get("message") or {}
                parts.append(message.get("content") or "")
        except Exception as e:
            logger.error(f"Ollama request failed: {e}")
            return ModelMessage(error=f"Ollama request failed: {e}")

        text = "".join(parts)
        logger.debug(f"Ollama answered with {len(text)} characters")
        return ModelMessage(content=TextContent(text=text))

    async def _chat_stream(
        self, messages: list[dict[str, Any]]
    ) -> AsyncIterator[dict[str, Any]]:
        """Stream chat chunks from Ollama as dicts.

        Yields:
            dict: Response chunks from Ollama. Each chunk contains a
                  `message` dict with role and content, and `done`
        """
        async for chunk in await self._client.chat(
            model=self.model,
            messages=messages,
            stream=True,
            format="json",
            options=self.options,
        ):
            if hasattr(chunk, "model_dump"):
                chunk_dict = chunk.model_dump()
            elif isinstance(chunk, dict):
                chunk_dict = chunk
            else:
                chunk_dict = vars(chunk)

            logger.debug(f"Received chunk: done={chunk_dict.get('done')}")
            yield chunk_dict

    async def close(self) -> None:
        """Close the adapter.

        ollama.AsyncClient uses httpx internally which handles cleanup.
        """
        logger.debug("OllamaAdapter closed")
