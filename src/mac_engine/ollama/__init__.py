"""Ollama model adapter.

This package provides an async model adapter that sends prompt envelopes to
an Ollama server. All Ollama interactions are async and use streaming.
"""

from mac_engine.ollama.client import OllamaAdapter

__all__ = ["OllamaAdapter"]
