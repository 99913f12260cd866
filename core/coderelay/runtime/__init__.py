"""Runtime module - model endpoint clients."""

from coderelay.runtime.ollama_client import ChatTransport, OllamaClient, OllamaError

__all__ = [
    "ChatTransport",
    "OllamaClient",
    "OllamaError",
]
