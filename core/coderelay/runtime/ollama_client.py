"""
Client for a local Ollama server.
Streams chat completions as plain text fragments.
"""

import json
from abc import ABC, abstractmethod
from typing import AsyncGenerator, Optional

import httpx

from coderelay import config
from coderelay.utils.logging import logger


class OllamaError(RuntimeError):
    """Raised when the Ollama server cannot be reached or rejects a request."""


class ChatTransport(ABC):
    """Produces the text fragments of one model turn."""

    @abstractmethod
    def chat_stream(
        self, messages: list[dict], model: Optional[str] = None
    ) -> AsyncGenerator[str, None]:
        """Yield response fragments in order; boundaries carry no meaning."""


class OllamaClient(ChatTransport):
    """Minimal async client for the Ollama chat API."""

    def __init__(
        self,
        base_url: str = config.OLLAMA_BASE_URL,
        model: str = config.DEFAULT_MODEL,
        temperature: float = config.TEMPERATURE,
        max_tokens: int = config.MAX_TOKENS,
        timeout: float = config.REQUEST_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = timeout
        self._transport = transport

    def _client(self, timeout: Optional[float] = None) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout if timeout is None else timeout,
            transport=self._transport,
        )

    async def list_models(self) -> list[dict]:
        try:
            async with self._client() as client:
                response = await client.get("/api/tags")
                response.raise_for_status()
                return response.json().get("models", [])
        except httpx.HTTPError as exc:
            logger.error(f"Error listing models: {exc}")
            raise OllamaError("Failed to connect to Ollama. Make sure Ollama is running.") from exc

    async def check_connection(self) -> bool:
        try:
            await self.list_models()
        except OllamaError:
            return False
        logger.info("Connected to Ollama")
        return True

    async def chat_stream(
        self, messages: list[dict], model: Optional[str] = None
    ) -> AsyncGenerator[str, None]:
        """
        Stream a chat completion.

        Yields each ``message.content`` fragment from the NDJSON response
        and stops at the ``done`` line. Lines that are not valid JSON are
        skipped.
        """
        payload = {
            "model": model or self.model,
            "messages": messages,
            "stream": True,
            "options": {
                "temperature": self.temperature,
                "num_predict": self.max_tokens,
            },
        }

        try:
            async with self._client(timeout=None) as client:
                async with client.stream("POST", "/api/chat", json=payload) as response:
                    response.raise_for_status()
                    async for line in response.aiter_lines():
                        if not line.strip():
                            continue
                        try:
                            data = json.loads(line)
                        except json.JSONDecodeError:
                            logger.debug(f"Skipping invalid stream line: {line[:100]}")
                            continue
                        content = (data.get("message") or {}).get("content")
                        if content:
                            yield content
                        if data.get("done"):
                            return
        except httpx.ConnectError as exc:
            raise OllamaError(
                f"Cannot connect to Ollama. Make sure Ollama is running on {self.base_url}"
            ) from exc
        except httpx.HTTPStatusError as exc:
            raise OllamaError(f"Ollama API error: {exc.response.status_code}") from exc
