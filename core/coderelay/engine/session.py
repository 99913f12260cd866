"""
Chat session: ties streaming, extraction, storage and application together.

FLOW:
- send_message() opens a request id and streams the model turn
- every fragment goes through handle_incoming_chunk(): plain text is
  forwarded live, complete tool calls are dispatched immediately
- finalize_response() extracts code-block recommendations from the full
  text and parks them in the store under the request id
- apply_recommendation() / reject_recommendations() act on a parked set
  later, when the user decides

The session owns one interpreter per in-flight request; the store and the
file collaborator are injected so nothing is shared implicitly between
sessions.
"""

import asyncio
from typing import Optional

from coderelay import config
from coderelay.engine.executor import APPLY_ALL, ApplicationExecutor
from coderelay.engine.extractor import RecommendationExtractor
from coderelay.engine.interpreter import ToolCallInterpreter
from coderelay.engine.notifications import ListNotificationSink, NotificationSink
from coderelay.engine.store import RecommendationStore, new_request_id
from coderelay.runtime.ollama_client import ChatTransport, OllamaClient
from coderelay.tools.base import ApplyResult, FileIO, Recommendation, ToolCall, ToolCallKind
from coderelay.tools.file_ops import WorkspaceFileIO
from coderelay.utils.logging import logger
from coderelay.utils.response_formatter import ResponseFormatter


class ChatSession:
    """One chat conversation with its pending recommendations."""

    MAX_HISTORY = 20

    def __init__(
        self,
        transport: Optional[ChatTransport] = None,
        store: Optional[RecommendationStore] = None,
        file_io: Optional[FileIO] = None,
        sink: Optional[NotificationSink] = None,
        extractor: Optional[RecommendationExtractor] = None,
        model: str = config.DEFAULT_MODEL,
        system_prompt: Optional[str] = None,
    ):
        self.transport = transport or OllamaClient()
        self.store = store or RecommendationStore()
        self.file_io = file_io or WorkspaceFileIO()
        self.sink = sink or ListNotificationSink()
        self.extractor = extractor or RecommendationExtractor()
        self.executor = ApplicationExecutor(self.store, self.file_io)
        self.model = model
        self.system_prompt = system_prompt

        self.history: list[dict] = []
        self._streams: dict[str, ToolCallInterpreter] = {}
        self._cancelled: set[str] = set()

    # ─────────────────────────────────────────────────────────
    # STREAMING
    # ─────────────────────────────────────────────────────────

    async def send_message(self, content: str, model: Optional[str] = None) -> str:
        """Run one chat turn end to end and return its request id."""
        request_id = new_request_id()
        logger.info(f"Starting new request: {request_id}")

        self.history.append({"role": "user", "content": content})
        self.sink.post_user(content)
        self.sink.post_assistant("", streaming=True)

        messages = self._build_messages()
        self._streams[request_id] = ToolCallInterpreter(request_id)

        try:
            async for chunk in self.transport.chat_stream(messages, model or self.model):
                if request_id in self._cancelled:
                    logger.info(f"Request {request_id} cancelled, stopping stream")
                    break
                await self.handle_incoming_chunk(request_id, chunk)
        except asyncio.CancelledError:
            logger.info(f"Request {request_id} cancelled while streaming")
            self._discard_stream(request_id)
            raise
        except Exception as exc:
            logger.error(f"Chat stream failed for {request_id}: {exc}")
            self.sink.post_error(str(exc) or "An unknown error occurred")
            self._discard_stream(request_id)
            return request_id

        interpreter = self._streams.get(request_id)
        full_text = interpreter.full_text if interpreter else ""
        await self.finalize_response(request_id, full_text)
        return request_id

    async def handle_incoming_chunk(self, request_id: str, chunk: str) -> None:
        """Advance the request's interpreter by one fragment."""
        if request_id in self._cancelled:
            logger.debug(f"Ignoring chunk for cancelled request {request_id}")
            return

        interpreter = self._streams.get(request_id)
        if interpreter is None:
            interpreter = ToolCallInterpreter(request_id)
            self._streams[request_id] = interpreter

        for event in interpreter.feed(chunk):
            if request_id in self._cancelled:
                return
            if isinstance(event, ToolCall):
                await self._dispatch_tool_call(event)
            else:
                self.sink.post_assistant(event, streaming=True)

    async def finalize_response(
        self, request_id: str, full_text: Optional[str] = None
    ) -> list[Recommendation]:
        """
        Close the stream and park the response's recommendations.

        A request cancelled while it was streaming stores nothing and
        returns an empty list.
        """
        interpreter = self._streams.pop(request_id, None)

        if request_id in self._cancelled:
            self._cancelled.discard(request_id)
            logger.info(f"Ignoring late response for cancelled request {request_id}")
            return []

        if interpreter:
            for event in interpreter.finish():
                if isinstance(event, str):
                    self.sink.post_assistant(event, streaming=True)
            if full_text is None:
                full_text = interpreter.full_text
        full_text = full_text or ""

        self.history.append({"role": "assistant", "content": full_text})

        recommendations = self.extractor.extract(full_text)
        if not recommendations:
            logger.info(f"No code recommendations found for {request_id}")
            return []

        self.store.sweep()
        self.store.put(request_id, recommendations)
        summary = ResponseFormatter.format_recommendation_summary(recommendations)
        self.sink.post_recommendation_prompt(request_id, recommendations, summary)
        return recommendations

    async def _dispatch_tool_call(self, call: ToolCall) -> None:
        logger.info(f"Dispatching {call.kind.value} for {call.path}")
        try:
            if call.kind == ToolCallKind.READ_FILE:
                content = await self.file_io.read(call.path)
                self.sink.post_assistant(ResponseFormatter.format_file_content(call.path, content))
                return
            if call.kind == ToolCallKind.WRITE_FILE:
                await self.file_io.write(call.path, call.content or "")
            else:
                await self.file_io.open_in_editor(call.path)
        except Exception as exc:
            logger.error(f"Tool call {call.kind.value} failed for {call.path}: {exc}")
            self.sink.post_error(ResponseFormatter.format_tool_error(call, exc))
            return
        self.sink.post_assistant(ResponseFormatter.format_tool_success(call))

    def _discard_stream(self, request_id: str) -> None:
        """Drop an unfinished request's interpreter without dispatching anything."""
        interpreter = self._streams.pop(request_id, None)
        if interpreter:
            interpreter.cancel()
        self._cancelled.discard(request_id)

    # ─────────────────────────────────────────────────────────
    # APPLY / REJECT
    # ─────────────────────────────────────────────────────────

    async def apply_recommendation(
        self, request_id: str, file_path: str = APPLY_ALL
    ) -> list[ApplyResult]:
        results = await self.executor.apply(request_id, file_path)
        self.sink.post_assistant(
            ResponseFormatter.format_apply_results(results, batch=file_path == APPLY_ALL)
        )
        return results

    def reject_recommendations(self, request_id: str) -> bool:
        removed = self.executor.reject(request_id)
        self.sink.post_assistant(ResponseFormatter.REJECT_ACK)
        return removed

    def get_pending(self) -> dict[str, list[Recommendation]]:
        return self.store.pending()

    # ─────────────────────────────────────────────────────────
    # CONVERSATION
    # ─────────────────────────────────────────────────────────

    def clear_chat(self) -> None:
        """Forget the conversation, abandon in-flight streams, drop pending sets."""
        self.history = []
        for request_id, interpreter in self._streams.items():
            interpreter.cancel()
            self._cancelled.add(request_id)
        self._streams = {}
        self.store.clear_all()
        self.store.sweep()
        self.sink.post_clear()
        logger.info("Chat cleared")

    def _build_messages(self) -> list[dict]:
        messages = []
        if self.system_prompt:
            messages.append({"role": "system", "content": self.system_prompt})
        messages.extend(self.history[-self.MAX_HISTORY:])
        return messages
