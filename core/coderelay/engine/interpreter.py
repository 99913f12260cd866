"""
Streaming tool-call interpreter.

Consumes a model response chunk by chunk. Plain text is passed through as
soon as it is known not to be part of a tag, so the UI can stream it token
by token. Text between an opening tool tag and its matching closing tag is
held back, validated when the closing tag arrives, and turned into a
ToolCall for immediate dispatch.

Chunk boundaries carry no meaning: a tag may be split across any number of
chunks, so the tail of the pending text that could still become an opening
tag is carried over to the next feed().
"""

from dataclasses import dataclass, field
from typing import Optional, Union

from coderelay.tools.base import ToolCall, ToolCallKind
from coderelay.tools.paths import is_valid_path
from coderelay.utils.logging import logger

StreamEvent = Union[str, ToolCall]

OPEN_TAGS = {kind.open_tag: kind for kind in ToolCallKind}


@dataclass
class StreamState:
    """Mutable state for one in-flight response."""
    buffer: str = ""
    inside_call: bool = False
    call_kind: Optional[ToolCallKind] = None
    carry: str = ""
    chunks: list[str] = field(default_factory=list)

    def reset_call(self) -> None:
        self.buffer = ""
        self.inside_call = False
        self.call_kind = None


def _find_open_tag(text: str) -> tuple[int, Optional[ToolCallKind]]:
    """Return the index and kind of the earliest opening tag in ``text``."""
    best_index, best_kind = -1, None
    for tag, kind in OPEN_TAGS.items():
        index = text.find(tag)
        if index != -1 and (best_index == -1 or index < best_index):
            best_index, best_kind = index, kind
    return best_index, best_kind


def _partial_tag_suffix(text: str) -> int:
    """Length of the longest suffix of ``text`` that is a proper prefix of an opening tag."""
    longest = 0
    for tag in OPEN_TAGS:
        for size in range(min(len(tag) - 1, len(text)), longest, -1):
            if text.endswith(tag[:size]):
                longest = size
                break
    return longest


def parse_tool_call(kind: ToolCallKind, inner: str) -> Optional[ToolCall]:
    """
    Validate the tag body of a complete call.

    Returns None for calls that must be dropped: empty bodies, and read/open
    calls whose path fails classification.
    """
    body = inner.strip()
    raw = f"{kind.open_tag}{inner}{kind.close_tag}"
    if not body:
        logger.warning(f"Dropping {kind.value} tool call with empty content")
        return None

    if kind == ToolCallKind.WRITE_FILE:
        first_line, _, content = body.partition("\n")
        path = first_line.strip()
        if not path:
            logger.warning("Dropping write_file tool call without a path line")
            return None
        return ToolCall(kind=kind, path=path, content=content, raw=raw)

    if not is_valid_path(body):
        logger.warning(f"Dropping {kind.value} tool call with invalid path: {body[:100]!r}")
        return None
    return ToolCall(kind=kind, path=body, raw=raw)


class ToolCallInterpreter:
    """
    Interprets one streamed response.

    Create one instance per request; feed() every chunk in arrival order,
    then finish() once the stream ends or is abandoned.
    """

    def __init__(self, request_id: str = ""):
        self.request_id = request_id
        self.state = StreamState()

    @property
    def full_text(self) -> str:
        """Every chunk received so far, unmodified."""
        return "".join(self.state.chunks)

    @property
    def inside_call(self) -> bool:
        return self.state.inside_call

    def feed(self, chunk: str) -> list[StreamEvent]:
        """
        Consume one chunk and return the resulting events in order.

        Events are plain-text segments for the live view and validated
        ToolCalls to dispatch.
        """
        state = self.state
        state.chunks.append(chunk)
        events: list[StreamEvent] = []
        text = state.carry + chunk
        state.carry = ""

        while text:
            if not state.inside_call:
                index, kind = _find_open_tag(text)
                if kind is None:
                    keep = _partial_tag_suffix(text)
                    visible = text[: len(text) - keep]
                    state.carry = text[len(text) - keep:]
                    if visible:
                        events.append(visible)
                    break
                if index > 0:
                    events.append(text[:index])
                state.inside_call = True
                state.call_kind = kind
                state.buffer = ""
                text = text[index + len(kind.open_tag):]
                logger.debug(f"[{self.request_id}] Entered {kind.value} tool call")
                continue

            # Inside a call: a nested opening tag is just more body text
            state.buffer += text
            text = ""
            close_tag = state.call_kind.close_tag
            end = state.buffer.find(close_tag)
            if end == -1:
                break

            kind = state.call_kind
            inner = state.buffer[:end]
            text = state.buffer[end + len(close_tag):]
            state.reset_call()

            call = parse_tool_call(kind, inner)
            if call:
                logger.info(f"[{self.request_id}] Recognized {kind.value} tool call: {call.path}")
                events.append(call)

        return events

    def finish(self) -> list[StreamEvent]:
        """
        End the stream.

        Held-back text that never became a tag is released. An unterminated
        call is dropped without dispatch.
        """
        state = self.state
        events: list[StreamEvent] = []
        if state.inside_call:
            logger.warning(
                f"[{self.request_id}] Dropping unterminated {state.call_kind.value} tool call: "
                f"{state.buffer[:100]!r}"
            )
        elif state.carry:
            events.append(state.carry)
        state.carry = ""
        state.reset_call()
        return events

    def cancel(self) -> None:
        """Discard all in-flight state without dispatching anything."""
        self.state = StreamState()
