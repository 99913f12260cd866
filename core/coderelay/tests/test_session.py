"""
Tests for the chat session: streaming, tool dispatch, recommendation
parking and conversation clearing.
"""

import asyncio

import pytest

from coderelay.engine.notifications import ListNotificationSink, NotificationType
from coderelay.engine.session import ChatSession
from coderelay.engine.store import RecommendationStore
from coderelay.runtime.ollama_client import ChatTransport, OllamaError
from coderelay.utils.response_formatter import ResponseFormatter


class ScriptedTransport(ChatTransport):
    """Yields a fixed list of chunks, optionally failing afterwards."""

    def __init__(self, chunks, error=None):
        self.chunks = chunks
        self.error = error
        self.requests = []

    async def chat_stream(self, messages, model=None):
        self.requests.append((messages, model))
        for chunk in self.chunks:
            yield chunk
        if self.error:
            raise self.error


GO_RESPONSE = (
    "Here you go:\n"
    "```go main.go\n"
    "package main\n"
    "\n"
    "func main() {}\n"
    "```\n"
)


def make_session(chunks, file_io, error=None):
    return ChatSession(
        transport=ScriptedTransport(chunks, error),
        store=RecommendationStore(),
        file_io=file_io,
        sink=ListNotificationSink(),
    )


def contents(sink, kind):
    return [n.content for n in sink.of_type(kind)]


class TestStreaming:

    @pytest.mark.asyncio
    async def test_text_is_forwarded_as_updates(self, file_io):
        session = make_session(["Hel", "lo ", "world"], file_io)

        await session.send_message("hi")

        assert contents(session.sink, NotificationType.UPDATE_MESSAGE) == ["Hel", "lo ", "world"]
        assert contents(session.sink, NotificationType.USER_MESSAGE) == ["hi"]

    @pytest.mark.asyncio
    async def test_unterminated_tag_never_touches_files(self, file_io):
        session = make_session(["<open_file>app.py<"], file_io)

        await session.send_message("open it")

        assert file_io.writes == []
        assert file_io.opened == []

    @pytest.mark.asyncio
    async def test_read_split_across_chunks(self, file_io):
        file_io.files["a.py"] = "x = 1"
        session = make_session(["Reading <read_", "file>a.py</read_file>"], file_io)

        await session.send_message("show a.py")

        assistant = contents(session.sink, NotificationType.ASSISTANT_MESSAGE)
        assert ResponseFormatter.format_file_content("a.py", "x = 1") in assistant

    @pytest.mark.asyncio
    async def test_write_is_dispatched_immediately(self, file_io):
        session = make_session(["<write_file>notes.txt\nhello\n</write_file>"], file_io)

        await session.send_message("write notes")

        assert file_io.files == {"notes.txt": "hello"}
        assert "Successfully wrote to file: notes.txt" in contents(
            session.sink, NotificationType.ASSISTANT_MESSAGE
        )

    @pytest.mark.asyncio
    async def test_open_is_dispatched_immediately(self, file_io):
        session = make_session(["<open_file>main.go</open_file>"], file_io)

        await session.send_message("open main.go")

        assert file_io.opened == ["main.go"]
        assert contents(session.sink, NotificationType.ASSISTANT_MESSAGE)[-1] == "Opened file: main.go"

    @pytest.mark.asyncio
    async def test_tool_failure_is_reported(self, file_io):
        session = make_session(["<read_file>missing.py</read_file>"], file_io)

        await session.send_message("read")

        errors = contents(session.sink, NotificationType.ERROR)
        assert len(errors) == 1
        assert "missing.py" in errors[0]

    @pytest.mark.asyncio
    async def test_transport_error_posts_error_and_stores_nothing(self, file_io):
        session = make_session([GO_RESPONSE], file_io, error=OllamaError("Ollama API error: 500"))

        await session.send_message("hi")

        assert contents(session.sink, NotificationType.ERROR) == ["Ollama API error: 500"]
        assert session.get_pending() == {}

    @pytest.mark.asyncio
    async def test_history_is_sent_to_model(self, file_io):
        session = make_session(["ok"], file_io)
        session.system_prompt = "be brief"

        await session.send_message("first")
        await session.send_message("second")

        messages, _ = session.transport.requests[-1]
        assert messages[0] == {"role": "system", "content": "be brief"}
        assert [m["content"] for m in messages[1:]] == ["first", "ok", "second"]


class TestRecommendations:

    @pytest.mark.asyncio
    async def test_code_blocks_are_parked_under_request_id(self, file_io):
        session = make_session([GO_RESPONSE[:20], GO_RESPONSE[20:]], file_io)

        request_id = await session.send_message("write main")

        pending = session.get_pending()
        assert list(pending) == [request_id]
        assert pending[request_id][0].file_path == "main.go"

        prompts = session.sink.of_type(NotificationType.CODE_RECOMMENDATION)
        assert len(prompts) == 1
        assert prompts[0].request_id == request_id
        assert "- main.go (go)" in prompts[0].content

    @pytest.mark.asyncio
    async def test_no_code_blocks_no_entry(self, file_io):
        session = make_session(["Just words."], file_io)
        await session.send_message("hi")
        assert session.get_pending() == {}
        assert session.sink.of_type(NotificationType.CODE_RECOMMENDATION) == []

    @pytest.mark.asyncio
    async def test_apply_all_writes_and_reports(self, file_io):
        session = make_session([GO_RESPONSE], file_io)
        request_id = await session.send_message("write main")

        results = await session.apply_recommendation(request_id)

        assert [r.ok for r in results] == [True]
        assert file_io.files["main.go"] == "package main\n\nfunc main() {}"
        assert session.get_pending() == {}
        assert contents(session.sink, NotificationType.ASSISTANT_MESSAGE)[-1] == (
            "Code changes applied:\n\nSuccessfully applied changes to main.go"
        )

    @pytest.mark.asyncio
    async def test_apply_unknown_reports_not_found(self, file_io):
        session = make_session([], file_io)

        results = await session.apply_recommendation("req_1_abc", "x.py")

        assert results[0].not_found
        assert contents(session.sink, NotificationType.ASSISTANT_MESSAGE)[-1] == (
            "No code recommendations found for this request."
        )

    @pytest.mark.asyncio
    async def test_reject_acknowledges(self, file_io):
        session = make_session([GO_RESPONSE], file_io)
        request_id = await session.send_message("write main")

        assert session.reject_recommendations(request_id)
        assert session.get_pending() == {}
        assert file_io.writes == []
        assert contents(session.sink, NotificationType.ASSISTANT_MESSAGE)[-1] == ResponseFormatter.REJECT_ACK


class TestClearChat:

    @pytest.mark.asyncio
    async def test_clear_abandons_in_flight_request(self, file_io):
        session = make_session([], file_io)

        await session.handle_incoming_chunk("req_1_x", "<write_file>a.py\nprint(1)\n")
        session.clear_chat()
        await session.handle_incoming_chunk("req_1_x", "</write_file>")
        late = await session.finalize_response("req_1_x", GO_RESPONSE)

        assert late == []
        assert file_io.writes == []
        assert session.get_pending() == {}

    @pytest.mark.asyncio
    async def test_clear_drops_pending_and_history(self, file_io):
        session = make_session([GO_RESPONSE], file_io)
        await session.send_message("write main")

        session.clear_chat()

        assert session.get_pending() == {}
        assert session.history == []
        assert session.sink.of_type(NotificationType.CLEAR_CHAT)

    @pytest.mark.asyncio
    async def test_clear_mid_stream_stops_the_turn(self, file_io):
        session = make_session([], file_io)

        class ClearingTransport(ChatTransport):
            async def chat_stream(self, messages, model=None):
                yield "Start ```go main.go\npackage main\n"
                session.clear_chat()
                yield "```\n<write_file>b.py\nx\n</write_file>"

        session.transport = ClearingTransport()
        await session.send_message("go")

        assert file_io.writes == []
        assert session.get_pending() == {}


class TestCancellation:

    @pytest.mark.asyncio
    async def test_cancelled_turn_discards_interpreter(self, file_io):
        session = make_session([], file_io)
        streaming = asyncio.Event()

        class HangingTransport(ChatTransport):
            async def chat_stream(self, messages, model=None):
                yield "partial <write_file>a.py\nprint(1)\n"
                streaming.set()
                await asyncio.sleep(3600)
                yield "</write_file>"

        session.transport = HangingTransport()
        task = asyncio.create_task(session.send_message("go"))
        await streaming.wait()

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert session._streams == {}
        assert file_io.writes == []
        assert session.get_pending() == {}
