"""
Tests for the streaming tool-call interpreter.
"""

import pytest

from coderelay.engine.interpreter import ToolCallInterpreter, parse_tool_call
from coderelay.tools.base import ToolCall, ToolCallKind


def _calls(events):
    return [e for e in events if isinstance(e, ToolCall)]


def _text(events):
    return "".join(e for e in events if isinstance(e, str))


def _feed_all(interpreter, chunks):
    events = []
    for chunk in chunks:
        events.extend(interpreter.feed(chunk))
    events.extend(interpreter.finish())
    return events


class TestSingleChunk:

    @pytest.fixture
    def interpreter(self):
        return ToolCallInterpreter("req_1_test")

    def test_plain_text_passes_through(self, interpreter):
        events = _feed_all(interpreter, ["Hello there, no tools here."])
        assert events == ["Hello there, no tools here."]

    def test_read_call_between_text(self, interpreter):
        events = interpreter.feed("Look: <read_file>src/app.py</read_file> done")

        assert events[0] == "Look: "
        assert isinstance(events[1], ToolCall)
        assert events[1].kind == ToolCallKind.READ_FILE
        assert events[1].path == "src/app.py"
        assert events[2] == " done"

    def test_write_call_splits_path_and_content(self, interpreter):
        events = interpreter.feed("<write_file>out.txt\nhello\nworld\n</write_file>")

        calls = _calls(events)
        assert len(calls) == 1
        assert calls[0].kind == ToolCallKind.WRITE_FILE
        assert calls[0].path == "out.txt"
        assert calls[0].content == "hello\nworld"

    def test_open_call(self, interpreter):
        calls = _calls(interpreter.feed("<open_file>main.go</open_file>"))
        assert calls[0].kind == ToolCallKind.OPEN_FILE
        assert calls[0].path == "main.go"

    def test_multiple_calls_in_order(self, interpreter):
        events = interpreter.feed(
            "<read_file>a.py</read_file> and <open_file>b.py</open_file>"
        )
        assert [c.path for c in _calls(events)] == ["a.py", "b.py"]

    def test_raw_keeps_tags(self, interpreter):
        call = _calls(interpreter.feed("<read_file>a.py</read_file>"))[0]
        assert call.raw == "<read_file>a.py</read_file>"


class TestSplitTags:

    @pytest.mark.parametrize(
        "chunks",
        [
            ["abc <rea", "d_file>main.py</read", "_file> tail"],
            ["abc <", "read_file>", "main.py", "</read_file>", " tail"],
            list("abc <read_file>main.py</read_file> tail"),
        ],
    )
    def test_tag_split_across_chunks(self, chunks):
        interpreter = ToolCallInterpreter()
        events = _feed_all(interpreter, chunks)

        calls = _calls(events)
        assert len(calls) == 1
        assert calls[0].path == "main.py"
        assert _text(events) == "abc  tail"

    def test_partial_prefix_is_held_back(self):
        interpreter = ToolCallInterpreter()
        assert interpreter.feed("text <writ") == ["text "]
        assert interpreter.feed("ing more") == ["<writing more"]

    def test_held_back_text_released_on_finish(self):
        interpreter = ToolCallInterpreter()
        assert interpreter.feed("a < b and <") == ["a < b and "]
        assert interpreter.finish() == ["<"]

    def test_full_text_is_unmodified(self):
        interpreter = ToolCallInterpreter()
        chunks = ["x <read_", "file>a.py</read_file> y"]
        _feed_all(interpreter, chunks)
        assert interpreter.full_text == "".join(chunks)


class TestDroppedCalls:

    def test_unterminated_call_never_dispatched(self):
        interpreter = ToolCallInterpreter()
        events = _feed_all(interpreter, ["<open_file>app.py<"])
        assert _calls(events) == []
        assert not interpreter.inside_call

    def test_mismatched_close_tag_is_not_a_close(self):
        interpreter = ToolCallInterpreter()
        events = interpreter.feed("<read_file>a.py</write_file>")
        assert _calls(events) == []
        assert interpreter.inside_call

    def test_nested_open_tag_is_body_text(self):
        interpreter = ToolCallInterpreter()
        events = interpreter.feed("<read_file><write_file>x.py</read_file>")
        # the body contains markup, so the path is rejected
        assert _calls(events) == []
        assert not interpreter.inside_call

    @pytest.mark.parametrize(
        "text",
        [
            "<read_file>python run.py</read_file>",
            "<open_file>https://example.com/a.js</open_file>",
            "<read_file>   </read_file>",
            "<write_file></write_file>",
        ],
    )
    def test_invalid_calls_dropped(self, text):
        assert _calls(ToolCallInterpreter().feed(text)) == []

    def test_cancel_discards_state(self):
        interpreter = ToolCallInterpreter()
        interpreter.feed("<write_file>a.py\nprint(1)")
        interpreter.cancel()
        assert not interpreter.inside_call
        assert interpreter.finish() == []


class TestParseToolCall:

    def test_write_without_content(self):
        call = parse_tool_call(ToolCallKind.WRITE_FILE, "notes.md")
        assert call.path == "notes.md"
        assert call.content == ""

    def test_read_path_is_trimmed(self):
        call = parse_tool_call(ToolCallKind.READ_FILE, "\n  src/app.py \n")
        assert call.path == "src/app.py"

    def test_write_path_is_not_classified(self):
        call = parse_tool_call(ToolCallKind.WRITE_FILE, "scratch\nbody")
        assert call.path == "scratch"
