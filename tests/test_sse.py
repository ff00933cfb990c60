"""Tests for the incremental chat stream decoder."""

from complior_tui.pipeline.sse import (
    Done,
    Error,
    SseBuffer,
    Thinking,
    Token,
    ToolCall,
    ToolResult,
    Usage,
    extract_event,
)


class TestExtractEvent:
    def test_incomplete_frame_leaves_buffer_untouched(self):
        event, rest = extract_event('data: {"text": "hi"}')
        assert event is None
        assert rest == 'data: {"text": "hi"}'

    def test_unnamed_text_payload(self):
        event, rest = extract_event('data: {"text": "hello"}\n\nnext')
        assert event == Token("hello")
        assert rest == "next"

    def test_openai_style_delta(self):
        frame = 'data: {"choices": [{"delta": {"content": "abc"}}]}\n\n'
        event, _ = extract_event(frame)
        assert event == Token("abc")

    def test_done_marker(self):
        event, rest = extract_event("data: [DONE]\n\n")
        assert event == Done()
        assert rest == ""

    def test_malformed_json_degrades_to_raw_token(self):
        event, _ = extract_event("data: not json\n\n")
        assert event == Token("not json")

    def test_frame_without_data_is_consumed(self):
        event, rest = extract_event(": keepalive\n\ndata: [DONE]\n\n")
        assert event is None
        assert rest == "data: [DONE]\n\n"

    def test_multiple_data_lines_join_with_newline(self):
        event, _ = extract_event("data: line one\ndata: line two\n\n")
        assert event == Token("line one\nline two")


class TestNamedEvents:
    def test_thinking(self):
        event, _ = extract_event('event: thinking\ndata: {"content": "hmm"}\n\n')
        assert event == Thinking("hmm")

    def test_text(self):
        event, _ = extract_event('event: text\ndata: {"content": "answer"}\n\n')
        assert event == Token("answer")

    def test_tool_call(self):
        frame = 'event: tool_call\ndata: {"toolCallId": "t1", "toolName": "scan", "args": {"path": "."}}\n\n'
        event, _ = extract_event(frame)
        assert event == ToolCall(id="t1", name="scan", args={"path": "."})

    def test_tool_result_error_flag(self):
        frame = 'event: tool_result\ndata: {"toolCallId": "t1", "toolName": "scan", "result": "boom", "isError": true}\n\n'
        event, _ = extract_event(frame)
        assert event == ToolResult(id="t1", name="scan", result="boom", is_error=True)

    def test_usage(self):
        frame = 'event: usage\ndata: {"promptTokens": 12, "completionTokens": 34}\n\n'
        event, _ = extract_event(frame)
        assert event == Usage(prompt_tokens=12, completion_tokens=34)

    def test_done(self):
        event, _ = extract_event("event: done\ndata: {}\n\n")
        assert event == Done()

    def test_error_with_message(self):
        event, _ = extract_event('event: error\ndata: {"message": "rate limited"}\n\n')
        assert event == Error("rate limited")

    def test_error_with_raw_text(self):
        event, _ = extract_event("event: error\ndata: upstream exploded\n\n")
        assert event == Error("upstream exploded")

    def test_unknown_event_name_is_token(self):
        event, _ = extract_event('event: mystery\ndata: {"x": 1}\n\n')
        assert event == Token('{"x": 1}')


class TestSseBuffer:
    def test_frames_split_across_chunks(self):
        buf = SseBuffer()
        assert buf.feed('data: {"text": "a') == []
        assert buf.feed('"}\n') == []
        assert buf.feed("\n") == [Token("a")]
        assert buf.pending == ""

    def test_drains_every_complete_frame(self):
        buf = SseBuffer()
        events = buf.feed('data: {"text": "a"}\n\n: ping\n\ndata: [DONE]\n\npartial')
        assert events == [Token("a"), Done()]
        assert buf.pending == "partial"

    def test_crlf_normalized(self):
        buf = SseBuffer()
        assert buf.feed('event: text\r\ndata: {"content": "x"}\r\n\r\n') == [Token("x")]
