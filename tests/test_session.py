"""Tests for termline.session.EditSession."""

from __future__ import annotations

import logging

import pytest

from termline.keys import KeyEvent, KeyProfile
from termline.session import EditSession
from termline.streams import ByteUnitSource

from .memory_io import (
    ChunkReader,
    ExitRecorder,
    MemoryChannel,
    RecordingDispatcher,
    UnitList,
    units,
)

ENTER = "\r"
BACKSPACE = "\x7f"
LEFT = "\x1b[D"
RIGHT = "\x1b[C"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class Harness:
    """Session wired to in-memory streams and recorders."""

    def __init__(self, data: str | list[int], **kwargs: object) -> None:
        self.source = UnitList(units(data) if isinstance(data, str) else data)
        self.out = MemoryChannel()
        self.err = MemoryChannel()
        self.dispatcher = kwargs.pop("dispatcher", None) or RecordingDispatcher()
        self.exits = ExitRecorder()
        self.session = EditSession(
            self.source,
            self.out,
            self.err,
            dispatcher=self.dispatcher,  # type: ignore[arg-type]
            on_exit=self.exits,
            **kwargs,  # type: ignore[arg-type]
        )

    async def run(self) -> Harness:
        await self.session.run()
        return self


def char(c: str) -> KeyEvent:
    return KeyEvent("char", (ord(c),), c)


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------


class TestLifecycle:
    """State transitions of the session."""

    def test_starts_idle(self) -> None:
        h = Harness("")
        assert h.session.state == "idle"

    @pytest.mark.asyncio
    async def test_writes_prompt_first(self) -> None:
        h = await Harness("").run()
        assert h.out.output == b"> "
        assert h.session.state == "terminated"

    @pytest.mark.asyncio
    async def test_cannot_run_twice(self) -> None:
        h = await Harness("").run()
        with pytest.raises(RuntimeError):
            await h.session.run()

    @pytest.mark.asyncio
    async def test_custom_prompt(self) -> None:
        h = await Harness("", prompt="$ ").run()
        assert h.out.output == b"$ "


# ---------------------------------------------------------------------------
# Scenarios
# ---------------------------------------------------------------------------


class TestScenarios:
    """End-to-end behaviour of typed input."""

    @pytest.mark.asyncio
    async def test_line_is_dispatched_on_enter(self) -> None:
        h = await Harness("abc" + ENTER).run()
        assert h.dispatcher.calls == ["abc"]
        assert h.dispatcher.channels == [(h.out, h.err)]
        assert h.exits.statuses == []
        assert h.session.buffer.snapshot().text == ""
        assert h.session.buffer.cursor == 0
        # prompt is shown again after the command
        assert h.out.output.endswith(b"\n\r> ")

    @pytest.mark.asyncio
    async def test_exit_keyword_ends_session(self) -> None:
        h = await Harness("exit" + ENTER + "abc" + ENTER).run()
        assert h.exits.statuses == [0]
        assert h.dispatcher.calls == []
        assert h.session.state == "terminated"
        # nothing after the exit line is read
        assert h.source.consumed == 5

    @pytest.mark.asyncio
    async def test_exit_keyword_is_trimmed(self) -> None:
        h = await Harness("  exit " + ENTER).run()
        assert h.exits.statuses == [0]

    @pytest.mark.asyncio
    async def test_custom_exit_keyword(self) -> None:
        h = await Harness("exit" + ENTER + "quit" + ENTER, exit_keyword="quit").run()
        assert h.dispatcher.calls == ["exit"]
        assert h.exits.statuses == [0]

    @pytest.mark.asyncio
    async def test_backspace_edits_line(self) -> None:
        h = Harness("")
        texts = []
        for event in (char("a"), char("b"), KeyEvent("backspace", (127,)), char("c")):
            await h.session.handle_event(event)
            texts.append(h.session.buffer.text)
        assert texts == ["a", "ab", "a", "ac"]

        await h.session.handle_event(KeyEvent("enter", (13,)))
        assert h.dispatcher.calls == ["ac"]

    @pytest.mark.asyncio
    async def test_backspace_through_run(self) -> None:
        h = await Harness("ab" + BACKSPACE + "c" + ENTER).run()
        assert h.dispatcher.calls == ["ac"]

    @pytest.mark.asyncio
    async def test_end_of_input_with_partial_line(self) -> None:
        h = await Harness("xy").run()
        assert h.dispatcher.calls == []
        assert h.exits.statuses == []
        assert h.session.buffer.text == "xy"
        assert h.session.state == "terminated"

    @pytest.mark.asyncio
    async def test_cursor_left_is_echoed(self) -> None:
        h = await Harness(LEFT).run()
        assert h.out.output == b"> \x1b[D"
        assert h.session.buffer.text == ""
        assert h.session.buffer.cursor == 0
        assert h.dispatcher.calls == []
        assert h.exits.statuses == []


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


class TestRendering:
    """Bytes written for each edit."""

    @pytest.mark.asyncio
    async def test_character_redraws_line(self) -> None:
        h = Harness("")
        await h.session.handle_event(char("a"))
        assert h.out.output == b"\r> a\r" + b"\x1b[C" * 3

    @pytest.mark.asyncio
    async def test_backspace_blanks_then_redraws(self) -> None:
        h = Harness("")
        await h.session.handle_event(char("a"))
        await h.session.handle_event(char("b"))
        h.out.clear()
        await h.session.handle_event(KeyEvent("backspace", (127,)))
        assert h.out.output == b"\r>   " + b"\r> a\r" + b"\x1b[C" * 3

    @pytest.mark.asyncio
    async def test_backspace_on_empty_line_redraws_prompt(self) -> None:
        h = Harness("")
        await h.session.handle_event(KeyEvent("backspace", (127,)))
        assert h.out.output == b"\r> " + b"\r> \r" + b"\x1b[C" * 2
        assert h.session.buffer.text == ""

    @pytest.mark.asyncio
    async def test_every_change_is_drained(self) -> None:
        h = await Harness("ab" + BACKSPACE + RIGHT).run()
        assert h.out.undrained == b""
        # prompt, a, b, backspace, right
        assert h.out.drain_count == 5

    @pytest.mark.asyncio
    async def test_enter_writes_newline_before_dispatch(self) -> None:
        seen = []

        def dispatcher(command, out, err):
            seen.append(out.undrained)

        h = await Harness("ls" + ENTER, dispatcher=dispatcher).run()
        assert seen == [b"\n\r"]
        assert h.err.drain_count == 1

    @pytest.mark.asyncio
    async def test_unrecognized_sequence_is_echoed_and_logged(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        with caplog.at_level(logging.WARNING):
            h = await Harness("a\x1b[Ab" + ENTER).run()
        assert b"\x1b[A" in h.out.output
        assert h.dispatcher.calls == ["ab"]
        assert "Unsupported escape sequence" in caplog.text

    @pytest.mark.asyncio
    async def test_passthrough_sequence_is_echoed(self) -> None:
        profile = KeyProfile(passthrough=frozenset({(27, 91, 72)}))
        h = await Harness("\x1b[H", profile=profile).run()
        assert h.out.output == b"> \x1b[H"


# ---------------------------------------------------------------------------
# Cursor keys
# ---------------------------------------------------------------------------


class TestCursorKeys:
    """Navigation keys move the terminal cursor, not the buffer cursor."""

    @pytest.mark.asyncio
    async def test_insert_after_left_still_appends(self) -> None:
        h = await Harness("ab" + LEFT + "c" + ENTER).run()
        assert h.dispatcher.calls == ["abc"]

    @pytest.mark.asyncio
    async def test_right_does_not_change_buffer(self) -> None:
        h = Harness("")
        await h.session.handle_event(char("a"))
        await h.session.handle_event(KeyEvent("cursorLeft", (27, 91, 68)))
        await h.session.handle_event(KeyEvent("cursorRight", (27, 91, 67)))
        assert h.session.buffer.text == "a"
        assert h.session.buffer.cursor == 1

    @pytest.mark.asyncio
    async def test_truncated_sequence_at_end_of_input(self) -> None:
        h = await Harness("ab\x1b[").run()
        assert h.session.state == "terminated"
        assert h.dispatcher.calls == []
        assert h.exits.statuses == []


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------


class TestDispatch:
    """Lines handed to the dispatcher."""

    @pytest.mark.asyncio
    async def test_line_is_trimmed(self) -> None:
        h = await Harness("  ls -l  " + ENTER).run()
        assert h.dispatcher.calls == ["ls -l"]

    @pytest.mark.asyncio
    async def test_empty_line_is_dispatched(self) -> None:
        h = await Harness(ENTER + "   " + ENTER).run()
        assert h.dispatcher.calls == ["", ""]

    @pytest.mark.asyncio
    async def test_multiple_lines(self) -> None:
        h = await Harness("a" + ENTER + "b" + ENTER).run()
        assert h.dispatcher.calls == ["a", "b"]

    @pytest.mark.asyncio
    async def test_async_dispatcher_is_awaited(self) -> None:
        calls = []

        async def dispatcher(command, out, err):
            out.write(f"ran {command}".encode())
            calls.append(command)

        h = await Harness("go" + ENTER, dispatcher=dispatcher).run()
        assert calls == ["go"]
        assert b"ran go" in h.out.output
        assert h.out.undrained == b""

    @pytest.mark.asyncio
    async def test_dispatcher_output_precedes_next_prompt(self) -> None:
        def dispatcher(command, out, err):
            out.write(b"result\n\r")
            err.write(b"warning\n\r")

        h = await Harness("x" + ENTER, dispatcher=dispatcher).run()
        assert h.out.output.endswith(b"\n\rresult\n\r> ")
        assert h.err.output == b"warning\n\r"

    @pytest.mark.asyncio
    async def test_dispatcher_error_is_reported_and_session_continues(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        calls = []

        def dispatcher(command, out, err):
            calls.append(command)
            if command == "boom":
                raise RuntimeError("kaput")

        with caplog.at_level(logging.ERROR):
            h = await Harness("boom" + ENTER + "ok" + ENTER, dispatcher=dispatcher).run()
        assert calls == ["boom", "ok"]
        assert h.err.output == b"error: kaput\n\r"
        assert "Command 'boom' failed" in caplog.text


# ---------------------------------------------------------------------------
# I/O failures
# ---------------------------------------------------------------------------


class FailingSource:
    async def read_unit(self) -> int | None:
        raise ConnectionResetError("reset by peer")


class TestIOFailures:
    """I/O errors end the session without raising."""

    @pytest.mark.asyncio
    async def test_write_failure_terminates(self, caplog: pytest.LogCaptureFixture) -> None:
        h = Harness("abc" + ENTER)
        h.out = MemoryChannel(fail_after=2)
        h.session = EditSession(
            h.source, h.out, h.err, dispatcher=h.dispatcher, on_exit=h.exits
        )
        with caplog.at_level(logging.ERROR):
            await h.session.run()
        assert h.session.state == "terminated"
        assert h.dispatcher.calls == []
        assert h.exits.statuses == []
        assert "Session I/O failure" in caplog.text

    @pytest.mark.asyncio
    async def test_read_failure_terminates(self) -> None:
        exits = ExitRecorder()
        session = EditSession(
            FailingSource(),
            MemoryChannel(),
            MemoryChannel(),
            dispatcher=RecordingDispatcher(),
            on_exit=exits,
        )
        await session.run()
        assert session.state == "terminated"
        assert exits.statuses == []

    @pytest.mark.asyncio
    async def test_dispatcher_io_error_terminates(self) -> None:
        def dispatcher(command, out, err):
            raise BrokenPipeError()

        h = await Harness("a" + ENTER + "b" + ENTER, dispatcher=dispatcher).run()
        assert h.session.state == "terminated"
        assert h.source.consumed == 2


# ---------------------------------------------------------------------------
# Narrow encodings and callbacks
# ---------------------------------------------------------------------------


class TestRobustness:
    """Non-I/O problems never escape run()."""

    @pytest.mark.asyncio
    async def test_unencodable_sequence_echo_with_ascii(self) -> None:
        source = ByteUnitSource(ChunkReader([b"\x1b[\xc3\xa9ab\r"]), encoding="ascii")
        out = MemoryChannel()
        dispatcher = RecordingDispatcher()
        session = EditSession(
            source,
            out,
            MemoryChannel(),
            dispatcher=dispatcher,
            on_exit=ExitRecorder(),
            encoding="ascii",
        )
        await session.run()
        assert session.state == "terminated"
        assert b"\x1b[?" in out.output
        # the second invalid byte becomes a typed replacement character
        assert dispatcher.calls == ["\ufffdab"]

    @pytest.mark.asyncio
    async def test_non_ascii_prompt_with_ascii_encoding(self) -> None:
        h = await Harness("", prompt="λ> ", encoding="ascii").run()
        assert h.out.output == b"?> "

    @pytest.mark.asyncio
    async def test_failing_exit_callback_is_logged(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        def on_exit(status: int) -> None:
            raise RuntimeError("transport gone")

        session = EditSession(
            UnitList(units("exit\r")),
            MemoryChannel(),
            MemoryChannel(),
            dispatcher=RecordingDispatcher(),
            on_exit=on_exit,
        )
        with caplog.at_level(logging.ERROR):
            await session.run()
        assert session.state == "terminated"
        assert "Exit callback failed" in caplog.text
