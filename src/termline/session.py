"""EditSession: the read / decode / edit / render loop for one client."""

from __future__ import annotations

import inspect
import logging
from typing import Awaitable, Callable, Literal

from termline.keys import DEFAULT_KEY_PROFILE, KeyDecoder, KeyEvent, KeyProfile, UnitSource
from termline.line_buffer import LineBuffer
from termline.render import LineRenderer
from termline.streams import OutputChannel

logger = logging.getLogger(__name__)

EXIT_KEYWORD = "exit"
EXIT_STATUS_OK = 0

SessionState = Literal["idle", "editing", "terminated"]

Dispatcher = Callable[[str, OutputChannel, OutputChannel], "Awaitable[None] | None"]
ExitCallback = Callable[[int], None]


class EditSession:
    """Drives one interactive line-editing session.

    The session owns its buffer and both output channels for its whole
    lifetime. It ends when the input stream closes, when the exit keyword
    is entered, or on the first I/O error. ``run`` never raises for any of
    these.
    """

    def __init__(
        self,
        source: UnitSource,
        out: OutputChannel,
        err: OutputChannel,
        *,
        dispatcher: Dispatcher,
        on_exit: ExitCallback,
        prompt: str = "> ",
        profile: KeyProfile = DEFAULT_KEY_PROFILE,
        exit_keyword: str = EXIT_KEYWORD,
        encoding: str = "utf-8",
        buffer: LineBuffer | None = None,
    ) -> None:
        self._source = source
        self._out = out
        self._err = err
        self._dispatcher = dispatcher
        self._on_exit = on_exit
        self._exit_keyword = exit_keyword
        self._encoding = encoding
        self._decoder = KeyDecoder(profile)
        self._buffer = buffer if buffer is not None else LineBuffer()
        self._renderer = LineRenderer(prompt, profile, encoding=encoding)
        self._state: SessionState = "idle"

    # -- properties ---------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def buffer(self) -> LineBuffer:
        return self._buffer

    @property
    def renderer(self) -> LineRenderer:
        return self._renderer

    # -- loop ---------------------------------------------------------------

    async def run(self) -> None:
        """Run until end of input, the exit keyword, or an I/O failure."""
        if self._state != "idle":
            raise RuntimeError("session has already been started")

        self._state = "editing"
        try:
            await self._write(self._renderer.prompt_line())
            while self._state == "editing":
                event = await self._decoder.decode(self._source)
                if event is None:
                    logger.debug("Input closed with %r in buffer", self._buffer.text)
                    break
                await self.handle_event(event)
        except OSError:
            logger.exception("Session I/O failure")
        finally:
            self._state = "terminated"

    async def handle_event(self, event: KeyEvent) -> None:
        """Apply one key event to the buffer and the display."""
        if event.kind == "char":
            state = self._buffer.insert(event.char)
            await self._write(self._renderer.redraw(state))
        elif event.kind == "backspace":
            erase = self._renderer.blank_out(self._buffer.snapshot())
            state = self._buffer.delete_before_cursor()
            await self._write(erase + self._renderer.redraw(state))
        elif event.kind == "enter":
            await self._submit()
        else:
            # Navigation, passthrough and unknown sequences go back to the
            # terminal as-is; the buffer cursor does not follow them.
            await self._write(event.raw_text().encode(self._encoding, errors="replace"))

    # -- private ------------------------------------------------------------

    async def _submit(self) -> None:
        self._out.write(self._renderer.newline())
        command = self._buffer.take().strip()

        if command == self._exit_keyword:
            logger.info("Exit requested")
            await self._out.drain()
            self._state = "terminated"
            try:
                self._on_exit(EXIT_STATUS_OK)
            except Exception:
                logger.exception("Exit callback failed")
            return

        await self._dispatch(command)
        await self._out.drain()
        await self._err.drain()
        await self._write(self._renderer.prompt_line())

    async def _dispatch(self, command: str) -> None:
        try:
            result = self._dispatcher(command, self._out, self._err)
            if inspect.isawaitable(result):
                await result
        except OSError:
            raise
        except Exception as e:
            logger.exception("Command %r failed", command)
            self._err.write(f"error: {e}\n\r".encode(self._encoding, errors="replace"))

    async def _write(self, data: bytes) -> None:
        self._out.write(data)
        await self._out.drain()
