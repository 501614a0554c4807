"""asyncio TCP server running one ``EditSession`` per connection.

Clients are expected to be telnet-style terminals. On connect the server
asks the client to stop echoing locally and to send characters as they are
typed; telnet command sequences in the inbound stream are removed before
the bytes reach the session.
"""

from __future__ import annotations

import asyncio
import logging

from termline.config import Config
from termline.session import Dispatcher, EditSession
from termline.streams import ByteReader, ByteUnitSource

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Telnet constants
# ---------------------------------------------------------------------------

IAC = 255
DONT = 254
DO = 253
WONT = 252
WILL = 251
SB = 250
SE = 240

OPT_ECHO = 1
OPT_SGA = 3

CHARACTER_MODE = bytes((IAC, WILL, OPT_ECHO, IAC, WILL, OPT_SGA))

_CR = 13
_LF = 10
_NUL = 0


# ---------------------------------------------------------------------------
# Telnet filtering
# ---------------------------------------------------------------------------


class TelnetReader:
    """Byte reader that strips telnet commands from another reader.

    Also collapses the ``CR NUL`` and ``CR LF`` pairs telnet clients send
    for Enter into a single ``CR``. State carries across reads, so a
    command split between two chunks is still removed.
    """

    def __init__(self, reader: ByteReader) -> None:
        self._reader = reader
        self._state = "data"
        self._after_cr = False

    async def read(self, n: int = -1) -> bytes:
        while True:
            data = await self._reader.read(n)
            if not data:
                return b""
            filtered = self.feed(data)
            if filtered:
                return filtered

    def feed(self, data: bytes) -> bytes:
        out = bytearray()
        for b in data:
            state = self._state
            if state == "data":
                if b == IAC:
                    self._state = "iac"
                    continue
                if self._after_cr:
                    self._after_cr = False
                    if b in (_NUL, _LF):
                        continue
                out.append(b)
                self._after_cr = b == _CR
            elif state == "iac":
                if b == IAC:
                    out.append(IAC)
                    self._state = "data"
                elif b in (WILL, WONT, DO, DONT):
                    self._state = "option"
                elif b == SB:
                    self._state = "sb"
                else:
                    self._state = "data"
            elif state == "option":
                self._state = "data"
            elif state == "sb":
                if b == IAC:
                    self._state = "sb_iac"
            elif state == "sb_iac":
                self._state = "data" if b == SE else "sb"
        return bytes(out)


# ---------------------------------------------------------------------------
# Server
# ---------------------------------------------------------------------------


class LineEditServer:
    """Accepts connections and runs a session for each of them."""

    def __init__(self, config: Config, dispatcher: Dispatcher) -> None:
        self._config = config
        self._dispatcher = dispatcher
        self._server: asyncio.Server | None = None

    @property
    def port(self) -> int | None:
        if self._server is None or not self._server.sockets:
            return None
        return self._server.sockets[0].getsockname()[1]

    async def start(self) -> None:
        self._server = await asyncio.start_server(
            self.handle_client, self._config.host, self._config.port
        )
        logger.info("Listening on %s:%s", self._config.host, self.port)

    async def serve_forever(self) -> None:
        if self._server is None:
            await self.start()
        assert self._server is not None
        async with self._server:
            await self._server.serve_forever()

    async def close(self) -> None:
        if self._server is not None:
            self._server.close()
            await self._server.wait_closed()
            self._server = None

    async def handle_client(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
    ) -> None:
        peer = writer.get_extra_info("peername")
        logger.info("New connection from %s", peer)

        def on_exit(status: int) -> None:
            logger.info("Session %s exited with status %d", peer, status)
            writer.close()

        try:
            writer.write(CHARACTER_MODE)
            await writer.drain()

            config = self._config
            session = EditSession(
                ByteUnitSource(TelnetReader(reader), encoding=config.encoding),
                writer,
                writer,
                dispatcher=self._dispatcher,
                on_exit=on_exit,
                prompt=config.prompt,
                profile=config.profile,
                exit_keyword=config.exit_keyword,
                encoding=config.encoding,
            )
            await session.run()
        except OSError:
            logger.exception("Connection from %s failed", peer)
        finally:
            if not writer.is_closing():
                writer.close()
            try:
                await writer.wait_closed()
            except OSError:
                logger.debug("Error while closing connection from %s", peer)
            logger.info("Connection from %s closed", peer)
