"""A small command registry usable as a session dispatcher."""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable

from termline.streams import OutputChannel

logger = logging.getLogger(__name__)

CommandHandler = Callable[[list[str], OutputChannel, OutputChannel], "Awaitable[None] | None"]


@dataclass
class Command:
    """A registered command."""

    name: str
    handler: CommandHandler
    description: str | None = None


class CommandRegistry:
    """Maps the first word of a line to a handler.

    Instances are callable with the dispatcher signature
    ``(command, out, err)``, so a registry can be handed to an
    ``EditSession`` directly. Empty lines are ignored; unknown commands
    produce a message on the error channel.
    """

    def __init__(self, *, encoding: str = "utf-8") -> None:
        self._commands: dict[str, Command] = {}
        self._encoding = encoding
        self.register("help", self._help, "List available commands")

    def register(
        self,
        name: str,
        handler: CommandHandler,
        description: str | None = None,
    ) -> None:
        if not name or any(ch.isspace() for ch in name):
            raise ValueError(f"invalid command name: {name!r}")
        self._commands[name] = Command(name, handler, description)

    def get(self, name: str) -> Command | None:
        return self._commands.get(name)

    @property
    def names(self) -> list[str]:
        return sorted(self._commands)

    async def __call__(self, command: str, out: OutputChannel, err: OutputChannel) -> None:
        words = command.split()
        if not words:
            return

        entry = self._commands.get(words[0])
        if entry is None:
            logger.debug("Unknown command %r", words[0])
            err.write(self.line(f"unknown command: {words[0]}"))
            return

        result = entry.handler(words[1:], out, err)
        if inspect.isawaitable(result):
            await result

    def line(self, text: str) -> bytes:
        """Encode *text* as one output line in the registry's encoding."""
        return f"{text}\n\r".encode(self._encoding, errors="replace")

    def _help(self, args: list[str], out: OutputChannel, err: OutputChannel) -> None:
        width = max(len(name) for name in self._commands)
        for name in self.names:
            desc = self._commands[name].description or ""
            out.write(self.line(f"{name.ljust(width)}  {desc}".rstrip()))

    def _echo(self, args: list[str], out: OutputChannel, err: OutputChannel) -> None:
        out.write(self.line(" ".join(args)))


def default_registry(*, encoding: str = "utf-8") -> CommandRegistry:
    """Registry with the built-in commands the server ships with."""
    registry = CommandRegistry(encoding=encoding)
    registry.register("echo", registry._echo, "Print the arguments")
    return registry
