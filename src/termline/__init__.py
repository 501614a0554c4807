"""termline: line editing for character-mode remote terminal sessions."""

# Configuration
from termline.config import Config

# Command dispatch
from termline.dispatch import Command, CommandRegistry, default_registry

# Key decoding
from termline.keys import (
    APPLICATION_KEY_PROFILE,
    DEFAULT_KEY_PROFILE,
    KeyDecoder,
    KeyEvent,
    KeyEventKind,
    KeyProfile,
    UnitSource,
)

# Line buffer
from termline.line_buffer import LineBuffer, LineState

# Rendering
from termline.render import LineRenderer

# Transport
from termline.server import LineEditServer, TelnetReader

# Session
from termline.session import Dispatcher, EditSession, ExitCallback

# Streams
from termline.streams import ByteReader, ByteUnitSource, OutputChannel

# Width
from termline.width import visible_width

__all__ = [
    # Configuration
    "Config",
    # Command dispatch
    "Command",
    "CommandRegistry",
    "default_registry",
    # Key decoding
    "APPLICATION_KEY_PROFILE",
    "DEFAULT_KEY_PROFILE",
    "KeyDecoder",
    "KeyEvent",
    "KeyEventKind",
    "KeyProfile",
    "UnitSource",
    # Line buffer
    "LineBuffer",
    "LineState",
    # Rendering
    "LineRenderer",
    # Transport
    "LineEditServer",
    "TelnetReader",
    # Session
    "Dispatcher",
    "EditSession",
    "ExitCallback",
    # Streams
    "ByteReader",
    "ByteUnitSource",
    "OutputChannel",
    # Width
    "visible_width",
]
