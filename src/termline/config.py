"""Configuration for the line-editing server."""

from __future__ import annotations

import codecs
from dataclasses import dataclass, field

from termline.keys import DEFAULT_KEY_PROFILE, KeyProfile

LOG_LEVELS = ("debug", "info", "warning", "error")


@dataclass
class Config:
    """Server configuration."""

    host: str = "127.0.0.1"
    port: int = 2323
    prompt: str = "> "
    exit_keyword: str = "exit"
    encoding: str = "utf-8"
    log_level: str = "info"
    profile: KeyProfile = field(default_factory=lambda: DEFAULT_KEY_PROFILE)

    def __post_init__(self) -> None:
        if not 0 <= self.port <= 65535:
            raise ValueError(f"port out of range: {self.port}")
        if not self.exit_keyword.strip():
            raise ValueError("exit keyword must not be blank")
        if self.log_level not in LOG_LEVELS:
            raise ValueError(f"unknown log level: {self.log_level}")
        try:
            codecs.lookup(self.encoding)
        except LookupError:
            raise ValueError(f"unknown encoding: {self.encoding}") from None
