"""Console output abstraction.

Workflow code talks to a ``ConsoleProtocol`` so it never depends on Rich
directly. ``RichConsole`` writes to stderr (stdout is reserved for the
one machine-readable result a command prints) and filters by level.
``MockConsole`` captures output for tests.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntEnum, auto
from typing import Protocol

__all__ = [
    "Level",
    "Style",
    "ConsoleProtocol",
    "RichConsole",
    "MockConsole",
    "parse_level",
]


class Level(IntEnum):
    """Message severity; numeric values match the sh-logger scale."""

    DEBUG = 15
    INFO = 20
    WARNING = 30
    ERROR = 40

    def __str__(self) -> str:
        return self.name.lower()


class Style(Enum):
    """Text styles for console output."""

    DEFAULT = auto()
    SUCCESS = auto()
    ERROR = auto()
    WARNING = auto()
    INFO = auto()
    DEBUG = auto()
    DIM = auto()
    BOLD = auto()

    def __str__(self) -> str:
        return self.name.lower()


def parse_level(text: str | None, default: Level = Level.INFO) -> Level:
    """Parse a level name ("debug") or number ("15"); unknown input yields default."""
    if not text:
        return default
    s = text.strip()
    if s.isdigit():
        value = int(s)
        for level in sorted(Level, reverse=True):
            if value >= level:
                return level
        return Level.DEBUG
    try:
        return Level[s.upper()]
    except KeyError:
        return default


class ConsoleProtocol(Protocol):
    """Interface for styled, leveled console output."""

    def print(self, message: str, style: Style = Style.DEFAULT) -> None:
        """Print a message unconditionally."""
        ...

    def debug(self, message: str) -> None: ...

    def info(self, message: str) -> None: ...

    def success(self, message: str) -> None: ...

    def warning(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...


class RichConsole:
    """Console implementation using Rich, writing to stderr."""

    _STYLES = {
        Style.DEFAULT: "",
        Style.SUCCESS: "green",
        Style.ERROR: "red bold",
        Style.WARNING: "yellow",
        Style.INFO: "cyan",
        Style.DEBUG: "dim",
        Style.DIM: "dim",
        Style.BOLD: "bold",
    }

    def __init__(self, level: Level = Level.INFO) -> None:
        from rich.console import Console
        from rich.text import Text

        self.level = level
        self._console = Console(stderr=True, highlight=False)
        self._text = Text

    def _emit(
        self,
        level: Level,
        message: str,
        *,
        label: str = "",
        label_style: str = "",
        style: str = "",
    ) -> None:
        if level < self.level:
            return
        line = self._text()
        if label:
            line.append(f"{label} ", style=label_style)
        line.append(message, style=style)
        self._console.print(line)

    def print(self, message: str, style: Style = Style.DEFAULT) -> None:
        self._console.print(self._text(message, style=self._STYLES.get(style, "")))

    def debug(self, message: str) -> None:
        self._emit(Level.DEBUG, message, style="dim")

    def info(self, message: str) -> None:
        self._emit(Level.INFO, message)

    def success(self, message: str) -> None:
        self._emit(Level.INFO, message, label="OK", label_style="green")

    def warning(self, message: str) -> None:
        self._emit(Level.WARNING, message, label="warning:", label_style="yellow")

    def error(self, message: str) -> None:
        # Errors are never filtered.
        self._emit(Level.ERROR, message, label="error:", label_style="red bold")


@dataclass
class OutputRecord:
    """A single captured line."""

    message: str
    style: Style


def _empty_outputs() -> list[OutputRecord]:
    return []


@dataclass
class MockConsole:
    """Console implementation that captures output for testing."""

    outputs: list[OutputRecord] = field(default_factory=_empty_outputs)

    def print(self, message: str, style: Style = Style.DEFAULT) -> None:
        self.outputs.append(OutputRecord(message, style))

    def debug(self, message: str) -> None:
        self.outputs.append(OutputRecord(message, Style.DEBUG))

    def info(self, message: str) -> None:
        self.outputs.append(OutputRecord(message, Style.INFO))

    def success(self, message: str) -> None:
        self.outputs.append(OutputRecord(f"OK {message}", Style.SUCCESS))

    def warning(self, message: str) -> None:
        self.outputs.append(OutputRecord(f"warning: {message}", Style.WARNING))

    def error(self, message: str) -> None:
        self.outputs.append(OutputRecord(f"error: {message}", Style.ERROR))

    @property
    def messages(self) -> list[str]:
        return [o.message for o in self.outputs]

    @property
    def text(self) -> str:
        return "\n".join(self.messages)

    def has_error(self) -> bool:
        return any(o.style == Style.ERROR for o in self.outputs)

    def has_warning(self) -> bool:
        return any(o.style == Style.WARNING for o in self.outputs)

    def find(self, substring: str) -> list[OutputRecord]:
        """Find all outputs containing a substring."""
        return [o for o in self.outputs if substring in o.message]
