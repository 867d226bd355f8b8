"""Console output."""

from .console import ConsoleProtocol, Level, MockConsole, RichConsole, Style, parse_level

__all__ = ["ConsoleProtocol", "Level", "MockConsole", "RichConsole", "Style", "parse_level"]
