"""Keep a private line of work rebased atop an upstream source tree."""

__version__ = "0.1.0"
