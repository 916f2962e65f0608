"""Chess960 puzzle and lesson generation driven by a UCI engine."""

__version__ = "0.1.0"
