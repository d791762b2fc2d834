"""associate: a graph memory engine for AI coding agents."""

__version__ = "0.1.0"
