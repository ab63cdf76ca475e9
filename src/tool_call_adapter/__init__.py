"""Grammar-injecting reverse proxy for tool-calling chat completions."""

__version__ = "0.1.0"
