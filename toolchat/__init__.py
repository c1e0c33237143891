"""toolchat -- streaming chat agent with local tool calling."""

__version__ = "0.1.0"
