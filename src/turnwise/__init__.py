"""turnwise — agent execution engine for tool-using coding assistants."""

__version__ = "0.1.0"
