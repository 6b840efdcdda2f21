"""AI Assistant: conversation, code generation and review engine for editor plugins."""

__version__ = "0.1.0"
