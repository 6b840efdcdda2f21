"""AI Copilot command layer for editor integrations."""

from .diff_viewer import build_diff_html, build_review_html
from .handler import (
    ChatCommand,
    CodeGenCommand,
    CommandResult,
    CopilotHandler,
    InlineCompletionCommand,
    Notification,
    ReviewCommand,
    SelectionCommand,
    parse_command,
)

__all__ = [
    "CopilotHandler",
    "ChatCommand",
    "CodeGenCommand",
    "ReviewCommand",
    "SelectionCommand",
    "InlineCompletionCommand",
    "CommandResult",
    "Notification",
    "parse_command",
    "build_diff_html",
    "build_review_html",
]
