"""Fixed system prompts and prompt templates used by the engine."""

from __future__ import annotations

CHAT_PREAMBLE = (
    "You are a helpful code assistant. Provide responses with explanations as plain "
    "text and code in triple backticks (```language\ncode\n```). Do not use HTML tags "
    "like <pre> or <code> directly."
)

CODE_PREAMBLE = (
    "You are an expert software developer. Respond only with source code in a single "
    "fenced code block, without any commentary before or after it."
)

TEXT_PREAMBLE = "You are a helpful assistant. Answer clearly and concisely."

PLOT_PREAMBLE = (
    "You produce chart data for Plotly. Respond only with a JSON array of Plotly "
    "trace objects (for example [{\"x\": [1, 2], \"y\": [3, 4], \"type\": \"scatter\"}]) "
    "and nothing else."
)


def language_system_prompt(language: str) -> str:
    """Return the per-request system message describing the active document."""

    lang = language or "unknown"
    return (
        f"You are an expert {lang} developer. Provide detailed explanations with code "
        f"examples in {lang}.\n"
        "Format responses using markdown for text and triple backticks for code."
    )


def code_generation_prompt(request: str, language: str) -> str:
    return (
        f"Generate {language or 'unknown'} code that: {request.strip()}. \n"
        "Respond ONLY with the code in a single code block."
    )


def explain_prompt(selection: str, language: str) -> str:
    return f"Explain this {language} code:\n{selection}"


def unit_test_prompt(selection: str, language: str, framework: str, *, with_comments: bool) -> str:
    comments = " with detailed comments" if with_comments else ""
    return f"Generate {framework} unit tests for this {language} code{comments}:\n{selection}"


def review_prompt(selection: str, language: str, level: str) -> str:
    return f"Perform a {level} code review for this {language} code:\n{selection}"


def inline_completion_prompt(line: str, language: str) -> str:
    return (
        f"Complete this {language} code. Only respond with the code completion.\n\n{line}"
    )
