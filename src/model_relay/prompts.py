"""Prompt templates for chat, code completion, and pull-request review.

Templates use Python string formatting with named placeholders.  The review
template asks for the JSON shape that ``decoder`` and ``sanitizer`` expect.
"""

from __future__ import annotations

CHAT_PROMPT = """\
You are an expert software engineer and coding assistant.
Provide clear, accurate, and helpful responses.

<user_question>
{question}
</user_question>

Instructions:
- Answer directly and concisely
- If code examples are needed, make sure they are valid"""

COMPLETION_PROMPT = """\
You are an expert code completion engine.
Continue the code below from where it ends.

<code_context>
{context}
</code_context>

Instructions:
- Keep the existing style and formatting
- Output ONLY code, no explanations
- The continuation must be syntactically correct"""

REVIEW_PROMPT = """\
You are an expert code reviewer.
Review the following pull request and give structured feedback.

<pr_metadata>
  <title>{title}</title>
  <description>{description}</description>
  <files>{files}</files>
</pr_metadata>

<code_diff>
{diffs}
</code_diff>

Cover bugs, security problems, logic errors, and maintainability. Reference
files in inline comments, propose patches where useful, and suggest test cases.

Respond with ONLY valid JSON, no markdown, in this shape:
{{
  "summary": "Overall analysis summary",
  "comments": [{{"file": "filename", "line": 0, "comment": "Your comment"}}],
  "patches": [{{"file": "filename", "diff": "patch content"}}],
  "testCases": ["test case 1"]
}}"""

CONTEXT_LINES = 50


def build_file_context(content: str, line: int = 0, context_lines: int = CONTEXT_LINES) -> str:
    """Cut a numbered window of lines around the cursor.

    Args:
        content: Full file content.
        line: Zero-based cursor line.  Negative values are treated as 0.
        context_lines: Lines to keep before and after the cursor.

    Returns:
        Lines prefixed with their 1-based number, e.g. ``"12: x = 1"``.
        Empty string for empty content.
    """
    if not content:
        return ""
    lines = content.split("\n")
    cursor = max(0, line)
    start = max(cursor - context_lines, 0)
    end = min(cursor + context_lines, len(lines))
    return "\n".join(f"{start + i + 1}: {text}" for i, text in enumerate(lines[start:end]))


def format_chat(question: str) -> str:
    """Format the chat prompt."""
    return CHAT_PROMPT.format(question=question)


def format_completion(context: str) -> str:
    """Format the code completion prompt around a prepared context window."""
    return COMPLETION_PROMPT.format(context=context)


def format_review(title: str, description: str, diffs: str, files_changed: list[str]) -> str:
    """Format the pull-request review prompt.

    Args:
        title: PR title, may be empty.
        description: PR description, may be empty.
        diffs: Unified diff text.
        files_changed: Changed file paths.

    Returns:
        The complete prompt string.
    """
    return REVIEW_PROMPT.format(
        title=title or "Untitled PR",
        description=description or "No description provided",
        files=", ".join(files_changed) if files_changed else "No file information",
        diffs=diffs,
    )
