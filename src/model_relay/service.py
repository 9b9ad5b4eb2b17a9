"""Use-case pipelines built on the fallback router.

Each function validates caller input, builds a prompt, calls
``FallbackRouter.generate``, and shapes the answer into a JSON-compatible
dict.  ``review_pull_request`` also runs the decoder and sanitizer and
degrades to a plain-text summary when the model output holds no JSON.

Typical usage::

    async with FallbackRouter(config) as router:
        review = await review_pull_request(router, config, ReviewRequest(diffs=diff_text))
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from model_relay.config import Config
from model_relay.decoder import decode_json
from model_relay.errors import DecodeError, InputValidationError
from model_relay.prompts import build_file_context, format_chat, format_completion, format_review
from model_relay.router import FallbackRouter
from model_relay.sanitizer import default_review, sanitize_review

logger = logging.getLogger(__name__)

MAX_CHAT_CHARS = 10_000
MAX_FILE_CHARS = 50_000
MAX_DIFF_CHARS = 100_000
MAX_TITLE_CHARS = 500
MAX_DESCRIPTION_CHARS = 5_000
MAX_FILES_CHANGED = 1_000
MAX_PROMPT_FILES = 100
RAW_SUMMARY_CHARS = 2_000

CHAT_MAX_TOKENS = 200
COMPLETION_MAX_TOKENS = 150
REVIEW_MAX_TOKENS = 2000


def _now() -> str:
    return datetime.now(UTC).isoformat()


@dataclass
class ReviewRequest:
    """A pull request to review.

    Attributes:
        diffs: Unified diff text.  Required.
        title: PR title.
        description: PR description.
        files_changed: Paths of changed files.
    """

    diffs: Any
    title: Any = ""
    description: Any = ""
    files_changed: Any = field(default_factory=list)

    def validate(self) -> list[str]:
        """Collect every problem with the request.

        Returns:
            One message per problem; empty when the request is valid.
        """
        errors: list[str] = []

        if not self.diffs or (isinstance(self.diffs, str) and not self.diffs.strip()):
            errors.append("diffs is required and cannot be empty")
        elif not isinstance(self.diffs, str):
            errors.append("diffs must be a string")
        elif len(self.diffs) > MAX_DIFF_CHARS:
            errors.append("diffs exceeds maximum size (100KB)")

        if not isinstance(self.title, str):
            errors.append("title must be a string")
        elif len(self.title) > MAX_TITLE_CHARS:
            errors.append(f"title exceeds maximum length ({MAX_TITLE_CHARS} chars)")

        if not isinstance(self.description, str):
            errors.append("description must be a string")
        elif len(self.description) > MAX_DESCRIPTION_CHARS:
            errors.append(f"description exceeds maximum length ({MAX_DESCRIPTION_CHARS} chars)")

        if not isinstance(self.files_changed, list):
            errors.append("filesChanged must be an array")
        elif len(self.files_changed) > MAX_FILES_CHANGED:
            errors.append(f"filesChanged exceeds maximum array length ({MAX_FILES_CHANGED} items)")
        else:
            for i, name in enumerate(self.files_changed):
                if not isinstance(name, str):
                    errors.append(f"filesChanged[{i}] must be a string")
                    break

        return errors


async def answer_chat(router: FallbackRouter, config: Config, message: Any) -> dict[str, Any]:
    """Answer a free-form coding question.

    Raises:
        InputValidationError: If the message is missing, empty, or too long.
        AllProvidersFailedError: If no provider could answer.
    """
    if not isinstance(message, str) or not message.strip():
        raise InputValidationError("message is required and must be a non-empty string")
    if len(message) > MAX_CHAT_CHARS:
        raise InputValidationError("message exceeds maximum length (10KB)")

    model = config.pick_model("chat")
    result = await router.generate(
        model, [{"role": "system", "content": format_chat(message)}], CHAT_MAX_TOKENS
    )
    return {"answer": result.content, "model": model, "timestamp": _now()}


async def complete_code(
    router: FallbackRouter,
    config: Config,
    file_content: Any,
    cursor_line: Any = 0,
) -> dict[str, Any]:
    """Continue the code around a cursor position.

    Raises:
        InputValidationError: If the file content is missing or too long,
            or the cursor line is not an integer.
        AllProvidersFailedError: If no provider could answer.
    """
    errors: list[str] = []
    if not isinstance(file_content, str) or not file_content:
        errors.append("fileContent is required and must be a string")
    elif len(file_content) > MAX_FILE_CHARS:
        errors.append("fileContent exceeds maximum length (50KB)")
    if isinstance(cursor_line, bool) or not isinstance(cursor_line, int):
        errors.append("cursorLine must be a number")
    if errors:
        raise InputValidationError(errors)

    context = build_file_context(file_content, cursor_line)
    model = config.pick_model("completion")
    result = await router.generate(
        model, [{"role": "system", "content": format_completion(context)}], COMPLETION_MAX_TOKENS
    )
    return {"completion": result.content, "model": model, "timestamp": _now()}


async def review_pull_request(
    router: FallbackRouter,
    config: Config,
    request: ReviewRequest,
) -> dict[str, Any]:
    """Review a pull request and return a sanitized review document.

    When the model output contains no recoverable JSON, the result is the
    default document with the raw text as its summary and
    ``rawResponse`` set.

    Raises:
        InputValidationError: If the request fails validation.
        AllProvidersFailedError: If no provider could answer.
    """
    errors = request.validate()
    if errors:
        logger.warning("Review request validation failed: %s", errors)
        raise InputValidationError(errors)

    title = request.title[:MAX_TITLE_CHARS]
    description = request.description[:MAX_DESCRIPTION_CHARS]
    files = request.files_changed[:MAX_PROMPT_FILES]
    logger.info("PR review requested - files: %d, diff size: %d", len(files), len(request.diffs))

    prompt = format_review(title, description, request.diffs, files)
    result = await router.generate(
        config.pick_model("review"), [{"role": "user", "content": prompt}], REVIEW_MAX_TOKENS
    )

    try:
        decoded = decode_json(result.content)
    except DecodeError as exc:
        logger.warning("JSON parsing failed: %s", exc)
        fallback = default_review().to_dict()
        fallback["summary"] = result.content[:RAW_SUMMARY_CHARS]
        fallback["rawResponse"] = True
        fallback["timestamp"] = _now()
        return fallback

    review = sanitize_review(decoded)
    logger.info(
        "PR review completed: %d comments, %d patches", len(review.comments), len(review.patches)
    )
    data = review.to_dict()
    data["timestamp"] = _now()
    data["filesAnalyzed"] = len(files)
    return data
