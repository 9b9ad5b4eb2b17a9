"""Recover a JSON document from free-form model output.

Models asked for JSON often wrap it in a markdown fence, surround it with
commentary, or emit something only partially structured.  ``decode_json``
tries four strategies in order of increasing permissiveness and returns the
first one that parses:

1. ``parse_direct``: the whole text is JSON.
2. ``parse_fenced``: the first ```` ``` ```` (optionally ``json``) block.
3. ``parse_bracketed``: the widest ``{...}`` or ``[...]`` span.
4. ``parse_labeled``: the first object following a known review field name.

Each strategy is a pure function returning the parsed value, or ``NO_JSON``
when it finds nothing.  A parsed JSON ``null`` is a value like any other.
The order matters: a looser strategy run first can pull a fragment out of
otherwise well-formed output.

Typical usage::

    from model_relay.decoder import decode_json

    data = decode_json('Here you go:\\n```json\\n{"summary": "ok"}\\n```')
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Callable
from typing import Any

from model_relay.errors import DecodeError, InputValidationError

logger = logging.getLogger(__name__)

REVIEW_FIELDS = ("summary", "comments", "patches", "testCases")

_FENCE_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```")
_BRACKET_RE = re.compile(r"(\{[\s\S]*\}|\[[\s\S]*\])")
_LABEL_RE = re.compile("(?:" + "|".join(f'"{name}"' for name in REVIEW_FIELDS) + r")\s*:")

# Returned by a strategy that found nothing; distinct from a parsed ``null``.
NO_JSON: Any = object()


def _loads(text: str) -> Any:
    try:
        return json.loads(text)
    except ValueError:
        return NO_JSON


def parse_direct(text: str) -> Any:
    """Parse the trimmed text as JSON outright."""
    return _loads(text.strip())


def parse_fenced(text: str) -> Any:
    """Parse the contents of the first fenced code block."""
    match = _FENCE_RE.search(text)
    if not match or not match.group(1):
        return NO_JSON
    return _loads(match.group(1).strip())


def parse_bracketed(text: str) -> Any:
    """Parse from the first ``{`` or ``[`` to the last matching closer.

    The match is greedy, so commentary *between* two JSON values defeats it.
    """
    match = _BRACKET_RE.search(text)
    if not match:
        return NO_JSON
    return _loads(match.group(1))


def _balanced_object(text: str, start: int) -> str | None:
    """Return the ``{...}`` span starting at *start*, honoring nesting.

    Braces inside JSON strings are ignored.  Returns None if the object
    never closes.
    """
    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
        elif ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[start : i + 1]
    return None


def parse_labeled(text: str) -> Any:
    """Parse the first object that follows a known review field label.

    Looks for ``"summary":``, ``"comments":``, ``"patches":`` or
    ``"testCases":`` and takes the next brace-delimited object after it,
    scanning for the matching close brace so nested objects stay whole.
    """
    label = _LABEL_RE.search(text)
    if not label:
        return NO_JSON
    start = text.find("{", label.end())
    if start == -1:
        return NO_JSON
    candidate = _balanced_object(text, start)
    if candidate is None:
        return NO_JSON
    return _loads(candidate)


STRATEGIES: tuple[tuple[str, Callable[[str], Any]], ...] = (
    ("direct", parse_direct),
    ("fenced", parse_fenced),
    ("bracketed", parse_bracketed),
    ("labeled", parse_labeled),
)


def decode_json(raw_text: Any) -> Any:
    """Recover a JSON value from model output.

    Args:
        raw_text: Text presumed to contain a JSON document.

    Returns:
        The first value any strategy parses, which may be ``None`` for a
        JSON ``null``.

    Raises:
        InputValidationError: If *raw_text* is not a string or is blank.
        DecodeError: If every strategy fails.
    """
    if not isinstance(raw_text, str):
        raise InputValidationError("Invalid input: expected string")
    if not raw_text.strip():
        raise InputValidationError("Empty text provided")

    for name, strategy in STRATEGIES:
        value = strategy(raw_text)
        if value is not NO_JSON:
            logger.debug("JSON recovered with %s strategy", name)
            return value
        logger.debug("%s JSON strategy found nothing", name)

    raise DecodeError("Could not extract valid JSON from response after multiple attempts")
