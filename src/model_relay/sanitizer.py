"""Turn decoded model output into a bounded ``ReviewDocument``.

``sanitize_review`` never raises.  Invalid entries are dropped one by one,
oversized fields are truncated, and anything that is not a JSON object
yields the default document.
"""

from __future__ import annotations

import logging
from typing import Any

from model_relay.models import (
    DEFAULT_SUMMARY,
    ReviewComment,
    ReviewDocument,
    ReviewPatch,
    ReviewStatus,
)

logger = logging.getLogger(__name__)

MAX_SUMMARY_CHARS = 3000
MAX_COMMENTS = 100
MAX_PATCHES = 30
MAX_TEST_CASES = 20
MAX_TEST_CASE_CHARS = 500
FALLBACK_SUMMARY = "Code review completed."


def default_review() -> ReviewDocument:
    """Return the placeholder document used when nothing usable came back."""
    return ReviewDocument(summary=DEFAULT_SUMMARY, status=ReviewStatus.DEFAULT)


def _non_blank(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def _comments(raw: Any) -> list[ReviewComment]:
    if not isinstance(raw, list):
        return []
    kept: list[ReviewComment] = []
    for entry in raw:
        if not isinstance(entry, dict):
            continue
        if not (_non_blank(entry.get("file")) and _non_blank(entry.get("comment"))):
            continue
        line = entry.get("line")
        if isinstance(line, bool) or not isinstance(line, int):
            line = None
        kept.append(ReviewComment(file=entry["file"], comment=entry["comment"], line=line))
        if len(kept) == MAX_COMMENTS:
            break
    return kept


def _patches(raw: Any) -> list[ReviewPatch]:
    if not isinstance(raw, list):
        return []
    kept: list[ReviewPatch] = []
    for entry in raw:
        if isinstance(entry, dict) and _non_blank(entry.get("file")) and _non_blank(entry.get("diff")):
            kept.append(ReviewPatch(file=entry["file"], diff=entry["diff"]))
            if len(kept) == MAX_PATCHES:
                break
    return kept


def _test_cases(raw: Any) -> list[str]:
    if not isinstance(raw, list):
        return []
    cases = [tc[:MAX_TEST_CASE_CHARS] for tc in raw if _non_blank(tc)]
    return cases[:MAX_TEST_CASES]


def sanitize_review(decoded: Any) -> ReviewDocument:
    """Build a ReviewDocument from an arbitrary decoded value.

    Args:
        decoded: Whatever ``decode_json`` returned.

    Returns:
        A validated document, or the default document if *decoded* is not
        an object or sanitization hits an unexpected error.
    """
    if not isinstance(decoded, dict):
        return default_review()

    try:
        summary = decoded.get("summary")
        return ReviewDocument(
            summary=summary.strip()[:MAX_SUMMARY_CHARS] if isinstance(summary, str) else FALLBACK_SUMMARY,
            comments=_comments(decoded.get("comments")),
            patches=_patches(decoded.get("patches")),
            test_cases=_test_cases(decoded.get("testCases")),
            status=ReviewStatus.VALIDATED,
        )
    except Exception:
        logger.exception("Review validation error")
        return default_review()
