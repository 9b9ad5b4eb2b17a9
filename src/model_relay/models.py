"""Data models for generation results and review documents.

Defines the canonical result every provider normalizes into and the bounded
review document produced by the sanitizer. All models serialize to JSON via
``to_dict()``.

Typical usage::

    from model_relay.models import GenerationResult

    result = GenerationResult(content="...", vendor=Vendor.GEMINI, model_id="gemini-2.0-flash")
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from model_relay.types import Vendor

DEFAULT_SUMMARY = "Automated code review completed. Please review for accuracy."


@dataclass
class GenerationResult:
    """Canonical output of one successful completion.

    Attributes:
        content: Generated text, non-blank.
        vendor: Provider that produced it. None for mock results.
        model_id: Model that produced it (or the hint, for mock results).
        timestamp: When the result was received (UTC).
        latency_ms: Response time in milliseconds.
        token_count: Total tokens used, if reported by the provider.
        mock: True when produced by mock mode without any network call.
    """

    content: str
    vendor: Vendor | None = None
    model_id: str = ""
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))
    latency_ms: int | None = None
    token_count: int | None = None
    mock: bool = False

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dictionary.

        Returns:
            Dictionary with the vendor as a plain string and an ISO timestamp.
        """
        return {
            "content": self.content,
            "vendor": self.vendor.value if self.vendor else None,
            "model_id": self.model_id,
            "timestamp": self.timestamp.isoformat(),
            "latency_ms": self.latency_ms,
            "token_count": self.token_count,
            "mock": self.mock,
        }


class ReviewStatus(StrEnum):
    """Whether a review document came from model output or is a placeholder."""

    DEFAULT = "default"
    VALIDATED = "validated"


@dataclass
class ReviewComment:
    """Inline review comment on one file."""

    file: str
    comment: str
    line: int | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize, omitting ``line`` when unknown."""
        data: dict[str, Any] = {"file": self.file, "comment": self.comment}
        if self.line is not None:
            data["line"] = self.line
        return data


@dataclass
class ReviewPatch:
    """Suggested patch for one file."""

    file: str
    diff: str

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dictionary."""
        return {"file": self.file, "diff": self.diff}


@dataclass
class ReviewDocument:
    """Sanitized, bounded result of a pull-request review.

    Attributes:
        summary: Overall review summary, at most 3000 characters.
        comments: Inline comments, at most 100.
        patches: Suggested patches, at most 30.
        test_cases: Proposed test cases, at most 20, each at most 500 characters.
        status: ``validated`` when built from model output, ``default`` otherwise.
    """

    summary: str = DEFAULT_SUMMARY
    comments: list[ReviewComment] = field(default_factory=list)
    patches: list[ReviewPatch] = field(default_factory=list)
    test_cases: list[str] = field(default_factory=list)
    status: ReviewStatus = ReviewStatus.DEFAULT

    def to_dict(self) -> dict[str, Any]:
        """Serialize using the wire key names (``testCases``).

        Returns:
            Dictionary suitable for JSON output.
        """
        return {
            "summary": self.summary,
            "comments": [c.to_dict() for c in self.comments],
            "patches": [p.to_dict() for p in self.patches],
            "testCases": list(self.test_cases),
            "status": self.status.value,
        }
