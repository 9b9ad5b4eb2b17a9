"""Exception hierarchy for Model Relay.

``InputValidationError`` means the caller sent something malformed and
should never be retried.  ``ProviderError`` is a single attempt failing and
is recovered inside the router.  ``AllProvidersFailedError`` means the whole
fallback order was exhausted.  ``DecodeError`` means no JSON could be
recovered from model output; callers decide how to degrade.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from model_relay.types import FailureRecord, Vendor


class RelayError(Exception):
    """Base class for all Model Relay errors."""


class InputValidationError(RelayError, ValueError):
    """Raised when a call into the relay carries invalid input.

    Attributes:
        details: One message per problem found.
    """

    def __init__(self, details: str | Sequence[str]) -> None:
        if isinstance(details, str):
            details = [details]
        self.details = list(details)
        super().__init__("; ".join(self.details))


class ProviderError(RelayError):
    """Raised by a provider when one completion attempt fails.

    Attributes:
        vendor: Provider that failed.
        model: Model identifier that was requested.
        stage: Where it broke: ``"transport"``, ``"status"``, ``"shape"``
            or ``"empty"``.
        detail: Human-readable detail from the provider.
    """

    def __init__(self, vendor: Vendor, model: str, stage: str, detail: str) -> None:
        self.vendor = vendor
        self.model = model
        self.stage = stage
        self.detail = detail
        super().__init__(f"{vendor.value}:{model} {stage} error: {detail}")


class AllProvidersFailedError(RelayError):
    """Raised when every attempt in the fallback order failed or was skipped.

    Attributes:
        failures: One record per provider that was actually attempted.
    """

    def __init__(self, failures: Iterable[FailureRecord]) -> None:
        self.failures = tuple(failures)
        if self.failures:
            tried = "; ".join(f"{f.provider.value}:{f.model} ({f.reason})" for f in self.failures)
            message = f"All AI providers failed - no response generated. Tried: {tried}"
        else:
            message = "All AI providers failed - no provider is configured. Check API keys."
        super().__init__(message)


class DecodeError(RelayError, ValueError):
    """Raised when no extraction strategy yields valid JSON."""
