"""Error taxonomy for consent synchronization.

Every error carries a human-readable message; ``str(exc)`` is what a
failure callback receives.
"""

from __future__ import annotations


class ConsentError(Exception):
    """Base class for all consent engine failures."""


class NetworkFailure(ConsentError):
    """Consent server unreachable or answered with a non-200 status."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class MalformedResponse(ConsentError):
    """Server payload is not valid JSON or violates the response schema."""

    def __init__(self, message: str = "Could not parse Event FE preflight response."):
        super().__init__(message)


class PartialLookupFailure(ConsentError):
    """Some publisher ids failed lookup or were not found by the server."""

    def __init__(self, lookup_failed: set[str], not_found: set[str]):
        self.lookup_failed = set(lookup_failed)
        self.not_found = set(not_found)
        super().__init__(self._build_message())

    def _build_message(self) -> str:
        parts = ["Response error."]
        if self.lookup_failed:
            parts.append(f"Lookup failure for: {','.join(sorted(self.lookup_failed))}.")
        if self.not_found:
            parts.append(f"Publisher Ids not found: {','.join(sorted(self.not_found))}")
        return " ".join(parts)


class SerializationFailure(ConsentError):
    """Consent record could not be encoded or written to storage."""


class FormResultError(ConsentError):
    """Consent dialog reported an error or an unrecognized dismissal status."""


class UnderAgeOfConsentError(ConsentError):
    """Consent collection refused because the user is tagged under age."""

    def __init__(self) -> None:
        super().__init__("Error: tagged for under age of consent")
