"""Custom exception hierarchy for the campaign engine.

Having explicit exception types lets the control layer distinguish between
missing records, lost updates, busy leases, transport failures and bad
payloads, and map each one onto the run summary instead of a bare failure.
"""

from __future__ import annotations


class CampaignEngineError(Exception):
    """Base class for all campaign engine errors."""


class NotFoundError(CampaignEngineError):
    """Raised when an operation requires a record that does not exist."""


class ConflictError(CampaignEngineError):
    """Raised when a save loses an optimistic-concurrency race.

    Always retryable by re-reading the record and re-applying the change.
    """


class BusyError(CampaignEngineError):
    """Raised by a delivery guard when another caller holds the lease."""


class DispatchError(CampaignEngineError):
    """Raised when the push transport reports failure or is unreachable."""


class ValidationError(CampaignEngineError):
    """Raised when an upsert payload is malformed. Nothing is written."""

    def __init__(self, message: str, errors: list | None = None):
        super().__init__(message)
        self.errors = errors or []


class AdapterError(CampaignEngineError):
    """Raised when the underlying storage backend fails irrecoverably."""


__all__ = [
    "CampaignEngineError",
    "NotFoundError",
    "ConflictError",
    "BusyError",
    "DispatchError",
    "ValidationError",
    "AdapterError",
]
