"""Domain errors. Each carries a machine-readable code used by the API error shape."""

from __future__ import annotations


class PronoError(Exception):
    """Base for all domain errors."""

    code = "error"


class ValidationError(PronoError):
    """Bad input (non-positive stake/odds, empty legs, ...). Rejected before any write."""

    code = "invalid"


class InvalidStateError(PronoError):
    """Operation not allowed in the entity's current state (e.g. settling a settled pick)."""

    code = "invalid_state"


class AuthorizationError(InvalidStateError):
    """Viewer tier is not allowed to perform the action."""

    code = "forbidden"


class NotFoundError(PronoError):
    """Missing row: pick, article, or the bankroll singleton."""

    code = "not_found"


class ConsistencyError(PronoError):
    """Ledger invariant broken or a concurrent write was detected. Never swallowed."""

    code = "inconsistent"
