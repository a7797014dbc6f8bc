"""
errors.py - Settlement error taxonomy.

Every failure a game operation can report is one of the exceptions below.
Services raise them; the API layer renders them as
``{"success": false, "error": ..., "kind": ...}`` with the matching HTTP status.

``Conflict`` and ``Unavailable`` are safe for a client to retry (after
re-querying state); ``InvalidState`` and ``NotFound`` are not.
"""


class SettlementError(Exception):
    """Base class for typed, client-visible settlement failures."""

    kind = "internal"
    status_code = 500
    retryable = False

    def __init__(self, message: str = ""):
        super().__init__(message or self.kind)
        self.message = message or self.kind

    def to_dict(self) -> dict:
        return {"success": False, "error": self.message, "kind": self.kind}


class InvalidInput(SettlementError):
    kind = "invalid_input"
    status_code = 400


class InvalidTile(SettlementError):
    kind = "invalid_tile"
    status_code = 400


class NotFound(SettlementError):
    kind = "not_found"
    status_code = 404


class InvalidState(SettlementError):
    kind = "invalid_state"
    status_code = 409


class Conflict(SettlementError):
    kind = "conflict"
    status_code = 409
    retryable = True


class Unauthorized(SettlementError):
    kind = "unauthorized"
    status_code = 401


class Unavailable(SettlementError):
    kind = "unavailable"
    status_code = 503
    retryable = True
