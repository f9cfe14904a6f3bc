"""
Referral Network — Error Kinds
================================

Every failure carries a stable ``kind`` (one of five families) and a
stable ``code`` plus a human-readable message. All are recoverable at
the caller boundary.
"""

from __future__ import annotations


class CreditNetworkError(Exception):
    kind = "CreditNetworkError"
    code = "CreditNetworkError"

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.code)
        self.message = message or self.code

    def to_dict(self) -> dict[str, str]:
        return {"error": self.kind, "code": self.code, "message": self.message}


# ─────────────────────────────────────────────────────────────────────────────
# Families
# ─────────────────────────────────────────────────────────────────────────────
class ValidationError(CreditNetworkError):
    kind = code = "ValidationError"


class ConflictError(CreditNetworkError):
    kind = code = "ConflictError"


class NotFoundError(CreditNetworkError):
    kind = code = "NotFoundError"


class StateError(CreditNetworkError):
    kind = code = "StateError"


class LimitError(CreditNetworkError):
    kind = code = "LimitError"


# ─────────────────────────────────────────────────────────────────────────────
# Conflicts
# ─────────────────────────────────────────────────────────────────────────────
class DuplicateEmail(ConflictError):
    code = "DuplicateEmail"


class WalletAlreadyLinked(ConflictError):
    code = "WalletAlreadyLinked"


class NotOwner(ConflictError):
    code = "NotOwner"


class DuplicatePending(ConflictError):
    code = "DuplicatePending"


class SelfReferral(ConflictError):
    code = "SelfReferral"


class AlreadyRegistered(ConflictError):
    code = "AlreadyRegistered"


class AlreadyReferred(ConflictError):
    code = "AlreadyReferred"


# ─────────────────────────────────────────────────────────────────────────────
# State
# ─────────────────────────────────────────────────────────────────────────────
class AlreadyResolved(StateError):
    code = "AlreadyResolved"


class Expired(StateError):
    code = "Expired"


class EmailMismatch(StateError):
    code = "EmailMismatch"


class IdentityInactive(StateError):
    code = "IdentityInactive"


class StaleAttestation(StateError):
    code = "StaleAttestation"


# ─────────────────────────────────────────────────────────────────────────────
# Limits
# ─────────────────────────────────────────────────────────────────────────────
class WalletLimitExceeded(LimitError):
    code = "WalletLimitExceeded"
