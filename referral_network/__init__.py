"""Referral Network — Package."""

from referral_network.engine import CreditNetworkEngine
from referral_network.errors import (
    ConflictError,
    CreditNetworkError,
    LimitError,
    NotFoundError,
    StateError,
    ValidationError,
)
from referral_network.store import NetworkStore

__all__ = [
    "CreditNetworkEngine",
    "CreditNetworkError",
    "ConflictError",
    "LimitError",
    "NetworkStore",
    "NotFoundError",
    "StateError",
    "ValidationError",
]
