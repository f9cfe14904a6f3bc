"""Credit Scoring — Package."""

from scoring.models import (
    CreditEventType,
    EngineConfig,
    Identity,
    Invitation,
    InvitationStatus,
    ScoreRecord,
    ScoreWeights,
    WalletSignals,
)

__all__ = [
    "CreditEventType",
    "EngineConfig",
    "Identity",
    "Invitation",
    "InvitationStatus",
    "ScoreRecord",
    "ScoreWeights",
    "WalletSignals",
]
