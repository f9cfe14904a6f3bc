"""
Credit Scoring — Scoring Rules & Constants
============================================

All score ranges, wallet signal tiers, composite weights, referral
rates, and the credit event table are defined here.
No magic numbers elsewhere.
"""

from __future__ import annotations

from decimal import Decimal

# ─────────────────────────────────────────────────────────────────────────────
# Score Ranges
# ─────────────────────────────────────────────────────────────────────────────
SCORE_MIN = 300                 # bureau-style floor for computed / attested scores
SCORE_MAX = 850
NO_SIGNAL = 0                   # identity without wallets or attestation
COMPOSITE_MIN = 0
COMPOSITE_MAX = 1000


# ─────────────────────────────────────────────────────────────────────────────
# Composite Weights & Referral Propagation
# ─────────────────────────────────────────────────────────────────────────────
DEFAULT_ON_CHAIN_WEIGHT = Decimal("0.4")     # off-chain gets the complement (0.6)
PRIMARY_REFERRAL_RATE = Decimal("0.2")       # direct referrer
DEEP_REFERRAL_RATE = Decimal("0.001")        # every ancestor above the direct referrer


# ─────────────────────────────────────────────────────────────────────────────
# Registry & Invitations
# ─────────────────────────────────────────────────────────────────────────────
MAX_WALLETS_PER_IDENTITY = 10
INVITATION_TTL_SECONDS = 7 * 24 * 60 * 60
MAX_INVITATION_MESSAGE = 500
INVITATION_TOKEN_BYTES = 32                  # 256 bits of entropy
DEFAULT_IDENTITY_SALT = "referral-credit-network"


# ─────────────────────────────────────────────────────────────────────────────
# On-Chain Wallet Scoring: tiers are (threshold, points), highest first
# ─────────────────────────────────────────────────────────────────────────────
class WalletWeights:
    """Point tables for wallet activity signals."""

    BASE = SCORE_MIN

    BALANCE_TIERS = (
        (100.0, 150),
        (10.0, 100),
        (1.0, 75),
        (0.1, 50),
        (0.01, 25),
    )

    TRANSACTION_TIERS = (
        (1000, 100),
        (100, 80),
        (50, 60),
        (10, 40),
        (1, 20),
    )

    COUNTERPARTY_TIERS = (
        (10, 25),
        (5, 15),
        (2, 10),
    )

    # Wallet age (days)
    AGE_TIERS = (
        (730, 100),
        (365, 75),
        (180, 50),
        (30, 25),
    )

    PROTOCOL_TIERS = (
        (50, 100),
        (20, 70),
        (5, 40),
        (1, 15),
    )

    # Transactions in the last 30 days
    ACTIVITY_TIERS = (
        (10, 30),
        (5, 20),
        (1, 10),
    )

    # Old wallet with almost no activity
    DORMANCY_PENALTY = 10
    DORMANCY_MAX_TRANSACTIONS = 3


def tier_points(value: float, tiers: tuple[tuple[float, int], ...]) -> int:
    """Return the points of the first tier whose threshold ``value`` reaches."""
    for threshold, points in tiers:
        if value >= threshold:
            return points
    return 0


# ─────────────────────────────────────────────────────────────────────────────
# Credit Event Table: event type → (category, default change, max magnitude)
# ─────────────────────────────────────────────────────────────────────────────
CREDIT_EVENT_POLICIES: dict[str, tuple[str, int, int]] = {
    # On-chain lending behaviour
    "LOAN_PAID_EARLY": ("on_chain", 10, 50),
    "LOAN_REPAID_ON_TIME": ("on_chain", 5, 25),
    "LOAN_PAID_LATE": ("on_chain", -15, 50),
    "LOAN_DEFAULTED": ("on_chain", -50, 200),
    "COLLATERAL_LIQUIDATED": ("on_chain", -30, 100),
    # Off-chain bureau behaviour
    "BILL_PAID_ON_TIME": ("off_chain", 3, 20),
    "CREDIT_LIMIT_INCREASED": ("off_chain", 8, 30),
    "PAYMENT_MISSED": ("off_chain", -20, 60),
    "ACCOUNT_IN_COLLECTIONS": ("off_chain", -40, 150),
}


# ─────────────────────────────────────────────────────────────────────────────
# Credit Bands
# ─────────────────────────────────────────────────────────────────────────────
def credit_band(composite: int) -> str:
    """Return a human-readable band for a composite score."""
    if composite >= 800:
        return "Exceptional"
    if composite >= 740:
        return "Very Good"
    if composite >= 670:
        return "Good"
    if composite >= 580:
        return "Fair"
    if composite > 0:
        return "Poor"
    return "No Signal"
