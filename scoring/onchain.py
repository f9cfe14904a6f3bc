"""
Credit Scoring — On-Chain Score Calculator
============================================

Turns wallet activity signals into a bureau-style score (300–850) and
aggregates a multi-wallet portfolio into one on-chain score.

Signals come from a chain reader collaborator; this module only owns
the weighting and normalization formula.
"""

from __future__ import annotations

import logging
from typing import Iterable

from scoring.chain_reader import ChainReader, StaticChainReader
from scoring.models import WalletSignals
from scoring.rules import NO_SIGNAL, SCORE_MAX, SCORE_MIN, WalletWeights, tier_points

logger = logging.getLogger("scoring.onchain")


def score_signals(signals: WalletSignals) -> int:
    """Score a wallet from its raw signals. Pure and deterministic."""
    w = WalletWeights
    score = w.BASE
    score += tier_points(signals.balance_eth, w.BALANCE_TIERS)
    score += tier_points(signals.transaction_count, w.TRANSACTION_TIERS)
    score += tier_points(signals.unique_counterparties, w.COUNTERPARTY_TIERS)
    score += tier_points(signals.wallet_age_days, w.AGE_TIERS)
    score += tier_points(signals.protocol_interactions, w.PROTOCOL_TIERS)
    score += tier_points(signals.recent_transactions_30d, w.ACTIVITY_TIERS)

    if (
        signals.wallet_age_days >= 30
        and signals.transaction_count < w.DORMANCY_MAX_TRANSACTIONS
    ):
        score -= w.DORMANCY_PENALTY

    return max(SCORE_MIN, min(SCORE_MAX, score))


def aggregate_scores(wallet_scores: Iterable[int]) -> int:
    """Floor of the arithmetic mean; no wallets means no signal."""
    scores = list(wallet_scores)
    if not scores:
        return NO_SIGNAL
    return sum(scores) // len(scores)


class OnChainScoreCalculator:
    """Scores wallets through a chain reader.

    Usage:
        calculator = OnChainScoreCalculator(StaticChainReader({...}))
        score = calculator.score_wallet("0xabc...")
    """

    def __init__(self, reader: ChainReader | None = None) -> None:
        self.reader = reader or StaticChainReader()

    def score_wallet(self, address: str) -> int:
        signals = self.reader.fetch_signals(address)
        score = score_signals(signals)
        logger.debug(
            "Wallet %s scored %d (balance=%.4f, txs=%d, age=%dd, protocols=%d)",
            address[:12] + "…",
            score,
            signals.balance_eth,
            signals.transaction_count,
            signals.wallet_age_days,
            signals.protocol_interactions,
        )
        return score

    @staticmethod
    def aggregate_portfolio(wallet_scores: Iterable[int]) -> int:
        return aggregate_scores(wallet_scores)
