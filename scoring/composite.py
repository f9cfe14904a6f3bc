"""
Credit Scoring — Composite Score Aggregator
=============================================

    composite = round(on_chain * w_on + off_chain * w_off) + referral

clamped to [0, 1000]. Arithmetic is done in Decimal with ROUND_HALF_UP
so any client, including an on-chain verifier, reproduces it exactly.
Referral is added after weighting and can saturate the ceiling.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from scoring.models import ScoreRecord, ScoreWeights
from scoring.rules import COMPOSITE_MAX, COMPOSITE_MIN, NO_SIGNAL, SCORE_MAX, SCORE_MIN

_UNIT = Decimal(1)


def round_half_up(value: Decimal) -> int:
    return int(value.quantize(_UNIT, rounding=ROUND_HALF_UP))


def compute_composite(
    on_chain: int,
    off_chain: int,
    referral: Decimal | int,
    weights: ScoreWeights,
) -> int:
    weighted = round_half_up(
        Decimal(on_chain) * weights.on_chain_weight
        + Decimal(off_chain) * weights.off_chain_weight
    )
    total = round_half_up(Decimal(weighted) + Decimal(referral))
    return max(COMPOSITE_MIN, min(COMPOSITE_MAX, total))


def clamp_component(base: int, adjustment: int = 0) -> int:
    """Adjusted on/off-chain component.

    A real base signal keeps the component in the bureau range
    [300, 850]; without one it may sit anywhere in [0, 850].
    """
    floor = NO_SIGNAL if base == NO_SIGNAL else SCORE_MIN
    return max(floor, min(SCORE_MAX, base + adjustment))


def recompute(record: ScoreRecord, weights: ScoreWeights, now: int) -> ScoreRecord:
    """Rebuild the derived fields of a score record from its inputs.

    Adjustments are stored saturated (component minus base), so headroom
    past a bound never absorbs a later change in the other direction.
    """
    onchain = clamp_component(record.onchain_portfolio, record.onchain_adjustment)
    offchain = clamp_component(record.offchain_attested, record.offchain_adjustment)
    return record.model_copy(update={
        "onchain_adjustment": onchain - record.onchain_portfolio,
        "offchain_adjustment": offchain - record.offchain_attested,
        "onchain_score": onchain,
        "offchain_score": offchain,
        "composite_score": compute_composite(onchain, offchain, record.referral_score, weights),
        "last_updated": now,
    })


def verify_record(record: ScoreRecord, weights: ScoreWeights) -> bool:
    """True when the stored composite matches a fresh computation."""
    return record.composite_score == compute_composite(
        record.onchain_score, record.offchain_score, record.referral_score, weights
    )
