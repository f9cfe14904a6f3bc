"""
tests/test_scoring.py

Unit tests for the scoring package:
- Wallet signal scoring and portfolio aggregation
- Composite formula, rounding and clamping
- Engine configuration (weights, decay rates, event policies)
"""

from decimal import Decimal

import pytest
from pydantic import ValidationError as PydanticValidationError

from scoring.composite import clamp_component, compute_composite, recompute, round_half_up, verify_record
from scoring.models import CreditEventType, EngineConfig, ScoreRecord, ScoreWeights, WalletSignals
from scoring.onchain import OnChainScoreCalculator, aggregate_scores, score_signals
from scoring.rules import credit_band, tier_points
from scoring.chain_reader import StaticChainReader
from tests.conftest import MEDIUM, STRONG, WALLET_A


# ============================================================================
# On-chain scoring
# ============================================================================

class TestWalletScoring:
    def test_empty_wallet_scores_floor(self):
        assert score_signals(WalletSignals()) == 300

    def test_strong_wallet(self):
        assert score_signals(STRONG) == 805

    def test_medium_wallet(self):
        assert score_signals(MEDIUM) == 595

    def test_dormant_wallet_penalized(self):
        dormant = WalletSignals(balance_eth=0.5, wallet_age_days=400, transaction_count=1)
        # 300 + 50 + 20 + 75 - 10
        assert score_signals(dormant) == 435
        # 300 + 25 - 10
        assert score_signals(WalletSignals(wallet_age_days=40)) == 315

    def test_score_never_exceeds_ceiling(self):
        whale = STRONG.model_copy(update={"balance_eth": 10_000.0})
        assert score_signals(whale) <= 850

    def test_tier_points_first_match(self):
        tiers = ((100, 3), (10, 2), (1, 1))
        assert tier_points(500, tiers) == 3
        assert tier_points(10, tiers) == 2
        assert tier_points(0.5, tiers) == 0

    def test_calculator_uses_reader(self):
        calculator = OnChainScoreCalculator(StaticChainReader({"0x" + "A1" * 20: STRONG}))
        assert calculator.score_wallet(WALLET_A) == 805


class TestPortfolioAggregation:
    def test_floor_mean(self):
        assert aggregate_scores([805, 595]) == 700
        assert aggregate_scores([700, 701]) == 700

    def test_no_wallets_is_no_signal(self):
        assert aggregate_scores([]) == 0

    def test_order_independent(self):
        assert aggregate_scores([300, 850, 611]) == aggregate_scores([611, 300, 850])


# ============================================================================
# Composite
# ============================================================================

class TestComposite:
    def test_weighted_formula(self):
        weights = ScoreWeights()
        # 700 * 0.4 + 720 * 0.6 = 712
        assert compute_composite(700, 720, Decimal(0), weights) == 712

    def test_referral_added_after_weighting(self):
        assert compute_composite(700, 720, Decimal("2"), ScoreWeights()) == 714

    def test_half_up_rounding(self):
        assert round_half_up(Decimal("2.5")) == 3
        assert round_half_up(Decimal("-2.5")) == -3
        # 301 * 0.4 = 120.4
        assert compute_composite(301, 0, Decimal("0"), ScoreWeights()) == 120
        assert compute_composite(0, 0, Decimal("0.5"), ScoreWeights()) == 1

    def test_saturates_at_ceiling(self):
        assert compute_composite(850, 850, Decimal("500"), ScoreWeights()) == 1000

    def test_never_negative(self):
        assert compute_composite(0, 0, Decimal("-40"), ScoreWeights()) == 0

    def test_all_on_chain_weight(self):
        weights = ScoreWeights(on_chain_weight=1)
        assert weights.off_chain_weight == Decimal(0)
        assert compute_composite(640, 800, Decimal(0), weights) == 640

    def test_recompute_clamps_components(self):
        record = ScoreRecord(
            identity_id="0x1",
            onchain_portfolio=840,
            onchain_adjustment=50,
            offchain_attested=0,
            offchain_adjustment=-20,
        )
        record = recompute(record, ScoreWeights(), now=42)
        assert record.onchain_score == 850
        assert record.onchain_adjustment == 10
        assert record.offchain_score == 0
        assert record.offchain_adjustment == 0
        assert record.composite_score == 340
        assert record.last_updated == 42
        assert verify_record(record, ScoreWeights())

    def test_base_signal_keeps_bureau_floor(self):
        record = ScoreRecord(identity_id="0x1", onchain_portfolio=300, onchain_adjustment=-200,
                             offchain_attested=650, offchain_adjustment=-400)
        record = recompute(record, ScoreWeights(), now=1)
        assert record.onchain_score == 300
        assert record.onchain_adjustment == 0
        assert record.offchain_score == 300
        assert record.offchain_adjustment == -350

    def test_clamp_component_bounds(self):
        assert clamp_component(0, -20) == 0
        assert clamp_component(0, 40) == 40
        assert clamp_component(305, -100) == 300
        assert clamp_component(805, 100) == 850

    def test_no_drift_under_repeated_recompute(self):
        record = ScoreRecord(identity_id="0x1", onchain_portfolio=611, offchain_attested=733,
                             referral_score=Decimal("0.301"))
        first = recompute(record, ScoreWeights(), now=1)
        for _ in range(50):
            record = recompute(record, ScoreWeights(), now=1)
        assert record == first

    def test_credit_bands(self):
        assert credit_band(0) == "No Signal"
        assert credit_band(579) == "Poor"
        assert credit_band(580) == "Fair"
        assert credit_band(740) == "Very Good"
        assert credit_band(1000) == "Exceptional"


# ============================================================================
# Configuration
# ============================================================================

class TestEngineConfig:
    def test_weights_are_exact_decimals(self):
        weights = ScoreWeights(on_chain_weight=0.3)
        assert weights.on_chain_weight == Decimal("0.3")
        assert weights.off_chain_weight == Decimal("0.7")

    def test_weight_out_of_range_rejected(self):
        with pytest.raises(PydanticValidationError):
            ScoreWeights(on_chain_weight=Decimal("1.5"))

    def test_decay_rates(self):
        config = EngineConfig()
        assert config.decay_rate(1) == Decimal("0.2")
        assert config.decay_rate(2) == Decimal("0.001")
        assert config.decay_rate(7) == Decimal("0.001")

    def test_default_event_policies(self):
        config = EngineConfig()
        early = config.policy_for(CreditEventType.LOAN_PAID_EARLY)
        assert early.default_change == 10
        assert early.is_positive
        missed = config.policy_for(CreditEventType.PAYMENT_MISSED)
        assert missed.category.value == "off_chain"
        assert not missed.is_positive
