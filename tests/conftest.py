"""
Shared fixtures: a controllable clock, an engine over a static chain
reader, and a running API client.
"""

import pytest
from fastapi.testclient import TestClient

from backend.config import Settings
from backend.main import create_app
from referral_network.engine import CreditNetworkEngine
from scoring.chain_reader import StaticChainReader
from scoring.models import EngineConfig, WalletSignals

START = 1_700_000_000

WALLET_A = "0x" + "a1" * 20
WALLET_B = "0x" + "b2" * 20
WALLET_C = "0x" + "c3" * 20

# 300 + 150 + 100 + 25 + 100 + 100 + 30 = 805
STRONG = WalletSignals(
    balance_eth=150.0, wallet_age_days=900, transaction_count=1200,
    protocol_interactions=60, unique_counterparties=15, recent_transactions_30d=12,
)
# 300 + 75 + 80 + 15 + 75 + 40 + 10 = 595
MEDIUM = WalletSignals(
    balance_eth=5.0, wallet_age_days=400, transaction_count=120,
    protocol_interactions=8, unique_counterparties=6, recent_transactions_30d=4,
)


class FakeClock:
    def __init__(self, now: int = START) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: int) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def reader():
    return StaticChainReader({WALLET_A: STRONG, WALLET_B: MEDIUM})


@pytest.fixture
def engine(clock, reader):
    engine = CreditNetworkEngine(config=EngineConfig(), chain_reader=reader, clock=clock)
    yield engine
    engine.close()


@pytest.fixture
def alice(engine):
    return engine.register_identity("alice@test.com", "Alice", "Smith")


@pytest.fixture
def chain(engine, clock):
    """Alice → Bob → Charlie, built through accepted invitations."""
    alice = engine.register_identity("alice@test.com", "Alice", "Smith")
    invite = engine.create_invitation(alice.identity_id, "bob@test.com")
    engine.accept_invitation(invite.token, "bob@test.com")
    bob = engine.register_identity("bob@test.com", "Bob", "Jones")
    clock.advance(1)
    invite = engine.create_invitation(bob.identity_id, "charlie@test.com")
    engine.accept_invitation(invite.token, "charlie@test.com")
    charlie = engine.register_identity("charlie@test.com", "Charlie", "Brown")
    return alice, bob, charlie


@pytest.fixture
def client(reader):
    app = create_app(Settings(demo_mode=True), chain_reader=reader)
    with TestClient(app) as client:
        yield client
