"""
Credit Scoring — Chain Readers
================================

Collaborators that supply raw wallet activity signals to the on-chain
score calculator.

Readers:
    • StaticChainReader — in-memory signals (tests, demos, replays)
    • RpcChainReader    — Ethereum JSON-RPC over httpx

Retries live here, never in the scoring engine.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Mapping, Protocol

import httpx

from scoring.models import WalletSignals

logger = logging.getLogger("scoring.chain_reader")

WEI_PER_ETH = 10**18
MAX_RETRIES = 3
RETRY_DELAY = 2  # seconds


class ChainReaderError(RuntimeError):
    """The chain could not be read after all retries."""


class ChainReader(Protocol):
    def fetch_signals(self, address: str) -> WalletSignals: ...


class StaticChainReader:
    """Serves signals from a mapping; unknown wallets have no activity."""

    def __init__(self, signals: Mapping[str, WalletSignals] | None = None) -> None:
        self._signals = {k.lower(): v for k, v in (signals or {}).items()}

    def set_signals(self, address: str, signals: WalletSignals) -> None:
        self._signals[address.lower()] = signals

    def fetch_signals(self, address: str) -> WalletSignals:
        return self._signals.get(address.lower(), WalletSignals())


class RpcChainReader:
    """Reads balance and nonce from an Ethereum JSON-RPC endpoint.

    Plain RPC exposes no history, so age, protocol and counterparty
    signals stay at zero unless an indexer-backed reader is used.
    """

    def __init__(
        self,
        rpc_url: str,
        timeout: float = 15.0,
        max_retries: int = MAX_RETRIES,
        retry_delay: float = RETRY_DELAY,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.rpc_url = rpc_url
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self._client = httpx.Client(timeout=timeout, transport=transport)
        self._request_id = 0

    def close(self) -> None:
        self._client.close()

    def fetch_signals(self, address: str) -> WalletSignals:
        balance_wei = int(self._call("eth_getBalance", [address, "latest"]), 16)
        tx_count = int(self._call("eth_getTransactionCount", [address, "latest"]), 16)
        return WalletSignals(
            balance_eth=balance_wei / WEI_PER_ETH,
            transaction_count=tx_count,
        )

    def _call(self, method: str, params: list[Any]) -> Any:
        self._request_id += 1
        payload = {"jsonrpc": "2.0", "id": self._request_id, "method": method, "params": params}

        for attempt in range(1, self.max_retries + 1):
            try:
                r = self._client.post(self.rpc_url, json=payload)
                r.raise_for_status()
                body = r.json()
                if "error" in body:
                    raise ChainReaderError(f"{method} failed: {body['error']}")
                return body["result"]
            except (httpx.HTTPError, ValueError, KeyError) as exc:
                logger.warning(
                    "%s attempt %d/%d failed: %s", method, attempt, self.max_retries, exc
                )
                if attempt < self.max_retries:
                    time.sleep(self.retry_delay)
                else:
                    raise ChainReaderError(f"{method} failed after {attempt} attempts: {exc}") from exc
