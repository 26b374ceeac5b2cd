"""
Shared fixtures. Settings are loaded at import time, so the test environment is set
before any paygate module is imported.
"""
import os

os.environ.setdefault("SESSION_SECRET", "test-session-key-0123456789abcdef0123")
os.environ.setdefault("STORE_BACKEND", "memory")
os.environ.setdefault("TESTING_MODE_ENABLED", "false")

from unittest.mock import MagicMock  # noqa: E402

import pytest  # noqa: E402


class FakeClock:
    """Manually advanced clock injected into stores, issuers and state machines."""

    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock):
    from paygate.services.store import InMemoryStore

    return InMemoryStore(clock=clock)


def usdc_receipt(*amounts: int, status: str = "0x1") -> dict:
    """eth_getTransactionReceipt result with one USDC Transfer log per amount."""
    from paygate.core.config import settings
    from paygate.services.payments.chains.evm import TRANSFER_TOPIC

    receiver_topic = "0x" + settings.base_usdc_receiver.lower()[2:].rjust(64, "0")
    sender_topic = "0x" + ("11" * 20).rjust(64, "0")
    return {
        "status": status,
        "logs": [
            {
                "address": settings.base_usdc_contract.lower(),
                "topics": [TRANSFER_TOPIC, sender_topic, receiver_topic],
                "data": hex(amount),
            }
            for amount in amounts
        ],
    }


@pytest.fixture
def chain_rpc():
    """JSON-RPC client of the Base adapter; set return_value / side_effect per test."""
    return MagicMock()


@pytest.fixture
def transport():
    return MagicMock()


@pytest.fixture
def gateway(store, clock, chain_rpc, transport):
    from paygate.core.config import settings
    from paygate.devices.catalog import DeviceDirectory
    from paygate.devices.state_machine import DeviceStateMachine
    from paygate.services.challenges.service import ChallengeStore
    from paygate.services.credentials.service import SessionCredentialIssuer
    from paygate.services.gateway import AccessGateway
    from paygate.services.payments import PaymentVerifier, build_payment_methods
    from paygate.services.payments.chains.evm import EvmChainAdapter

    return AccessGateway(
        directory=DeviceDirectory(),
        challenges=ChallengeStore(store, ttl_seconds=300, retention_seconds=600, clock=clock),
        verifier=PaymentVerifier({"base": EvmChainAdapter(chain_rpc)}, store),
        issuer=SessionCredentialIssuer(clock=clock),
        devices=DeviceStateMachine(store, clock=clock),
        transport=transport,
        store=store,
        methods=build_payment_methods(settings),
        session_ttl_seconds=1800,
        clock=clock,
    )
