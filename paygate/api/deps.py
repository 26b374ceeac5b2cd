"""
FastAPI dependencies: the process-wide AccessGateway and bearer token extraction.
Tests replace get_gateway through app.dependency_overrides.
"""
from functools import lru_cache

from fastapi import Header

from paygate.core.config import settings
from paygate.devices.catalog import DeviceDirectory
from paygate.devices.state_machine import DeviceStateMachine
from paygate.devices.transport import LoggingTransport
from paygate.services.challenges.service import ChallengeStore
from paygate.services.credentials.service import SessionCredentialIssuer
from paygate.services.gateway import AccessGateway
from paygate.services.payments import ChainAdapterFactory, PaymentVerifier, build_payment_methods
from paygate.services.store import KeyValueStore, create_store


@lru_cache
def get_store() -> KeyValueStore:
    return create_store()


@lru_cache
def get_gateway() -> AccessGateway:
    store = get_store()
    methods = build_payment_methods(settings)
    adapters = ChainAdapterFactory.create_from_settings(settings, methods)
    return AccessGateway(
        directory=DeviceDirectory(),
        challenges=ChallengeStore(store),
        verifier=PaymentVerifier(adapters, store),
        issuer=SessionCredentialIssuer(),
        devices=DeviceStateMachine(store),
        transport=LoggingTransport(),
        store=store,
        methods=methods,
        session_ttl_seconds=settings.session_ttl_seconds,
    )


def get_bearer_token(authorization: str | None = Header(None)) -> str | None:
    """Extract and clean the bearer token from the Authorization header."""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def to_ms(seconds: float | None) -> int | None:
    return int(seconds * 1000) if seconds is not None else None
