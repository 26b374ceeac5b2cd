"""
ChallengeStore: single-use, time-limited challenges keyed by challenge id.

Lifecycle:
1. create() stores a fresh record (consumed=False)
2. consume() flips consumed False -> True exactly once via compare-and-swap
3. the record stays around for challenge_retention_seconds after expiry, then the store drops it
"""
import logging
import secrets
import time
from typing import Callable

from pydantic import BaseModel

from paygate.core.config import settings
from paygate.core.errors import (
    ChallengeConsumed,
    ChallengeExpired,
    ChallengeMismatch,
    ChallengeNotFound,
)
from paygate.services.store import KeyValueStore
from paygate.utils.addresses import normalize_address
from paygate.utils.metrics import challenge_rejections_total, challenges_issued_total

logger = logging.getLogger(__name__)


class Challenge(BaseModel):
    id: str
    device_id: str
    wallet_address: str
    nonce: str
    created_at: float
    expires_at: float
    consumed: bool = False

    model_config = {"frozen": True}


class ChallengeStore:
    def __init__(
        self,
        store: KeyValueStore,
        ttl_seconds: int | None = None,
        retention_seconds: int | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.store = store
        self.ttl_seconds = ttl_seconds or settings.challenge_ttl_seconds
        self.retention_seconds = (
            retention_seconds if retention_seconds is not None else settings.challenge_retention_seconds
        )
        self._clock = clock

    def _key(self, challenge_id: str) -> str:
        return f"challenge:{challenge_id}"

    def create(self, device_id: str, wallet_address: str) -> Challenge:
        now = self._clock()
        challenge = Challenge(
            id=secrets.token_urlsafe(16),
            device_id=device_id,
            wallet_address=normalize_address(wallet_address),
            nonce=secrets.token_hex(32),
            created_at=now,
            expires_at=now + self.ttl_seconds,
        )
        self.store.set(
            self._key(challenge.id),
            challenge.model_dump_json(),
            ttl_seconds=self.ttl_seconds + self.retention_seconds,
        )
        challenges_issued_total.labels(device_id=device_id).inc()
        logger.info(
            "challenge_issued",
            extra={"challenge_id": challenge.id, "device_id": device_id, "wallet": challenge.wallet_address},
        )
        return challenge

    def get(self, challenge_id: str) -> Challenge | None:
        raw = self.store.get(self._key(challenge_id))
        return Challenge.model_validate_json(raw) if raw else None

    def consume(self, challenge_id: str, wallet_address: str, device_id: str) -> Challenge:
        """
        Mark the challenge consumed. Only one concurrent caller can succeed.

        Raises ChallengeNotFound, ChallengeConsumed, ChallengeMismatch or ChallengeExpired.
        """
        key = self._key(challenge_id)
        raw = self.store.get(key)
        if not raw:
            self._reject("not_found", challenge_id)
            raise ChallengeNotFound("Unknown challenge", challengeId=challenge_id)

        challenge = Challenge.model_validate_json(raw)
        if challenge.consumed:
            self._reject("consumed", challenge_id)
            raise ChallengeConsumed("Challenge already used", challengeId=challenge_id)

        if challenge.device_id != device_id or challenge.wallet_address != normalize_address(wallet_address):
            self._reject("mismatch", challenge_id)
            raise ChallengeMismatch("Challenge was issued for a different device or wallet")

        if self._clock() > challenge.expires_at:
            self._reject("expired", challenge_id)
            raise ChallengeExpired("Challenge expired, request a new one", challengeId=challenge_id)

        consumed = challenge.model_copy(update={"consumed": True})
        if not self.store.compare_and_swap(key, raw, consumed.model_dump_json()):
            # Lost the race against a concurrent consumer
            self._reject("consumed", challenge_id)
            raise ChallengeConsumed("Challenge already used", challengeId=challenge_id)

        logger.info(
            "challenge_consumed",
            extra={"challenge_id": challenge_id, "device_id": device_id, "wallet": challenge.wallet_address},
        )
        return consumed

    def _reject(self, reason: str, challenge_id: str) -> None:
        challenge_rejections_total.labels(reason=reason).inc()
        logger.warning("challenge_rejected", extra={"challenge_id": challenge_id, "reason": reason})
