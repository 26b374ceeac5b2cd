"""
DeviceStateMachine: per-device Locked / Unlocked(until) with lazy expiry.

No background timer: every read reconciles an expired unlock window back to
Locked (compare-and-swap) before returning, so callers never see a stale Unlocked.
"""
import logging
import time
from enum import Enum
from typing import Callable

from pydantic import BaseModel

from paygate.services.store import KeyValueStore

logger = logging.getLogger(__name__)


class LockState(str, Enum):
    LOCKED = "locked"
    UNLOCKED = "unlocked"


class DeviceState(BaseModel):
    device_id: str
    lock_state: LockState = LockState.LOCKED
    unlock_expires_at: float | None = None

    model_config = {"frozen": True}


class DeviceStatus(BaseModel):
    device_id: str
    lock_state: LockState
    unlock_expires_at: float | None
    remaining_ms: int

    model_config = {"frozen": True}


class DeviceStateMachine:
    def __init__(self, store: KeyValueStore, clock: Callable[[], float] = time.time) -> None:
        self.store = store
        self._clock = clock

    def _key(self, device_id: str) -> str:
        return f"device:{device_id}"

    def unlock(self, device_id: str, duration_seconds: float) -> float:
        """Unlock for duration_seconds from now. Replaces any running window."""
        if duration_seconds <= 0:
            raise ValueError("duration_seconds must be positive")
        until = self._clock() + duration_seconds
        state = DeviceState(device_id=device_id, lock_state=LockState.UNLOCKED, unlock_expires_at=until)
        self.store.set(self._key(device_id), state.model_dump_json())
        logger.info("device_unlocked", extra={"device_id": device_id, "command": "unlock"})
        return until

    def lock(self, device_id: str) -> None:
        state = DeviceState(device_id=device_id)
        self.store.set(self._key(device_id), state.model_dump_json())
        logger.info("device_locked", extra={"device_id": device_id, "command": "lock"})

    def read(self, device_id: str) -> DeviceStatus:
        key = self._key(device_id)
        while True:
            raw = self.store.get(key)
            if raw is None:
                initial = DeviceState(device_id=device_id)
                # Lazily created; a concurrent unlock may win, then re-read
                if self.store.set_if_absent(key, initial.model_dump_json()):
                    return self._status(initial)
                continue

            state = DeviceState.model_validate_json(raw)
            now = self._clock()
            if (
                state.lock_state == LockState.UNLOCKED
                and state.unlock_expires_at is not None
                and now >= state.unlock_expires_at
            ):
                relocked = DeviceState(device_id=device_id)
                if self.store.compare_and_swap(key, raw, relocked.model_dump_json()):
                    logger.info("device_relocked_on_expiry", extra={"device_id": device_id})
                    return self._status(relocked)
                # State changed under us (new unlock or lock), reconcile again
                continue

            return self._status(state)

    def _status(self, state: DeviceState) -> DeviceStatus:
        remaining_ms = 0
        if state.lock_state == LockState.UNLOCKED and state.unlock_expires_at is not None:
            remaining_ms = max(0, int((state.unlock_expires_at - self._clock()) * 1000))
        return DeviceStatus(
            device_id=state.device_id,
            lock_state=state.lock_state,
            unlock_expires_at=state.unlock_expires_at if state.lock_state == LockState.UNLOCKED else None,
            remaining_ms=remaining_ms,
        )
