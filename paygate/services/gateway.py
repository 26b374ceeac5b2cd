"""
AccessGateway: orchestrates challenge -> verify -> credential -> device command.

The only component that knows all others; none of them calls back into it.
Failures are raised as paygate.core.errors.GatewayError subclasses.
"""
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable

from paygate.core.errors import (
    CommandAlreadyUsed,
    CommandNotPermitted,
    DeviceNotFound,
    Forbidden,
    MissingCredential,
    PaymentRequired,
    ProofReused,
    SessionExhausted,
    Unauthorized,
    ValidationError,
    WrongDevice,
)
from paygate.devices.catalog import DeviceDirectory, DeviceInfo
from paygate.devices.state_machine import DeviceStateMachine, DeviceStatus
from paygate.devices.transport import DeviceTransport
from paygate.services.challenges.service import Challenge, ChallengeStore
from paygate.services.credentials.service import (
    SessionClaims,
    SessionCredential,
    SessionCredentialIssuer,
)
from paygate.services.payments import (
    PaymentMethod,
    PaymentProof,
    PaymentRequirement,
    PaymentVerifier,
    ProofKind,
    VerificationReason,
    build_requirement,
    resolve_method,
)
from paygate.services.payments.pricing import price_for, resolve_minutes
from paygate.services.store import KeyValueStore
from paygate.utils.metrics import device_commands_total

logger = logging.getLogger(__name__)

COMMANDS = ("lock", "unlock", "brew")


@dataclass(frozen=True)
class IssuedSession:
    credential: SessionCredential
    method: PaymentMethod
    requirement: PaymentRequirement
    reason: VerificationReason


@dataclass(frozen=True)
class CommandResult:
    device_id: str
    command: str
    timestamp: float
    session_expires_at: int
    status: DeviceStatus | None = None


@dataclass(frozen=True)
class StatusResult:
    status: DeviceStatus
    session: SessionClaims | None = None


class AccessGateway:
    def __init__(
        self,
        directory: DeviceDirectory,
        challenges: ChallengeStore,
        verifier: PaymentVerifier,
        issuer: SessionCredentialIssuer,
        devices: DeviceStateMachine,
        transport: DeviceTransport,
        store: KeyValueStore,
        methods: dict[str, PaymentMethod],
        session_ttl_seconds: int,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.directory = directory
        self.challenges = challenges
        self.verifier = verifier
        self.issuer = issuer
        self.devices = devices
        self.transport = transport
        self.store = store
        self.methods = methods
        self.session_ttl_seconds = session_ttl_seconds
        self._clock = clock

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get_device(self, device_id: str) -> DeviceInfo:
        device = self.directory.lookup(device_id)
        if device is None:
            raise DeviceNotFound(f"Unknown device: {device_id}", deviceId=device_id)
        return device

    # ------------------------------------------------------------------
    # Payment flow
    # ------------------------------------------------------------------

    def request_challenge(self, device_id: str, wallet_address: str) -> Challenge:
        if not wallet_address or not wallet_address.strip():
            raise ValidationError("walletAddress is required")
        self.get_device(device_id)
        return self.challenges.create(device_id, wallet_address)

    def payment_requirement(
        self, device_id: str, payment_method: str | None = None, minutes: int | None = None
    ) -> tuple[PaymentMethod, PaymentRequirement, int]:
        """(method, requirement, purchased minutes) for this device and purchase."""
        device = self.get_device(device_id)
        method = resolve_method(self.methods, payment_method)
        purchased = resolve_minutes(device, minutes)
        requirement = build_requirement(method, price_for(device, purchased))
        return method, requirement, purchased

    def verify_and_issue(
        self,
        device_id: str,
        wallet_address: str,
        challenge_id: str,
        proof: str | None,
        payment_method: str | None = None,
        minutes: int | None = None,
    ) -> IssuedSession:
        if not wallet_address or not challenge_id:
            raise ValidationError("walletAddress and challengeId are required")
        device = self.get_device(device_id)
        # Validate the purchase before burning the challenge
        method, requirement, purchased = self.payment_requirement(device_id, payment_method, minutes)
        if method.proof_kind == ProofKind.TRANSACTION and not (proof and proof.strip()):
            raise ValidationError("proof (transaction id) is required for this payment method")

        challenge = self.challenges.consume(challenge_id, wallet_address, device_id)

        payment_proof = PaymentProof(
            kind=method.proof_kind,
            value=proof.strip() if method.proof_kind == ProofKind.TRANSACTION else challenge.wallet_address,
        )
        result = self.verifier.verify(
            method,
            payment_proof,
            requirement,
            context={"deviceId": device_id, "wallet": challenge.wallet_address},
        )

        if result.reason == VerificationReason.PROOF_REUSED:
            raise ProofReused(result.message, reason=result.reason.value)
        if not result.verified:
            raise PaymentRequired(
                result.message or "Payment not verified",
                reason=result.reason.value,
                **requirement.descriptor(method.tag),
            )

        unlock_seconds = purchased * 60
        credential = self.issuer.issue(
            wallet_address=challenge.wallet_address,
            device_id=device.device_id,
            scope=list(device.capabilities),
            ttl_seconds=max(self.session_ttl_seconds, unlock_seconds),
            unlock_seconds=unlock_seconds,
        )
        return IssuedSession(credential=credential, method=method, requirement=requirement, reason=result.reason)

    # ------------------------------------------------------------------
    # Device commands
    # ------------------------------------------------------------------

    def authorize(self, device_id: str, token: str | None) -> SessionClaims:
        if not token:
            raise MissingCredential("Bearer session credential required")
        claims = self.issuer.validate(token)
        if claims.device_id != device_id:
            raise WrongDevice("Credential was issued for a different device", deviceId=device_id)
        return claims

    def execute(
        self, device_id: str, command: str, token: str | None, minutes: int | None = None
    ) -> CommandResult:
        device = self.get_device(device_id)
        if command not in COMMANDS:
            raise ValidationError(f"Unknown command: {command}")
        try:
            claims = self.authorize(device_id, token)
        except (Unauthorized, Forbidden):
            device_commands_total.labels(command=command, status="unauthorized").inc()
            raise
        if not device.supports(command) or not claims.allows(command):
            device_commands_total.labels(command=command, status="forbidden").inc()
            raise CommandNotPermitted(f"Command '{command}' not permitted on {device_id}")

        try:
            status = self._apply(device, command, claims, minutes)
        except (SessionExhausted, CommandAlreadyUsed):
            device_commands_total.labels(command=command, status="rejected").inc()
            raise
        self._send(device_id, command, {"minutes": minutes} if minutes else None)
        device_commands_total.labels(command=command, status="success").inc()
        return CommandResult(
            device_id=device_id,
            command=command,
            timestamp=self._clock(),
            session_expires_at=claims.expires_at,
            status=status,
        )

    def _apply(
        self, device: DeviceInfo, command: str, claims: SessionClaims, minutes: int | None
    ) -> DeviceStatus | None:
        if command == "lock":
            self.devices.lock(device.device_id)
            return self.devices.read(device.device_id)
        if command == "unlock":
            if minutes is not None and (isinstance(minutes, bool) or minutes <= 0):
                raise ValidationError("minutes must be a positive integer")
            now = self._clock()
            purchased = claims.unlock_seconds or self.session_ttl_seconds
            requested = minutes * 60 if minutes else purchased
            # The purchased window is absolute: it starts at the first unlock of this
            # credential and later unlocks only spend what is left of it.
            ends_at = min(self._unlock_started_at(claims, now) + purchased, claims.expires_at)
            window = min(requested, ends_at - now)
            if window <= 0:
                raise SessionExhausted("No unlock time left in this session", deviceId=device.device_id)
            self.devices.unlock(device.device_id, window)
            return self.devices.read(device.device_id)
        # brew is a one-shot action with no lock state, paid once per credential
        claimed = self.store.set_if_absent(
            f"brew:{self._session_id(claims)}",
            str(int(self._clock())),
            ttl_seconds=self._session_ttl(claims),
        )
        if not claimed:
            raise CommandAlreadyUsed("This session already brewed", deviceId=device.device_id)
        return None

    def _session_id(self, claims: SessionClaims) -> str:
        return claims.jti or f"{claims.device_id}:{claims.wallet_address}:{claims.issued_at}"

    def _session_ttl(self, claims: SessionClaims) -> int:
        return max(1, int(claims.expires_at - self._clock()))

    def _unlock_started_at(self, claims: SessionClaims, now: float) -> float:
        """Start of the purchased window; the first unlock of the credential sets it."""
        key = f"unlock-start:{self._session_id(claims)}"
        if self.store.set_if_absent(key, repr(now), ttl_seconds=self._session_ttl(claims)):
            return now
        started = self.store.get(key)
        return float(started) if started is not None else now

    def _send(self, device_id: str, command: str, params: dict[str, Any] | None) -> None:
        """Fire-and-forget: a failed send is logged, device state is left as is."""
        try:
            self.transport.send(device_id, command, params)
        except Exception as e:
            logger.error(
                "device_transport_failed",
                extra={"device_id": device_id, "command": command, "error": type(e).__name__},
            )

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def status(self, device_id: str, token: str | None = None) -> StatusResult:
        self.get_device(device_id)
        status = self.devices.read(device_id)
        session = None
        if token:
            try:
                session = self.authorize(device_id, token)
            except (Unauthorized, Forbidden):
                # status stays public; a bad bearer just hides the session block
                session = None
        return StatusResult(status=status, session=session)
