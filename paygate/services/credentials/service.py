"""
SessionCredentialIssuer: signed, expiring, device-scoped bearer credentials (HS256 JWT).

The issuer checks signature, expiry and token type only. Matching the deviceId claim
against the device being commanded is the gateway's job.
There is no revocation list: a credential is valid until exp.
"""
import logging
import secrets
import time
from typing import Callable

import jwt
from pydantic import BaseModel

from paygate.core.config import settings
from paygate.core.errors import CredentialExpired, InvalidCredential, WrongCredentialType
from paygate.utils.addresses import normalize_address
from paygate.utils.metrics import credentials_issued_total

logger = logging.getLogger(__name__)

CREDENTIAL_TYPE = "device-session"
REQUIRED_CLAIMS = ["sub", "deviceId", "scope", "iat", "exp", "typ"]


class SessionClaims(BaseModel):
    wallet_address: str
    device_id: str
    scope: list[str]
    issued_at: int
    expires_at: int
    unlock_seconds: int = 0
    jti: str | None = None

    model_config = {"frozen": True}

    def allows(self, command: str) -> bool:
        return command in self.scope


class SessionCredential(BaseModel):
    token: str
    claims: SessionClaims

    model_config = {"frozen": True}


class SessionCredentialIssuer:
    def __init__(
        self,
        secret: str | None = None,
        algorithm: str | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._secret = secret or settings.session_secret
        self._algorithm = algorithm or settings.session_algorithm
        self._clock = clock

    def issue(
        self,
        wallet_address: str,
        device_id: str,
        scope: list[str],
        ttl_seconds: int,
        unlock_seconds: int = 0,
    ) -> SessionCredential:
        now = int(self._clock())
        claims = SessionClaims(
            wallet_address=normalize_address(wallet_address),
            device_id=device_id,
            scope=list(scope),
            issued_at=now,
            expires_at=now + ttl_seconds,
            unlock_seconds=unlock_seconds,
            jti=secrets.token_urlsafe(12),
        )
        body = {
            "sub": claims.wallet_address,
            "deviceId": claims.device_id,
            "scope": " ".join(claims.scope),
            "unlockSeconds": claims.unlock_seconds,
            "iat": claims.issued_at,
            "exp": claims.expires_at,
            "jti": claims.jti,
            "typ": CREDENTIAL_TYPE,
        }
        token = jwt.encode(body, self._secret, algorithm=self._algorithm)
        credentials_issued_total.labels(device_id=device_id).inc()
        logger.info(
            "credential_issued",
            extra={"device_id": device_id, "wallet": claims.wallet_address},
        )
        return SessionCredential(token=token, claims=claims)

    def validate(self, token: str) -> SessionClaims:
        """Raises InvalidCredential, CredentialExpired or WrongCredentialType."""
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                # exp is checked against the injected clock below
                options={"require": REQUIRED_CLAIMS, "verify_exp": False, "verify_iat": False},
            )
        except jwt.InvalidTokenError as e:
            logger.warning("credential_rejected", extra={"error": type(e).__name__})
            raise InvalidCredential("Invalid session credential")

        if payload.get("typ") != CREDENTIAL_TYPE:
            raise WrongCredentialType("Not a device session credential")

        if int(payload["exp"]) <= int(self._clock()):
            raise CredentialExpired("Session credential expired")

        return SessionClaims(
            wallet_address=payload["sub"],
            device_id=payload["deviceId"],
            scope=str(payload["scope"]).split(),
            issued_at=int(payload["iat"]),
            expires_at=int(payload["exp"]),
            unlock_seconds=int(payload.get("unlockSeconds") or 0),
            jti=payload.get("jti"),
        )
