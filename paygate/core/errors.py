"""
Error taxonomy of the access gateway.
Every error carries the HTTP status it maps to; the API layer renders them via one handler.
"""
from typing import Any


class GatewayError(Exception):
    """Base error: status_code + machine-readable code + human message."""

    status_code = 500
    code = "internal_error"

    def __init__(self, message: str = "", **detail: Any) -> None:
        super().__init__(message or self.code)
        self.message = message or self.code
        self.detail = detail

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.code, "message": self.message, **self.detail}


# ----- 400 -----


class ValidationError(GatewayError):
    status_code = 400
    code = "validation_error"


# ----- 404 -----


class NotFound(GatewayError):
    status_code = 404
    code = "not_found"


class DeviceNotFound(NotFound):
    code = "device_not_found"


class ChallengeNotFound(NotFound):
    code = "challenge_not_found"


# ----- 402 -----


class PaymentRequired(GatewayError):
    """Verification failed. detail holds the payment descriptor so the client can retry."""

    status_code = 402
    code = "payment_required"

    def to_dict(self) -> dict[str, Any]:
        return {"verified": False, "error": self.code, "message": self.message, **self.detail}


# ----- 401 / 403 -----


class Unauthorized(GatewayError):
    status_code = 401
    code = "unauthorized"


class ChallengeMismatch(Unauthorized):
    code = "challenge_mismatch"


class MissingCredential(Unauthorized):
    code = "missing_credential"


class InvalidCredential(Unauthorized):
    code = "invalid_credential"


class CredentialExpired(Unauthorized):
    code = "credential_expired"


class WrongCredentialType(Unauthorized):
    code = "wrong_credential_type"


class Forbidden(GatewayError):
    status_code = 403
    code = "forbidden"


class WrongDevice(Forbidden):
    code = "wrong_device"


class CommandNotPermitted(Forbidden):
    code = "command_not_permitted"


class SessionExhausted(Forbidden):
    """The purchased unlock time of this credential is used up."""

    code = "session_exhausted"


# ----- 409 / 410 -----


class Conflict(GatewayError):
    status_code = 409
    code = "conflict"


class ChallengeConsumed(Conflict):
    code = "challenge_consumed"


class ProofReused(Conflict):
    code = "proof_reused"


class CommandAlreadyUsed(Conflict):
    code = "command_already_used"


class Gone(GatewayError):
    status_code = 410
    code = "gone"


class ChallengeExpired(Gone):
    code = "challenge_expired"
