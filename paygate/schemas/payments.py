from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    """camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ChallengeRequest(WireModel):
    device_id: str = Field(..., min_length=1)
    wallet_address: str = Field(..., min_length=1)


class ChallengeResponse(WireModel):
    challenge_id: str
    nonce: str
    expires_at: int = Field(..., description="Epoch milliseconds")


class UnlockQuoteRequest(WireModel):
    device_id: str = Field(..., min_length=1)
    minutes: int | None = None
    payment_method: str | None = None


class VerifyRequest(WireModel):
    device_id: str = Field(..., min_length=1)
    wallet_address: str = Field(..., min_length=1)
    challenge_id: str = Field(..., min_length=1)
    # Transaction id for transaction-based methods; omitted for balance checks
    proof: str | None = None
    payment_method: str | None = None
    minutes: int | None = None


class VerifyResponse(WireModel):
    verified: bool = True
    session_credential: str
    expires_at: int = Field(..., description="Epoch milliseconds")
    device_id: str
    payment_method: str
    reason: str
