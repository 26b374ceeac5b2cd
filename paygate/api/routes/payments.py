"""
Payment routes: challenge issuance, x402-style unlock quote, payment verification.
"""
from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse

from paygate.api.deps import get_gateway, to_ms
from paygate.schemas.payments import (
    ChallengeRequest,
    ChallengeResponse,
    UnlockQuoteRequest,
    VerifyRequest,
    VerifyResponse,
)
from paygate.services.gateway import AccessGateway

router = APIRouter(prefix="/api", tags=["payments"])

X402_VERSION = "1"


@router.post("/payments/challenge", response_model=ChallengeResponse)
def request_challenge(
    body: ChallengeRequest = Body(...),
    gateway: AccessGateway = Depends(get_gateway),
):
    """Issue a single-use challenge for (deviceId, walletAddress)."""
    challenge = gateway.request_challenge(body.device_id, body.wallet_address)
    return ChallengeResponse(
        challenge_id=challenge.id,
        nonce=challenge.nonce,
        expires_at=to_ms(challenge.expires_at),
    )


@router.post("/unlock-request", status_code=402)
def unlock_request(
    body: UnlockQuoteRequest = Body(...),
    gateway: AccessGateway = Depends(get_gateway),
):
    """
    x402 payment request: always answers 402 with what to pay, to whom, on which chain.
    The client pays, then calls /payments/verify with a challenge and the proof.
    """
    method, requirement, minutes = gateway.payment_requirement(body.device_id, body.payment_method, body.minutes)
    return JSONResponse(
        status_code=402,
        content={
            "version": X402_VERSION,
            **requirement.descriptor(method.tag),
            "metadata": {"deviceId": body.device_id, "minutes": minutes},
        },
    )


@router.post("/payments/verify", response_model=VerifyResponse)
def verify_payment(
    body: VerifyRequest = Body(...),
    gateway: AccessGateway = Depends(get_gateway),
):
    """Consume the challenge, verify the payment and issue a device session credential."""
    issued = gateway.verify_and_issue(
        device_id=body.device_id,
        wallet_address=body.wallet_address,
        challenge_id=body.challenge_id,
        proof=body.proof,
        payment_method=body.payment_method,
        minutes=body.minutes,
    )
    return VerifyResponse(
        session_credential=issued.credential.token,
        expires_at=issued.credential.claims.expires_at * 1000,
        device_id=issued.credential.claims.device_id,
        payment_method=issued.method.tag,
        reason=issued.reason.value,
    )
