"""
Device routes: catalog lookup, status (lazy relock applied) and gated commands.
"""
from fastapi import APIRouter, Body, Depends

from paygate.api.deps import get_bearer_token, get_gateway, to_ms
from paygate.schemas.devices import (
    CommandRequest,
    CommandResponse,
    DeviceResponse,
    DeviceStatusResponse,
    SessionInfo,
)
from paygate.services.gateway import AccessGateway

router = APIRouter(prefix="/api/devices", tags=["devices"])


@router.get("/{device_id}", response_model=DeviceResponse)
def get_device(device_id: str, gateway: AccessGateway = Depends(get_gateway)):
    device = gateway.get_device(device_id)
    return DeviceResponse(
        device_id=device.device_id,
        name=device.name,
        model=device.model,
        kind=device.kind,
        capabilities=device.capabilities,
        description=device.description,
    )


@router.get("/{device_id}/state", response_model=DeviceStatusResponse, response_model_exclude_none=True)
def get_device_state(
    device_id: str,
    token: str | None = Depends(get_bearer_token),
    gateway: AccessGateway = Depends(get_gateway),
):
    """Current lock state. A valid bearer for this device adds the session block."""
    result = gateway.status(device_id, token)
    session = None
    if result.session is not None:
        session = SessionInfo(
            wallet_address=result.session.wallet_address,
            expires_at=result.session.expires_at * 1000,
            scope=result.session.scope,
        )
    return DeviceStatusResponse(
        device_id=device_id,
        lock_state=result.status.lock_state.value,
        remaining_ms=result.status.remaining_ms,
        unlock_expires_at=to_ms(result.status.unlock_expires_at),
        session=session,
    )


@router.post("/{device_id}/{command}", response_model=CommandResponse, response_model_exclude_none=True)
def execute_command(
    device_id: str,
    command: str,
    body: CommandRequest | None = Body(None),
    token: str | None = Depends(get_bearer_token),
    gateway: AccessGateway = Depends(get_gateway),
):
    """lock / unlock / brew, authorized by the session credential for this device."""
    minutes = body.minutes if body else None
    result = gateway.execute(device_id, command, token, minutes=minutes)
    status = result.status
    return CommandResponse(
        action=result.command,
        device_id=result.device_id,
        timestamp=to_ms(result.timestamp),
        session_expires_at=result.session_expires_at * 1000,
        lock_state=status.lock_state.value if status else None,
        unlock_expires_at=to_ms(status.unlock_expires_at) if status else None,
    )
