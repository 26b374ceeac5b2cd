from pydantic import Field

from paygate.schemas.payments import WireModel


class DeviceResponse(WireModel):
    device_id: str
    name: str
    model: str
    kind: str
    capabilities: list[str]
    description: str = ""


class CommandRequest(WireModel):
    minutes: int | None = Field(None, gt=0)


class CommandResponse(WireModel):
    success: bool = True
    action: str
    device_id: str
    timestamp: int
    session_expires_at: int
    lock_state: str | None = None
    unlock_expires_at: int | None = None


class SessionInfo(WireModel):
    wallet_address: str
    expires_at: int
    scope: list[str]


class DeviceStatusResponse(WireModel):
    device_id: str
    lock_state: str
    remaining_ms: int
    unlock_expires_at: int | None = None
    session: SessionInfo | None = None
