"""
Static device catalog: deviceId -> name, model, capabilities, price.
Plain data; the gateway only needs lookup().
"""
from pydantic import BaseModel


class DeviceInfo(BaseModel):
    device_id: str
    name: str
    model: str
    kind: str  # lock, brewer
    capabilities: list[str]
    # Price of one "brew" in token units (decimal string); lock devices use the unlock tiers
    brew_price: str | None = None
    description: str = ""

    model_config = {"frozen": True}

    def supports(self, command: str) -> bool:
        return command in self.capabilities

    @property
    def is_timed(self) -> bool:
        """Timed devices sell unlock windows; the rest sell single actions."""
        return "unlock" in self.capabilities


DEFAULT_DEVICES: tuple[DeviceInfo, ...] = (
    DeviceInfo(
        device_id="X402-LOCK-001",
        name="Smart Lock",
        model="TSE-X Lock v1",
        kind="lock",
        capabilities=["lock", "unlock"],
        description="Door lock unlocked for a paid time window",
    ),
    DeviceInfo(
        device_id="X402-BIKE-001",
        name="Bike Lock",
        model="TSE-X Bike v1",
        kind="lock",
        capabilities=["lock", "unlock"],
        description="TSE-X bike rental",
    ),
    DeviceInfo(
        device_id="X402-COFFEE-001",
        name="Coffee Brewer",
        model="TSE-X Brew v1",
        kind="brewer",
        capabilities=["brew"],
        brew_price="0.50",
        description="One paid brew per session",
    ),
)


class DeviceDirectory:
    def __init__(self, devices: tuple[DeviceInfo, ...] | list[DeviceInfo] = DEFAULT_DEVICES) -> None:
        self._devices = {d.device_id: d for d in devices}

    def lookup(self, device_id: str) -> DeviceInfo | None:
        return self._devices.get(device_id)

    def all(self) -> list[DeviceInfo]:
        return list(self._devices.values())

