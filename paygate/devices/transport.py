"""
Outbound "send command to device" step.

Fire-and-forget from the gateway's point of view: a failed send is logged and counted,
it never changes DeviceStateMachine state.
"""
import logging
from abc import ABC, abstractmethod
from typing import Any

logger = logging.getLogger(__name__)


class DeviceTransport(ABC):
    @abstractmethod
    def send(self, device_id: str, command: str, params: dict[str, Any] | None = None) -> None:
        """Deliver command to the device. May raise; the caller logs and moves on."""
        pass


class LoggingTransport(DeviceTransport):
    """Stand-in transport (radio / BLE / MQTT bridges plug in here)."""

    def send(self, device_id: str, command: str, params: dict[str, Any] | None = None) -> None:
        logger.info(
            "device_command_sent",
            extra={"device_id": device_id, "command": command},
        )
