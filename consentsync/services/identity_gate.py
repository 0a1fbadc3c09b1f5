"""Identity gate — decides whether the running context is a test context.

Test contexts (emulators, or devices whose hashed id was registered)
are the only ones allowed to send a debug geography to the consent
server. The registry lives in memory for the process lifetime.
"""

from __future__ import annotations

import hashlib
from collections.abc import Callable
from dataclasses import dataclass

import structlog

logger = structlog.get_logger()

EMULATOR_DEVICE_ID = "emulator"


@dataclass
class DeviceInfo:
    """Build properties used by the emulator heuristic."""

    fingerprint: str = ""
    model: str = ""
    manufacturer: str = ""
    brand: str = ""
    device: str = ""
    product: str = ""


def looks_like_emulator(info: DeviceInfo) -> bool:
    """Default emulator heuristic over build signature strings."""
    return (
        info.fingerprint.startswith("generic")
        or info.fingerprint.startswith("unknown")
        or "google_sdk" in info.model
        or "Emulator" in info.model
        or "Android SDK built for x86" in info.model
        or "Genymotion" in info.manufacturer
        or (info.brand.startswith("generic") and info.device.startswith("generic"))
        or info.product == "google_sdk"
    )


def hash_device_id(device_id: str | None, is_emulator: bool = False) -> str:
    """Upper-case MD5 hex of the device id, as shown to developers in logs."""
    source = EMULATOR_DEVICE_ID if device_id is None or is_emulator else device_id
    return hashlib.md5(source.encode()).hexdigest().upper()


class IdentityGate:
    """Holds the test-device registry and the current device fingerprint."""

    def __init__(
        self,
        device_id: str | None = None,
        is_emulator: Callable[[], bool] | None = None,
    ):
        self._is_emulator = is_emulator or (lambda: False)
        self.hashed_device_id = hash_device_id(device_id, self._is_emulator())
        self._test_devices: set[str] = set()

    def register_test_identity(self, hashed_device_id: str) -> None:
        self._test_devices.add(hashed_device_id)
        logger.info("test_device_registered", hashed_device_id=hashed_device_id)

    def is_test_context(self) -> bool:
        return self._is_emulator() or self.hashed_device_id in self._test_devices

    def reset(self) -> None:
        self._test_devices = set()
