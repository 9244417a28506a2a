"""
Device registry - which client devices and addresses have called the service.

Best-effort bookkeeping: bad identity input degrades to the ``unknown``
device rather than failing a request.
"""

import ipaddress
import threading
from typing import Dict, List, Optional

from secret_service.models import DeviceInfo

UNKNOWN_DEVICE = "unknown"
MAX_DEVICE_ID_LENGTH = 128


def normalize_device_id(raw: Optional[str]) -> str:
    """Return a usable device id, or ``UNKNOWN_DEVICE`` for bad input."""
    if raw is None:
        return UNKNOWN_DEVICE
    device_id = raw.strip()
    if (
        not device_id
        or len(device_id) > MAX_DEVICE_ID_LENGTH
        or not device_id.isprintable()
    ):
        return UNKNOWN_DEVICE
    return device_id


def normalize_address(host: Optional[str]) -> str:
    """Canonical text form of a client address."""
    if not host:
        return UNKNOWN_DEVICE
    try:
        return str(ipaddress.ip_address(host))
    except ValueError:
        return host


class DeviceRegistry:
    """
    Process-wide set of observed devices.

    Built once at startup and shared by every request handler. A single
    lock covers both creating a device and appending an address, so
    ``snapshot()`` never sees a half-updated entry.
    """

    def __init__(self) -> None:
        self._devices: Dict[str, List[str]] = {}
        self._lock = threading.Lock()

    def record(self, device_id: str, address: str) -> None:
        with self._lock:
            addresses = self._devices.setdefault(device_id, [])
            if address not in addresses:
                addresses.append(address)

    def snapshot(self) -> List[DeviceInfo]:
        with self._lock:
            entries = [
                (device_id, list(addresses))
                for device_id, addresses in self._devices.items()
            ]
        return [
            DeviceInfo(device_id=device_id, observed_addresses=addresses)
            for device_id, addresses in entries
        ]

    def __len__(self) -> int:
        with self._lock:
            return len(self._devices)
