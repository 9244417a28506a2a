"""
Shared component dependencies
"""

from fastapi import Request

from secret_service.devices import DeviceRegistry, normalize_address, normalize_device_id
from secret_service.storage import Storage


def get_storage(request: Request) -> Storage:
    """The storage backend built at startup."""
    return request.app.state.storage


def get_registry(request: Request) -> DeviceRegistry:
    """The device registry built at startup."""
    return request.app.state.registry


def track_device(request: Request) -> str:
    """
    Record the calling device and its address in the registry.

    The identity comes from the ``device_id`` query parameter; anything
    missing or malformed is tracked as the ``unknown`` device.
    """
    device_id = normalize_device_id(request.query_params.get("device_id"))
    host = request.client.host if request.client else None
    get_registry(request).record(device_id, normalize_address(host))
    return device_id
