"""
Device routes - diagnostic view of the device registry
"""

from typing import List

from fastapi import APIRouter, Depends

from secret_service.dependencies import get_registry
from secret_service.devices import DeviceRegistry
from secret_service.models import DeviceInfo

router = APIRouter(prefix="/devices", tags=["Devices"])


@router.get("", response_model=List[DeviceInfo])
def list_devices(
    registry: DeviceRegistry = Depends(get_registry),
) -> List[DeviceInfo]:
    """List every observed device with the addresses it called from."""
    return registry.snapshot()
