"""
Routers Package
"""

from secret_service.routers.devices import router as devices_router
from secret_service.routers.secrets import router as secrets_router

__all__ = [
    "devices_router",
    "secrets_router",
]
