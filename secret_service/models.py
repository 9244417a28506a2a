"""
Secret Service - pydantic models for the HTTP surface and storage
"""

from enum import Enum
from typing import List

from pydantic import BaseModel, ConfigDict, Field, StrictStr


# Enums
class SecretType(str, Enum):
    PASSWORD = "password"


# Secret Models
class Secret(BaseModel):
    """
    A stored credential, keyed by domain.

    Read and written with the ``type`` key only; ``kind`` is the Python
    attribute name.
    """

    model_config = ConfigDict(frozen=True)

    kind: SecretType = Field(alias="type")
    domain: StrictStr
    username: StrictStr
    password: StrictStr

    def to_document(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


# Device Models
class DeviceInfo(BaseModel):
    device_id: str
    observed_addresses: List[str] = Field(default_factory=list)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DeviceInfo):
            return NotImplemented
        return self.device_id == other.device_id

    def __hash__(self) -> int:
        return hash(self.device_id)


# Error Models
class ErrorInfo(BaseModel):
    message: str
