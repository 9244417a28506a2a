"""
Storage port shared by every secret backend.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from secret_service.models import Secret


class StorageError(Exception):
    """Backend failure: connectivity, pool exhaustion, or bad stored data."""

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class Storage(ABC):
    """
    Backend-agnostic secret store.

    Implementations raise ``StorageError`` for backend failures and nothing
    else; "not found" is reported through return values.
    """

    @abstractmethod
    def get_all(self) -> List[Secret]:
        """Return every stored secret, in no particular order."""

    @abstractmethod
    def get(self, domain: str) -> Optional[Secret]:
        """Return the secret for ``domain``, or ``None`` if absent."""

    @abstractmethod
    def set(self, secret: Secret) -> None:
        """Insert or fully replace the secret keyed by ``secret.domain``."""

    @abstractmethod
    def delete(self, domain: str) -> bool:
        """Remove the secret for ``domain``; return whether one existed."""

    def close(self) -> None:
        """Release backend resources."""
