"""
In-memory storage for development and testing.

Nothing survives a restart.
"""

import threading
from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional

from secret_service.models import Secret
from secret_service.storage.base import Storage


class ReadWriteLock:
    """Many concurrent readers or a single writer.

    New readers wait while a writer is queued, so writers are not starved.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def read_lock(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if not self._readers:
                    self._cond.notify_all()

    @contextmanager
    def write_lock(self) -> Iterator[None]:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class MemoryStorage(Storage):
    """Domain -> Secret map behind a reader/writer lock. Never fails."""

    def __init__(self) -> None:
        self._secrets: Dict[str, Secret] = {}
        self._lock = ReadWriteLock()

    def get_all(self) -> List[Secret]:
        with self._lock.read_lock():
            return list(self._secrets.values())

    def get(self, domain: str) -> Optional[Secret]:
        with self._lock.read_lock():
            return self._secrets.get(domain)

    def set(self, secret: Secret) -> None:
        with self._lock.write_lock():
            self._secrets[secret.domain] = secret

    def delete(self, domain: str) -> bool:
        with self._lock.write_lock():
            return self._secrets.pop(domain, None) is not None
