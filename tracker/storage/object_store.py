from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

@dataclass(frozen=True)
class StoredObject:
    key: str
    body: bytes
    content_type: Optional[str] = None

class ObjectStore(ABC):
    """Blob store per i file consegnati, indicizzato da chiavi opache."""

    @abstractmethod
    async def put(self, key: str, body: bytes, content_type: Optional[str] = None) -> None:
        raise NotImplementedError

    @abstractmethod
    async def get(self, key: str) -> Optional[StoredObject]:
        """Ritorna None se la chiave non esiste."""
        raise NotImplementedError

    @abstractmethod
    async def delete(self, key: str) -> None:
        raise NotImplementedError
