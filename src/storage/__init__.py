"""Storage seams: repository protocol, in-memory store, digest state stores."""

from src.storage.digest_state import (
    DigestStateStore,
    InMemoryDigestStateStore,
    JsonFileDigestStateStore,
)
from src.storage.memory import InMemoryAlertRepository
from src.storage.repository import AlertRepository, RepositoryFactory

__all__ = [
    "AlertRepository",
    "DigestStateStore",
    "InMemoryAlertRepository",
    "InMemoryDigestStateStore",
    "JsonFileDigestStateStore",
    "RepositoryFactory",
]
