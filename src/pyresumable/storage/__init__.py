"""Job storage backends for scheduled task attempts.

Provides:
    - JobStore: Abstract interface
    - InMemoryJobStore: In-memory storage for tests and single-process use

Design: Adapter Pattern + Dependency Inversion (SOLID)
    StoreScheduler and Worker depend on JobStore, not on a concrete backend.
"""

from pyresumable.storage.base import JobStore, StorageError
from pyresumable.storage.memory import InMemoryJobStore

__all__ = [
    "JobStore",
    "StorageError",
    "InMemoryJobStore",
]
