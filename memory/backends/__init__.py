# Persistence Backends
from memory.backends.base import PersistenceBackend, PersistenceError

__all__ = ["PersistenceBackend", "PersistenceError"]
