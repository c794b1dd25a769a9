"""
The store module provides read access to observed cluster state for handlers.

- Uses NamedResource as the key for all objects.
- Stores values as dataclass instances from manifest.py and cluster.py.
- The loader populates an in-memory store from a yaml state file.

This abstract interface allows for various implementations (in-memory, live
cluster client, etc.).
"""

from .store import Store
from .in_memory import InMemoryStore
from .loader import load_state, read_cluster_state

__all__ = [
    "Store",
    "InMemoryStore",
    "load_state",
    "read_cluster_state",
]
