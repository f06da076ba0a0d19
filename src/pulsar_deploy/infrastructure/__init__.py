"""
pulsar_deploy.infrastructure - Persistence Layer
==================================================

The only layer that writes to disk.

Components:
    - StateStore:          Abstract interface for deployment records
    - InMemoryStateStore:  Dict-backed store for development and testing
    - JsonFileStateStore:  One atomic JSON document per network

Usage:
    >>> from pulsar_deploy.infrastructure import JsonFileStateStore
    >>> store = JsonFileStateStore(Path("deployments"))
    >>> await store.load_all("testnet")
"""

from pulsar_deploy.infrastructure.state_store import (
    InMemoryStateStore,
    JsonFileStateStore,
    StateStore,
)

__all__ = [
    "StateStore",
    "InMemoryStateStore",
    "JsonFileStateStore",
]
