"""Topology - Role discovery and conflict resolution."""

from .conflicts import ConflictResolution, ConflictResolver
from .discovery import TopologyDiscoverer
from .policy import ConflictPolicy, HighestWalPolicy

__all__ = [
    "TopologyDiscoverer",
    "ConflictResolver",
    "ConflictResolution",
    "ConflictPolicy",
    "HighestWalPolicy",
]
