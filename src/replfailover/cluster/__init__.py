"""Cluster - control API client and the cluster pair data model."""

from .client import ClientFactory, ClusterControlClient
from .models import ClusterRole, ClusterView, Credential, ReplicationMode, RunContext

__all__ = [
    "ClientFactory",
    "ClusterControlClient",
    "ClusterRole",
    "ClusterView",
    "Credential",
    "ReplicationMode",
    "RunContext",
]
