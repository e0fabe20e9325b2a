"""Cluster pair data model - roles, per-cluster views and the run context."""

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

from .schemas import (
    PRIMARY_RUNNING_STATE,
    SECONDARY_STREAMING_STATE,
    ReplicationStatus,
)

if TYPE_CHECKING:
    from .client import ClusterControlClient


class ClusterRole(Enum):
    """Role of a cluster in the replication relationship."""

    PRIMARY = "primary"
    SECONDARY = "secondary"
    DISABLED = "disabled"
    UNKNOWN = "unknown"

    @classmethod
    def from_status(cls, value: str) -> "ClusterRole":
        try:
            return cls(value)
        except ValueError:
            return cls.UNKNOWN


class ReplicationMode(Enum):
    """Replication relationship type."""

    DR = "dr"
    PERFORMANCE = "performance"

    @property
    def sends_operation_token(self) -> bool:
        """DR promote/update-primary calls carry the operation credential in the body."""
        return self is ReplicationMode.DR


@dataclass
class Credential:
    """
    Operation credential and its verification state.

    ``verified`` is set by the first lookup that succeeds and is never
    cleared afterwards; ``valid`` holds the result of the latest probe.
    A failed probe leaves ``verified`` false so the next address gets
    a chance to verify the credential.
    """

    token: str = field(default="", repr=False)
    valid: bool = False
    verified: bool = False
    display_name: str = ""

    def record_lookup(self, succeeded: bool, display_name: str = "") -> None:
        """Record a lookup-self result unless already verified."""
        if self.verified:
            return
        self.valid = succeeded
        if succeeded:
            self.verified = True
            self.display_name = display_name


@dataclass
class ClusterView:
    """Discovered state of one cluster address."""

    address: str = ""
    name: str = ""
    role: ClusterRole = ClusterRole.UNKNOWN
    healthy: bool = False
    leader: bool = False
    follower: bool = False
    connected: bool = False
    cluster_addr: str = ""
    cluster_id: str = ""
    state: str = ""
    last_wal: int = 0
    client: "ClusterControlClient | None" = field(default=None, repr=False)

    @property
    def assigned(self) -> bool:
        return bool(self.address)

    def apply_status(self, status: ReplicationStatus) -> None:
        """Populate role flags from a replication status read."""
        self.role = ClusterRole.from_status(status.mode)
        self.state = status.state
        self.cluster_id = status.cluster_id
        self.last_wal = status.last_wal

        self.leader = (
            self.role is ClusterRole.PRIMARY and status.state == PRIMARY_RUNNING_STATE
        )
        self.follower = self.role is ClusterRole.SECONDARY
        self.connected = (
            self.follower
            and status.state == SECONDARY_STREAMING_STATE
            and status.has_connected_upstream()
        )

    async def replace_client(self, client: "ClusterControlClient") -> None:
        """Swap in a new client, closing the previous one."""
        previous, self.client = self.client, client
        if previous is not None and previous is not client:
            await previous.aclose()

    async def close(self) -> None:
        if self.client is not None:
            await self.client.aclose()
            self.client = None


@dataclass
class RunContext:
    """
    State for a single controller run.

    Created fresh per invocation, populated by discovery, read by the
    evaluator and refreshed by the orchestrator.
    """

    mode: ReplicationMode
    credential: Credential
    primary: ClusterView = field(default_factory=ClusterView)
    secondary: ClusterView = field(default_factory=ClusterView)
    highest_wal: int = 0
    secondary_activation_token: str | None = field(default=None, repr=False)

    def view_for(self, address: str) -> ClusterView | None:
        """Return the view currently holding ``address``."""
        for view in (self.primary, self.secondary):
            if view.assigned and view.address == address:
                return view
        return None

    def observe_wal(self, wal: int) -> bool:
        """Advance the WAL watermark; True if ``wal`` set a new maximum."""
        if wal > self.highest_wal:
            self.highest_wal = wal
            return True
        return False

    def swap_roles(self) -> None:
        """Exchange the primary and secondary views."""
        self.primary, self.secondary = self.secondary, self.primary

    def take_activation_token(self) -> str:
        """Consume the pending activation token."""
        token, self.secondary_activation_token = self.secondary_activation_token, None
        if not token:
            raise ValueError("no secondary activation token has been issued")
        return token

    @property
    def replication_confirmed(self) -> bool:
        return bool(self.primary.cluster_id) and (
            self.primary.cluster_id == self.secondary.cluster_id
        )

    async def close(self) -> None:
        """Close every client held by the run and drop any pending activation token."""
        self.secondary_activation_token = None
        await self.primary.close()
        await self.secondary.close()
