"""Cluster Control API schemas."""

from pydantic import BaseModel, Field, field_validator

SECONDARY_TOKEN_ID = "secondary-token"

# Replication sub-states and peer status as reported by the control API
PRIMARY_RUNNING_STATE = "running"
SECONDARY_STREAMING_STATE = "stream-wals"
PEER_CONNECTED = "connected"


class HealthStatus(BaseModel):
    """Health probe response."""

    initialized: bool = False
    sealed: bool = True
    standby: bool = False
    cluster_name: str = ""
    cluster_id: str = ""

    @property
    def is_healthy(self) -> bool:
        return self.initialized and not self.sealed


class LeaderStatus(BaseModel):
    """Leader status response."""

    ha_enabled: bool = False
    is_self: bool = False
    leader_address: str = ""
    leader_cluster_address: str = ""


class ReplicationPeer(BaseModel):
    """A configured upstream (primaries) or downstream (secondaries) peer."""

    api_address: str = ""
    cluster_address: str = ""
    connection_status: str = ""
    node_id: str = ""


class ReplicationStatus(BaseModel):
    """Replication status for one mode (the ``data`` object)."""

    mode: str
    state: str = ""
    cluster_id: str = ""
    last_wal: int = 0
    primary_cluster_addr: str = ""
    known_secondaries: list[str] = Field(default_factory=list)
    primaries: list[ReplicationPeer] = Field(default_factory=list)
    secondaries: list[ReplicationPeer] = Field(default_factory=list)

    @field_validator("known_secondaries", "primaries", "secondaries", mode="before")
    @classmethod
    def _null_as_empty(cls, value):
        return [] if value is None else value

    @field_validator("cluster_id", "state", "primary_cluster_addr", mode="before")
    @classmethod
    def _null_as_blank(cls, value):
        return "" if value is None else value

    def has_connected_upstream(self) -> bool:
        """True if any configured primary reports a live connection."""
        return any(p.connection_status == PEER_CONNECTED for p in self.primaries)


class TokenLookup(BaseModel):
    """lookup-self ``data`` object."""

    display_name: str = ""
    policies: list[str] = Field(default_factory=list)
    type: str = ""


class WrapInfo(BaseModel):
    """Response-wrapping information."""

    token: str
    ttl: int = 0


class WrappedResponse(BaseModel):
    """Response carrying a wrapped (one-time) token."""

    wrap_info: WrapInfo


class SecondaryTokenRequest(BaseModel):
    """Request a secondary activation token, or revoke one."""

    id: str = SECONDARY_TOKEN_ID


class PromoteRequest(BaseModel):
    """Request to promote a secondary to primary."""

    primary_cluster_addr: str | None = None
    force: bool = False
    dr_operation_token: str | None = None


class UpdatePrimaryRequest(BaseModel):
    """Request to point a secondary at a (new) primary."""

    token: str
    dr_operation_token: str | None = None
