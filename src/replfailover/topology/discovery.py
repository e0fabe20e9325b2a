"""Topology Discoverer - Role discovery and per-cluster client initialization."""

import logging
from typing import TYPE_CHECKING

from ..cluster.client import ClientFactory
from ..cluster.models import ClusterRole, ClusterView, RunContext
from ..core.errors import ClientInitError, ControlAPIError, DiscoveryError

if TYPE_CHECKING:
    from .conflicts import ConflictResolution, ConflictResolver

logger = logging.getLogger(__name__)


class TopologyDiscoverer:
    """
    Discovers which address is primary and which is secondary.

    For each reachable address, in order:
    - Verifies the operation credential (until one lookup succeeds)
    - Reads replication status for the configured mode
    - Assigns the primary/secondary view and its leader/follower flags
    - Hands same-role conflicts to a ConflictResolver

    Any failure to read an address is fatal: evaluation never runs on a
    partially known topology.
    """

    def __init__(self, context: RunContext, clients: ClientFactory):
        self.context = context
        self.clients = clients

    async def discover(
        self,
        addresses: list[str],
        resolver: "ConflictResolver | None" = None,
    ) -> "ConflictResolution | None":
        """
        Populate the context's primary and secondary views.

        Returns:
            The ConflictResolution if a multi-primary or multi-secondary
            conflict was resolved (which ends the run), None otherwise
        """
        mode = self.context.mode

        for address in addresses:
            async with self.clients(address) as client:
                await self._verify_credential(address, client)

                try:
                    status = await client.replication_status(mode)
                except ControlAPIError as exc:
                    raise DiscoveryError(
                        f"topology discovery failed for {address}: {exc}",
                        step="discover",
                    ) from exc

            view = ClusterView(address=address)
            view.apply_status(status)

            if view.role is ClusterRole.DISABLED:
                logger.info("%s replication is disabled on %s - skipping", mode.value, address)
                continue
            if view.role is ClusterRole.UNKNOWN:
                raise DiscoveryError(
                    f"could not determine replication mode for {address} (reported {status.mode!r})",
                    step="discover",
                )

            is_highest = self.context.observe_wal(view.last_wal)

            if view.role is ClusterRole.PRIMARY:
                if self.context.primary.assigned:
                    logger.warning("Multiple primary clusters detected - attempting to resolve conflict")
                    return await self._require(resolver).resolve_primaries(
                        self.context.primary, view, is_highest
                    )
                self.context.primary = view
            else:
                if self.context.secondary.assigned:
                    logger.warning("Multiple secondary clusters detected - attempting to resolve conflict")
                    return await self._require(resolver).resolve_secondaries(
                        self.context.secondary, view, is_highest
                    )
                self.context.secondary = view

            logger.info(
                "Discovered %s %s at %s (state=%s, last_wal=%d)",
                mode.value,
                view.role.value,
                address,
                view.state or "-",
                view.last_wal,
            )

        logger.info("Topology discovery complete")
        return None

    async def _verify_credential(self, address: str, client) -> None:
        credential = self.context.credential
        if credential.verified:
            return

        try:
            lookup = await client.lookup_self()
        except ControlAPIError as exc:
            logger.warning("Operation credential lookup failed on %s: %s", address, exc)
            credential.record_lookup(False)
            return

        credential.record_lookup(True, lookup.display_name)
        logger.info("Operation credential verified on %s", address)

    @staticmethod
    def _require(resolver: "ConflictResolver | None") -> "ConflictResolver":
        if resolver is None:
            raise DiscoveryError(
                "conflicting replication roles detected and no resolver configured",
                step="discover",
                remedy="this could indicate a split-brain scenario - resolve the roles manually",
            )
        return resolver

    async def init_client(self, address: str) -> ClusterView:
        """
        Build a fresh client for ``address`` and refresh its view.

        The view's previous client is replaced, never reused, so a role
        change always gets a new session.
        """
        view = self.context.view_for(address)
        if view is None:
            raise ClientInitError(
                f"could not determine replication role for {address} - aborting",
                step="init_client",
            )

        client = self.clients(address)
        try:
            health = await client.health()
            if not health.is_healthy:
                raise ClientInitError(f"cluster at {address} is not healthy", step="init_client")
            leader = await client.leader_status()
        except ControlAPIError as exc:
            await client.aclose()
            raise ClientInitError(
                f"client initialization failed for {address}: {exc}",
                step="init_client",
            ) from exc
        except ClientInitError:
            await client.aclose()
            raise

        await view.replace_client(client)
        view.healthy = True
        view.name = health.cluster_name
        view.cluster_addr = leader.leader_cluster_address

        logger.info(
            "Initialized client for %s (%s %s)",
            address,
            self.context.mode.value,
            view.role.value,
        )
        return view

    async def initialize_clients(self, addresses: list[str]) -> None:
        """Initialize clients for every discovered address; fatal only if none succeed."""
        for address in addresses:
            try:
                await self.init_client(address)
            except ClientInitError as exc:
                logger.warning("%s", exc)

        if self.context.primary.client is None and self.context.secondary.client is None:
            raise ClientInitError(
                "could not initialize clients for primary and secondary clusters",
                step="init_client",
            )
