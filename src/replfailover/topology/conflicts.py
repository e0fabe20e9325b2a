"""Conflict resolution for multi-primary and multi-secondary topologies."""

import logging
from dataclasses import dataclass

from ..cluster.client import ClientFactory
from ..cluster.models import ClusterRole, ClusterView, RunContext
from ..core.errors import ControlAPIError, DiscoveryError, OrchestrationError
from ..failover.orchestrator import FailoverOrchestrator
from .discovery import TopologyDiscoverer
from .policy import ConflictPolicy, HighestWalPolicy

logger = logging.getLogger(__name__)


@dataclass
class ConflictResolution:
    """Outcome of a resolved role conflict."""

    conflict: ClusterRole  # Role both clusters claimed
    primary: str
    secondary: str
    changed: str  # Address that was demoted or promoted


class ConflictResolver:
    """
    Resolves two clusters claiming the same role.

    The cluster chosen by the policy (by default the one holding the most
    recent WAL) keeps or gains the primary role; the other is demoted or
    left secondary, then re-attached with a fresh activation token.
    Demote and promote go straight to the control API with the operation
    credential since either view may be stale at this point.
    """

    def __init__(
        self,
        context: RunContext,
        clients: ClientFactory,
        discoverer: TopologyDiscoverer,
        orchestrator: FailoverOrchestrator,
        policy: ConflictPolicy | None = None,
    ):
        self.context = context
        self.clients = clients
        self.discoverer = discoverer
        self.orchestrator = orchestrator
        self.policy = policy or HighestWalPolicy()

    async def resolve_primaries(
        self,
        existing: ClusterView,
        incoming: ClusterView,
        incoming_is_highest: bool,
    ) -> ConflictResolution:
        """Demote the primary the policy does not prefer and re-attach it."""
        survivor = self.policy.prefer(existing, incoming, incoming_is_highest)
        demoted = incoming if survivor is existing else existing

        try:
            await self.orchestrator.demote_with_credential(demoted)
        except OrchestrationError as exc:
            raise DiscoveryError(
                f"multiple primary resolution attempt failed: {exc}",
                step="resolve_primaries",
                remedy="this could indicate a split-brain scenario - demote one primary manually",
            ) from exc
        logger.info(
            "Demoted cluster %s (last_wal=%d), attempting to heal replication connection",
            demoted.address,
            demoted.last_wal,
        )

        self.context.primary = survivor
        self.context.secondary = demoted

        # The demoted cluster may refuse sessions until its demotion settles
        await self.orchestrator.await_client(survivor)
        await self.orchestrator.await_client(demoted)
        await self.orchestrator.wait_for_secondary(demoted)

        try:
            await self.orchestrator.revoke_secondary(survivor)
        except OrchestrationError as exc:
            # The survivor may never have issued a token to this secondary
            logger.warning("Could not revoke previous secondary token on %s: %s", survivor.address, exc)

        await self.orchestrator.issue_activation_token(survivor)
        await self.orchestrator.update_primary(demoted)

        return ConflictResolution(
            conflict=ClusterRole.PRIMARY,
            primary=survivor.address,
            secondary=demoted.address,
            changed=demoted.address,
        )

    async def resolve_secondaries(
        self,
        existing: ClusterView,
        incoming: ClusterView,
        incoming_is_highest: bool,
    ) -> ConflictResolution:
        """Promote the secondary the policy prefers and re-attach the other."""
        promoted = self.policy.prefer(existing, incoming, incoming_is_highest)
        retained = incoming if promoted is existing else existing
        mode = self.context.mode
        operation_token = self.context.credential.token if mode.sends_operation_token else None

        try:
            async with self.clients(promoted.address, self.context.credential.token) as client:
                await client.promote_secondary(
                    mode,
                    primary_cluster_addr=promoted.cluster_addr or None,
                    operation_token=operation_token,
                )
        except ControlAPIError as exc:
            raise DiscoveryError(
                f"multiple secondary resolution attempt failed: {exc}",
                step="resolve_secondaries",
                remedy="this could indicate a split-brain scenario - promote one secondary manually",
            ) from exc
        logger.info(
            "Promoted cluster %s (last_wal=%d), attempting to heal replication connection",
            promoted.address,
            promoted.last_wal,
        )

        promoted.role = ClusterRole.PRIMARY
        promoted.follower = False
        promoted.connected = False
        self.context.primary = promoted
        self.context.secondary = retained

        await self.orchestrator.await_client(promoted)
        await self.orchestrator.reinitialize(retained)
        await self.orchestrator.issue_activation_token(promoted)
        await self.orchestrator.update_primary(retained)

        return ConflictResolution(
            conflict=ClusterRole.SECONDARY,
            primary=promoted.address,
            secondary=retained.address,
            changed=promoted.address,
        )
