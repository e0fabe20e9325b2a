"""Failover Runner - One discovery, evaluation and orchestration pass."""

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable

import httpx

from .cluster.client import ClientFactory
from .cluster.models import Credential, ReplicationMode, RunContext
from .core.config import Settings, get_settings
from .core.errors import DiscoveryError, SplitBrainError
from .credentials import CredentialBootstrap, ManualBootstrap
from .failover.evaluator import Evaluation, Scenario, evaluate
from .failover.orchestrator import FailoverOrchestrator, StepRecord
from .topology.conflicts import ConflictResolution, ConflictResolver
from .topology.discovery import TopologyDiscoverer
from .topology.policy import ConflictPolicy

logger = logging.getLogger(__name__)


class RunOutcome(Enum):
    """How a successful run ended."""

    FAILOVER_COMPLETED = "failover_completed"
    PROMOTED = "promoted"
    REPLICATION_HEALED = "replication_healed"
    CONFLICT_RESOLVED = "conflict_resolved"
    CREDENTIAL_BOOTSTRAPPED = "credential_bootstrapped"
    NO_ACTION = "no_action"


@dataclass
class RunResult:
    """Summary of a successful run."""

    outcome: RunOutcome
    primary: str
    secondary: str
    evaluation: Evaluation | None = None
    resolution: ConflictResolution | None = None
    steps: list[StepRecord] = field(default_factory=list)


class FailoverRunner:
    """
    Runs the controller once against a cluster pair.

    Builds a fresh RunContext per run, then:
    - Discovers the topology (resolving role conflicts, which ends the run)
    - Initializes per-cluster clients
    - Evaluates the pair into one scenario
    - Executes the scenario's action

    Fatal conditions are raised as FailoverError subclasses; turning them
    into a process exit is left to the caller.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        bootstrap: CredentialBootstrap | None = None,
        confirm: Callable[[str], bool] | None = None,
        policy: ConflictPolicy | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.settings = settings or get_settings()
        self.transport = transport
        self.bootstrap = bootstrap or ManualBootstrap(self.settings.token_kv_mount)
        self.confirm = confirm
        self.policy = policy
        self.sleep = sleep

    async def run(self, addresses: list[str]) -> RunResult:
        """Discover, evaluate and act on ``addresses`` (the reachable subset)."""
        if not addresses:
            raise DiscoveryError(
                "no reachable cluster addresses",
                step="discover",
                remedy="check network connectivity to both clusters",
            )

        context = RunContext(
            mode=ReplicationMode(self.settings.mode),
            credential=Credential(token=self.settings.operation_token),
        )
        clients = ClientFactory(self.settings, self.transport)
        discoverer = TopologyDiscoverer(context, clients)
        orchestrator = FailoverOrchestrator(
            context,
            clients,
            discoverer.init_client,
            self.settings,
            confirm=self.confirm,
            sleep=self.sleep,
        )
        resolver = ConflictResolver(context, clients, discoverer, orchestrator, self.policy)

        try:
            resolution = await discoverer.discover(addresses, resolver)
            if resolution is not None:
                logger.info(
                    "Resolved %s conflict: %s is primary, %s is secondary",
                    resolution.conflict.value,
                    resolution.primary,
                    resolution.secondary,
                )
                return RunResult(
                    outcome=RunOutcome.CONFLICT_RESOLVED,
                    primary=resolution.primary,
                    secondary=resolution.secondary,
                    resolution=resolution,
                    steps=orchestrator.history,
                )

            await discoverer.initialize_clients(addresses)

            evaluation = evaluate(context)
            logger.info(evaluation.relationship_message)

            outcome = await self._act(evaluation, context, orchestrator)
            return RunResult(
                outcome=outcome,
                primary=context.primary.address,
                secondary=context.secondary.address,
                evaluation=evaluation,
                steps=orchestrator.history,
            )
        finally:
            await context.close()

    async def _act(
        self,
        evaluation: Evaluation,
        context: RunContext,
        orchestrator: FailoverOrchestrator,
    ) -> RunOutcome:
        scenario = evaluation.scenario

        if scenario is Scenario.CREDENTIAL_MISSING:
            logger.warning(evaluation.message)
            await self.bootstrap.provision(context)
            logger.info("Operation credential provisioned - re-run with the new credential")
            return RunOutcome.CREDENTIAL_BOOTSTRAPPED

        if scenario is Scenario.CLEAN_FAILOVER:
            logger.info(evaluation.message)
            await orchestrator.failover(demote_primary=True, force=self.settings.assume_yes)
            return RunOutcome.FAILOVER_COMPLETED

        if scenario.is_split_brain:
            raise SplitBrainError(
                evaluation.message,
                step="evaluate",
                remedy="no automated action is taken - confirm each cluster's replication role manually",
            )

        if scenario in (
            Scenario.PRIMARY_DOWN_SECONDARY_ISOLATED,
            Scenario.PRIMARY_DOWN_SECONDARY_CONNECTED,
        ):
            logger.warning(evaluation.message)
            await orchestrator.failover(demote_primary=False, force=True)
            return RunOutcome.PROMOTED

        if scenario is Scenario.HEALING_RECONNECT:
            logger.info(evaluation.message)
            await orchestrator.heal()
            return RunOutcome.REPLICATION_HEALED

        if scenario is Scenario.INDETERMINATE:
            logger.warning(evaluation.message)
            return RunOutcome.NO_ACTION

        raise AssertionError(f"unhandled scenario: {scenario}")
