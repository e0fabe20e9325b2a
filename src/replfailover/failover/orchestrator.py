"""Failover Orchestrator - Ordered control-plane sequences with convergence waits."""

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass
from enum import Enum
from typing import AsyncIterator, Awaitable, Callable

from ..cluster.client import ClientFactory, ClusterControlClient
from ..cluster.models import ClusterRole, ClusterView, RunContext
from ..core.config import Settings
from ..core.errors import (
    ClientInitError,
    ControlAPIError,
    FailoverError,
    OperatorAbort,
    OrchestrationError,
    PollExhaustedError,
)

logger = logging.getLogger(__name__)


class FailoverState(Enum):
    """Orchestrator state."""

    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    ABORTED = "aborted"


class Step(Enum):
    """State-changing or convergence steps, in the vocabulary of the logs."""

    DEMOTE = "demote"
    PROMOTE = "promote"
    CONFIRM_PROMOTION = "confirm_promotion"
    WAIT_FOR_SECONDARY = "wait_for_secondary"
    ISSUE_ACTIVATION_TOKEN = "issue_activation_token"
    UPDATE_PRIMARY = "update_primary"
    REVOKE_SECONDARY = "revoke_secondary"
    INIT_CLIENT = "init_client"


# What an operator has to do if a step fails after earlier steps were applied
STEP_REMEDIES: dict[Step, str] = {
    Step.DEMOTE: "no replication state was changed - check primary health and re-run",
    Step.PROMOTE: (
        "the promote request was not accepted - the primary may be demoted with no secondary "
        "promoted; promote the secondary manually, or promote the former primary back"
    ),
    Step.CONFIRM_PROMOTION: (
        "the secondary is already promoted - verify its identity and health before making "
        "further changes, then re-point the former primary with an activation token manually"
    ),
    Step.WAIT_FOR_SECONDARY: (
        "the new primary is promoted - confirm the former primary reports secondary mode, "
        "then issue an activation token and update-primary manually"
    ),
    Step.ISSUE_ACTIVATION_TOKEN: (
        "generate a secondary activation token on the primary and run update-primary on the secondary"
    ),
    Step.UPDATE_PRIMARY: (
        "re-issue a secondary activation token on the primary and run update-primary on the secondary"
    ),
    Step.REVOKE_SECONDARY: "revoke the secondary token on the primary manually, then re-run",
    Step.INIT_CLIENT: "verify the cluster is unsealed and reachable, then resume from the failed step",
}


@dataclass
class StepRecord:
    """Record of one orchestration step."""

    step: Step
    target: str
    started_at: float
    duration_ms: float | None = None
    ok: bool = False


def prompt_operator(question: str) -> bool:
    """Block on operator input; only an exact ``y`` proceeds."""
    return input(f"{question} [y/n]: ").strip() == "y"


class FailoverOrchestrator:
    """
    Executes failover and healing sequences against the cluster pair.

    Sequences are not rolled back on partial failure. Every step is
    logged before and after, and a failing step raises
    OrchestrationError listing the steps that already completed so an
    operator can resume by hand.
    """

    def __init__(
        self,
        context: RunContext,
        clients: ClientFactory,
        init_client: Callable[[str], Awaitable[ClusterView]],
        settings: Settings,
        confirm: Callable[[str], bool] | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.context = context
        self.clients = clients
        self.init_client = init_client
        self.settings = settings
        self.confirm = confirm or prompt_operator
        self._sleep = sleep

        self._state = FailoverState.IDLE
        self._history: list[StepRecord] = []

    @property
    def state(self) -> FailoverState:
        return self._state

    @property
    def history(self) -> list[StepRecord]:
        return list(self._history)

    def completed_steps(self) -> tuple[str, ...]:
        return tuple(f"{r.step.value}@{r.target}" for r in self._history if r.ok)

    @property
    def _operation_token(self) -> str | None:
        if self.context.mode.sends_operation_token:
            return self.context.credential.token
        return None

    @asynccontextmanager
    async def _step(self, step: Step, view: ClusterView) -> AsyncIterator[StepRecord]:
        record = StepRecord(step=step, target=view.address, started_at=time.time())
        self._history.append(record)
        logger.info("Starting %s on %s", step.value, view.address)

        try:
            yield record
        except OrchestrationError:
            self._fail()
            raise
        except (FailoverError, ValueError) as exc:
            self._fail()
            completed = self.completed_steps()
            logger.error(
                "%s on %s failed after completing: %s",
                step.value,
                view.address,
                ", ".join(completed) or "nothing",
            )
            raise OrchestrationError(
                f"{step.value} on {view.address} failed: {exc}",
                step=step.value,
                completed=completed,
                remedy=STEP_REMEDIES[step],
            ) from exc

        record.ok = True
        record.duration_ms = (time.time() - record.started_at) * 1000
        logger.info("Completed %s on %s", step.value, view.address)

    def _fail(self) -> None:
        # A pending activation token never outlives a failed step
        self._state = FailoverState.FAILED
        self.context.secondary_activation_token = None

    @staticmethod
    def _client_of(view: ClusterView) -> ClusterControlClient:
        if view.client is None:
            raise ClientInitError(f"no initialized client for {view.address}")
        return view.client

    async def _poll(self, description: str, probe: Callable[[], Awaitable[bool]]) -> None:
        """Re-run ``probe`` at a fixed interval until it returns True."""
        limit = self.settings.poll_max_attempts
        interval = self.settings.request_timeout_s
        if limit is None:
            logger.warning("Waiting for %s with no attempt limit (poll_max_attempts unset)", description)

        attempt = 0
        while limit is None or attempt < limit:
            attempt += 1
            try:
                if await probe():
                    return
            except (ControlAPIError, ClientInitError) as exc:
                logger.info("Waiting for cluster to be ready... (%s)", exc)
            await self._sleep(interval)

        raise PollExhaustedError(
            f"{description} did not converge after {limit} attempts",
            step=description,
        )

    # Individual operations

    async def demote(self, view: ClusterView) -> None:
        """Demote a primary. Convergence is covered by wait_for_secondary."""
        async with self._step(Step.DEMOTE, view):
            await self._client_of(view).demote_primary(self.context.mode)
            view.leader = False

    async def demote_with_credential(self, view: ClusterView) -> None:
        """Demote through a fresh client holding the operation credential."""
        async with self._step(Step.DEMOTE, view):
            async with self.clients(view.address, self.context.credential.token) as client:
                await client.demote_primary(self.context.mode)
            view.role = ClusterRole.SECONDARY
            view.leader = False

    async def promote(self, view: ClusterView) -> None:
        """
        Promote a secondary and wait until it answers as a primary.

        The cluster's own cluster address is submitted as the primary
        address. The request and its confirmation are separate steps: once
        the request is accepted the cluster is primary, whatever the
        confirmation finds. After promotion the reported cluster name must
        match the pre-promotion name.
        """
        expected_name = view.name
        async with self._step(Step.PROMOTE, view):
            await self._client_of(view).promote_secondary(
                self.context.mode,
                primary_cluster_addr=view.cluster_addr,
                operation_token=self._operation_token,
            )

        view.role = ClusterRole.PRIMARY
        view.follower = False
        view.connected = False

        async def _reinitialized() -> bool:
            await self.init_client(view.address)
            return True

        async with self._step(Step.CONFIRM_PROMOTION, view):
            await self._poll(f"promotion of {view.address}", _reinitialized)

            health = await self._client_of(view).health()
            if health.cluster_name != expected_name:
                raise FailoverError(
                    f"expected cluster name {expected_name} does not match "
                    f"discovered cluster name {health.cluster_name}",
                    step=Step.CONFIRM_PROMOTION.value,
                )
            logger.info("Re-authenticated with new primary and confirmed cluster name %s", expected_name)

    async def wait_for_secondary(self, view: ClusterView) -> None:
        """Block until ``view`` reports secondary mode for the active replication mode."""
        mode = self.context.mode

        async def _is_secondary() -> bool:
            status = await self._client_of(view).replication_status(mode)
            return status.mode == ClusterRole.SECONDARY.value

        async with self._step(Step.WAIT_FOR_SECONDARY, view):
            await self._poll(f"secondary mode on {view.address}", _is_secondary)
            logger.info("Demoted cluster is now confirmed to be in secondary mode")
            # Let the demoted cluster settle before it is pointed at the new primary
            await self._sleep(self.settings.request_timeout_s)

        view.role = ClusterRole.SECONDARY
        view.leader = False
        view.follower = True

    async def issue_activation_token(self, primary: ClusterView) -> None:
        """Issue a one-time secondary activation token from ``primary``."""
        async with self._step(Step.ISSUE_ACTIVATION_TOKEN, primary):
            self.context.secondary_activation_token = await self._client_of(
                primary
            ).issue_secondary_activation_token(self.context.mode)

    async def update_primary(self, secondary: ClusterView) -> None:
        """Point ``secondary`` at the primary that issued the pending activation token."""
        async with self._step(Step.UPDATE_PRIMARY, secondary):
            token = self.context.take_activation_token()
            await self._client_of(secondary).update_primary(
                self.context.mode,
                activation_token=token,
                operation_token=self._operation_token,
            )
            logger.info("Updated secondary cluster %s with new primary address", secondary.address)

    async def revoke_secondary(self, primary: ClusterView) -> None:
        """Revoke the secondary token on ``primary`` using the operation credential directly."""
        async with self._step(Step.REVOKE_SECONDARY, primary):
            async with self.clients(primary.address, self.context.credential.token) as client:
                await client.revoke_secondary_token(self.context.mode)

    async def reinitialize(self, view: ClusterView) -> None:
        async with self._step(Step.INIT_CLIENT, view):
            await self.init_client(view.address)

    async def await_client(self, view: ClusterView) -> None:
        """Re-run client initialization until the cluster accepts it."""

        async def _reinitialized() -> bool:
            await self.init_client(view.address)
            return True

        async with self._step(Step.INIT_CLIENT, view):
            await self._poll(f"client initialization on {view.address}", _reinitialized)

    # Sequences

    async def failover(self, demote_primary: bool, force: bool = False) -> None:
        """
        Promote the secondary, optionally demoting the primary first.

        Args:
            demote_primary: Demote the (reachable) primary first and then
                re-point it at the new primary. False when the primary is
                unreachable: the secondary is simply promoted.
            force: Skip the operator confirmation gate
        """
        if not force and not await asyncio.to_thread(self.confirm, "Proceed with operation?"):
            self._state = FailoverState.ABORTED
            raise OperatorAbort("Operation aborted")

        self._state = FailoverState.RUNNING
        former_primary = self.context.primary
        new_primary = self.context.secondary

        if demote_primary:
            await self.demote(former_primary)

        await self.promote(new_primary)

        if demote_primary:
            await self.wait_for_secondary(former_primary)
            await self.issue_activation_token(new_primary)
            await self.reinitialize(former_primary)
            await self.update_primary(former_primary)
        else:
            logger.warning(
                "Ensure the old primary %s is quarantined and demoted before "
                "re-establishing client connectivity",
                former_primary.address or "(unreachable)",
            )

        self.context.swap_roles()
        self._state = FailoverState.COMPLETED

    async def heal(self) -> None:
        """Re-attach a disconnected secondary without changing roles."""
        self._state = FailoverState.RUNNING
        await self.revoke_secondary(self.context.primary)
        await self.issue_activation_token(self.context.primary)
        await self.update_primary(self.context.secondary)
        self._state = FailoverState.COMPLETED

    def get_stats(self) -> dict:
        """Get orchestration statistics."""
        return {
            "state": self._state.value,
            "steps": len(self._history),
            "completed_steps": list(self.completed_steps()),
            "total_duration_ms": sum(r.duration_ms or 0.0 for r in self._history),
        }
