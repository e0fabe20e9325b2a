"""State Evaluator - Classifies the discovered pair into a single scenario."""

from dataclasses import dataclass
from enum import Enum

from ..cluster.models import RunContext


class Scenario(Enum):
    """Named states of the cluster pair."""

    # Relationship (log only)
    REPLICATION_CONFIRMED = "replication_confirmed"
    REPLICATION_UNCONFIRMED = "replication_unconfirmed"

    # Actions
    CREDENTIAL_MISSING = "credential_missing"
    CLEAN_FAILOVER = "clean_failover"
    SPLIT_BRAIN_SECONDARY_NOT_FOLLOWER = "split_brain_secondary_not_follower"
    SPLIT_BRAIN_PRIMARY_NOT_LEADER = "split_brain_primary_not_leader"
    SPLIT_BRAIN_NEITHER_IN_ROLE = "split_brain_neither_in_role"
    PRIMARY_DOWN_SECONDARY_ISOLATED = "primary_down_secondary_isolated"
    HEALING_RECONNECT = "healing_reconnect"
    PRIMARY_DOWN_SECONDARY_CONNECTED = "primary_down_secondary_connected"
    INDETERMINATE = "indeterminate"

    @property
    def is_split_brain(self) -> bool:
        return self in SPLIT_BRAIN_SCENARIOS


SPLIT_BRAIN_SCENARIOS = frozenset(
    {
        Scenario.SPLIT_BRAIN_SECONDARY_NOT_FOLLOWER,
        Scenario.SPLIT_BRAIN_PRIMARY_NOT_LEADER,
        Scenario.SPLIT_BRAIN_NEITHER_IN_ROLE,
    }
)

SCENARIO_MESSAGES: dict[Scenario, str] = {
    Scenario.REPLICATION_CONFIRMED: "Confirmed replication for cluster ID {cluster_id}",
    Scenario.REPLICATION_UNCONFIRMED: "Could not confirm replication relationship",
    Scenario.CREDENTIAL_MISSING: "Operation credential is invalid or could not be verified",
    Scenario.CLEAN_FAILOVER: (
        "Secondary promotion with primary demotion (failover) can be safely initiated"
    ),
    Scenario.SPLIT_BRAIN_SECONDARY_NOT_FOLLOWER: (
        "The configured secondary cluster is not in a follower state - "
        "this could indicate a split-brain scenario"
    ),
    Scenario.SPLIT_BRAIN_PRIMARY_NOT_LEADER: (
        "The configured primary cluster is not in a leader state - "
        "this could indicate a split-brain scenario"
    ),
    Scenario.SPLIT_BRAIN_NEITHER_IN_ROLE: (
        "Both configured primary and secondary clusters are not in an expected replication state"
    ),
    Scenario.PRIMARY_DOWN_SECONDARY_ISOLATED: (
        "Primary cluster unhealthy and secondary is not connected to the primary - "
        "proceeding with secondary promotion"
    ),
    Scenario.HEALING_RECONNECT: (
        "Clusters are healthy but secondary is not connected to the primary - "
        "an attempt will be made to re-establish healthy replication"
    ),
    Scenario.PRIMARY_DOWN_SECONDARY_CONNECTED: (
        "Primary cluster unhealthy but secondary is connected to the primary - "
        "proceeding with secondary promotion"
    ),
    Scenario.INDETERMINATE: (
        "Could not determine a valid promotion scenario - manual intervention is required"
    ),
}


@dataclass(frozen=True)
class Evaluation:
    """Relationship check plus the single action scenario for a run."""

    relationship: Scenario
    scenario: Scenario
    cluster_id: str = ""

    @property
    def relationship_message(self) -> str:
        return SCENARIO_MESSAGES[self.relationship].format(cluster_id=self.cluster_id)

    @property
    def message(self) -> str:
        return SCENARIO_MESSAGES[self.scenario]


def classify(context: RunContext) -> Scenario:
    """
    Map the discovered pair to exactly one action scenario.

    The credential is checked first since no action is safe without it.
    The remaining predicates overlap, so the first match wins and the
    order below must be kept.
    """
    primary, secondary = context.primary, context.secondary
    credential = context.credential
    both_healthy = primary.healthy and secondary.healthy

    if not credential.valid or not credential.verified:
        return Scenario.CREDENTIAL_MISSING
    if (
        both_healthy
        and primary.leader
        and secondary.follower
        and secondary.connected
    ):
        return Scenario.CLEAN_FAILOVER
    if both_healthy and primary.leader and not secondary.follower:
        return Scenario.SPLIT_BRAIN_SECONDARY_NOT_FOLLOWER
    if both_healthy and not primary.leader and secondary.follower:
        return Scenario.SPLIT_BRAIN_PRIMARY_NOT_LEADER
    if both_healthy and not primary.leader and not secondary.follower:
        return Scenario.SPLIT_BRAIN_NEITHER_IN_ROLE
    if (
        not primary.healthy
        and secondary.healthy
        and secondary.follower
        and not secondary.connected
    ):
        return Scenario.PRIMARY_DOWN_SECONDARY_ISOLATED
    if both_healthy and primary.leader and secondary.follower and not secondary.connected:
        return Scenario.HEALING_RECONNECT
    if not primary.healthy and secondary.healthy and secondary.follower and secondary.connected:
        return Scenario.PRIMARY_DOWN_SECONDARY_CONNECTED
    return Scenario.INDETERMINATE


def evaluate(context: RunContext) -> Evaluation:
    """Evaluate the run context. Pure: reads the context, changes nothing."""
    if context.replication_confirmed:
        relationship = Scenario.REPLICATION_CONFIRMED
    else:
        relationship = Scenario.REPLICATION_UNCONFIRMED

    return Evaluation(
        relationship=relationship,
        scenario=classify(context),
        cluster_id=context.primary.cluster_id,
    )
