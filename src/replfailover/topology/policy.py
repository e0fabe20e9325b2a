"""Conflict policies for ambiguous topologies (two primaries, two secondaries)."""

from typing import Protocol

from ..cluster.models import ClusterView


class ConflictPolicy(Protocol):
    """Chooses which of two same-role clusters should end up as primary."""

    def prefer(
        self,
        existing: ClusterView,
        incoming: ClusterView,
        incoming_is_highest: bool,
    ) -> ClusterView:
        """
        Return the view that should hold the primary role.

        Args:
            existing: View discovered first
            incoming: View discovered second, conflicting with ``existing``
            incoming_is_highest: Whether ``incoming`` raised the run's WAL watermark
        """
        ...


class HighestWalPolicy:
    """
    Prefer the cluster with the most recent WAL index.

    The discovered-first cluster wins on equal WAL. This is an operational
    heuristic: a higher WAL index says which cluster shipped or applied
    more log, not that its writes are the ones that should survive.
    """

    def prefer(
        self,
        existing: ClusterView,
        incoming: ClusterView,
        incoming_is_highest: bool,
    ) -> ClusterView:
        return incoming if incoming_is_highest else existing
