"""
replfailover - Failover controller for a replicated cluster pair

Drives a two-cluster (primary/secondary) replication relationship:
- Topology discovery (roles, leader/follower flags, WAL watermark)
- Split-brain conflict resolution (multi-primary, multi-secondary)
- Scenario evaluation over the discovered pair
- Failover orchestration (demote, promote, activation token, update-primary)
"""

__version__ = "0.1.0"
__author__ = "replfailover Team"
