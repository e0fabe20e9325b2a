"""Operation credential bootstrap interface."""

import logging
from typing import Protocol

from .cluster.models import RunContext
from .core.errors import CredentialBootstrapError

logger = logging.getLogger(__name__)

HANDLER_POLICY_NAME = "failover-handler"

# ACL policy an operation credential needs for every call this controller makes
HANDLER_POLICY = """path "sys/replication/+/secondary/promote" {
  capabilities = ["update"]
}

path "sys/replication/+/secondary/update-primary" {
  capabilities = ["update"]
}

path "sys/replication/+/primary/demote" {
  capabilities = ["update"]
}

path "sys/replication/+/primary/secondary-token" {
  capabilities = ["update", "sudo"]
}

path "sys/replication/+/primary/revoke-secondary" {
  capabilities = ["update"]
}

path "auth/token/lookup-self" {
  capabilities = ["read"]
}
"""


class CredentialBootstrap(Protocol):
    """Supplies a valid operation credential when the configured one is unusable."""

    async def provision(self, context: RunContext) -> str:
        """Provision a credential, or raise CredentialBootstrapError."""
        ...


class ManualBootstrap:
    """Default bootstrap: credentials are provisioned by an operator, out of band."""

    def __init__(self, token_kv_mount: str = "kv"):
        self.token_kv_mount = token_kv_mount

    async def provision(self, context: RunContext) -> str:
        if not context.primary.healthy:
            raise CredentialBootstrapError(
                "primary cluster is not healthy - cannot generate an operation credential",
                step="bootstrap",
                remedy="provision a batch token on the primary once it is reachable",
            )
        raise CredentialBootstrapError(
            "no operation credential provisioner is configured",
            step="bootstrap",
            remedy=(
                f"create a batch token with the {HANDLER_POLICY_NAME} policy "
                f"(replfailover --print-policy), store it under {self.token_kv_mount}/, "
                "and re-run with --operation-token"
            ),
        )
