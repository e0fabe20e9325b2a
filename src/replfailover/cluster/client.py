"""Cluster Control API client."""

import logging
from typing import Any

import httpx
from pydantic import BaseModel, ValidationError

from ..core.config import Settings
from ..core.errors import ControlAPIError
from .models import ReplicationMode
from .schemas import (
    HealthStatus,
    LeaderStatus,
    PromoteRequest,
    ReplicationStatus,
    SecondaryTokenRequest,
    TokenLookup,
    UpdatePrimaryRequest,
    WrappedResponse,
)

logger = logging.getLogger(__name__)

TOKEN_HEADER = "X-Vault-Token"
REPLICATION_PATH = "/sys/replication"


class ClusterControlClient:
    """
    Authenticated handle to one cluster's administrative API.

    Every call is bounded by the request timeout. Failures surface as
    ControlAPIError carrying the address and, when there was a response,
    its status code.
    """

    def __init__(
        self,
        address: str,
        token: str,
        timeout_s: float = 3.0,
        verify: bool = True,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.address = address.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=f"{self.address}/v1",
            headers={TOKEN_HEADER: token},
            timeout=timeout_s,
            verify=verify,
            transport=transport,
        )

    async def __aenter__(self) -> "ClusterControlClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        body: BaseModel | None = None,
        check_status: bool = True,
    ) -> httpx.Response:
        payload = body.model_dump(exclude_none=True) if body is not None else None
        logger.debug("%s %s%s", method, self.address, path)
        try:
            response = await self._client.request(method, path, json=payload)
        except httpx.TransportError as exc:
            raise ControlAPIError(
                f"{method} {path} on {self.address} failed: {exc}",
                address=self.address,
            ) from exc

        if check_status and response.is_error:
            raise ControlAPIError(
                f"{method} {path} on {self.address} returned {response.status_code}",
                address=self.address,
                status_code=response.status_code,
            )
        return response

    def _decode(self, response: httpx.Response, model: type[BaseModel], key: str | None = None) -> Any:
        try:
            data = response.json()
            if key is not None:
                data = data[key]
            return model.model_validate(data)
        except (ValueError, KeyError, TypeError, ValidationError) as exc:
            raise ControlAPIError(
                f"could not decode {model.__name__} from {self.address}: {exc}",
                address=self.address,
                status_code=response.status_code,
            ) from exc

    def _replication(self, mode: ReplicationMode, suffix: str) -> str:
        return f"{REPLICATION_PATH}/{mode.value}/{suffix}"

    # Status reads

    async def health(self) -> HealthStatus:
        # Standby, DR-secondary, sealed and uninitialized clusters answer with
        # non-200 codes but still return the health document
        response = await self._request("GET", "/sys/health", check_status=False)
        return self._decode(response, HealthStatus)

    async def leader_status(self) -> LeaderStatus:
        response = await self._request("GET", "/sys/leader")
        return self._decode(response, LeaderStatus)

    async def replication_status(self, mode: ReplicationMode) -> ReplicationStatus:
        response = await self._request("GET", self._replication(mode, "status"))
        return self._decode(response, ReplicationStatus, key="data")

    async def lookup_self(self) -> TokenLookup:
        response = await self._request("GET", "/auth/token/lookup-self")
        return self._decode(response, TokenLookup, key="data")

    # Replication administration

    async def demote_primary(self, mode: ReplicationMode) -> None:
        await self._request("POST", self._replication(mode, "primary/demote"))

    async def promote_secondary(
        self,
        mode: ReplicationMode,
        primary_cluster_addr: str | None,
        operation_token: str | None = None,
    ) -> None:
        body = PromoteRequest(
            primary_cluster_addr=primary_cluster_addr,
            dr_operation_token=operation_token,
        )
        await self._request("POST", self._replication(mode, "secondary/promote"), body=body)

    async def issue_secondary_activation_token(self, mode: ReplicationMode) -> str:
        response = await self._request(
            "POST",
            self._replication(mode, "primary/secondary-token"),
            body=SecondaryTokenRequest(),
        )
        wrapped: WrappedResponse = self._decode(response, WrappedResponse)
        return wrapped.wrap_info.token

    async def update_primary(
        self,
        mode: ReplicationMode,
        activation_token: str,
        operation_token: str | None = None,
    ) -> None:
        body = UpdatePrimaryRequest(
            token=activation_token,
            dr_operation_token=operation_token,
        )
        await self._request(
            "POST", self._replication(mode, "secondary/update-primary"), body=body
        )

    async def revoke_secondary_token(self, mode: ReplicationMode) -> None:
        await self._request(
            "POST",
            self._replication(mode, "primary/revoke-secondary"),
            body=SecondaryTokenRequest(),
        )


class ClientFactory:
    """Builds control clients from settings; tests inject a transport."""

    def __init__(
        self,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.settings = settings
        self.transport = transport

    def __call__(self, address: str, token: str | None = None) -> ClusterControlClient:
        return ClusterControlClient(
            address,
            token if token is not None else self.settings.operation_token,
            timeout_s=self.settings.request_timeout_s,
            verify=not self.settings.tls_skip_verify,
            transport=self.transport,
        )
