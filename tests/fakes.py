"""In-process fake of a replicated cluster pair's control API."""

import httpx
from fastapi import FastAPI, Header, HTTPException, Response

from replfailover.cluster.schemas import (
    PromoteRequest,
    SecondaryTokenRequest,
    UpdatePrimaryRequest,
)


class FakeCluster:
    """One cluster: replication role, health and a FastAPI control API."""

    def __init__(
        self,
        pair: "FakePair",
        address: str,
        name: str,
        *,
        role: str,
        mode: str = "dr",
        state: str | None = None,
        cluster_id: str = "cluster-1",
        last_wal: int = 0,
        connected: bool = True,
        healthy: bool = True,
    ):
        self.pair = pair
        self.address = address
        self.name = name
        self.role = role
        self.mode = mode
        self.cluster_id = cluster_id
        self.last_wal = last_wal
        self.connected = connected
        self.healthy = healthy
        self.reachable = True
        self.state = state if state is not None else self._default_state()
        self.cluster_addr = f"https://{name}.cluster:8201"
        self.cluster_name = f"vault-cluster-{name}"

        # Failure and convergence knobs
        self.fail: set[str] = set()
        self.demote_settle_reads = 0
        self.promote_unready_reads = 0
        self.rename_on_promote: str | None = None

        self.promote_bodies: list[dict] = []
        self.update_bodies: list[dict] = []
        self.app = self._build_app()

    def _default_state(self) -> str:
        if self.role == "primary":
            return "running"
        if self.role == "secondary":
            return "stream-wals" if self.connected else "idle"
        return ""

    def _record(self, op: str) -> None:
        self.pair.calls.append((self.name, op))
        if op in self.fail:
            raise HTTPException(status_code=500, detail=f"injected {op} failure")

    def _authorize(self, token: str | None) -> None:
        if token != self.pair.token:
            raise HTTPException(status_code=403, detail="permission denied")

    def status(self) -> dict:
        if self.role == "disabled":
            return {"mode": "disabled"}
        if self.role == "demoting":
            if self.demote_settle_reads > 0:
                self.demote_settle_reads -= 1
                return {"mode": "primary", "state": "demoting", "cluster_id": self.cluster_id}
            self.role = "secondary"
            self.state = "idle"
            self.connected = False

        data = {
            "mode": self.role,
            "state": self.state,
            "cluster_id": self.cluster_id,
            "last_wal": self.last_wal,
        }
        if self.role == "primary":
            data["primary_cluster_addr"] = self.cluster_addr
            data["secondaries"] = []
        else:
            data["primaries"] = [
                {
                    "api_address": "https://peer:8200",
                    "connection_status": "connected" if self.connected else "disconnected",
                }
            ]
        return data

    def _build_app(self) -> FastAPI:
        app = FastAPI()
        cluster = self

        @app.get("/v1/sys/health")
        async def health(response: Response):
            cluster.pair.calls.append((cluster.name, "health"))
            if "health" in cluster.fail:
                raise HTTPException(status_code=500, detail="injected health failure")
            if not cluster.healthy:
                response.status_code = 503
                return {"initialized": True, "sealed": True, "cluster_name": cluster.cluster_name}
            if cluster.role == "secondary" and cluster.mode == "dr":
                response.status_code = 472
            return {"initialized": True, "sealed": False, "cluster_name": cluster.cluster_name}

        @app.get("/v1/sys/leader")
        async def leader():
            if cluster.promote_unready_reads > 0:
                cluster.promote_unready_reads -= 1
                raise HTTPException(status_code=503, detail="not ready")
            return {
                "ha_enabled": True,
                "is_self": True,
                "leader_cluster_address": cluster.cluster_addr,
            }

        @app.get("/v1/auth/token/lookup-self")
        async def lookup_self(x_vault_token: str | None = Header(default=None)):
            cluster.pair.calls.append((cluster.name, "lookup_self"))
            if "lookup_self" in cluster.fail:
                raise HTTPException(status_code=500, detail="injected lookup failure")
            cluster._authorize(x_vault_token)
            return {"data": {"display_name": "token-failover-handler", "type": "batch"}}

        @app.get("/v1/sys/replication/{mode}/status")
        async def replication_status(mode: str):
            if "status" in cluster.fail:
                raise HTTPException(status_code=500, detail="injected status failure")
            if mode != cluster.mode:
                return {"data": {"mode": "disabled"}}
            return {"data": cluster.status()}

        @app.post("/v1/sys/replication/{mode}/primary/demote")
        async def demote(mode: str, x_vault_token: str | None = Header(default=None)):
            cluster._authorize(x_vault_token)
            cluster._record("demote")
            if cluster.role != "primary":
                raise HTTPException(status_code=400, detail="cluster is not a primary")
            cluster.role = "demoting"
            return {}

        @app.post("/v1/sys/replication/{mode}/secondary/promote")
        async def promote(
            mode: str,
            body: PromoteRequest,
            x_vault_token: str | None = Header(default=None),
        ):
            cluster._authorize(x_vault_token)
            cluster._record("promote")
            cluster.promote_bodies.append(body.model_dump())
            if cluster.role != "secondary":
                raise HTTPException(status_code=400, detail="cluster is not a secondary")
            if mode == "dr" and body.dr_operation_token != cluster.pair.token:
                raise HTTPException(status_code=400, detail="missing dr operation token")
            cluster.role = "primary"
            cluster.state = "running"
            cluster.connected = False
            if cluster.rename_on_promote:
                cluster.cluster_name = cluster.rename_on_promote
            return {}

        @app.post("/v1/sys/replication/{mode}/primary/secondary-token")
        async def secondary_token(
            mode: str,
            body: SecondaryTokenRequest,
            x_vault_token: str | None = Header(default=None),
        ):
            cluster._authorize(x_vault_token)
            cluster._record("secondary_token")
            if cluster.role != "primary":
                raise HTTPException(status_code=400, detail="cluster is not a primary")
            token = f"wrapped-{cluster.name}-{len(cluster.pair.issued) + 1}"
            cluster.pair.issued[token] = cluster
            return {"wrap_info": {"token": token, "ttl": 1800}}

        @app.post("/v1/sys/replication/{mode}/secondary/update-primary")
        async def update_primary(
            mode: str,
            body: UpdatePrimaryRequest,
            x_vault_token: str | None = Header(default=None),
        ):
            cluster._authorize(x_vault_token)
            cluster._record("update_primary")
            cluster.update_bodies.append(body.model_dump())
            issuer = cluster.pair.issued.pop(body.token, None)
            if issuer is None:
                raise HTTPException(status_code=400, detail="invalid activation token")
            if mode == "dr" and body.dr_operation_token != cluster.pair.token:
                raise HTTPException(status_code=400, detail="missing dr operation token")
            cluster.role = "secondary"
            cluster.state = "stream-wals"
            cluster.connected = True
            cluster.cluster_id = issuer.cluster_id
            return {}

        @app.post("/v1/sys/replication/{mode}/primary/revoke-secondary")
        async def revoke_secondary(
            mode: str,
            body: SecondaryTokenRequest,
            x_vault_token: str | None = Header(default=None),
        ):
            cluster._authorize(x_vault_token)
            cluster._record("revoke_secondary")
            if cluster.role != "primary":
                raise HTTPException(status_code=400, detail="cluster is not a primary")
            return {}

        return app


class RoutingTransport(httpx.AsyncBaseTransport):
    """Dispatches requests to the fake cluster that owns the request's host and port."""

    def __init__(self, pair: "FakePair"):
        self.pair = pair

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        for cluster in self.pair.clusters.values():
            target = httpx.URL(cluster.address)
            if (target.host, target.port) == (request.url.host, request.url.port):
                if not cluster.reachable:
                    raise httpx.ConnectError(f"{cluster.address} is unreachable", request=request)
                transport = httpx.ASGITransport(app=cluster.app)
                return await transport.handle_async_request(request)
        raise httpx.ConnectError(f"no route to {request.url}", request=request)


class FakePair:
    """A set of fake clusters sharing an operation token and a call log."""

    def __init__(self, token: str = "op-token"):
        self.token = token
        self.clusters: dict[str, FakeCluster] = {}
        self.calls: list[tuple[str, str]] = []
        self.issued: dict[str, FakeCluster] = {}

    def add(self, name: str, port: int, **kwargs) -> FakeCluster:
        cluster = FakeCluster(self, f"http://{name}:{port}", name, **kwargs)
        self.clusters[name] = cluster
        return cluster

    def transport(self) -> RoutingTransport:
        return RoutingTransport(self)

    def ops(self, op: str) -> list[str]:
        """Names of the clusters that received ``op``, in call order."""
        return [name for name, called in self.calls if called == op]

    def admin_calls(self) -> list[tuple[str, str]]:
        """Calls excluding health and lookup reads."""
        return [(n, op) for n, op in self.calls if op not in ("health", "lookup_self")]


async def no_sleep(seconds: float) -> None:
    """Stand-in for asyncio.sleep so convergence waits do not block tests."""
