"""Shared fixtures: a fake cluster pair and matching settings."""

import pytest

from fakes import FakePair, no_sleep

from replfailover.cluster.client import ClientFactory
from replfailover.cluster.models import Credential, ReplicationMode, RunContext
from replfailover.core.config import Settings
from replfailover.failover.orchestrator import FailoverOrchestrator
from replfailover.topology.discovery import TopologyDiscoverer


@pytest.fixture
def pair():
    """Healthy DR pair: ``a`` is the running primary, ``b`` a connected secondary."""
    fake = FakePair()
    fake.add("a", 8200, role="primary", last_wal=120)
    fake.add("b", 8300, role="secondary", last_wal=110)
    return fake


@pytest.fixture
def make_settings(pair):
    """Build settings pointed at the fake pair."""

    def _make(**overrides) -> Settings:
        values = {
            "addresses": [pair.clusters["a"].address, pair.clusters["b"].address],
            "mode": "dr",
            "operation_token": pair.token,
            "request_timeout_s": 0.01,
            "poll_max_attempts": 5,
            "assume_yes": True,
        }
        values.update(overrides)
        return Settings(**values)

    return _make


@pytest.fixture
def settings(make_settings):
    return make_settings()


@pytest.fixture
def context(settings):
    """Fresh run context for the configured mode and credential."""
    return RunContext(
        mode=ReplicationMode(settings.mode),
        credential=Credential(token=settings.operation_token),
    )


@pytest.fixture
def clients(settings, pair):
    return ClientFactory(settings, pair.transport())


@pytest.fixture
async def discoverer(context, clients):
    yield TopologyDiscoverer(context, clients)
    await context.close()


@pytest.fixture
def orchestrator(context, clients, discoverer, settings):
    return FailoverOrchestrator(
        context,
        clients,
        discoverer.init_client,
        settings,
        confirm=lambda question: True,
        sleep=no_sleep,
    )
