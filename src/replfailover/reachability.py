"""Reachability pre-check for configured cluster addresses."""

import logging

import httpx

from .core.config import Settings

logger = logging.getLogger(__name__)


async def verify_addresses(
    settings: Settings,
    transport: httpx.AsyncBaseTransport | None = None,
) -> list[str]:
    """
    Return the configured addresses that answer a health probe.

    Any HTTP response counts as reachable (sealed, standby and secondary
    clusters answer with non-200 codes). Timeouts and connection errors
    drop the address with a warning.
    """
    verified: list[str] = []

    async with httpx.AsyncClient(
        timeout=settings.request_timeout_s,
        verify=not settings.tls_skip_verify,
        transport=transport,
    ) as client:
        for address in settings.addresses:
            try:
                await client.get(f"{address}/v1/sys/health")
            except httpx.TimeoutException:
                logger.warning("Request timeout for %s", address)
                continue
            except httpx.TransportError as exc:
                logger.warning("Request errored for %s: %s", address, exc)
                continue

            verified.append(address)
            logger.info("Verified address: %s", address)

    return verified
