"""IP address enrichment.

Attaches GeoIP location, reverse DNS hostname and a service label to IP
addresses. Results are cached for reuse; batches are enriched by a fixed
pool of workers so no more than `concurrency_limit` lookups run at once.
"""

import asyncio
from collections.abc import Sequence
from ipaddress import IPv4Address, IPv6Address, ip_address, ip_network
from typing import Protocol

from flowmap.common.config import EnrichmentSettings, get_settings
from flowmap.common.exceptions import (
    BatchTooLargeError,
    EmptyBatchError,
    InvalidIPAddressError,
)
from flowmap.common.logging import get_logger
from flowmap.common.metrics import BATCH_SIZE, ENRICHMENTS, ENRICHMENTS_IN_FLIGHT
from flowmap.enrichment.cache import EnrichmentCache
from flowmap.enrichment.models import IPEnrichment
from flowmap.enrichment.networks import KnownNetworks
from flowmap.enrichment.resolvers.geoip import GeoIPResult
from flowmap.enrichment.resolvers.service_name import service_name_for

logger = get_logger(__name__)

# RFC 1918 and RFC 4193 ranges; loopback and link-local are checked separately
PRIVATE_NETWORKS = (
    ip_network("10.0.0.0/8"),
    ip_network("172.16.0.0/12"),
    ip_network("192.168.0.0/16"),
    ip_network("fc00::/7"),
)


class GeoLookup(Protocol):
    def lookup(self, ip_address: str) -> GeoIPResult | None:
        ...


class ReverseResolver(Protocol):
    async def reverse(self, ip_address: str) -> list[str]:
        ...


def parse_ip(ip: str) -> IPv4Address | IPv6Address:
    """Parse an address string.

    Raises:
        InvalidIPAddressError: If `ip` is not an IPv4 or IPv6 address.
    """
    try:
        return ip_address(ip.strip())
    except (ValueError, AttributeError) as e:
        raise InvalidIPAddressError(details={"ip": ip}, cause=e) from e


def is_private_address(address: IPv4Address | IPv6Address) -> bool:
    """Check for private, loopback or link-local addresses."""
    if address.is_loopback or address.is_link_local:
        return True
    return any(
        address.version == network.version and address in network
        for network in PRIVATE_NETWORKS
    )


class BoundedEnricher:
    """Enriches IP addresses, alone or in bounded concurrent batches.

    Private addresses only get a local network name; public addresses go
    through GeoIP and reverse DNS. Lookup failures leave fields empty and
    the partial record is cached like a complete one.
    """

    def __init__(
        self,
        geoip: GeoLookup,
        dns: ReverseResolver,
        cache: EnrichmentCache | None = None,
        known_networks: KnownNetworks | None = None,
        settings: EnrichmentSettings | None = None,
    ) -> None:
        """Initialize enricher.

        Args:
            geoip: GeoIP lookup for public addresses.
            dns: Reverse DNS resolver.
            cache: Shared enrichment cache.
            known_networks: Names for private networks.
            settings: Enrichment settings.
        """
        if settings is None:
            settings = get_settings().enrichment

        self._geoip = geoip
        self._dns = dns
        self._cache = cache if cache is not None else EnrichmentCache(ttl=settings.cache_ttl)
        self._known_networks = (
            known_networks if known_networks is not None
            else KnownNetworks(settings.known_networks)
        )
        self._dns_timeout = settings.dns_timeout
        self._concurrency_limit = settings.concurrency_limit
        self._max_batch_size = settings.max_batch_size

        # Lookups in progress, so concurrent requests for one address share a pass
        self._in_flight: dict[str, asyncio.Task[IPEnrichment]] = {}

    @property
    def cache(self) -> EnrichmentCache:
        return self._cache

    @property
    def concurrency_limit(self) -> int:
        return self._concurrency_limit

    async def enrich(self, ip: str) -> IPEnrichment:
        """Enrich a single IP address.

        Args:
            ip: IPv4 or IPv6 address.

        Returns:
            Cached or freshly computed enrichment.

        Raises:
            InvalidIPAddressError: If `ip` is malformed. Raised before any lookup.
        """
        address = parse_ip(ip)
        return await self._enrich_address(address)

    async def _enrich_address(self, address: IPv4Address | IPv6Address) -> IPEnrichment:
        ip_str = str(address)

        cached = await self._cache.get(ip_str)
        if cached is not None:
            return cached

        # The lookup runs in its own task; cancelling one caller never
        # cancels the lookup other callers are waiting on
        task = self._in_flight.get(ip_str)
        if task is None:
            task = asyncio.create_task(self._compute_and_store(address))
            self._in_flight[ip_str] = task
            task.add_done_callback(lambda done: self._forget(ip_str, done))

        return await asyncio.shield(task)

    def _forget(self, ip_str: str, task: asyncio.Task[IPEnrichment]) -> None:
        if self._in_flight.get(ip_str) is task:
            del self._in_flight[ip_str]
        if not task.cancelled() and task.exception() is not None:
            logger.error("Enrichment failed", ip=ip_str, error=str(task.exception()))

    async def _compute_and_store(self, address: IPv4Address | IPv6Address) -> IPEnrichment:
        ip_str = str(address)

        # Another lookup may have finished this address since the caller checked
        record = await self._cache.peek(ip_str)
        if record is None:
            record = await self._compute(address)
            await self._cache.set(ip_str, record)
        return record

    async def _compute(self, address: IPv4Address | IPv6Address) -> IPEnrichment:
        ip_str = str(address)

        if is_private_address(address):
            ENRICHMENTS.labels(kind="private").inc()
            return IPEnrichment(
                ip=ip_str,
                is_private=True,
                service_name=self._known_networks.name_for(ip_str),
            )

        ENRICHMENTS.labels(kind="public").inc()

        geo = self._lookup_geoip(ip_str)
        hostname = await self._lookup_hostname(ip_str)

        return IPEnrichment(
            ip=ip_str,
            country=(geo.country_name or "") if geo else "",
            country_code=(geo.country_code or "") if geo else "",
            city=(geo.city or "") if geo else "",
            asn=(geo.asn or 0) if geo else 0,
            as_org=(geo.org or "") if geo else "",
            hostname=hostname,
            service_name=service_name_for(hostname) if hostname else "",
            is_private=False,
        )

    def _lookup_geoip(self, ip_str: str) -> GeoIPResult | None:
        try:
            return self._geoip.lookup(ip_str)
        except Exception as e:
            logger.warning("GeoIP enrichment failed", ip=ip_str, error=str(e))
            return None

    async def _lookup_hostname(self, ip_str: str) -> str:
        try:
            hostnames = await asyncio.wait_for(
                self._dns.reverse(ip_str),
                timeout=self._dns_timeout,
            )
        except asyncio.TimeoutError:
            logger.info("Reverse DNS timed out", ip=ip_str, timeout=self._dns_timeout)
            return ""
        except Exception as e:
            logger.warning("Reverse DNS enrichment failed", ip=ip_str, error=str(e))
            return ""

        return hostnames[0] if hostnames else ""

    async def enrich_batch(self, ips: Sequence[str]) -> dict[str, IPEnrichment]:
        """Enrich many addresses concurrently.

        Every address is validated before any work starts. Duplicates are
        processed like any other entry and collapse to one result key.

        Args:
            ips: Addresses to enrich.

        Returns:
            Mapping of normalized address to enrichment, one entry per
            distinct address.

        Raises:
            EmptyBatchError: If `ips` is empty.
            BatchTooLargeError: If `ips` exceeds the batch ceiling.
            InvalidIPAddressError: If any address is malformed.
        """
        if not ips:
            raise EmptyBatchError()

        if len(ips) > self._max_batch_size:
            raise BatchTooLargeError(
                f"too many IPs (max {self._max_batch_size})",
                details={"count": len(ips), "max": self._max_batch_size},
            )

        addresses = [parse_ip(ip) for ip in ips]
        BATCH_SIZE.observe(len(addresses))

        queue: asyncio.Queue[IPv4Address | IPv6Address] = asyncio.Queue()
        for address in addresses:
            queue.put_nowait(address)

        results: dict[str, IPEnrichment] = {}
        results_lock = asyncio.Lock()

        async def worker() -> None:
            while True:
                try:
                    address = queue.get_nowait()
                except asyncio.QueueEmpty:
                    return

                ENRICHMENTS_IN_FLIGHT.inc()
                try:
                    record = await self._enrich_address(address)
                finally:
                    ENRICHMENTS_IN_FLIGHT.dec()

                async with results_lock:
                    results[str(address)] = record

        worker_count = min(self._concurrency_limit, len(addresses))
        await asyncio.gather(*(worker() for _ in range(worker_count)))

        logger.debug(
            "Batch enrichment complete",
            requested=len(addresses),
            distinct=len(results),
            workers=worker_count,
        )
        return results
