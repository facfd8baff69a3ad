"""FlowMap runtime.

Owns the collaborators of the topology and enrichment services (database
engine, GeoIP readers, DNS resolver, enrichment cache) and ties their
lifetime to start()/stop().
"""

from collections.abc import Sequence
from typing import Any

from sqlalchemy.ext.asyncio import AsyncEngine

from flowmap.common.config import Settings, get_settings
from flowmap.common.database import check_database_connection, create_engine
from flowmap.common.logging import get_logger
from flowmap.enrichment.cache import EnrichmentCache
from flowmap.enrichment.enricher import BoundedEnricher, GeoLookup, ReverseResolver
from flowmap.enrichment.models import IPEnrichment
from flowmap.enrichment.networks import KnownNetworks
from flowmap.enrichment.resolvers.dns import ReverseDNSResolver
from flowmap.enrichment.resolvers.geoip import GeoIPResolver
from flowmap.storage.flows import FlowStore, SQLFlowStore
from flowmap.topology.aggregator import FlowPairAggregator
from flowmap.topology.service import TopologyResult, TopologyService

logger = get_logger(__name__)


class FlowMap:
    """Application services with explicitly owned collaborators.

    Collaborators passed in are used as given and not closed on stop;
    anything left out is built from settings on start.

    Example:
        async with FlowMap() as app:
            result = await app.aggregate_flows(exporter=1, since=0)
    """

    def __init__(
        self,
        settings: Settings | None = None,
        store: FlowStore | None = None,
        geoip: GeoIPResolver | GeoLookup | None = None,
        dns: ReverseResolver | None = None,
        cache: EnrichmentCache | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._store = store
        self._geoip = geoip
        self._dns = dns
        self._cache = cache

        self._engine: AsyncEngine | None = None
        self._owns_geoip = geoip is None
        self._topology: TopologyService | None = None
        self._enricher: BoundedEnricher | None = None

    async def start(self) -> None:
        """Build missing collaborators and the services."""
        if self._topology is not None:
            return

        settings = self._settings

        if self._store is None:
            self._engine = create_engine(settings)
            self._store = SQLFlowStore(self._engine, settings.topology)

        if self._geoip is None:
            self._geoip = GeoIPResolver(settings.geoip)

        if self._dns is None:
            self._dns = ReverseDNSResolver(settings.enrichment)

        if self._cache is None:
            self._cache = EnrichmentCache(ttl=settings.enrichment.cache_ttl)

        self._topology = TopologyService(
            store=self._store,
            aggregator=FlowPairAggregator(self._geoip, settings.topology),
        )
        self._enricher = BoundedEnricher(
            geoip=self._geoip,
            dns=self._dns,
            cache=self._cache,
            known_networks=KnownNetworks(settings.enrichment.known_networks),
            settings=settings.enrichment,
        )

        logger.info(
            "FlowMap started",
            known_networks=len(settings.enrichment.known_networks),
            concurrency_limit=settings.enrichment.concurrency_limit,
        )

    async def stop(self) -> None:
        """Release owned collaborators."""
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            self._store = None

        if self._owns_geoip and isinstance(self._geoip, GeoIPResolver):
            self._geoip.close()
            self._geoip = None

        self._topology = None
        self._enricher = None
        logger.info("FlowMap stopped")

    async def __aenter__(self) -> "FlowMap":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.stop()

    @property
    def topology(self) -> TopologyService:
        if self._topology is None:
            raise RuntimeError("FlowMap not started. Call start() first.")
        return self._topology

    @property
    def enricher(self) -> BoundedEnricher:
        if self._enricher is None:
            raise RuntimeError("FlowMap not started. Call start() first.")
        return self._enricher

    async def aggregate_flows(self, exporter: int, since: int = 0) -> TopologyResult:
        """Map lines for an exporter's flows at or after `since`."""
        return await self.topology.aggregate_flows(exporter, since)

    async def enrich_ip(self, ip: str) -> IPEnrichment:
        """Enrich one address."""
        return await self.enricher.enrich(ip)

    async def enrich_ips(self, ips: Sequence[str]) -> dict[str, IPEnrichment]:
        """Enrich a batch of addresses."""
        return await self.enricher.enrich_batch(ips)

    async def health(self) -> dict[str, Any]:
        """Report collaborator status."""
        status: dict[str, Any] = {
            "geoip": isinstance(self._geoip, GeoIPResolver) and self._geoip.is_enabled,
            "cache": self._cache.stats if self._cache is not None else None,
        }
        if self._engine is not None:
            status["database"] = await check_database_connection(self._engine)
        return status
