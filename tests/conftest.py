"""Pytest configuration and fixtures for FlowMap tests."""

import asyncio
from collections.abc import Iterable

import pytest

from flowmap.common.config import EnrichmentSettings, KnownNetwork, TopologySettings
from flowmap.common.exceptions import FlowStoreError
from flowmap.enrichment.cache import EnrichmentCache
from flowmap.enrichment.enricher import BoundedEnricher
from flowmap.enrichment.networks import KnownNetworks
from flowmap.enrichment.resolvers.geoip import GeoIPResult
from flowmap.models.flow import FlowRecord
from flowmap.topology.distance import Coordinates


class FakeGeoIP:
    """GeoIP stand-in with call counting."""

    def __init__(
        self,
        results: dict[str, GeoIPResult] | None = None,
        coordinates: dict[str, Coordinates] | None = None,
        error: Exception | None = None,
    ) -> None:
        self.results = results or {}
        self.coordinates = coordinates or {}
        self.error = error
        self.lookup_calls: list[str] = []
        self.coordinate_calls: list[str] = []

    def lookup(self, ip_address: str) -> GeoIPResult | None:
        self.lookup_calls.append(ip_address)
        if self.error is not None:
            raise self.error
        return self.results.get(ip_address)

    def lookup_coordinates(self, ip: str) -> Coordinates | None:
        self.coordinate_calls.append(ip)
        if self.error is not None:
            raise self.error
        return self.coordinates.get(ip)


class FakeDNS:
    """Reverse DNS stand-in tracking concurrent lookups."""

    def __init__(
        self,
        hostnames: dict[str, list[str]] | None = None,
        delay: float = 0.0,
        hang: set[str] | None = None,
    ) -> None:
        self.hostnames = hostnames or {}
        self.delay = delay
        self.hang = hang or set()
        self.calls: list[str] = []
        self.in_flight = 0
        self.peak_in_flight = 0

    async def reverse(self, ip_address: str) -> list[str]:
        self.calls.append(ip_address)
        self.in_flight += 1
        self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
        try:
            if ip_address in self.hang:
                await asyncio.sleep(3600)
            if self.delay:
                await asyncio.sleep(self.delay)
            return list(self.hostnames.get(ip_address, []))
        finally:
            self.in_flight -= 1


class FakeFlowStore:
    """FlowStore stand-in serving fixed records."""

    def __init__(
        self,
        records: Iterable[FlowRecord] = (),
        error: Exception | None = None,
    ) -> None:
        self.records = list(records)
        self.error = error
        self.calls: list[tuple[int, int]] = []

    async def fetch_flows(self, exporter: int, since: int) -> list[FlowRecord]:
        self.calls.append((exporter, since))
        if self.error is not None:
            raise self.error
        return [
            r for r in self.records
            if r.exporter == exporter and r.last_seen >= since
        ]


def make_flow(
    src: str,
    dst: str,
    octets: int = 100,
    packets: int = 1,
    last_seen: int = 1000,
    exporter: int = 1,
) -> FlowRecord:
    """Build a flow record with sensible defaults."""
    return FlowRecord(
        src_addr=src,
        dst_addr=dst,
        octets=octets,
        packets=packets,
        last_seen=last_seen,
        exporter=exporter,
    )


NEW_YORK = Coordinates(latitude=40.7128, longitude=-74.0060)
LONDON = Coordinates(latitude=51.5074, longitude=-0.1278)
TOKYO = Coordinates(latitude=35.6762, longitude=139.6503)


@pytest.fixture
def topology_settings() -> TopologySettings:
    """Topology settings with the default fallback location."""
    return TopologySettings()


@pytest.fixture
def enrichment_settings() -> EnrichmentSettings:
    """Enrichment settings with a short DNS timeout."""
    return EnrichmentSettings(
        dns_timeout=0.2,
        concurrency_limit=10,
        max_batch_size=1000,
        known_networks=[
            KnownNetwork(cidr="192.168.1.0/24", name="Office LAN"),
            KnownNetwork(cidr="10.0.0.0/8", name="Datacenter"),
        ],
    )


@pytest.fixture
def fake_geoip() -> FakeGeoIP:
    """GeoIP with one known public address."""
    return FakeGeoIP(
        results={
            "8.8.8.8": GeoIPResult(
                country_code="US",
                country_name="United States",
                city="Mountain View",
                latitude=37.386,
                longitude=-122.0838,
                asn=15169,
                org="GOOGLE",
            ),
        },
    )


@pytest.fixture
def fake_dns() -> FakeDNS:
    """DNS with one PTR record."""
    return FakeDNS(hostnames={"8.8.8.8": ["dns.google"]})


@pytest.fixture
def enricher(
    fake_geoip: FakeGeoIP,
    fake_dns: FakeDNS,
    enrichment_settings: EnrichmentSettings,
) -> BoundedEnricher:
    """Enricher wired to fakes and a fresh cache."""
    return BoundedEnricher(
        geoip=fake_geoip,
        dns=fake_dns,
        cache=EnrichmentCache(),
        known_networks=KnownNetworks(enrichment_settings.known_networks),
        settings=enrichment_settings,
    )


@pytest.fixture
def failing_store() -> FakeFlowStore:
    """Store whose queries always fail."""
    return FakeFlowStore(error=FlowStoreError("connection refused"))
