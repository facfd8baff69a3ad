"""Flow-pair aggregation for the traffic map.

Folds raw flow records into undirected address-pair totals and places
both endpoints on the globe.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field
from ipaddress import ip_address
from typing import NamedTuple, Protocol

from flowmap.common.config import TopologySettings, get_settings
from flowmap.common.logging import get_logger
from flowmap.common.metrics import (
    COORDINATE_FALLBACKS,
    FLOWS_AGGREGATED,
    FLOWS_SKIPPED,
)
from flowmap.models.flow import FlowRecord
from flowmap.topology.distance import Coordinates, haversine_meters

logger = get_logger(__name__)


class CoordinateResolver(Protocol):
    """Anything that can place an IP address on the globe."""

    def lookup_coordinates(self, ip: str) -> Coordinates | None:
        ...


class PairKey(NamedTuple):
    """Canonical address pair, lower address first."""

    addr_a: str
    addr_b: str


def _address_sort_key(address: str) -> tuple[int, int, str]:
    """Order addresses by family then numeric value.

    Unparseable strings sort after every real address, by text.
    """
    try:
        parsed = ip_address(address)
    except ValueError:
        return (99, 0, address)
    return (parsed.version, int(parsed), "")


def canonical_pair(src_addr: str, dst_addr: str) -> PairKey:
    """Return the direction-independent key for a pair of addresses.

    Args:
        src_addr: Flow source address.
        dst_addr: Flow destination address.

    Returns:
        PairKey with the lower address first.
    """
    if _address_sort_key(dst_addr) < _address_sort_key(src_addr):
        return PairKey(dst_addr, src_addr)
    return PairKey(src_addr, dst_addr)


@dataclass
class AddressPairAggregate:
    """Traffic totals between two hosts, both directions combined."""

    addr_a: str
    addr_b: str
    coord_a: Coordinates
    coord_b: Coordinates
    octets: int = 0
    packets: int = 0
    flows: int = 0
    distance: float = field(init=False)

    def __post_init__(self) -> None:
        self.distance = haversine_meters(self.coord_a, self.coord_b)

    def add(self, octets: int, packets: int) -> None:
        """Fold one flow's counters into the pair."""
        self.octets += octets
        self.packets += packets
        self.flows += 1

    @property
    def key(self) -> PairKey:
        return PairKey(self.addr_a, self.addr_b)


@dataclass
class PairAggregation:
    """Result of one aggregation pass."""

    pairs: dict[PairKey, AddressPairAggregate]
    cursor: int
    records_seen: int = 0
    records_skipped: int = 0


class FlowPairAggregator:
    """Aggregates flow records into address pairs.

    Each pass starts from empty state. Coordinates are resolved once per
    pair, the first time the pair appears. Addresses the resolver cannot
    place get the configured fallback location flagged as unresolved.
    """

    def __init__(
        self,
        resolver: CoordinateResolver,
        settings: TopologySettings | None = None,
    ) -> None:
        """Initialize aggregator.

        Args:
            resolver: Coordinate lookup for endpoint addresses.
            settings: Topology settings.
        """
        if settings is None:
            settings = get_settings().topology

        self._resolver = resolver
        self._precision = settings.coordinate_precision
        self._fallback = Coordinates(
            latitude=settings.fallback_latitude,
            longitude=settings.fallback_longitude,
            resolved=False,
        ).quantize(self._precision)

    @property
    def fallback(self) -> Coordinates:
        """Placeholder location for unresolvable addresses."""
        return self._fallback

    def resolve(self, address: str) -> Coordinates:
        """Locate an address, substituting the fallback on any miss.

        Resolver errors are logged and never propagate.
        """
        try:
            coords = self._resolver.lookup_coordinates(address)
        except Exception as e:
            logger.warning("Coordinate lookup failed", ip=address, error=str(e))
            coords = None

        if coords is None or coords.is_origin:
            COORDINATE_FALLBACKS.inc()
            return self._fallback

        return coords.quantize(self._precision)

    def aggregate(
        self,
        records: Iterable[FlowRecord],
        since: int = 0,
    ) -> PairAggregation:
        """Fold records into canonical address-pair aggregates.

        Args:
            records: Flow records for one exporter, in any order.
            since: Cursor the records were queried with; returned unchanged
                when no record advances it.

        Returns:
            Pair aggregates plus the largest last-seen time observed.
        """
        pairs: dict[PairKey, AddressPairAggregate] = {}
        cursor = since
        seen = 0
        skipped = 0

        for record in records:
            seen += 1

            # Zero-address rows are ignored entirely, cursor included
            if record.has_unspecified_endpoint:
                skipped += 1
                FLOWS_SKIPPED.labels(reason="unspecified_address").inc()
                continue

            cursor = max(cursor, record.last_seen)

            if record.is_self_pair:
                skipped += 1
                FLOWS_SKIPPED.labels(reason="self_pair").inc()
                continue

            key = canonical_pair(record.src_addr, record.dst_addr)
            aggregate = pairs.get(key)

            if aggregate is None:
                aggregate = AddressPairAggregate(
                    addr_a=key.addr_a,
                    addr_b=key.addr_b,
                    coord_a=self.resolve(key.addr_a),
                    coord_b=self.resolve(key.addr_b),
                )
                pairs[key] = aggregate

            aggregate.add(record.octets, record.packets)
            FLOWS_AGGREGATED.inc()

        logger.debug(
            "Aggregated flow pairs",
            records=seen,
            skipped=skipped,
            pairs=len(pairs),
            cursor=cursor,
        )

        return PairAggregation(
            pairs=pairs,
            cursor=cursor,
            records_seen=seen,
            records_skipped=skipped,
        )
