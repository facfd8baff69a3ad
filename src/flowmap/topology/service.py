"""Topology feed for the traffic map.

Reads an exporter's recent flows, aggregates them into address pairs and
reduces those to coordinate pairs.
"""

import time
from dataclasses import dataclass
from typing import Any

from flowmap.common.logging import get_logger
from flowmap.common.metrics import AGGREGATION_DURATION
from flowmap.storage.flows import FlowStore
from flowmap.topology.aggregator import FlowPairAggregator
from flowmap.topology.reducer import GeoPairAggregate, reduce_geo_pairs

logger = get_logger(__name__)


@dataclass
class TopologyResult:
    """Map lines plus the cursor for the caller's next poll."""

    pairs: list[GeoPairAggregate]
    cursor: int

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "pairs": [pair.to_dict() for pair in self.pairs],
            "last": self.cursor,
        }


class TopologyService:
    """Builds the traffic-map dataset for one exporter."""

    def __init__(self, store: FlowStore, aggregator: FlowPairAggregator) -> None:
        self._store = store
        self._aggregator = aggregator

    async def aggregate_flows(self, exporter: int, since: int = 0) -> TopologyResult:
        """Aggregate an exporter's flows seen at or after `since`.

        Args:
            exporter: Exporter identifier.
            since: Inclusive lower bound on flow last-seen time.

        Returns:
            Reduced coordinate pairs and the new polling cursor.

        Raises:
            StorageError: If flows cannot be read. Nothing partial is returned.
        """
        start_time = time.perf_counter()

        records = await self._store.fetch_flows(exporter, since)
        aggregation = self._aggregator.aggregate(records, since=since)
        pairs = reduce_geo_pairs(aggregation.pairs.values())

        duration = time.perf_counter() - start_time
        AGGREGATION_DURATION.observe(duration)

        logger.info(
            "Topology aggregated",
            exporter=exporter,
            since=since,
            records=aggregation.records_seen,
            skipped=aggregation.records_skipped,
            address_pairs=len(aggregation.pairs),
            geo_pairs=len(pairs),
            cursor=aggregation.cursor,
            duration_ms=round(duration * 1000, 2),
        )

        return TopologyResult(pairs=pairs, cursor=aggregation.cursor)
