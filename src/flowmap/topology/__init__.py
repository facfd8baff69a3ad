"""Topology aggregation - flow pairs placed on the map.

- Fold flow records into undirected address-pair totals
- Locate both endpoints and measure the distance between them
- Merge pairs that land on the same two map points
"""

from flowmap.topology.aggregator import (
    AddressPairAggregate,
    FlowPairAggregator,
    PairKey,
    canonical_pair,
)
from flowmap.topology.distance import Coordinates, haversine, haversine_meters
from flowmap.topology.reducer import GeoPairAggregate, reduce_geo_pairs
from flowmap.topology.service import TopologyResult, TopologyService

__all__ = [
    "AddressPairAggregate",
    "Coordinates",
    "FlowPairAggregator",
    "GeoPairAggregate",
    "PairKey",
    "TopologyResult",
    "TopologyService",
    "canonical_pair",
    "haversine",
    "haversine_meters",
    "reduce_geo_pairs",
]
