"""Collapse address pairs into map lines.

Many host pairs resolve to the same two cities; the map only needs one
line per coordinate pair.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from flowmap.topology.aggregator import AddressPairAggregate
from flowmap.topology.distance import Coordinates


def _coordinate_sort_key(coords: Coordinates) -> tuple[float, float, bool]:
    return (coords.latitude, coords.longitude, coords.resolved)


def coordinate_pair_key(
    coord_a: Coordinates,
    coord_b: Coordinates,
) -> tuple[Coordinates, Coordinates]:
    """Direction-independent key for two points."""
    if _coordinate_sort_key(coord_b) < _coordinate_sort_key(coord_a):
        return coord_b, coord_a
    return coord_a, coord_b


@dataclass
class GeoPairAggregate:
    """Traffic between two map points.

    Distance is in meters.
    """

    coord_a: Coordinates
    coord_b: Coordinates
    distance: float
    octets: int = 0
    packets: int = 0
    pairs: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "src": self.coord_a.to_dict(),
            "dst": self.coord_b.to_dict(),
            "distance": self.distance,
            "octets": self.octets,
            "packets": self.packets,
            "pairs": self.pairs,
        }


def reduce_geo_pairs(
    aggregates: Iterable[AddressPairAggregate],
) -> list[GeoPairAggregate]:
    """Merge address pairs that share both endpoints' coordinates.

    Pairs with zero distance are dropped: self-pairs and hosts placed at
    the same point have nothing to draw. Output order is unspecified.
    """
    reduced: dict[tuple[Coordinates, Coordinates], GeoPairAggregate] = {}

    for aggregate in aggregates:
        if aggregate.distance == 0:
            continue

        key = coordinate_pair_key(aggregate.coord_a, aggregate.coord_b)
        geo_pair = reduced.get(key)

        if geo_pair is None:
            geo_pair = GeoPairAggregate(
                coord_a=key[0],
                coord_b=key[1],
                distance=aggregate.distance,
            )
            reduced[key] = geo_pair

        geo_pair.octets += aggregate.octets
        geo_pair.packets += aggregate.packets
        geo_pair.pairs += 1

    return list(reduced.values())
