"""Unit tests for coordinate-pair reduction."""

import pytest

from flowmap.topology.aggregator import AddressPairAggregate, FlowPairAggregator
from flowmap.topology.distance import Coordinates, haversine_meters
from flowmap.topology.reducer import (
    GeoPairAggregate,
    coordinate_pair_key,
    reduce_geo_pairs,
)

from conftest import LONDON, NEW_YORK, TOKYO, FakeGeoIP, make_flow


def _pair(addr_a, addr_b, coord_a, coord_b, octets=0, packets=0):
    aggregate = AddressPairAggregate(addr_a, addr_b, coord_a, coord_b)
    aggregate.add(octets, packets)
    return aggregate


@pytest.mark.unit
class TestReduceGeoPairs:
    """Test cases for reduce_geo_pairs."""

    def test_merges_pairs_with_same_coordinates(self):
        """Test host pairs between the same two cities become one line."""
        result = reduce_geo_pairs([
            _pair("1.1.1.1", "8.8.8.8", NEW_YORK, LONDON, 100, 1),
            _pair("1.1.1.2", "8.8.8.9", NEW_YORK, LONDON, 50, 2),
        ])

        assert len(result) == 1
        assert result[0].octets == 150
        assert result[0].packets == 3
        assert result[0].pairs == 2
        assert result[0].distance == haversine_meters(NEW_YORK, LONDON)

    def test_merges_reversed_coordinates(self):
        """Test grouping ignores which endpoint sorted first."""
        result = reduce_geo_pairs([
            _pair("1.1.1.1", "8.8.8.8", NEW_YORK, LONDON, 100, 1),
            _pair("2.2.2.2", "3.3.3.3", LONDON, NEW_YORK, 10, 1),
        ])

        assert len(result) == 1
        assert result[0].octets == 110

    def test_distinct_coordinates_kept_apart(self):
        """Test different city pairs stay separate."""
        result = reduce_geo_pairs([
            _pair("1.1.1.1", "8.8.8.8", NEW_YORK, LONDON, 100, 1),
            _pair("1.1.1.1", "9.9.9.9", NEW_YORK, TOKYO, 100, 1),
        ])

        assert len(result) == 2

    def test_zero_distance_dropped(self):
        """Test pairs at the same point are pruned even with traffic."""
        origin = Coordinates(0.0, 0.0)
        result = reduce_geo_pairs([
            _pair("1.1.1.1", "8.8.8.8", origin, origin, 1000, 10),
            _pair("2.2.2.2", "3.3.3.3", LONDON, LONDON, 5, 1),
        ])

        assert result == []

    def test_never_returns_zero_distance(self):
        """Test the output of a full pass has no zero-distance entries."""
        geoip = FakeGeoIP(coordinates={"1.1.1.1": NEW_YORK, "8.8.8.8": LONDON})
        aggregator = FlowPairAggregator(geoip)
        aggregation = aggregator.aggregate([
            make_flow("1.1.1.1", "8.8.8.8"),
            # Both unknown: both at the fallback point
            make_flow("5.5.5.5", "6.6.6.6"),
            make_flow("1.1.1.1", "1.1.1.1"),
        ])

        result = reduce_geo_pairs(aggregation.pairs.values())

        assert len(result) == 1
        assert all(geo.distance != 0 for geo in result)

    def test_empty_input(self):
        """Test no pairs reduce to no lines."""
        assert reduce_geo_pairs([]) == []


@pytest.mark.unit
class TestGeoPairAggregate:
    """Test cases for GeoPairAggregate."""

    def test_coordinate_pair_key_unordered(self):
        """Test key is the same in both orders."""
        assert coordinate_pair_key(NEW_YORK, LONDON) == coordinate_pair_key(LONDON, NEW_YORK)

    def test_to_dict(self):
        """Test dictionary conversion."""
        geo = GeoPairAggregate(
            coord_a=NEW_YORK,
            coord_b=LONDON,
            distance=1.5,
            octets=10,
            packets=2,
            pairs=1,
        )

        data = geo.to_dict()

        assert data["src"] == NEW_YORK.to_dict()
        assert data["dst"] == LONDON.to_dict()
        assert data["distance"] == 1.5
        assert data["octets"] == 10
        assert data["packets"] == 2
