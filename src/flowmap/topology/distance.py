"""Great-circle distance between geographic coordinates."""

import math
from dataclasses import dataclass

# Mean Earth radius (IUGG)
EARTH_RADIUS_KM = 6371.0088


@dataclass(frozen=True)
class Coordinates:
    """A point on the globe in decimal degrees.

    Instances are hashable and compare by exact float value, so they can
    key aggregation maps. `resolved` is False for the fallback placeholder
    used when the GeoIP database has no location for an address.
    """

    latitude: float
    longitude: float
    resolved: bool = True

    @property
    def is_origin(self) -> bool:
        """True for (0, 0), which MaxMind returns for missing locations."""
        return self.latitude == 0 and self.longitude == 0

    def quantize(self, precision: int | None) -> "Coordinates":
        """Round to `precision` decimal places; None leaves the point as is."""
        if precision is None:
            return self
        return Coordinates(
            latitude=round(self.latitude, precision),
            longitude=round(self.longitude, precision),
            resolved=self.resolved,
        )

    def to_dict(self) -> dict[str, float | bool]:
        """Convert to dictionary."""
        return {
            "latitude": self.latitude,
            "longitude": self.longitude,
            "resolved": self.resolved,
        }


def haversine(p1: Coordinates, p2: Coordinates) -> float:
    """Great-circle distance between two points in kilometers.

    Uses the atan2 form, which stays inside the function domain for
    antipodal and near-identical points.
    """
    lat1 = math.radians(p1.latitude)
    lon1 = math.radians(p1.longitude)
    lat2 = math.radians(p2.latitude)
    lon2 = math.radians(p2.longitude)

    diff_lat = lat2 - lat1
    diff_lon = lon2 - lon1

    a = (
        math.sin(diff_lat / 2) ** 2
        + math.cos(lat1) * math.cos(lat2) * math.sin(diff_lon / 2) ** 2
    )
    # Rounding can push `a` slightly outside [0, 1]
    a = min(1.0, max(0.0, a))

    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def haversine_meters(p1: Coordinates, p2: Coordinates) -> float:
    """Great-circle distance between two points in meters."""
    return haversine(p1, p2) * 1000
