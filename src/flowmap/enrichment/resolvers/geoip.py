"""GeoIP resolver using MaxMind databases.

Provides geographic location and ASN lookup for IP addresses.
Requires a GeoLite2-City or GeoIP2-City database; an ASN database is
optional.
"""

from dataclasses import dataclass
from ipaddress import IPv4Address, IPv6Address
from pathlib import Path
from typing import Any

import maxminddb

from flowmap.common.config import GeoIPSettings, get_settings
from flowmap.common.logging import get_logger
from flowmap.common.metrics import GEOIP_LOOKUPS
from flowmap.topology.distance import Coordinates

logger = get_logger(__name__)


@dataclass
class GeoIPResult:
    """Result of a GeoIP lookup."""

    country_code: str | None = None
    country_name: str | None = None
    city: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    asn: int | None = None
    org: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "country_code": self.country_code,
            "country_name": self.country_name,
            "city": self.city,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "asn": self.asn,
            "org": self.org,
        }


def _english_name(section: dict[str, Any] | None) -> str | None:
    """Pick the English name from a MaxMind localized names block."""
    if not section:
        return None
    return section.get("names", {}).get("en")


def _open_reader(path: Path | None, kind: str) -> Any:
    """Open a MaxMind database, returning None when it is unusable."""
    if path is None:
        return None

    if not Path(path).exists():
        logger.warning("GeoIP database not found", kind=kind, path=str(path))
        return None

    try:
        reader = maxminddb.open_database(str(path))
    except (OSError, maxminddb.InvalidDatabaseError) as e:
        logger.error("Failed to load GeoIP database", kind=kind, path=str(path), error=str(e))
        return None

    logger.info("GeoIP database loaded", kind=kind, path=str(path))
    return reader


class GeoIPResolver:
    """GeoIP resolver using MaxMind mmdb files.

    A missing database is not fatal: lookups then report no data and
    callers fall back to their defaults.
    """

    def __init__(
        self,
        settings: GeoIPSettings | None = None,
        city_reader: Any = None,
        asn_reader: Any = None,
    ) -> None:
        """Initialize GeoIP resolver.

        Args:
            settings: GeoIP settings with database paths.
            city_reader: Pre-opened City reader, bypassing `settings`.
            asn_reader: Pre-opened ASN reader, bypassing `settings`.
        """
        if settings is None:
            settings = get_settings().geoip

        self._city = city_reader or _open_reader(settings.city_database_path, "city")
        self._asn = asn_reader or _open_reader(settings.asn_database_path, "asn")

    def _get(self, reader: Any, ip_str: str) -> dict[str, Any] | None:
        try:
            return reader.get(ip_str)
        except (ValueError, maxminddb.InvalidDatabaseError) as e:
            GEOIP_LOOKUPS.labels(status="error").inc()
            logger.debug("GeoIP lookup failed", ip=ip_str, error=str(e))
            return None

    def lookup(
        self,
        ip_address: IPv4Address | IPv6Address | str,
    ) -> GeoIPResult | None:
        """Look up geographic and network info for an IP address.

        Args:
            ip_address: IP address to look up.

        Returns:
            GeoIPResult if either database knows the address, None otherwise.
        """
        if self._city is None and self._asn is None:
            return None

        ip_str = str(ip_address)
        city_data = self._get(self._city, ip_str) if self._city is not None else None
        asn_data = self._get(self._asn, ip_str) if self._asn is not None else None

        if not city_data and not asn_data:
            GEOIP_LOOKUPS.labels(status="not_found").inc()
            return None

        result = GeoIPResult()

        if city_data:
            country = city_data.get("country")
            if country:
                result.country_code = country.get("iso_code")
                result.country_name = _english_name(country)

            result.city = _english_name(city_data.get("city"))

            location = city_data.get("location")
            if location:
                result.latitude = location.get("latitude")
                result.longitude = location.get("longitude")

        if asn_data:
            result.asn = asn_data.get("autonomous_system_number")
            result.org = asn_data.get("autonomous_system_organization")

        GEOIP_LOOKUPS.labels(status="success").inc()
        return result

    def lookup_coordinates(self, ip: str) -> Coordinates | None:
        """Return only the location of an address.

        A record without a location yields (0, 0), as MaxMind readers do.
        """
        if self._city is None:
            return None

        data = self._get(self._city, ip)
        if data is None:
            GEOIP_LOOKUPS.labels(status="not_found").inc()
            return None

        location = data.get("location") or {}
        GEOIP_LOOKUPS.labels(status="success").inc()
        return Coordinates(
            latitude=location.get("latitude", 0.0),
            longitude=location.get("longitude", 0.0),
        )

    @property
    def is_enabled(self) -> bool:
        """Check if the City database is loaded."""
        return self._city is not None

    def close(self) -> None:
        """Close the database readers."""
        for reader in (self._city, self._asn):
            if reader is not None:
                reader.close()
        self._city = None
        self._asn = None

    def __enter__(self) -> "GeoIPResolver":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
