"""Enrichment result model."""

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class IPEnrichment:
    """Everything known about one IP address.

    Fields the lookups could not fill stay empty; a miss is not an error.
    Records are frozen because the cache hands the same instance to every
    caller.
    """

    ip: str
    country: str = ""
    country_code: str = ""
    city: str = ""
    asn: int = 0
    as_org: str = ""
    hostname: str = ""
    service_name: str = ""
    is_private: bool = False

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary, omitting empty optional fields."""
        result: dict[str, Any] = {"ip": self.ip}
        for name in ("country", "country_code", "city", "asn", "as_org", "hostname", "service_name"):
            value = getattr(self, name)
            if value:
                result[name] = value
        result["is_private"] = self.is_private
        return result
