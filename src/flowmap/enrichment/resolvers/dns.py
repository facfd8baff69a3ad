"""Reverse DNS resolver.

Looks up PTR records for IP addresses with a hard per-lookup deadline,
so a slow nameserver delays only the address being resolved.
"""

import asyncio
from ipaddress import IPv4Address, IPv6Address

import dns.asyncresolver
import dns.exception
import dns.resolver

from flowmap.common.config import EnrichmentSettings, get_settings
from flowmap.common.logging import get_logger
from flowmap.common.metrics import DNS_LOOKUPS

logger = get_logger(__name__)


class ReverseDNSResolver:
    """Async PTR lookups via dnspython.

    Lookups never raise: any failure, including the deadline expiring,
    returns an empty list.
    """

    def __init__(self, settings: EnrichmentSettings | None = None) -> None:
        """Initialize DNS resolver.

        Args:
            settings: Enrichment settings. Uses global settings if not provided.
        """
        if settings is None:
            settings = get_settings().enrichment

        self._timeout = settings.dns_timeout

        # Explicit servers replace the system configuration entirely
        self._resolver = dns.asyncresolver.Resolver(configure=not settings.dns_servers)
        self._resolver.timeout = self._timeout
        self._resolver.lifetime = self._timeout

        if settings.dns_servers:
            self._resolver.nameservers = settings.dns_servers

    @property
    def timeout(self) -> float:
        """Per-lookup deadline in seconds."""
        return self._timeout

    async def reverse(
        self,
        ip_address: IPv4Address | IPv6Address | str,
    ) -> list[str]:
        """Resolve an IP address to its PTR hostnames.

        Args:
            ip_address: IP address to resolve.

        Returns:
            Hostnames without trailing dots, possibly empty.
        """
        ip_str = str(ip_address)

        try:
            answers = await asyncio.wait_for(
                self._resolver.resolve_address(ip_str),
                timeout=self._timeout,
            )
        except dns.resolver.NXDOMAIN:
            DNS_LOOKUPS.labels(status="nxdomain").inc()
            return []
        except dns.resolver.NoAnswer:
            DNS_LOOKUPS.labels(status="noanswer").inc()
            return []
        except (asyncio.TimeoutError, dns.exception.Timeout):
            DNS_LOOKUPS.labels(status="timeout").inc()
            logger.debug("Reverse DNS timed out", ip=ip_str, timeout=self._timeout)
            return []
        except dns.exception.DNSException as e:
            DNS_LOOKUPS.labels(status="error").inc()
            logger.debug("Reverse DNS error", ip=ip_str, error=str(e))
            return []

        hostnames = [str(answer).rstrip(".") for answer in answers]
        DNS_LOOKUPS.labels(status="success" if hostnames else "noanswer").inc()
        return [name for name in hostnames if name]
