"""Named local networks for labeling private addresses."""

from collections.abc import Iterable
from ipaddress import IPv4Network, IPv6Network, ip_address, ip_network

from flowmap.common.config import KnownNetwork
from flowmap.common.exceptions import ConfigurationError


class KnownNetworks:
    """Ordered CIDR to name table; the first containing network wins."""

    def __init__(self, entries: Iterable[KnownNetwork] = ()) -> None:
        """Compile the table.

        Raises:
            ConfigurationError: If an entry's CIDR does not parse.
        """
        self._networks: list[tuple[IPv4Network | IPv6Network, str]] = []
        for entry in entries:
            try:
                network = ip_network(entry.cidr, strict=False)
            except ValueError as e:
                raise ConfigurationError(
                    f"Invalid known network CIDR: {entry.cidr!r}",
                    details={"cidr": entry.cidr, "name": entry.name},
                    cause=e,
                ) from e
            self._networks.append((network, entry.name))

    def name_for(self, ip: str) -> str:
        """Return the name of the first network containing `ip`, or ""."""
        try:
            address = ip_address(ip)
        except ValueError:
            return ""

        for network, name in self._networks:
            if address.version == network.version and address in network:
                return name
        return ""

    def __len__(self) -> int:
        return len(self._networks)
