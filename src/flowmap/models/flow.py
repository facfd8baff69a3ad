"""Flow record model.

Rows come from the NetFlow collector's v5/v9 tables, which store IPv4
addresses as integers and timestamps as epoch seconds.
"""

from dataclasses import dataclass
from ipaddress import IPv4Address

# IANA protocol numbers seen on typical exporters
PROTOCOL_NAMES: dict[int, str] = {
    1: "ICMP",
    2: "IGMP",
    6: "TCP",
    17: "UDP",
    41: "IPv6",
    47: "GRE",
    50: "ESP",
    51: "AH",
    58: "ICMPv6",
    88: "EIGRP",
    89: "OSPF",
    103: "PIM",
    115: "L2TP",
    132: "SCTP",
}

UNSPECIFIED_ADDRESS = "0.0.0.0"


def protocol_name(protocol: int) -> str:
    """Return the display name for an IP protocol number."""
    return PROTOCOL_NAMES.get(protocol, f"Protocol {protocol}")


def int_to_ipv4(value: int) -> str:
    """Decode a collector integer address into dotted-quad form.

    Only the low 32 bits are significant; the collector stores addresses
    in signed 64-bit columns.
    """
    return str(IPv4Address(value & 0xFFFFFFFF))


@dataclass(frozen=True)
class FlowRecord:
    """A single exported flow.

    Immutable: aggregation reads records and never rewrites them.
    """

    src_addr: str
    dst_addr: str
    octets: int
    packets: int
    last_seen: int
    exporter: int
    id: int | None = None
    src_port: int = 0
    dst_port: int = 0
    protocol: int = 0
    first_seen: int = 0

    @property
    def protocol_name(self) -> str:
        """Display name of the flow's IP protocol."""
        return protocol_name(self.protocol)

    @property
    def is_self_pair(self) -> bool:
        """True when source and destination are the same host."""
        return self.src_addr == self.dst_addr

    @property
    def has_unspecified_endpoint(self) -> bool:
        """True when either endpoint is the all-zero address."""
        return UNSPECIFIED_ADDRESS in (self.src_addr, self.dst_addr)

    @classmethod
    def from_row(cls, row: dict) -> "FlowRecord":
        """Build a record from a collector table row."""
        return cls(
            id=row.get("id"),
            src_addr=int_to_ipv4(int(row["srcaddr"])),
            dst_addr=int_to_ipv4(int(row["dstaddr"])),
            octets=int(row["doctets"]),
            packets=int(row["dpkts"]),
            src_port=int(row.get("srcport") or 0),
            dst_port=int(row.get("dstport") or 0),
            protocol=int(row.get("prot") or 0),
            first_seen=int(row.get("first") or 0),
            last_seen=int(row["last"]),
            exporter=int(row["exporter"]),
        )
