"""Data models for flow records."""

from flowmap.models.flow import FlowRecord, int_to_ipv4, protocol_name

__all__ = [
    "FlowRecord",
    "int_to_ipv4",
    "protocol_name",
]
