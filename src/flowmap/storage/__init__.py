"""Flow record storage access."""

from flowmap.storage.flows import FlowStore, SQLFlowStore

__all__ = [
    "FlowStore",
    "SQLFlowStore",
]
