"""Flow record retrieval from the collector database.

The collector writes NetFlow v5 and v9 records to separate tables with
the same column layout; queries read both.
"""

from typing import Protocol

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from flowmap.common.config import TopologySettings, get_settings
from flowmap.common.exceptions import FlowStoreError
from flowmap.common.logging import get_logger
from flowmap.common.metrics import FLOW_STORE_ERRORS
from flowmap.models.flow import FlowRecord

logger = get_logger(__name__)

FLOW_COLUMNS = (
    "id, srcaddr, dstaddr, dpkts, doctets, srcport, dstport, prot, "
    "exporter, first, last"
)


class FlowStore(Protocol):
    """Source of flow records for one exporter."""

    async def fetch_flows(self, exporter: int, since: int) -> list[FlowRecord]:
        """Return records of `exporter` whose last-seen time is >= `since`.

        Raises:
            StorageError: If the store cannot be queried.
        """
        ...


def build_flow_query(tables: list[str]) -> str:
    """Build the UNION query over the configured flow tables."""
    selects = [
        f"SELECT {FLOW_COLUMNS} FROM {table} "
        "WHERE exporter = :exporter AND last >= :since"
        for table in tables
    ]
    return " UNION ".join(selects)


class SQLFlowStore:
    """FlowStore backed by the collector's PostgreSQL tables."""

    def __init__(
        self,
        engine: AsyncEngine,
        settings: TopologySettings | None = None,
    ) -> None:
        """Initialize flow store.

        Args:
            engine: Async engine connected to the collector database.
            settings: Topology settings naming the flow tables.
        """
        if settings is None:
            settings = get_settings().topology

        self._engine = engine
        self._query = text(build_flow_query(settings.flow_tables))

    async def fetch_flows(self, exporter: int, since: int) -> list[FlowRecord]:
        """Return records of `exporter` whose last-seen time is >= `since`.

        Raises:
            FlowStoreError: If the query or row decoding fails.
        """
        try:
            async with self._engine.connect() as conn:
                result = await conn.execute(
                    self._query,
                    {"exporter": exporter, "since": since},
                )
                rows = result.mappings().all()
        except (SQLAlchemyError, OSError) as e:
            FLOW_STORE_ERRORS.inc()
            logger.error(
                "Flow query failed",
                exporter=exporter,
                since=since,
                error=str(e),
            )
            raise FlowStoreError(
                details={"exporter": exporter, "since": since},
                cause=e,
            ) from e

        try:
            return [FlowRecord.from_row(dict(row)) for row in rows]
        except (KeyError, TypeError, ValueError) as e:
            FLOW_STORE_ERRORS.inc()
            raise FlowStoreError(
                "Malformed flow row",
                details={"exporter": exporter},
                cause=e,
            ) from e
