"""
Persistence for cached pairwise connections.

Each (guild, kind, time range) bucket is a full set of rows in
voice_connections / text_connections plus one marker row in
connection_calculations recording when the set was computed. The marker
is what makes an empty-but-fresh bucket distinguishable from "never
calculated".
"""

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from app.db.helpers import execute_batches_in_transaction, execute_query, fetch_all, fetch_val
from app.features.connections.domain.models import (
    ConnectionKind,
    PairConnection,
    TextConnection,
    TimeRange,
    VoiceConnection,
)
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class _KindTable:
    table: str
    metric_columns: tuple[str, ...]
    order_by: str


_TABLES: dict[ConnectionKind, _KindTable] = {
    ConnectionKind.VOICE: _KindTable(
        table="voice_connections",
        metric_columns=("shared_seconds", "session_count"),
        order_by="shared_seconds DESC",
    ),
    ConnectionKind.TEXT: _KindTable(
        table="text_connections",
        metric_columns=("shared_channel_count", "interaction_score", "message_count"),
        order_by="interaction_score DESC",
    ),
}

_MARK_CALCULATED = """
    INSERT INTO connection_calculations (guild_id, kind, time_range, calculated_at)
    VALUES (%s, %s, %s, %s)
    ON CONFLICT (guild_id, kind, time_range)
    DO UPDATE SET calculated_at = EXCLUDED.calculated_at
"""


def _row_to_connection(kind: ConnectionKind, row: dict[str, Any]) -> PairConnection:
    if kind is ConnectionKind.VOICE:
        return VoiceConnection(
            user_id_lo=row["user_id_1"],
            user_id_hi=row["user_id_2"],
            shared_seconds=int(row["shared_seconds"]),
            session_count=int(row["session_count"]),
        )
    return TextConnection(
        user_id_lo=row["user_id_1"],
        user_id_hi=row["user_id_2"],
        shared_channel_count=int(row["shared_channel_count"]),
        interaction_score=float(row["interaction_score"]),
        message_count=int(row.get("message_count") or 0),
    )


def _connection_to_row(
    guild_id: str, time_range: TimeRange, connection: PairConnection, calculated_at: datetime
) -> dict[str, Any]:
    row = {
        "guild_id": guild_id,
        "time_range": time_range.value,
        "user_id_1": connection.user_id_lo,
        "user_id_2": connection.user_id_hi,
        "calculated_at": calculated_at,
    }
    if isinstance(connection, VoiceConnection):
        row.update(
            shared_seconds=connection.shared_seconds,
            session_count=connection.session_count,
        )
    else:
        row.update(
            shared_channel_count=connection.shared_channel_count,
            interaction_score=connection.interaction_score,
            message_count=connection.message_count,
        )
    return row


class ConnectionCacheRepository:
    """Raw SQL helpers for the connection cache tables."""

    @classmethod
    async def fetch_last_calculated(
        cls, kind: ConnectionKind, guild_id: str, time_range: TimeRange
    ) -> datetime | None:
        query = """
            SELECT calculated_at
            FROM connection_calculations
            WHERE guild_id = %s AND kind = %s AND time_range = %s
        """
        return await fetch_val(query, (guild_id, kind.value, time_range.value))

    @classmethod
    async def replace(
        cls,
        kind: ConnectionKind,
        guild_id: str,
        time_range: TimeRange,
        connections: Sequence[PairConnection],
        calculated_at: datetime,
        *,
        batch_size: int = 500,
    ) -> int:
        """Delete the bucket and insert the new set in one transaction."""
        kind_table = _TABLES[kind]
        columns = ("guild_id", "time_range", "user_id_1", "user_id_2", *kind_table.metric_columns)
        insert_query = (
            f"INSERT INTO {kind_table.table} ({', '.join(columns)}, calculated_at) "
            f"VALUES ({', '.join(f'%({c})s' for c in columns)}, %(calculated_at)s)"
        )
        rows = [_connection_to_row(guild_id, time_range, c, calculated_at) for c in connections]

        inserted = await execute_batches_in_transaction(
            before=[
                (
                    f"DELETE FROM {kind_table.table} WHERE guild_id = %s AND time_range = %s",
                    (guild_id, time_range.value),
                )
            ],
            batch_query=insert_query,
            rows=rows,
            batch_size=batch_size,
            after=[(_MARK_CALCULATED, (guild_id, kind.value, time_range.value, calculated_at))],
        )
        logger.info(
            "Connection bucket replaced",
            kind=kind.value,
            guild_id=guild_id,
            time_range=time_range.value,
            row_count=inserted,
        )
        return inserted

    @classmethod
    async def mark_calculated(
        cls, kind: ConnectionKind, guild_id: str, time_range: TimeRange, calculated_at: datetime
    ) -> None:
        await execute_query(
            _MARK_CALCULATED, (guild_id, kind.value, time_range.value, calculated_at)
        )

    @classmethod
    async def call_procedure(
        cls, procedure: str, guild_id: str, time_range: TimeRange, *extra_args: Any
    ) -> None:
        # Procedure names come from a fixed allow-list in the aggregation strategy
        params = (guild_id, time_range.value, time_range.days, *extra_args)
        placeholders = ", ".join(["%s"] * len(params))
        await execute_query(f"SELECT {procedure}({placeholders})", params)

    @classmethod
    async def fetch_connections(
        cls, kind: ConnectionKind, guild_id: str, time_range: TimeRange
    ) -> list[PairConnection]:
        kind_table = _TABLES[kind]
        query = f"""
            SELECT user_id_1, user_id_2, {', '.join(kind_table.metric_columns)}
            FROM {kind_table.table}
            WHERE guild_id = %s AND time_range = %s
            ORDER BY {kind_table.order_by}, user_id_1, user_id_2
        """
        rows = await fetch_all(query, (guild_id, time_range.value))
        return [_row_to_connection(kind, row) for row in rows]

    @classmethod
    async def fetch_connections_for_user(
        cls,
        kind: ConnectionKind,
        guild_id: str,
        time_range: TimeRange,
        user_id: str,
        limit: int | None = None,
    ) -> list[PairConnection]:
        kind_table = _TABLES[kind]
        query = f"""
            SELECT user_id_1, user_id_2, {', '.join(kind_table.metric_columns)}
            FROM {kind_table.table}
            WHERE guild_id = %s
              AND time_range = %s
              AND (user_id_1 = %s OR user_id_2 = %s)
            ORDER BY {kind_table.order_by}, user_id_1, user_id_2
            LIMIT %s
        """
        rows = await fetch_all(query, (guild_id, time_range.value, user_id, user_id, limit))
        return [_row_to_connection(kind, row) for row in rows]
