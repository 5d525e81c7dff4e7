"""
Choose between server-side aggregation procedures and local computation.

The datastore may expose calculate_voice_connections /
calculate_text_connections. A capability probe checks the catalog once per
connection kind; recompute then runs whichever variant was selected. A
failing remote call is a real error and propagates, it never silently
switches paths mid-request.
"""

from __future__ import annotations

from dataclasses import dataclass

from app.config import settings
from app.features.connections.domain.models import ConnectionKind
from app.infrastructure.observability.logging import get_logger

from ..repository.procedure_repository import ProcedureRepository

logger = get_logger(__name__)

PROCEDURES: dict[ConnectionKind, str] = {
    ConnectionKind.VOICE: "calculate_voice_connections",
    ConnectionKind.TEXT: "calculate_text_connections",
}


@dataclass(frozen=True, slots=True)
class PreferRemoteAggregation:
    procedure: str


@dataclass(frozen=True, slots=True)
class LocalFallback:
    reason: str


AggregationStrategy = PreferRemoteAggregation | LocalFallback


class AggregationCapabilityProbe:
    def __init__(self, repository=ProcedureRepository, remote_enabled: bool | None = None):
        self._repository = repository
        self._remote_enabled = (
            remote_enabled
            if remote_enabled is not None
            else settings.CONNECTIONS_REMOTE_AGGREGATION_ENABLED
        )
        self._selected: dict[ConnectionKind, AggregationStrategy] = {}

    async def select(self, kind: ConnectionKind) -> AggregationStrategy:
        if kind in self._selected:
            return self._selected[kind]

        procedure = PROCEDURES[kind]
        if not self._remote_enabled:
            strategy: AggregationStrategy = LocalFallback(reason="remote aggregation disabled")
        elif await self._repository.procedure_exists(procedure):
            strategy = PreferRemoteAggregation(procedure=procedure)
        else:
            strategy = LocalFallback(reason=f"procedure {procedure} not available")

        logger.info(
            "Aggregation strategy selected",
            kind=kind.value,
            strategy=type(strategy).__name__,
            detail=getattr(strategy, "procedure", None) or getattr(strategy, "reason", None),
        )
        self._selected[kind] = strategy
        return strategy

    def reset(self) -> None:
        """Forget cached probe results, e.g. after a schema migration."""
        self._selected.clear()
