"""
Connections routes.

Voice, text and combined connection graphs, forced recalculation,
per-member friend lists, the guild activity weight and member voice
timelines.
"""

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from app.db.helpers import DatabaseError
from app.features.connections.domain.models import TimeRange
from app.features.connections.pipeline.timeline.service import (
    VoiceTimelineService,
    voice_timeline_service,
)
from app.features.connections.services.connection_service import ConnectionService
from app.infrastructure.observability.logging import get_logger

from .schemas import (
    ActivityWeightResponse,
    CombinedGraphResponse,
    FriendResponse,
    FriendsResponse,
    RecalculateResponse,
    TextGraphResponse,
    VoiceGraphResponse,
    VoiceSessionTimelineResponse,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/guilds/{guild_id}/connections", tags=["connections"])


def get_connection_service(request: Request) -> ConnectionService:
    service = getattr(request.app.state, "connection_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Connection service not initialized",
        )
    return service


def get_timeline_service() -> VoiceTimelineService:
    return voice_timeline_service


def _unavailable(e: DatabaseError, guild_id: str, operation: str) -> HTTPException:
    logger.error(
        "Datastore failure while serving connections",
        guild_id=guild_id,
        operation=operation,
        db_operation=e.operation,
        error=str(e),
    )
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail="Connection data is temporarily unavailable",
    )


@router.get("/voice/graph", response_model=VoiceGraphResponse)
async def voice_graph(
    guild_id: str,
    time_range: TimeRange = Query(TimeRange.THIRTY_DAYS),
    max_age_hours: float | None = Query(None, gt=0),
    service: ConnectionService = Depends(get_connection_service),
) -> VoiceGraphResponse:
    try:
        result = await service.get_voice_graph(guild_id, time_range, max_age_hours)
    except DatabaseError as e:
        raise _unavailable(e, guild_id, "voice_graph") from e
    return VoiceGraphResponse.from_result(result)


@router.get("/text/graph", response_model=TextGraphResponse)
async def text_graph(
    guild_id: str,
    time_range: TimeRange = Query(TimeRange.THIRTY_DAYS),
    max_age_hours: float | None = Query(None, gt=0),
    service: ConnectionService = Depends(get_connection_service),
) -> TextGraphResponse:
    try:
        result = await service.get_text_graph(guild_id, time_range, max_age_hours)
    except DatabaseError as e:
        raise _unavailable(e, guild_id, "text_graph") from e
    return TextGraphResponse.from_result(result)


@router.get("/combined/graph", response_model=CombinedGraphResponse)
async def combined_graph(
    guild_id: str,
    time_range: TimeRange = Query(TimeRange.THIRTY_DAYS),
    max_age_hours: float | None = Query(None, gt=0),
    service: ConnectionService = Depends(get_connection_service),
) -> CombinedGraphResponse:
    try:
        result = await service.get_combined_graph(guild_id, time_range, max_age_hours)
    except DatabaseError as e:
        raise _unavailable(e, guild_id, "combined_graph") from e
    return CombinedGraphResponse.from_result(result)


@router.post("/voice/recalculate", response_model=RecalculateResponse)
async def recalculate_voice(
    guild_id: str,
    time_range: TimeRange = Query(TimeRange.THIRTY_DAYS),
    service: ConnectionService = Depends(get_connection_service),
) -> RecalculateResponse:
    try:
        calculated_at = await service.calculate_voice_connections(guild_id, time_range)
    except DatabaseError as e:
        raise _unavailable(e, guild_id, "recalculate_voice") from e
    return RecalculateResponse(guild_id=guild_id, time_range=time_range, calculated_at=calculated_at)


@router.post("/text/recalculate", response_model=RecalculateResponse)
async def recalculate_text(
    guild_id: str,
    time_range: TimeRange = Query(TimeRange.THIRTY_DAYS),
    service: ConnectionService = Depends(get_connection_service),
) -> RecalculateResponse:
    try:
        calculated_at = await service.calculate_text_connections(guild_id, time_range)
    except DatabaseError as e:
        raise _unavailable(e, guild_id, "recalculate_text") from e
    return RecalculateResponse(guild_id=guild_id, time_range=time_range, calculated_at=calculated_at)


@router.get("/members/{user_id}/friends", response_model=FriendsResponse)
async def combined_friends(
    guild_id: str,
    user_id: str,
    limit: int = Query(5, ge=1, le=50),
    service: ConnectionService = Depends(get_connection_service),
) -> FriendsResponse:
    try:
        friends = await service.get_combined_top_friends(guild_id, user_id, limit)
    except DatabaseError as e:
        raise _unavailable(e, guild_id, "combined_friends") from e
    return FriendsResponse(
        guild_id=guild_id,
        user_id=user_id,
        friends=[FriendResponse.from_friend(f) for f in friends],
    )


@router.get("/members/{user_id}/friends/voice", response_model=FriendsResponse)
async def voice_friends(
    guild_id: str,
    user_id: str,
    limit: int = Query(5, ge=1, le=50),
    service: ConnectionService = Depends(get_connection_service),
) -> FriendsResponse:
    try:
        friends = await service.get_top_voice_friends(guild_id, user_id, limit)
    except DatabaseError as e:
        raise _unavailable(e, guild_id, "voice_friends") from e
    return FriendsResponse(
        guild_id=guild_id,
        user_id=user_id,
        friends=[FriendResponse.from_friend(f) for f in friends],
    )


@router.get("/members/{user_id}/friends/text", response_model=FriendsResponse)
async def text_friends(
    guild_id: str,
    user_id: str,
    limit: int = Query(5, ge=1, le=50),
    service: ConnectionService = Depends(get_connection_service),
) -> FriendsResponse:
    # Text connection failures already degrade to an empty list inside the service
    try:
        friends = await service.get_top_text_friends(guild_id, user_id, limit)
    except DatabaseError as e:
        raise _unavailable(e, guild_id, "text_friends") from e
    return FriendsResponse(
        guild_id=guild_id,
        user_id=user_id,
        friends=[FriendResponse.from_friend(f) for f in friends],
    )


@router.get("/activity-weight", response_model=ActivityWeightResponse)
async def activity_weight(
    guild_id: str,
    service: ConnectionService = Depends(get_connection_service),
) -> ActivityWeightResponse:
    try:
        weight = await service.get_server_activity_weight(guild_id)
    except DatabaseError as e:
        raise _unavailable(e, guild_id, "activity_weight") from e
    return ActivityWeightResponse.from_weight(weight)


@router.get(
    "/members/{user_id}/voice-timeline",
    response_model=list[VoiceSessionTimelineResponse],
)
async def voice_timeline(
    guild_id: str,
    user_id: str,
    limit: int = Query(VoiceTimelineService.DEFAULT_LIMIT, ge=1, le=50),
    timelines: VoiceTimelineService = Depends(get_timeline_service),
) -> list[VoiceSessionTimelineResponse]:
    try:
        sessions = await timelines.get_member_timeline(guild_id, user_id, limit)
    except DatabaseError as e:
        raise _unavailable(e, guild_id, "voice_timeline") from e
    return [VoiceSessionTimelineResponse.from_timeline(t) for t in sessions]
