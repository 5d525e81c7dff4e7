"""
Voice session timelines - split a session into contiguous segments by
mute/deafen/stream/video state for the member profile view.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import UTC, datetime

from app.features.connections.domain.models import (
    SessionTimeline,
    TimelineSegment,
    VoiceSession,
    VoiceStateChange,
    VoiceStateEvent,
    VoiceVisualState,
)
from app.infrastructure.observability.logging import get_logger

from ..voice.repository import VoiceSessionRepository

logger = get_logger(__name__)


@dataclass
class _VoiceState:
    muted: bool = False
    deafened: bool = False
    streaming: bool = False
    video: bool = False

    def apply(self, event: VoiceStateEvent) -> None:
        if event is VoiceStateEvent.MUTE:
            self.muted = True
        elif event is VoiceStateEvent.UNMUTE:
            self.muted = False
        elif event is VoiceStateEvent.DEAFEN:
            self.deafened = True
        elif event is VoiceStateEvent.UNDEAFEN:
            self.deafened = False
        elif event is VoiceStateEvent.STREAM_START:
            self.streaming = True
        elif event is VoiceStateEvent.STREAM_END:
            self.streaming = False
        elif event is VoiceStateEvent.VIDEO_START:
            self.video = True
        elif event is VoiceStateEvent.VIDEO_END:
            self.video = False

    @property
    def visual(self) -> VoiceVisualState:
        # deafened > streaming > video > muted > normal
        if self.deafened:
            return VoiceVisualState.DEAFENED
        if self.streaming:
            return VoiceVisualState.STREAMING
        if self.video:
            return VoiceVisualState.VIDEO
        if self.muted:
            return VoiceVisualState.MUTED
        return VoiceVisualState.NORMAL

    @property
    def label(self) -> str:
        parts = []
        if self.deafened:
            parts.append("Deafened")
        elif self.muted:
            parts.append("Muted")
        if self.streaming:
            parts.append("Streaming")
        if self.video:
            parts.append("Video")
        return ", ".join(parts) if parts else "Voice"


def build_timeline_segments(
    session: VoiceSession,
    state_changes: Sequence[VoiceStateChange],
    now: datetime,
) -> list[TimelineSegment]:
    session_start = session.joined_at
    session_end = session.left_at or now
    duration = (session_end - session_start).total_seconds()
    if duration <= 0:
        return []

    def percent(moment: datetime) -> float:
        return (moment - session_start).total_seconds() / duration * 100

    segments: list[TimelineSegment] = []
    state = _VoiceState()
    last_time = session_start

    for change in sorted(state_changes, key=lambda c: c.created_at):
        change_time = min(max(change.created_at, session_start), session_end)
        if change_time > last_time:
            segments.append(
                TimelineSegment(
                    start_percent=percent(last_time),
                    width_percent=percent(change_time) - percent(last_time),
                    state=state.visual,
                    label=state.label,
                )
            )
        state.apply(change.event_type)
        last_time = max(last_time, change_time)

    if last_time < session_end:
        segments.append(
            TimelineSegment(
                start_percent=percent(last_time),
                width_percent=100.0 - percent(last_time),
                state=state.visual,
                label=state.label,
            )
        )

    return segments


class VoiceTimelineService:
    DEFAULT_LIMIT = 10

    def __init__(self, repository=VoiceSessionRepository):
        self._repository = repository

    async def get_member_timeline(
        self, guild_id: str, user_id: str, limit: int = DEFAULT_LIMIT, now: datetime | None = None
    ) -> list[SessionTimeline]:
        now = now or datetime.now(UTC)
        sessions = await self._repository.fetch_member_sessions(guild_id, user_id, limit)
        if not sessions:
            return []

        changes_per_session = await asyncio.gather(
            *(
                self._repository.fetch_state_changes(
                    guild_id, user_id, session.joined_at, session.left_at or now
                )
                for session in sessions
            )
        )

        timelines = [
            SessionTimeline(
                session=session,
                state_changes=changes,
                segments=build_timeline_segments(session, changes, now),
            )
            for session, changes in zip(sessions, changes_per_session)
        ]
        logger.debug(
            "Voice timeline built", guild_id=guild_id, user_id=user_id, sessions=len(timelines)
        )
        return timelines


voice_timeline_service = VoiceTimelineService()
