"""
In-process cache of member display info.

Built once by the application lifespan and handed to the services that need
it. Entries expire after a TTL, and a member that is already being fetched
is awaited rather than fetched a second time.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable, Collection

from app.config import settings
from app.features.connections.domain.models import MemberInfo
from app.infrastructure.observability.logging import get_logger

from ..repository.member_repository import MemberRepository

logger = get_logger(__name__)

_Key = tuple[str, str]


class MemberDirectory:
    def __init__(
        self,
        repository=MemberRepository,
        ttl_seconds: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._repository = repository
        self._ttl = ttl_seconds if ttl_seconds is not None else settings.MEMBER_CACHE_TTL_SECONDS
        self._clock = clock
        self._entries: dict[_Key, tuple[float, MemberInfo | None]] = {}
        self._in_flight: dict[_Key, asyncio.Task[dict[str, MemberInfo]]] = {}

    def _cached(self, key: _Key) -> tuple[bool, MemberInfo | None]:
        entry = self._entries.get(key)
        if entry is None:
            return False, None
        expires_at, member = entry
        if expires_at <= self._clock():
            del self._entries[key]
            return False, None
        return True, member

    async def resolve(self, guild_id: str, user_ids: Collection[str]) -> dict[str, MemberInfo]:
        """
        Return display info for the given users. Users without a members row
        are absent from the result.
        """
        result: dict[str, MemberInfo] = {}
        waiting: dict[str, asyncio.Task[dict[str, MemberInfo]]] = {}
        to_fetch: list[str] = []

        for user_id in set(user_ids):
            key = (guild_id, user_id)
            hit, member = self._cached(key)
            if hit:
                if member is not None:
                    result[user_id] = member
            elif key in self._in_flight:
                waiting[user_id] = self._in_flight[key]
            else:
                to_fetch.append(user_id)

        if to_fetch:
            task = asyncio.ensure_future(self._fetch(guild_id, to_fetch))
            for user_id in to_fetch:
                self._in_flight[(guild_id, user_id)] = task
                waiting[user_id] = task

        for user_id, task in waiting.items():
            fetched = await task
            if user_id in fetched:
                result[user_id] = fetched[user_id]

        return result

    async def _fetch(self, guild_id: str, user_ids: list[str]) -> dict[str, MemberInfo]:
        try:
            members = await self._repository.fetch_members(guild_id, user_ids)
            found = {member.user_id: member for member in members}
            expires_at = self._clock() + self._ttl
            for user_id in user_ids:
                self._entries[(guild_id, user_id)] = (expires_at, found.get(user_id))
            logger.debug(
                "Member info fetched",
                guild_id=guild_id,
                requested=len(user_ids),
                found=len(found),
            )
            return found
        finally:
            for user_id in user_ids:
                self._in_flight.pop((guild_id, user_id), None)

    def invalidate(self, guild_id: str | None = None) -> None:
        if guild_id is None:
            self._entries.clear()
            return
        for key in [k for k in self._entries if k[0] == guild_id]:
            del self._entries[key]

    def clear(self) -> None:
        """Drop all cached entries; used on application shutdown."""
        self._entries.clear()
