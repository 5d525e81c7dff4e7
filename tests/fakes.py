"""
In-memory fakes for the connection repositories.

They mirror the classmethod repository interfaces so services can be
wired against them without a database.
"""

from datetime import datetime

from app.db.helpers import DatabaseError
from app.features.connections.domain.models import ConnectionKind, TimeRange



class FakeCacheRepository:
    """In-memory stand-in for ConnectionCacheRepository."""

    def __init__(self):
        self.rows: dict[tuple[ConnectionKind, str, TimeRange], list] = {}
        self.markers: dict[tuple[ConnectionKind, str, TimeRange], datetime] = {}
        self.replace_calls = 0
        self.procedure_calls: list[tuple] = []
        self.fail_kinds: set[ConnectionKind] = set()

    def _check(self, kind):
        if kind in self.fail_kinds:
            raise DatabaseError("relation does not exist", operation="fetch_all")

    async def fetch_last_calculated(self, kind, guild_id, time_range):
        self._check(kind)
        return self.markers.get((kind, guild_id, time_range))

    async def replace(self, kind, guild_id, time_range, connections, calculated_at, *, batch_size=500):
        self._check(kind)
        self.replace_calls += 1
        self.rows[(kind, guild_id, time_range)] = list(connections)
        self.markers[(kind, guild_id, time_range)] = calculated_at
        return len(connections)

    async def mark_calculated(self, kind, guild_id, time_range, calculated_at):
        self.markers[(kind, guild_id, time_range)] = calculated_at

    async def call_procedure(self, procedure, guild_id, time_range, *extra_args):
        self.procedure_calls.append((procedure, guild_id, time_range, *extra_args))

    async def fetch_connections(self, kind, guild_id, time_range):
        self._check(kind)
        return list(self.rows.get((kind, guild_id, time_range), []))

    async def fetch_connections_for_user(self, kind, guild_id, time_range, user_id, limit=None):
        self._check(kind)
        rows = [
            c
            for c in self.rows.get((kind, guild_id, time_range), [])
            if user_id in (c.user_id_lo, c.user_id_hi)
        ]
        return rows[:limit] if limit is not None else rows


class FakeSessionRepository:
    def __init__(self, intervals=None, active=False):
        self.intervals = list(intervals or [])
        self.active = active
        self.fetch_calls = 0

    async def fetch_intervals(self, guild_id, window_start):
        self.fetch_calls += 1
        return [
            i
            for i in self.intervals
            if i.guild_id == guild_id and (window_start is None or i.joined_at >= window_start)
        ]

    async def has_active_sessions(self, guild_id):
        return self.active


class FakeMessageRepository:
    def __init__(self, messages=None):
        self.messages = list(messages or [])

    async def fetch_messages(self, guild_id, window_start):
        return [
            m
            for m in self.messages
            if m.guild_id == guild_id and (window_start is None or m.created_at >= window_start)
        ]


class FakeProcedureRepository:
    def __init__(self, available=()):
        self.available = set(available)
        self.checks = 0

    async def procedure_exists(self, name):
        self.checks += 1
        return name in self.available


class FakeMemberRepository:
    def __init__(self, members=None):
        self.members = {m.user_id: m for m in (members or [])}
        self.calls: list[list[str]] = []

    async def fetch_members(self, guild_id, user_ids):
        self.calls.append(sorted(user_ids))
        return [self.members[u] for u in user_ids if u in self.members]


class FakeActivityRepository:
    def __init__(self, total_messages=0, total_voice_minutes=0):
        self.totals = (total_messages, total_voice_minutes)

    async def fetch_totals(self, guild_id):
        return self.totals
