import asyncio

import pytest

from app.features.connections.services.member_directory import MemberDirectory


class FakeClock:
    def __init__(self):
        self.value = 1000.0

    def __call__(self):
        return self.value


@pytest.mark.asyncio
async def test_resolve_returns_known_members(member_repo):
    directory = MemberDirectory(repository=member_repo, ttl_seconds=60)

    members = await directory.resolve("g1", ["alice", "bob", "ghost"])

    assert set(members) == {"alice", "bob"}
    assert members["alice"].display_name == "Alice"


@pytest.mark.asyncio
async def test_cached_members_are_not_refetched(member_repo):
    directory = MemberDirectory(repository=member_repo, ttl_seconds=60)

    await directory.resolve("g1", ["alice", "ghost"])
    await directory.resolve("g1", ["alice", "ghost"])

    assert len(member_repo.calls) == 1


@pytest.mark.asyncio
async def test_concurrent_lookups_share_one_fetch(member_repo):
    directory = MemberDirectory(repository=member_repo, ttl_seconds=60)

    first, second = await asyncio.gather(
        directory.resolve("g1", ["alice", "bob"]),
        directory.resolve("g1", ["alice", "bob"]),
    )

    assert first == second
    assert len(member_repo.calls) == 1


@pytest.mark.asyncio
async def test_entries_expire_after_ttl(member_repo):
    clock = FakeClock()
    directory = MemberDirectory(repository=member_repo, ttl_seconds=60, clock=clock)

    await directory.resolve("g1", ["alice"])
    clock.value += 59
    await directory.resolve("g1", ["alice"])
    assert len(member_repo.calls) == 1

    clock.value += 2
    await directory.resolve("g1", ["alice"])
    assert len(member_repo.calls) == 2


@pytest.mark.asyncio
async def test_only_missing_users_are_fetched(member_repo):
    directory = MemberDirectory(repository=member_repo, ttl_seconds=60)

    await directory.resolve("g1", ["alice"])
    await directory.resolve("g1", ["alice", "carol"])

    assert member_repo.calls == [["alice"], ["carol"]]


@pytest.mark.asyncio
async def test_guilds_are_cached_separately(member_repo):
    directory = MemberDirectory(repository=member_repo, ttl_seconds=60)

    await directory.resolve("g1", ["alice"])
    await directory.resolve("g2", ["alice"])
    directory.invalidate("g1")
    await directory.resolve("g1", ["alice"])
    await directory.resolve("g2", ["alice"])

    assert len(member_repo.calls) == 3
