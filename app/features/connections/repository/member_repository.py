"""
Member display info lookups (username, display name, avatar).
"""

from collections.abc import Collection

from app.db.helpers import fetch_all
from app.features.connections.domain.models import MemberInfo


class MemberRepository:
    @staticmethod
    async def fetch_members(guild_id: str, user_ids: Collection[str]) -> list[MemberInfo]:
        if not user_ids:
            return []

        rows = await fetch_all(
            """
            SELECT user_id, username, display_name, avatar_url
            FROM members
            WHERE guild_id = %s
              AND user_id = ANY(%s)
            """,
            (guild_id, list(user_ids)),
        )
        return [
            MemberInfo(
                user_id=row["user_id"],
                username=row.get("username"),
                display_name=row.get("display_name"),
                avatar_url=row.get("avatar_url"),
            )
            for row in rows
        ]
