"""
Capability lookups against the datastore catalog.
"""

from app.db.helpers import fetch_val


class ProcedureRepository:
    @staticmethod
    async def procedure_exists(name: str) -> bool:
        query = """
            SELECT EXISTS (
                SELECT 1
                FROM pg_proc p
                JOIN pg_namespace n ON n.oid = p.pronamespace
                WHERE p.proname = %s
                  AND n.nspname = ANY(current_schemas(false))
            ) AS present
        """
        return bool(await fetch_val(query, (name,)))
