from .connection_cache_repository import ConnectionCacheRepository
from .member_repository import MemberRepository
from .procedure_repository import ProcedureRepository

__all__ = ["ConnectionCacheRepository", "MemberRepository", "ProcedureRepository"]
