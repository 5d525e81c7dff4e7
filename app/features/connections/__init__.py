"""
Guild connections feature package.

Everything related to the voice/text social-connection graph lives here:
domain models, repositories, pure pipeline calculators, cache services and
the API router.
"""

from .api.router import router as connections_router  # noqa: F401
from .domain.models import (  # noqa: F401
    CombinedFriend,
    ConnectionGraph,
    TextConnection,
    TimeRange,
    VoiceConnection,
)
from .services import ConnectionService, MemberDirectory, build_connection_service  # noqa: F401
