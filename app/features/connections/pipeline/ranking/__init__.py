"""
Ranking package.

Activity weighting and combined voice + text friend ranking.
"""

from .service import CombinedFriendRanker, combined_friend_ranker
from .weights import ActivityRepository, ActivityWeightNormalizer, compute_activity_weight

__all__ = [
    "ActivityRepository",
    "ActivityWeightNormalizer",
    "CombinedFriendRanker",
    "combined_friend_ranker",
    "compute_activity_weight",
]
