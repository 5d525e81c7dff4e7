"""
Text interaction package.

Reads channel messages and scores conversational proximity between users.
"""

from .service import TextInteractionScorer, text_interaction_scorer

__all__ = ["TextInteractionScorer", "text_interaction_scorer"]
