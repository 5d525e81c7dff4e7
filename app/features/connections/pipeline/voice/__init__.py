"""
Voice overlap package.

Reads voice-session intervals and computes pairwise shared time per channel.
"""

from .service import VoiceOverlapCalculator, voice_overlap_calculator

__all__ = ["VoiceOverlapCalculator", "voice_overlap_calculator"]
