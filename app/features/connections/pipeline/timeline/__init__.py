from .service import VoiceTimelineService, build_timeline_segments, voice_timeline_service

__all__ = ["VoiceTimelineService", "build_timeline_segments", "voice_timeline_service"]
