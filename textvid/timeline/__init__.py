"""Scene scheduling and timeline construction."""

from .builder import TimelineBuilder, collect_speech_requests, paginate
from .schedule import Timeline, schedule_frame_counts

__all__ = [
    "Timeline",
    "TimelineBuilder",
    "collect_speech_requests",
    "paginate",
    "schedule_frame_counts",
]
