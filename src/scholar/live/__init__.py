from scholar.live.guards import ReleaseGuards
from scholar.live.playback import PlaybackScheduler, Slot
from scholar.live.session import LiveVoiceSession
from scholar.live.state import STATUS_TEXT, TRANSITIONS, LiveStatus, StatusMachine

__all__ = [
    "LiveStatus",
    "LiveVoiceSession",
    "PlaybackScheduler",
    "ReleaseGuards",
    "STATUS_TEXT",
    "Slot",
    "StatusMachine",
    "TRANSITIONS",
]
