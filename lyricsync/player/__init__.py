"""
Player package: media player adapters, playback tracking and lyrics following
"""

from .models import MusicTrack, PlaybackState
from .base import MusicPlayer, NotificationCenter, Subscription
from .mpv import MpvIpcConnection, MpvPlayer, default_ipc_endpoint
from .tracker import PlaybackTracker, TrackerEvent
from .follower import LyricsFollower

__all__ = [
    'MusicTrack',
    'PlaybackState',
    'MusicPlayer',
    'NotificationCenter',
    'Subscription',
    'MpvIpcConnection',
    'MpvPlayer',
    'default_ipc_endpoint',
    'PlaybackTracker',
    'TrackerEvent',
    'LyricsFollower',
]
