"""Background workers."""

from listenstats.application.workers.now_playing_worker import NowPlayingWorker

__all__ = ["NowPlayingWorker"]
