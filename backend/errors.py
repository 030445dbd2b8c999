"""Exceptions raised by YouTube Guardian."""


class GuardianError(Exception):
    """Fatal pipeline condition, e.g. the watch-history export is missing."""


class OracleError(GuardianError):
    """The AI oracle failed or returned something that is not a valid verdict."""

    def __init__(self, message: str, video_id: str = None):
        super().__init__(message)
        self.video_id = video_id
