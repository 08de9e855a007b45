"""Exception hierarchy shared by the layout engine and its hosts."""


class AnimScoreError(ValueError):
    """Base class for all animscore errors."""


class ConfigError(AnimScoreError):
    """Raised when an AnimatedScore cannot be constructed from its configuration."""


class TimelineError(AnimScoreError):
    """Raised when a submitted timeline (or one of its actions) is invalid."""


class PlaybackError(AnimScoreError):
    """Raised when an operation is not allowed in the current playback state."""
