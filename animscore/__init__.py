"""animscore: scrolling staff animation and notation layout engine."""

__version__ = "0.1.0"
