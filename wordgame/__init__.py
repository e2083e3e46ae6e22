"""Word-guessing scoring and game-state engine."""

__version__ = "1.0.0"
