"""Error types raised at session boundaries."""


class WordGameError(Exception):
    """Base class for all game errors."""


class NoWordsAvailable(WordGameError):
    """The word pool is empty or every word has already been served."""


class SessionNotFound(WordGameError):
    """The session id is unknown to the store (never created or expired)."""

    def __init__(self, session_id: str):
        super().__init__(f"Game not found: {session_id}")
        self.session_id = session_id


class InvalidSubmission(WordGameError):
    """A game summary or score submission failed validation."""


class GatewayError(WordGameError):
    """The persistence gateway could not be reached or timed out."""
