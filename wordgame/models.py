"""Data models for the word-guessing game."""

import re
from enum import Enum
from typing import List, Optional, Set

from pydantic import BaseModel, Field

from wordgame.settings import GAME_SETTINGS, GameSettings, compute_word_complexity_multiplier

GOD_MODE_KEY = "GODMODE"

_LETTER = re.compile(r"^[A-Z]$")


def is_letter(char: str) -> bool:
    """True for a single A-Z letter (case-insensitive)."""
    return bool(_LETTER.match(char.upper()))


def pre_revealed_keys(word: str) -> Set[str]:
    """Characters of ``word`` the player never has to guess (spaces, hyphens...)."""
    return {char for char in word if not is_letter(char)}


class Phase(str, Enum):
    """Session-level state machine position."""
    GET_READY = "get_ready"
    PLAYING = "playing"
    WORD_COMPLETED = "word_completed"
    GAME_OVER = "game_over"


class GameEvent(str, Enum):
    """Events derived from a state transition."""
    CORRECT_GUESS = "correct_guess"
    INCORRECT_GUESS = "incorrect_guess"
    LIFE_LOST = "life_lost"
    BONUS_LIFE_EARNED = "bonus_life_earned"
    GOD_MODE_READY = "god_mode_ready"
    GOD_MODE_ENTERED = "god_mode_entered"
    GOD_MODE_EXITED = "god_mode_exited"
    WORD_COMPLETED = "word_completed"
    LEVEL_ADVANCED = "level_advanced"
    COUNTDOWN = "countdown"
    GO = "go"
    PLAYING = "playing"
    TIME_EXPIRED = "time_expired"
    GAME_OVER = "game_over"


class GameState(BaseModel):
    """Represents one active session."""
    session_id: str = Field(..., description="Game identifier used as the store key")
    current_word: str = Field(..., description="Secret word, uppercase")
    current_hint: str = Field(default="", description="Hint shown to the player")
    used_keys: Set[str] = Field(default_factory=set, description="Letters already guessed for this word")
    correct_keys: Set[str] = Field(default_factory=set, description="Revealed letters plus pre-revealed characters")
    lives: int = Field(default=GAME_SETTINGS.initial_lives, ge=0)
    score: float = Field(default=0, ge=0)
    base_multiplier: float = Field(default=GAME_SETTINGS.initial_base_multiplier)
    time_multiplier: float = Field(default=GAME_SETTINGS.initial_time_multiplier)
    level: int = Field(default=GAME_SETTINGS.initial_level, ge=1)
    level_duration: int = Field(default=GAME_SETTINGS.initial_level_duration)
    time_remaining: int = Field(default=GAME_SETTINGS.initial_level_duration, ge=0)
    is_god_mode: bool = False
    god_mode_presses_left: int = Field(default=0, ge=0)
    god_mode_ready: bool = False
    total_correct_guesses: int = 0
    consecutive_correct_guesses: int = 0
    consecutive_correct_guesses_for_extra_life: int = 0
    used_words: List[str] = Field(default_factory=list, description="Words already served this session")
    phase: Phase = Phase.GET_READY
    free_life_awarded_this_level: bool = False
    bonus_life_earned: bool = Field(default=False, description="Timed notice flag")
    last_key_press_at: float = Field(default=0.0, description="Debounce timestamp in seconds")

    def word_complexity_multiplier(self, settings: GameSettings = GAME_SETTINGS) -> float:
        """Derived from the current word only; never stored."""
        return compute_word_complexity_multiplier(self.current_word, settings)

    def current_multiplier(self, settings: GameSettings = GAME_SETTINGS) -> float:
        return self.base_multiplier * self.time_multiplier * self.word_complexity_multiplier(settings)

    @property
    def words_completed(self) -> int:
        return self.level - 1

    @property
    def is_over(self) -> bool:
        return self.phase == Phase.GAME_OVER or self.lives <= 0 or self.time_remaining <= 0

    def is_word_completed(self, correct_keys: Optional[Set[str]] = None) -> bool:
        keys = self.correct_keys if correct_keys is None else correct_keys
        return all(char.upper() in keys or not is_letter(char) for char in self.current_word)

    def masked_word(self, mask: str = "_") -> str:
        return "".join(
            char if not is_letter(char) or char.upper() in self.correct_keys else mask
            for char in self.current_word
        )


class GameSummary(BaseModel):
    """Final numbers handed to the leaderboard when a session ends."""
    session_id: str
    score: float = Field(..., description="Final score")
    words_completed: int = Field(default=0, ge=0)
    total_correct_guesses: int = Field(default=0, ge=0)
    time_taken: int = Field(default=0, ge=0, description="Seconds")


class LeaderboardEntry(BaseModel):
    """One leaderboard row."""
    name: str
    score: float


class SubmissionResult(BaseModel):
    """Outcome of a leaderboard submission."""
    accepted: bool
    reason: Optional[str] = None
    rank: Optional[int] = None
    existing_score: Optional[float] = None
    top_scores: List[LeaderboardEntry] = Field(default_factory=list)
    total_scores: int = 0
