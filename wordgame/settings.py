"""Game tuning constants and the two multiplier formulas.

Everything here is process-wide and immutable. ``GAME_SETTINGS`` is built once
at import; tests and simulations may build their own ``GameSettings`` and pass
it explicitly to the processor and the session service.
"""

import math
from typing import Final

from pydantic import BaseModel, ConfigDict, model_validator

from wordgame.config import config


class GameSettings(BaseModel):
    """Immutable table of scoring, lives and level constants."""

    model_config = ConfigDict(frozen=True)

    # Lives and levels
    initial_lives: int = 10
    initial_level: int = 1
    initial_level_duration: int = 120
    level_duration_decrement: int = 5
    min_level_duration: int = 60
    free_life_interval: int = 5
    bonus_life_correct_guesses: int = 10

    # Multipliers
    initial_time_multiplier: float = 1.75
    initial_base_multiplier: float = 1.02
    min_base_multiplier: float = 1.02
    max_base_multiplier: float = 1.75
    base_multiplier_increment: float = 0.1
    base_multiplier_decrement: float = 0.05
    min_word_complexity_multiplier: float = 1.2
    max_word_complexity_multiplier: float = 1.9
    word_length_weight: float = 0.03
    unique_letter_weight: float = 0.02
    time_bonus_window: int = 60
    time_bonus_divisor: int = 120

    # Scoring
    base_letter_score: int = 10
    word_completion_base_score: int = 50
    score_ceiling_floor: int = 1000
    score_ceiling_per_word: int = 1000

    # God Mode
    god_mode_threshold: int = 25
    god_mode_presses: int = 3

    # Timing (seconds)
    key_debounce_interval: float = 0.1
    word_completion_delay: float = 1.5
    get_ready_seconds: int = 6
    countdown_beats: int = 5
    bonus_notice_seconds: float = 3.0

    @model_validator(mode="after")
    def _check_bounds(self) -> "GameSettings":
        if self.min_base_multiplier > self.max_base_multiplier:
            raise ValueError("min_base_multiplier must not exceed max_base_multiplier")
        if not self.min_base_multiplier <= self.initial_base_multiplier <= self.max_base_multiplier:
            raise ValueError("initial_base_multiplier must lie within the base multiplier bounds")
        if self.min_word_complexity_multiplier > self.max_word_complexity_multiplier:
            raise ValueError("min_word_complexity_multiplier must not exceed max_word_complexity_multiplier")
        if self.min_level_duration > self.initial_level_duration:
            raise ValueError("min_level_duration must not exceed initial_level_duration")
        if self.free_life_interval < 1 or self.bonus_life_correct_guesses < 1:
            raise ValueError("life intervals must be at least 1")
        if self.countdown_beats >= self.get_ready_seconds:
            raise ValueError("countdown_beats must finish before the get-ready phase ends")
        return self

    def max_submittable_score(self, words_completed: int) -> int:
        """Generous upper bound for a score, used to reject tampered summaries."""
        return max(self.score_ceiling_floor, words_completed * self.score_ceiling_per_word)


GAME_SETTINGS: Final[GameSettings] = GameSettings(free_life_interval=config.FREE_LIFE_INTERVAL)


def round_half_up(value: float) -> int:
    """Round like JavaScript's Math.round (halves go towards +infinity)."""
    return int(math.floor(value + 0.5))


def compute_time_multiplier(
    time_remaining: int,
    level_duration: int,
    settings: GameSettings = GAME_SETTINGS,
) -> float:
    """Bonus that decays linearly to 1.0 over the first minute of a level."""
    window_start = level_duration - settings.time_bonus_window
    if time_remaining > window_start:
        return 1 + (time_remaining - window_start) / settings.time_bonus_divisor
    return 1.0


def compute_word_complexity_multiplier(word: str, settings: GameSettings = GAME_SETTINGS) -> float:
    # Length and unique count both include hyphens and spaces.
    unique_letters = len(set(word.upper()))
    raw = 1 + len(word) * settings.word_length_weight + unique_letters * settings.unique_letter_weight
    return min(
        settings.max_word_complexity_multiplier,
        max(settings.min_word_complexity_multiplier, raw),
    )
