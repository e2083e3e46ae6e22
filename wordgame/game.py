"""Game rules: key presses, clock ticks and word-to-word transitions.

Every function here is a pure transition ``(state, input) -> (new_state,
events)``. Inputs are never mutated. Rejected input comes back as the same
state and an empty event list; nothing in this module raises for gameplay
input.
"""

import logging
from typing import List, Optional, Tuple

from wordgame.models import (
    GOD_MODE_KEY,
    GameEvent,
    GameState,
    Phase,
    is_letter,
    pre_revealed_keys,
)
from wordgame.settings import (
    GAME_SETTINGS,
    GameSettings,
    compute_time_multiplier,
    round_half_up,
)

logger = logging.getLogger(__name__)

Transition = Tuple[GameState, List[GameEvent]]


def new_game_state(
    session_id: str,
    word: str,
    hint: str,
    settings: GameSettings = GAME_SETTINGS,
) -> GameState:
    """Build the opening state for a freshly drawn word."""
    word = word.upper()
    return GameState(
        session_id=session_id,
        current_word=word,
        current_hint=hint,
        used_keys=pre_revealed_keys(word),
        correct_keys=pre_revealed_keys(word),
        lives=settings.initial_lives,
        score=0,
        base_multiplier=settings.initial_base_multiplier,
        time_multiplier=settings.initial_time_multiplier,
        level=settings.initial_level,
        level_duration=settings.initial_level_duration,
        time_remaining=settings.initial_level_duration,
        used_words=[word],
        phase=Phase.GET_READY,
    )


def normalize_key(key) -> Optional[str]:
    """Return the uppercase letter or the God Mode sentinel, None for anything else."""
    if not isinstance(key, str):
        return None
    key = key.strip().upper()
    if key == GOD_MODE_KEY or is_letter(key):
        return key
    return None


def _end_game(state: GameState) -> None:
    state.phase = Phase.GAME_OVER
    state.is_god_mode = False
    state.god_mode_ready = False
    state.god_mode_presses_left = 0


def _add_score(state: GameState, points: float) -> None:
    # Cumulative score is rounded after every increment.
    state.score = float(round_half_up(state.score + round_half_up(points)))


def process_guess(
    state: GameState,
    key,
    now: float,
    settings: GameSettings = GAME_SETTINGS,
) -> Transition:
    """Apply one key press.

    Args:
        state: Current game state
        key: A single letter, or ``GODMODE`` to activate a ready God Mode
        now: Wall-clock seconds, used for the debounce window
        settings: Game constants

    Returns:
        Tuple of (new_state, events)
    """
    key = normalize_key(key)
    if key is None or state.phase != Phase.PLAYING:
        logger.debug(f"Rejected key {key!r} in phase {state.phase.value}")
        return state, []

    if now - state.last_key_press_at < settings.key_debounce_interval:
        logger.debug(f"Debounced key {key} for {state.session_id}")
        return state, []

    # A press that clears the debounce window restarts it, even if rejected below.
    stamped = state.model_copy(update={"last_key_press_at": now})

    if state.lives <= 0 or state.time_remaining <= 0:
        return stamped, []

    if key == GOD_MODE_KEY:
        return _activate_god_mode(stamped, settings)

    if key in state.used_keys or key in state.correct_keys:
        return stamped, []

    new = stamped.model_copy(deep=True)
    events: List[GameEvent] = []
    was_god_mode = new.is_god_mode
    base_before = new.base_multiplier
    complexity = new.word_complexity_multiplier(settings)
    is_correct = key in new.current_word.upper()

    new.used_keys.add(key)
    if is_correct:
        new.correct_keys.add(key)
        events.append(GameEvent.CORRECT_GUESS)
        new.consecutive_correct_guesses += 1
        new.consecutive_correct_guesses_for_extra_life += 1
        if new.consecutive_correct_guesses_for_extra_life >= settings.bonus_life_correct_guesses:
            new.lives += 1
            new.consecutive_correct_guesses_for_extra_life = 0
            new.bonus_life_earned = True
            events.append(GameEvent.BONUS_LIFE_EARNED)

        new.total_correct_guesses += 1
        if new.total_correct_guesses >= settings.god_mode_threshold and not new.god_mode_ready:
            new.god_mode_ready = True
            events.append(GameEvent.GOD_MODE_READY)

        _add_score(new, settings.base_letter_score * base_before * new.time_multiplier * complexity)
    else:
        events.append(GameEvent.INCORRECT_GUESS)
        new.consecutive_correct_guesses = 0
        new.consecutive_correct_guesses_for_extra_life = 0
        if not was_god_mode:
            new.lives = max(0, new.lives - 1)
            events.append(GameEvent.LIFE_LOST)

    if is_correct:
        new.base_multiplier = min(
            settings.max_base_multiplier, base_before + settings.base_multiplier_increment
        )
    else:
        new.base_multiplier = max(
            settings.min_base_multiplier, base_before - settings.base_multiplier_decrement
        )

    if new.is_word_completed():
        _add_score(new, settings.word_completion_base_score * base_before * new.time_multiplier * complexity)
        new.base_multiplier = settings.initial_base_multiplier
        if new.is_god_mode:
            new.is_god_mode = False
            new.god_mode_presses_left = 0
            events.append(GameEvent.GOD_MODE_EXITED)
        new.phase = Phase.WORD_COMPLETED
        events.append(GameEvent.WORD_COMPLETED)

    if was_god_mode and new.is_god_mode:
        new.god_mode_presses_left = max(0, new.god_mode_presses_left - 1)
        if new.god_mode_presses_left == 0:
            new.is_god_mode = False
            new.god_mode_ready = False
            new.total_correct_guesses = 0
            events.append(GameEvent.GOD_MODE_EXITED)

    if new.lives <= 0:
        _end_game(new)
        events.append(GameEvent.GAME_OVER)

    return new, events


def _activate_god_mode(state: GameState, settings: GameSettings) -> Transition:
    if not state.god_mode_ready:
        return state, []

    new = state.model_copy(deep=True)
    new.is_god_mode = True
    new.god_mode_presses_left = settings.god_mode_presses
    new.god_mode_ready = False
    new.total_correct_guesses = 0
    return new, [GameEvent.GOD_MODE_ENTERED]


def apply_tick(state: GameState, settings: GameSettings = GAME_SETTINGS) -> Transition:
    """One elapsed second of a playing level."""
    if state.phase != Phase.PLAYING:
        return state, []

    new = state.model_copy(deep=True)
    new.time_remaining = max(0, new.time_remaining - 1)
    new.time_multiplier = compute_time_multiplier(new.time_remaining, new.level_duration, settings)

    if new.time_remaining == 0:
        _end_game(new)
        return new, [GameEvent.TIME_EXPIRED, GameEvent.GAME_OVER]
    return new, []


def advance_to_next_word(
    state: GameState,
    word: str,
    hint: str,
    settings: GameSettings = GAME_SETTINGS,
) -> Transition:
    """Move a completed word on to the next level with ``word`` as its secret."""
    if state.phase != Phase.WORD_COMPLETED:
        return state, []

    new = state.model_copy(deep=True)
    events: List[GameEvent] = [GameEvent.LEVEL_ADVANCED]

    new.level += 1
    if new.level % settings.free_life_interval == 0 and not new.free_life_awarded_this_level:
        new.lives += 1
        new.free_life_awarded_this_level = True
        new.bonus_life_earned = True
        events.append(GameEvent.BONUS_LIFE_EARNED)

    new.level_duration = max(settings.min_level_duration, new.level_duration - settings.level_duration_decrement)
    new.time_remaining = new.level_duration
    new.time_multiplier = compute_time_multiplier(new.time_remaining, new.level_duration, settings)

    word = word.upper()
    new.current_word = word
    new.current_hint = hint
    new.used_words.append(word)
    new.used_keys = pre_revealed_keys(word)
    new.correct_keys = pre_revealed_keys(word)
    new.base_multiplier = settings.initial_base_multiplier
    new.consecutive_correct_guesses = 0
    new.phase = Phase.GET_READY
    return new, events


def begin_playing(state: GameState) -> Transition:
    """End the get-ready grace period."""
    if state.phase != Phase.GET_READY:
        return state, []
    new = state.model_copy(update={"phase": Phase.PLAYING, "free_life_awarded_this_level": False})
    return new, [GameEvent.PLAYING]


def end_game(state: GameState) -> Transition:
    """Force a session into game over, e.g. when the word pool runs dry."""
    if state.phase == Phase.GAME_OVER:
        return state, []
    new = state.model_copy(deep=True)
    _end_game(new)
    return new, [GameEvent.GAME_OVER]
