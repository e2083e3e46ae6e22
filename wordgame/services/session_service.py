"""Session service: drives one game session through its levels and timers."""

import functools
import logging
import random
import threading
import time
import uuid
from typing import Callable, List, Optional, TypeVar

from wordgame import analytics
from wordgame.config import config
from wordgame.errors import GatewayError, InvalidSubmission, NoWordsAvailable, SessionNotFound, WordGameError
from wordgame.game import (
    advance_to_next_word,
    apply_tick,
    begin_playing,
    end_game,
    new_game_state,
    process_guess,
)
from wordgame.models import GameEvent, GameState, GameSummary, Phase, SubmissionResult, is_letter
from wordgame.redis_store import RedisStore
from wordgame.scheduler import Action, Scheduler, ThreadScheduler
from wordgame.settings import GAME_SETTINGS, GameSettings, round_half_up

logger = logging.getLogger(__name__)

T = TypeVar("T")

EventListener = Callable[[GameEvent, Optional[GameState]], None]


class SessionService:
    """Owns the live state of one session and every timer attached to it."""

    def __init__(
        self,
        store: RedisStore,
        scheduler: Optional[Scheduler] = None,
        settings: GameSettings = GAME_SETTINGS,
        clock: Optional[Callable[[], float]] = None,
        sleep: Callable[[float], None] = time.sleep,
        on_event: Optional[EventListener] = None,
        rng=random,
    ):
        """
        Initialize session service.

        Args:
            store: Persistence gateway for words, sessions and scores
            scheduler: Timer backend (real threads by default)
            settings: Game constants
            clock: Seconds source for key debouncing (defaults to the scheduler's)
            sleep: Used for the backoff between retries
            on_event: Called with every game event and the state it produced
            rng: Random source for drawing words
        """
        self.store = store
        self.scheduler = scheduler or ThreadScheduler()
        self.settings = settings
        self.clock = clock or self.scheduler.time
        self.sleep = sleep
        self.on_event = on_event
        self.rng = rng

        self.state: Optional[GameState] = None
        self.final_summary: Optional[GameSummary] = None
        self.last_error: Optional[Exception] = None

        self._lock = threading.RLock()
        self._generation = 0

    @property
    def session_id(self) -> Optional[str]:
        return self.state.session_id if self.state else None

    # Timers

    def _reset_timers(self) -> None:
        self.scheduler.cancel_all()
        self._generation += 1

    def _bound(self, action: Action) -> Action:
        """Wrap a timer action so it only runs if no reset happened since it was scheduled."""
        generation = self._generation

        @functools.wraps(action)
        def run():
            with self._lock:
                if generation != self._generation:
                    logger.debug(f"Skipping stale timer {action.__name__} (generation {generation})")
                    return
                action()

        return run

    def _schedule(self, delay: float, action: Action) -> None:
        self.scheduler.schedule(delay, self._bound(action))

    def _enter_get_ready(self) -> None:
        self._reset_timers()
        steps = [(float(beat), self._countdown) for beat in range(self.settings.countdown_beats)]
        steps.append((float(self.settings.countdown_beats), self._go))
        steps.append((float(self.settings.get_ready_seconds), self._begin_playing))
        self.scheduler.schedule_all((delay, self._bound(action)) for delay, action in steps)
        if self.state is not None and self.state.bonus_life_earned:
            self._schedule(self.settings.bonus_notice_seconds, self._clear_bonus_notice)

    def _countdown(self) -> None:
        self._emit(GameEvent.COUNTDOWN)

    def _go(self) -> None:
        self._emit(GameEvent.GO)

    def _begin_playing(self) -> None:
        if self.state is None:
            return
        self.state, events = begin_playing(self.state)
        self._handle(events)
        if self.state is not None and self.state.phase == Phase.PLAYING:
            self._schedule(1, self._on_tick)

    def _on_tick(self) -> None:
        self.tick()
        if self.state is not None and self.state.phase == Phase.PLAYING:
            self._schedule(1, self._on_tick)

    def _clear_bonus_notice(self) -> None:
        if self.state is not None and self.state.bonus_life_earned:
            self.state = self.state.model_copy(update={"bonus_life_earned": False})

    # Retries

    def _with_retries(self, operation: str, fn: Callable[[], T]) -> T:
        """Run ``fn``, retrying gateway failures with a fixed backoff."""
        attempts = max(1, config.START_RETRY_ATTEMPTS)
        attempt = 1
        while True:
            try:
                return fn()
            except GatewayError as e:
                if attempt >= attempts:
                    logger.error(f"❌ {operation} failed after {attempts} attempts: {e}")
                    raise
                logger.warning(
                    f"⚠️ {operation} attempt {attempt}/{attempts} failed: {e} "
                    f"(retrying in {config.START_RETRY_BACKOFF_SECONDS}s)"
                )
                self.sleep(config.START_RETRY_BACKOFF_SECONDS)
                attempt += 1

    def _retry_later(
        self,
        operation: str,
        attempt: int,
        error: GatewayError,
        retry: Callable[[int], object],
    ) -> bool:
        """Schedule ``retry(attempt + 1)`` after the backoff. False once the attempts are used up."""
        attempts = max(1, config.START_RETRY_ATTEMPTS)
        if attempt >= attempts:
            logger.error(f"❌ {operation} failed after {attempts} attempts: {error}")
            return False

        logger.warning(
            f"⚠️ {operation} attempt {attempt}/{attempts} failed: {error} "
            f"(retrying in {config.START_RETRY_BACKOFF_SECONDS}s)"
        )

        def next_attempt():
            retry(attempt + 1)

        self._schedule(config.START_RETRY_BACKOFF_SECONDS, next_attempt)
        return True

    # Session boundaries

    def start_session(self, session_id: Optional[str] = None) -> GameState:
        """
        Start a fresh game and enter the get-ready countdown.

        Args:
            session_id: Store key for the game (a random UUID if omitted)

        Returns:
            The opening game state

        Raises:
            NoWordsAvailable: If the word pool is empty
            GatewayError: If the store stays unreachable after all retries
        """
        with self._lock:
            self._reset_timers()
            self.state = None
            self.final_summary = None
            self.last_error = None
            session_id = session_id or str(uuid.uuid4())

            def create() -> GameState:
                word, hint = self.store.draw_word(rng=self.rng)
                state = new_game_state(session_id, word, hint, self.settings)
                self.store.save_session_state(state, config.SESSION_TTL_SECONDS)
                return state

            self.state = self._with_retries("Session start", create)
            self._enter_get_ready()

        logger.info(f"🎮 Session {session_id} started ({len(self.state.current_word)}-letter word)")
        analytics.track_session_started(session_id)
        return self.state

    def resume_session(self, session_id: str) -> GameState:
        """
        Reload a persisted game and re-arm the timers for its phase.

        Raises:
            SessionNotFound: If the game is unknown or expired
        """
        with self._lock:
            self._reset_timers()
            state = self.store.get_session_state(session_id)
            if state is None:
                raise SessionNotFound(session_id)

            self.state = state
            self.final_summary = None
            self.last_error = None

            if state.phase == Phase.GET_READY:
                self._enter_get_ready()
            elif state.phase == Phase.PLAYING:
                self._schedule(1, self._on_tick)
            elif state.phase == Phase.WORD_COMPLETED:
                self._schedule(self.settings.word_completion_delay, self.advance_level)
            else:
                self._finish()

        logger.info(f"🔄 Session {session_id} resumed at level {state.level} ({state.phase.value})")
        analytics.track_session_started(session_id, resumed=True)
        return state

    def end_session(self, external_score: Optional[float] = None) -> GameSummary:
        """
        Finalize the current session and store its summary for submission.

        Args:
            external_score: Score reported by a client; the higher of it and
                the locally computed score is kept

        Returns:
            The stored game summary

        Raises:
            SessionNotFound: If there is no live session or its record expired
            InvalidSubmission: If the final score fails validation
            GatewayError: If the store stays unreachable after all retries
        """
        with self._lock:
            summary = self._summarize(external_score)
            self._with_retries("Session end", lambda: self._store_summary(summary))
            return self._close(summary)

    def _summarize(self, external_score: Optional[float] = None) -> GameSummary:
        state = self.state
        if state is None:
            raise SessionNotFound("<none>")

        self._reset_timers()

        score = round_half_up(state.score)
        if external_score is not None:
            score = max(score, external_score)

        return GameSummary(
            session_id=state.session_id,
            score=score,
            words_completed=state.words_completed,
            total_correct_guesses=len([key for key in state.correct_keys if is_letter(key)]),
            time_taken=max(0, state.level_duration * (state.level - 1) - state.time_remaining),
        )

    def _store_summary(self, summary: GameSummary) -> None:
        self.store.save_game_summary(summary, config.SUMMARY_TTL_SECONDS)
        self.store.delete_session_state(summary.session_id)

    def _close(self, summary: GameSummary) -> GameSummary:
        state = self.state
        self.state = None
        self.final_summary = summary

        logger.info(f"🏁 Session {summary.session_id} ended: score={summary.score}, words={summary.words_completed}")
        analytics.track_game_over(summary.session_id, state.level, summary.score, _end_reason(state))
        return summary

    def submit_score(self, name: str) -> SubmissionResult:
        """
        Submit the last finished game's score under ``name``.

        Raises:
            InvalidSubmission: If no finished game is waiting or the name is empty
        """
        summary = self.final_summary
        if summary is None:
            raise InvalidSubmission("No finished game to submit")

        result = self.store.submit_score(name, summary.score, summary.session_id)
        if result.accepted:
            logger.info(f"🏆 Score {summary.score} submitted for {name.strip().upper()} (rank {result.rank})")
        else:
            logger.info(f"Score submission rejected for {name.strip().upper()}: {result.reason}")
        analytics.track_score_submitted(name.strip().upper(), summary.score, result.accepted, result.rank)
        return result

    def shutdown(self) -> None:
        with self._lock:
            self._reset_timers()

    # Gameplay

    def press_key(self, key) -> List[GameEvent]:
        """
        Feed one key press to the current game.

        Invalid, repeated, debounced or out-of-phase presses return an empty
        list and leave the state untouched.
        """
        with self._lock:
            if self.state is None:
                return []
            self.state, events = process_guess(self.state, key, self.clock(), self.settings)
            self._handle(events)
            return events

    def tick(self) -> List[GameEvent]:
        """Advance the level clock by one second."""
        with self._lock:
            if self.state is None:
                return []
            self.state, events = apply_tick(self.state, self.settings)
            self._handle(events)
            return events

    def advance_level(self) -> Optional[GameState]:
        """
        Move from a completed word to the next level's get-ready phase.

        The game ends when the word pool is exhausted, or when the store stays
        unreachable for every attempt (the error is kept on ``last_error``).
        """
        return self._advance(1)

    def _advance(self, attempt: int) -> Optional[GameState]:
        with self._lock:
            state = self.state
            if state is None or state.phase != Phase.WORD_COMPLETED:
                return state

            try:
                word, hint = self.store.draw_word(excluding=set(state.used_words), rng=self.rng)
                new, events = advance_to_next_word(state, word, hint, self.settings)
                self.store.save_session_state(new, config.WORD_STATE_TTL_SECONDS)
            except NoWordsAvailable as e:
                logger.info(f"Word pool exhausted for {state.session_id}: {e}")
                return self._force_game_over()
            except GatewayError as e:
                if self._retry_later(f"Level advance for {state.session_id}", attempt, e, self._advance):
                    return state
                self.last_error = e
                return self._force_game_over()

            self.state = new
            self._handle(events)
            self._enter_get_ready()
            logger.info(f"➡️ Session {state.session_id} advanced to level {new.level}")
            return self.state

    def _force_game_over(self) -> Optional[GameState]:
        self.state, events = end_game(self.state)
        self._handle(events)
        return self.state

    # Event handling

    def _emit(self, event: GameEvent) -> None:
        if self.on_event is None:
            return
        try:
            self.on_event(event, self.state)
        except Exception:
            logger.exception(f"Event listener failed on {event.value}")

    def _handle(self, events: List[GameEvent]) -> None:
        state = self.state
        for event in events:
            self._emit(event)

            if event == GameEvent.BONUS_LIFE_EARNED:
                reason = "level" if GameEvent.LEVEL_ADVANCED in events else "streak"
                logger.info(f"❤️ Bonus life for {state.session_id} ({reason}), lives={state.lives}")
                analytics.track_bonus_life(state.session_id, state.level, state.lives, reason)
                self._schedule(self.settings.bonus_notice_seconds, self._clear_bonus_notice)
            elif event == GameEvent.GOD_MODE_ENTERED:
                logger.info(f"⚡ God Mode entered for {state.session_id}")
                analytics.track_god_mode_entered(state.session_id, state.level)
            elif event == GameEvent.WORD_COMPLETED:
                logger.info(f"✅ {state.session_id} completed {state.current_word} (score {state.score})")
                analytics.track_word_completed(
                    state.session_id, state.level, len(state.current_word), state.score, state.time_remaining
                )
                self._schedule(self.settings.word_completion_delay, self.advance_level)

        if GameEvent.GAME_OVER in events:
            self._finish()

    def _finish(self, attempt: int = 1) -> None:
        """End the session after game over, keeping any failure on ``last_error``.

        Gateway failures are retried on the scheduler, so the lock is never
        held across a backoff.
        """
        if self.state is None:
            return
        try:
            summary = self._summarize()
            self._store_summary(summary)
        except GatewayError as e:
            if self._retry_later(f"Session end for {self.state.session_id}", attempt, e, self._finish):
                return
            logger.exception(f"Failed to finalize session: {e}")
            self.last_error = e
            return
        except WordGameError as e:
            logger.exception(f"Failed to finalize session: {e}")
            self.last_error = e
            return
        self._close(summary)


def _end_reason(state: GameState) -> str:
    if state.time_remaining <= 0:
        return "time"
    if state.lives <= 0:
        return "lives"
    if state.phase == Phase.GAME_OVER:
        return "words_exhausted"
    return "quit"
