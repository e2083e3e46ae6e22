"""Redis storage for game sessions, the word pool and the leaderboard."""

import json
import logging
import random
from pathlib import Path
from typing import Iterable, List, Optional, Set, Tuple

import redis

from wordgame.config import config
from wordgame.errors import GatewayError, InvalidSubmission, NoWordsAvailable, SessionNotFound
from wordgame.models import GameState, GameSummary, LeaderboardEntry, SubmissionResult
from wordgame.settings import GAME_SETTINGS, GameSettings

logger = logging.getLogger(__name__)

WORDS_KEY = "words"
LEADERBOARD_KEY = "leaderboard"


def parse_word_lines(lines: Iterable[str]) -> List[Tuple[str, str]]:
    """Parse ``word,hint`` lines, skipping blanks and lines without a hint."""
    pairs = []
    for line in lines:
        word, _, hint = line.partition(",")
        word, hint = word.strip(), hint.strip()
        if word and hint:
            pairs.append((word, hint))
    return pairs


class RedisStore:
    """Redis client for game state, words and scores."""

    def __init__(self, client: Optional[redis.Redis] = None, settings: GameSettings = GAME_SETTINGS):
        """Initialize Redis connection."""
        self.client = client if client is not None else redis.Redis(
            host=config.REDIS_HOST,
            port=config.REDIS_PORT,
            password=config.REDIS_PASSWORD,
            db=config.REDIS_DB,
            socket_timeout=config.REDIS_SOCKET_TIMEOUT,
            decode_responses=True,
        )
        self.settings = settings

    def _get_session_key(self, session_id: str) -> str:
        """Generate Redis key for a game session."""
        return f"game:{session_id}"

    def _get_summary_key(self, session_id: str) -> str:
        """Generate Redis key for a validated game summary."""
        return f"summary:{session_id}"

    def ping(self) -> bool:
        try:
            return bool(self.client.ping())
        except redis.RedisError as e:
            logger.error(f"Redis ping failed: {e}")
            return False

    # Word pool

    def load_words(self, pairs: Iterable[Tuple[str, str]]) -> int:
        """Replace the word pool. Returns the number of words stored."""
        words = [[word, hint] for word, hint in pairs]
        try:
            pipe = self.client.pipeline()
            pipe.delete(WORDS_KEY)
            pipe.set(WORDS_KEY, json.dumps(words))
            pipe.execute()
        except redis.RedisError as e:
            logger.error(f"Error loading words: {e}")
            raise GatewayError("Failed to load words") from e
        logger.info(f"Loaded {len(words)} words into the pool")
        return len(words)

    def load_words_file(self, path) -> int:
        """Load ``word,hint`` lines from a text file."""
        with open(Path(path), "r", encoding="utf-8") as f:
            return self.load_words(parse_word_lines(f))

    def get_words(self) -> List[Tuple[str, str]]:
        try:
            data = self.client.get(WORDS_KEY)
        except redis.RedisError as e:
            logger.error(f"Error reading words: {e}")
            raise GatewayError("Failed to read words") from e

        if not data:
            return []
        words = json.loads(data)
        if not isinstance(words, list):
            return []
        return [(word, hint) for word, hint in words]

    def word_count(self) -> int:
        return len(self.get_words())

    def draw_word(self, excluding: Optional[Set[str]] = None, rng=random) -> Tuple[str, str]:
        """Pick a random (WORD, hint) that is not in ``excluding``.

        Raises:
            NoWordsAvailable: If the pool is empty or every word was excluded
        """
        words = self.get_words()
        if not words:
            raise NoWordsAvailable("No words available")

        excluded = {w.upper() for w in (excluding or ())}
        available = [(word, hint) for word, hint in words if word.upper() not in excluded]
        if not available:
            raise NoWordsAvailable("All words have been used")

        word, hint = rng.choice(available)
        return word.upper(), hint

    # Session state

    def get_session_state(self, session_id: str) -> Optional[GameState]:
        """Retrieve a game state, None if unknown or expired."""
        key = self._get_session_key(session_id)
        try:
            data = self.client.get(key)
        except redis.RedisError as e:
            logger.error(f"Error reading game state {session_id}: {e}")
            raise GatewayError(f"Failed to load game {session_id}") from e

        if not data:
            return None
        return GameState.model_validate_json(data)

    def save_session_state(self, state: GameState, ttl_seconds: int = config.SESSION_TTL_SECONDS) -> None:
        """Save a game state with an expiration."""
        key = self._get_session_key(state.session_id)
        try:
            self.client.set(key, state.model_dump_json(), ex=ttl_seconds)
        except redis.RedisError as e:
            logger.error(f"Error saving game state {state.session_id}: {e}")
            raise GatewayError(f"Failed to save game {state.session_id}") from e

    def delete_session_state(self, session_id: str) -> None:
        try:
            self.client.delete(self._get_session_key(session_id))
        except redis.RedisError as e:
            logger.error(f"Error deleting game state {session_id}: {e}")
            raise GatewayError(f"Failed to delete game {session_id}") from e

    # Summaries and leaderboard

    def save_game_summary(self, summary: GameSummary, ttl_seconds: int = config.SUMMARY_TTL_SECONDS) -> GameSummary:
        """Validate and store a final summary so the score can be submitted later.

        Raises:
            SessionNotFound: If the game no longer exists
            InvalidSubmission: If the score is negative or implausibly high
        """
        if summary.score < 0:
            raise InvalidSubmission("Invalid game summary")

        max_score = self.settings.max_submittable_score(summary.words_completed)
        if summary.score > max_score:
            logger.warning(
                f"Suspicious score {summary.score} for {summary.session_id} "
                f"({summary.words_completed} words, max {max_score})"
            )
            raise InvalidSubmission("Suspicious score")

        try:
            if not self.client.exists(self._get_session_key(summary.session_id)):
                raise SessionNotFound(summary.session_id)
            self.client.set(self._get_summary_key(summary.session_id), summary.model_dump_json(), ex=ttl_seconds)
        except redis.RedisError as e:
            logger.error(f"Error saving summary for {summary.session_id}: {e}")
            raise GatewayError("Failed to save game summary") from e

        logger.info(f"Game summary stored for {summary.session_id}: score={summary.score}")
        return summary

    def get_game_summary(self, session_id: str) -> Optional[GameSummary]:
        try:
            data = self.client.get(self._get_summary_key(session_id))
        except redis.RedisError as e:
            raise GatewayError("Failed to read game summary") from e
        if not data:
            return None
        return GameSummary.model_validate_json(data)

    def get_player_score(self, name: str) -> Optional[float]:
        try:
            return self.client.zscore(LEADERBOARD_KEY, name.strip().upper())
        except redis.RedisError as e:
            raise GatewayError("Failed to read player score") from e

    def submit_score(self, name: str, score: float, session_id: str) -> SubmissionResult:
        """Add a validated score to the leaderboard.

        Returns a rejected result when no matching summary exists or the
        player already holds an equal or higher score.

        Raises:
            InvalidSubmission: If the name or score is malformed
        """
        if not isinstance(name, str) or not name.strip():
            raise InvalidSubmission("Invalid name provided")
        if isinstance(score, bool) or not isinstance(score, (int, float)) or score != score:
            raise InvalidSubmission("Invalid score provided")

        member = name.strip().upper()
        summary = self.get_game_summary(session_id)
        if summary is None or summary.score != score:
            return SubmissionResult(accepted=False, reason="Invalid score or game not found")

        existing = self.get_player_score(member)
        if existing is not None and existing >= score:
            return SubmissionResult(
                accepted=False,
                reason="Existing score is higher or equal",
                existing_score=existing,
            )

        try:
            pipe = self.client.pipeline(transaction=True)
            pipe.zadd(LEADERBOARD_KEY, {member: score})
            pipe.zrevrank(LEADERBOARD_KEY, member)
            pipe.zrevrange(LEADERBOARD_KEY, 0, config.LEADERBOARD_SIZE - 1, withscores=True)
            pipe.zcard(LEADERBOARD_KEY)
            pipe.delete(self._get_summary_key(session_id))
            _, rank, top, total, _ = pipe.execute()
        except redis.RedisError as e:
            logger.error(f"Error submitting score for {member}: {e}")
            raise GatewayError("Failed to save high score") from e

        logger.info(f"🏆 {member} submitted {score} (rank {rank + 1}/{total})")
        return SubmissionResult(
            accepted=True,
            rank=rank + 1,
            top_scores=[LeaderboardEntry(name=m, score=s) for m, s in top],
            total_scores=total,
        )

    def get_leaderboard(self, limit: int = config.LEADERBOARD_SIZE) -> List[LeaderboardEntry]:
        """Get the top scores, highest first."""
        try:
            rows = self.client.zrevrange(LEADERBOARD_KEY, 0, limit - 1, withscores=True)
        except redis.RedisError as e:
            logger.error(f"Error getting leaderboard: {e}")
            raise GatewayError("Failed to retrieve high scores") from e
        return [LeaderboardEntry(name=member, score=score) for member, score in rows]

    def wipe_leaderboard(self) -> None:
        try:
            self.client.delete(LEADERBOARD_KEY)
        except redis.RedisError as e:
            raise GatewayError("Failed to wipe high scores") from e
        logger.info("High scores wiped")
