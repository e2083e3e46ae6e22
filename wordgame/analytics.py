"""PostHog analytics integration for tracking game events."""

from typing import Optional, Dict, Any
from datetime import datetime
import logging

from posthog import Posthog

logger = logging.getLogger(__name__)

# Global PostHog client instance
_posthog_client: Optional[Posthog] = None


def init_posthog(api_key: str, host: str = "https://eu.i.posthog.com"):
    """
    Initialize PostHog client.

    Args:
        api_key: PostHog project API key
        host: PostHog host URL (default: EU instance)
    """
    global _posthog_client

    if not api_key or api_key == "PLACEHOLDER":
        logger.warning("PostHog API key not configured - analytics disabled")
        _posthog_client = None
        return

    try:
        _posthog_client = Posthog(project_api_key=api_key, host=host)
        logger.info(f"PostHog analytics initialized (host: {host})")
    except Exception as e:
        logger.error(f"Failed to initialize PostHog: {e}")
        _posthog_client = None


def shutdown_posthog():
    """Flush queued events and drop the client."""
    global _posthog_client

    if _posthog_client is None:
        return
    try:
        _posthog_client.shutdown()
    except Exception as e:
        logger.error(f"Error shutting down PostHog: {e}")
    _posthog_client = None


def track_event(
    distinct_id: str,
    event: str,
    properties: Optional[Dict[str, Any]] = None
):
    """
    Track an event in PostHog.

    Args:
        distinct_id: Session id, or player name for leaderboard events
        event: Event name (e.g., "word_completed")
        properties: Additional event properties
    """
    if _posthog_client is None:
        return  # Analytics disabled

    try:
        _posthog_client.capture(
            distinct_id=distinct_id,
            event=event,
            properties=properties or {}
        )
    except Exception as e:
        logger.error(f"Error tracking event '{event}': {e}")


def identify_user(
    distinct_id: str,
    properties: Optional[Dict[str, Any]] = None
):
    """
    Identify a player and set their properties.

    Args:
        distinct_id: Player name as shown on the leaderboard
        properties: User properties to set
    """
    if _posthog_client is None:
        return

    try:
        _posthog_client.identify(
            distinct_id=distinct_id,
            properties=properties or {}
        )
    except Exception as e:
        logger.error(f"Error identifying user: {e}")


# Convenience functions for specific events

def track_session_started(session_id: str, resumed: bool = False):
    """Track when a session starts or is resumed."""
    track_event(
        distinct_id=session_id,
        event="session_resumed" if resumed else "session_started",
        properties={"timestamp": datetime.now().isoformat()}
    )


def track_word_completed(session_id: str, level: int, word_length: int, score: float, time_remaining: int):
    """Track when a word is fully revealed."""
    track_event(
        distinct_id=session_id,
        event="word_completed",
        properties={
            "level": level,
            "word_length": word_length,
            "score": score,
            "time_remaining": time_remaining
        }
    )


def track_god_mode_entered(session_id: str, level: int):
    track_event(
        distinct_id=session_id,
        event="god_mode_entered",
        properties={"level": level}
    )


def track_bonus_life(session_id: str, level: int, lives: int, reason: str):
    """Track a bonus life from a correct-guess streak or a level milestone."""
    track_event(
        distinct_id=session_id,
        event="bonus_life_earned",
        properties={
            "level": level,
            "lives": lives,
            "reason": reason
        }
    )


def track_game_over(session_id: str, level: int, score: float, reason: str):
    """Track when a session ends."""
    track_event(
        distinct_id=session_id,
        event="game_over",
        properties={
            "level": level,
            "words_completed": level - 1,
            "score": score,
            "reason": reason
        }
    )


def track_score_submitted(name: str, score: float, accepted: bool, rank: Optional[int] = None):
    """Track a leaderboard submission."""
    props = {
        "score": score,
        "accepted": accepted
    }
    if rank:
        props["rank"] = rank

    track_event(
        distinct_id=name,
        event="score_submitted",
        properties=props
    )

    if accepted:
        identify_user(
            distinct_id=name,
            properties={
                "best_score": score,
                "submitted_at": datetime.now().isoformat()
            }
        )
