import random

import fakeredis
import pytest

from conftest import WORDS, playing_state
from wordgame.errors import GatewayError, InvalidSubmission, NoWordsAvailable, SessionNotFound
from wordgame.models import GameSummary
from wordgame.redis_store import LEADERBOARD_KEY, RedisStore, parse_word_lines


def test_parse_word_lines_skips_blank_and_hintless_lines():
    lines = ["cat,A small feline\n", "\n", "nohint\n", "hot dog,Sausage, in a bun\n", " ,missing word\n"]
    assert parse_word_lines(lines) == [("cat", "A small feline"), ("hot dog", "Sausage, in a bun")]


def test_load_words_file_replaces_pool(store, tmp_path):
    path = tmp_path / "words.txt"
    path.write_text("apple,A fruit\nbanana,Yellow fruit\n", encoding="utf-8")

    assert store.word_count() == len(WORDS)
    assert store.load_words_file(path) == 2
    assert store.get_words() == [("apple", "A fruit"), ("banana", "Yellow fruit")]


def test_draw_word_excludes_used_words(store):
    rng = random.Random(1)
    for _ in range(20):
        word, _ = store.draw_word(excluding={"CAT", "DOG"}, rng=rng)
        assert word == "ICE-CREAM"


def test_draw_word_raises_when_exhausted(store):
    with pytest.raises(NoWordsAvailable):
        store.draw_word(excluding={"cat", "dog", "ice-cream"})


def test_draw_word_raises_on_empty_pool(redis_client):
    with pytest.raises(NoWordsAvailable):
        RedisStore(client=redis_client).draw_word()


def test_session_state_round_trip(store):
    state = playing_state(
        word="ice-cream",
        used_keys={"-", "C", "X"},
        correct_keys={"-", "C"},
        score=41.0,
        base_multiplier=1.07,
        time_multiplier=1 + 37 / 120,
        total_correct_guesses=12,
        used_words=["CAT", "ICE-CREAM"],
        last_key_press_at=1712345678.125,
    )
    store.save_session_state(state, ttl_seconds=60)
    assert store.get_session_state(state.session_id) == state


def test_session_state_ttl(store, redis_client):
    state = playing_state()
    store.save_session_state(state, ttl_seconds=3600)
    assert 0 < redis_client.ttl("game:test-session") <= 3600


def test_missing_session_is_none(store):
    assert store.get_session_state("nope") is None


def test_delete_session_state(store):
    state = playing_state()
    store.save_session_state(state)
    store.delete_session_state(state.session_id)
    assert store.get_session_state(state.session_id) is None


def _summary(score, words_completed=0, session_id="test-session"):
    return GameSummary(session_id=session_id, score=score, words_completed=words_completed)


def test_summary_requires_live_game(store):
    with pytest.raises(SessionNotFound):
        store.save_game_summary(_summary(100))


@pytest.mark.parametrize("score,words", [(-1, 0), (1001, 0), (3001, 3)])
def test_summary_rejects_implausible_scores(store, score, words):
    store.save_session_state(playing_state())
    with pytest.raises(InvalidSubmission):
        store.save_game_summary(_summary(score, words))


def test_summary_is_stored_with_ttl(store, redis_client):
    store.save_session_state(playing_state())
    store.save_game_summary(_summary(2500, words_completed=3), ttl_seconds=3600)
    assert store.get_game_summary("test-session").score == 2500
    assert 0 < redis_client.ttl("summary:test-session") <= 3600


@pytest.fixture()
def summary_for(store):
    def factory(session_id, score):
        store.save_session_state(playing_state(session_id=session_id))
        return store.save_game_summary(_summary(score, session_id=session_id))

    return factory


def test_submit_accepts_validated_score(store, summary_for):
    summary_for("g1", 300)
    result = store.submit_score("  alice ", 300, "g1")

    assert result.accepted
    assert result.rank == 1
    assert result.total_scores == 1
    assert [(e.name, e.score) for e in result.top_scores] == [("ALICE", 300)]
    assert store.get_game_summary("g1") is None


def test_submit_ranks_against_others(store, summary_for):
    for i, (name, score) in enumerate([("a", 500), ("b", 100), ("c", 300)]):
        summary_for(f"g{i}", score)
        store.submit_score(name, score, f"g{i}")

    summary_for("g9", 400)
    result = store.submit_score("d", 400, "g9")
    assert result.rank == 2
    assert result.total_scores == 4
    assert [e.name for e in result.top_scores] == ["A", "D", "C", "B"]


def test_submit_rejected_without_summary(store):
    result = store.submit_score("alice", 300, "unknown")
    assert not result.accepted
    assert store.get_leaderboard() == []


def test_submit_rejected_when_score_differs(store, summary_for):
    summary_for("g1", 300)
    result = store.submit_score("alice", 999, "g1")
    assert not result.accepted
    assert store.get_game_summary("g1") is not None


def test_submit_rejected_when_existing_score_is_higher(store, summary_for):
    summary_for("g1", 300)
    store.submit_score("alice", 300, "g1")
    summary_for("g2", 300)

    result = store.submit_score("ALICE", 300, "g2")
    assert not result.accepted
    assert result.existing_score == 300
    assert store.get_player_score("alice") == 300


@pytest.mark.parametrize("name,score", [("", 10), ("   ", 10), ("bob", "10"), ("bob", True), ("bob", float("nan"))])
def test_submit_rejects_malformed_input(store, name, score):
    with pytest.raises(InvalidSubmission):
        store.submit_score(name, score, "g1")


def test_leaderboard_limit_and_wipe(store, redis_client):
    redis_client.zadd(LEADERBOARD_KEY, {f"P{i}": i * 10 for i in range(8)})

    entries = store.get_leaderboard()
    assert len(entries) == 5
    assert entries[0].name == "P7"
    assert len(store.get_leaderboard(limit=3)) == 3

    store.wipe_leaderboard()
    assert store.get_leaderboard() == []


def test_gateway_errors_are_wrapped():
    server = fakeredis.FakeServer()
    server.connected = False
    store = RedisStore(client=fakeredis.FakeRedis(server=server, decode_responses=True))

    assert store.ping() is False
    with pytest.raises(GatewayError):
        store.get_session_state("g1")
    with pytest.raises(GatewayError):
        store.save_session_state(playing_state())
    with pytest.raises(GatewayError):
        store.draw_word()
