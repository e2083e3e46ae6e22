import itertools
import random

import fakeredis
import pytest

from wordgame.game import new_game_state
from wordgame.models import Phase
from wordgame.redis_store import RedisStore
from wordgame.scheduler import ManualScheduler
from wordgame.services.session_service import SessionService

WORDS = [
    ("cat", "A small feline"),
    ("dog", "It barks"),
    ("ice-cream", "Frozen dessert"),
]


def playing_state(word="CAT", session_id="test-session", **updates):
    """A fresh state that already accepts guesses."""
    state = new_game_state(session_id, word, "hint")
    return state.model_copy(update={"phase": Phase.PLAYING, **updates})


@pytest.fixture()
def redis_client():
    return fakeredis.FakeRedis(decode_responses=True)


@pytest.fixture()
def store(redis_client):
    store = RedisStore(client=redis_client)
    store.load_words(WORDS)
    return store


@pytest.fixture()
def scheduler():
    return ManualScheduler()


@pytest.fixture()
def events():
    return []


@pytest.fixture()
def sleeps():
    return []


@pytest.fixture()
def make_service(store, scheduler, events, sleeps):
    """Build a service on the virtual clock. Each key press is one second after the previous."""
    created = []

    def factory(**overrides):
        kwargs = dict(
            store=store,
            scheduler=scheduler,
            clock=itertools.count(1).__next__,
            sleep=sleeps.append,
            on_event=lambda event, state: events.append(event),
            rng=random.Random(7),
        )
        kwargs.update(overrides)
        service = SessionService(**kwargs)
        created.append(service)
        return service

    yield factory
    for service in created:
        service.shutdown()


@pytest.fixture()
def service(make_service):
    return make_service()
