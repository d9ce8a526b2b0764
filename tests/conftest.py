from __future__ import annotations

import os
import random
from collections.abc import Generator
from pathlib import Path

import fakeredis
import pytest

from tornaris.assets.registry import Catalog
from tornaris.models import SessionOptions, SessionState
from tornaris.session import new_session


@pytest.fixture(scope="session", autouse=True)
def _init_catalog_from_test_fixtures() -> None:
    """Initialize the catalog from `tests/assets` and forbid falling back to the built-in box.

    This keeps tests hermetic and prevents coupling to the repo's real game data.
    """

    os.environ["TORNARIS_STRICT_ASSETS"] = "1"

    from tornaris.assets.singleton import init_catalog, reset_catalog_for_tests

    reset_catalog_for_tests()

    # Point the loader at a fake project root: tests/ contains an assets/ dir.
    test_root = Path(__file__).resolve().parent
    init_catalog(project_root=test_root)


@pytest.fixture()
def catalog() -> Catalog:
    from tornaris.assets.singleton import get_catalog

    return get_catalog()


@pytest.fixture()
def rng() -> random.Random:
    return random.Random(1234)


@pytest.fixture()
def redis_client() -> Generator[fakeredis.FakeRedis, None, None]:
    r = fakeredis.FakeRedis(decode_responses=True)
    yield r
    r.flushall()


def _make_roster(state: SessionState, characters: list[str]) -> SessionState:
    from tornaris.models import Player

    state.players = [
        Player(id=i, name=f"Player {i + 1}", character_id=cid) for i, cid in enumerate(characters)
    ]
    return state


@pytest.fixture()
def setup_state() -> SessionState:
    """Four named players with distinct classes, still in setup."""

    state = new_session(seed=42, options=SessionOptions(digital_monsters=True, full_tracking=True))
    return _make_roster(state, ["aldric", "nyra", "selene", "borin"])


@pytest.fixture()
def started_state(setup_state: SessionState, catalog: Catalog, rng: random.Random) -> SessionState:
    from tornaris.progression import start_session

    start_session(state=setup_state, catalog=catalog, rng=rng)
    return setup_state
