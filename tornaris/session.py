from __future__ import annotations

import logging
import random
from typing import Any
from uuid import UUID

import redis

from tornaris.actions import ActionName, ActionResult, apply_action
from tornaris.assets.registry import Catalog
from tornaris.assets.singleton import get_catalog
from tornaris.game_store import get_session, save_session
from tornaris.models import SessionOptions, SessionState
from tornaris.rng import new_seed
from tornaris.roster import blank_roster

logger = logging.getLogger(__name__)


def new_session(
    *,
    seed: int | None = None,
    options: SessionOptions | None = None,
    session_id: UUID | None = None,
) -> SessionState:
    """A fresh session in setup with three empty player slots."""

    state = SessionState(
        seed=seed if seed is not None else new_seed(),
        options=options or SessionOptions(),
        players=blank_roster(),
    )
    if session_id is not None:
        state.session_id = session_id
    return state


class Session:
    """Single owner of one session's state.

    Every action is applied in full, then the snapshot is handed to the store
    (when one is configured). Store failures never interrupt play.
    """

    def __init__(
        self,
        *,
        state: SessionState | None = None,
        catalog: Catalog | None = None,
        r: redis.Redis | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.state = state if state is not None else new_session()
        self.catalog = catalog if catalog is not None else get_catalog()
        self.r = r
        self.rng = rng

    @classmethod
    def load(cls, *, r: redis.Redis, session_id: UUID, catalog: Catalog | None = None) -> "Session":
        """Resume a stored session, or start a fresh one when the snapshot is unusable."""

        catalog = catalog if catalog is not None else get_catalog()
        state = get_session(r=r, session_id=session_id, catalog=catalog)
        if state is None:
            logger.info("No usable snapshot for session %s; starting from defaults", session_id)
            state = new_session(session_id=session_id)
        return cls(state=state, catalog=catalog, r=r)

    def apply(self, action: ActionName | str, *, player_id: int | None = None, **payload: Any) -> ActionResult:
        result = apply_action(
            state=self.state,
            catalog=self.catalog,
            action=action,
            payload=payload,
            player_id=player_id,
            rng=self.rng,
        )
        self.save()
        return result

    def save(self) -> None:
        if self.r is not None:
            save_session(r=self.r, state=self.state)

    def snapshot(self) -> str:
        return self.state.model_dump_json()
