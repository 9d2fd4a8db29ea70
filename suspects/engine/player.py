"""Stable local player identity.

A corrupt or missing player record is never an error: a new identity is
generated and persisted in its place.
"""
from __future__ import annotations

import logging
import uuid

from suspects.engine.models import Player
from suspects.engine.state import SlotStore

logger = logging.getLogger(__name__)


def generate_player_uuid() -> str:
    return str(uuid.uuid4())


def create_new_player() -> Player:
    return Player(uuid=generate_player_uuid(), name="", seen_intro=False)


def ensure_player(store: SlotStore) -> Player:
    """Return the stored player, creating and persisting one if needed."""
    player = store.player.get()
    if player is not None and player.uuid:
        return player

    player = create_new_player()
    logger.warning("No valid stored player – created %s", player.uuid)
    store.player.set(player)
    return player


def set_player_name(store: SlotStore, name: str) -> Player:
    """Keep the identifier, replace the display name."""
    player = ensure_player(store)
    renamed = player.model_copy(update={"name": name})
    store.player.set(renamed)
    return renamed
