from __future__ import annotations

import hashlib
import json
from typing import Any

from worldofbits.sim.core import GameState

SAVE_HASH_FIELDS = ("schema_version", "held_token", "has_won", "player_cell", "overrides", "movement_mode")


def _digest(payload: Any) -> str:
    encoded = json.dumps(payload, sort_keys=True, separators=(",", ":")).encode("utf-8")
    return hashlib.sha256(encoded).hexdigest()


def game_state_hash(state: GameState) -> str:
    return _digest(state.to_dict())


def save_hash(payload: dict[str, Any]) -> str:
    return _digest({name: payload[name] for name in SAVE_HASH_FIELDS})
