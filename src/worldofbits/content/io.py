from __future__ import annotations

import json
import os
import re
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Any

from worldofbits.content.schema import validate_save_payload
from worldofbits.logger import get_logger
from worldofbits.sim.core import GameState
from worldofbits.sim.grid import GridCell
from worldofbits.sim.hash import save_hash
from worldofbits.sim.world import OverrideStore

SCHEMA_VERSION = 1
CANONICAL_JSON_INDENT = 2
CANONICAL_JSON_SEPARATORS = (",", ": ")
_STORE_KEY_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+$")

log = get_logger(__name__)


class DurableStore:
    """Key/blob storage consumed by the persistence layer."""

    def get(self, key: str) -> str | None:
        raise NotImplementedError

    def set(self, key: str, blob: str) -> None:
        raise NotImplementedError

    def remove(self, key: str) -> None:
        raise NotImplementedError


class MemoryStore(DurableStore):
    def __init__(self, blobs: dict[str, str] | None = None) -> None:
        self.blobs: dict[str, str] = dict(blobs or {})

    def get(self, key: str) -> str | None:
        return self.blobs.get(key)

    def set(self, key: str, blob: str) -> None:
        self.blobs[key] = blob

    def remove(self, key: str) -> None:
        self.blobs.pop(key, None)


class JsonFileStore(DurableStore):
    """One ``<key>.json`` file per key, replaced atomically on every write."""

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory)

    def path_for(self, key: str) -> Path:
        if not _STORE_KEY_PATTERN.match(key):
            raise ValueError(f"invalid store key: {key!r}")
        return self.directory / f"{key}.json"

    def get(self, key: str) -> str | None:
        path = self.path_for(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def set(self, key: str, blob: str) -> None:
        _write_atomic_text(self.path_for(key), blob)

    def remove(self, key: str) -> None:
        self.path_for(key).unlink(missing_ok=True)


def _write_atomic_text(path: str | Path, serialized: str) -> None:
    destination = Path(path)
    destination.parent.mkdir(parents=True, exist_ok=True)

    temp_path: Path | None = None
    try:
        with NamedTemporaryFile(
            mode="w",
            encoding="utf-8",
            dir=destination.parent,
            delete=False,
            suffix=".tmp",
        ) as temp_file:
            temp_file.write(serialized)
            temp_file.flush()
            os.fsync(temp_file.fileno())
            temp_path = Path(temp_file.name)
        os.replace(temp_path, destination)
    except Exception:
        if temp_path is not None:
            temp_path.unlink(missing_ok=True)
        raise


def _canonical_json(payload: dict[str, Any]) -> str:
    return json.dumps(
        payload,
        indent=CANONICAL_JSON_INDENT,
        separators=CANONICAL_JSON_SEPARATORS,
        sort_keys=True,
    )


def build_save_payload(state: GameState) -> dict[str, Any]:
    payload: dict[str, Any] = {"schema_version": SCHEMA_VERSION, **state.to_dict()}
    payload["save_hash"] = save_hash(payload)
    return payload


def encode_game_state(state: GameState) -> str:
    payload = build_save_payload(state)
    validate_save_payload(payload)
    return _canonical_json(payload)


def _game_state_from_payload(payload: dict[str, Any]) -> GameState:
    validate_save_payload(payload)

    expected_hash = payload["save_hash"]
    actual_hash = save_hash(payload)
    if expected_hash != actual_hash:
        raise ValueError(f"save_hash mismatch (stored={expected_hash}, recomputed={actual_hash})")

    return GameState(
        player_cell=GridCell.from_dict(payload["player_cell"]),
        held_token=payload["held_token"],
        has_won=payload["has_won"],
        overrides=OverrideStore.from_list(payload["overrides"]),
        movement_mode=payload["movement_mode"],
    )


def decode_game_state(blob: str | None) -> GameState | None:
    """Parse a persisted blob; anything short of a fully valid save yields ``None``."""
    if blob is None:
        return None
    try:
        payload = json.loads(blob)
        return _game_state_from_payload(payload)
    except (ValueError, TypeError, KeyError) as exc:
        log.warning("discarding persisted game state: %s", exc)
        return None


def save_game(store: DurableStore, state: GameState, key: str) -> None:
    store.set(key, encode_game_state(state))


def load_game(store: DurableStore, key: str) -> GameState | None:
    return decode_game_state(store.get(key))


def clear_game(store: DurableStore, key: str) -> None:
    store.remove(key)
