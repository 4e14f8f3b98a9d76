from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from worldofbits.sim.grid import GeoPosition

CONFIG_SCHEMA_VERSION = 1
DEFAULT_CONFIG_PATH = "content/config/default_config.json"

NULL_ISLAND = GeoPosition(lat=0.0, lng=0.0)
CLASSROOM_POSITION = GeoPosition(lat=36.997936938057016, lng=-122.05703507501151)
DEFAULT_CELL_DEGREES = 1e-4
DEFAULT_SPAWN_PROBABILITY = 0.3
DEFAULT_SPAWN_TAG = "initialValue"
DEFAULT_INTERACTION_RADIUS = 3
DEFAULT_TARGET = 32
DEFAULT_STORAGE_KEY = "world_of_bits_state"


@dataclass(frozen=True)
class GameConfig:
    origin: GeoPosition = NULL_ISLAND
    start_position: GeoPosition = CLASSROOM_POSITION
    cell_degrees: float = DEFAULT_CELL_DEGREES
    spawn_probability: float = DEFAULT_SPAWN_PROBABILITY
    spawn_tag: str = DEFAULT_SPAWN_TAG
    interaction_radius: int = DEFAULT_INTERACTION_RADIUS
    target: int = DEFAULT_TARGET
    storage_key: str = DEFAULT_STORAGE_KEY

    def __post_init__(self) -> None:
        if not isinstance(self.cell_degrees, (int, float)) or self.cell_degrees <= 0:
            raise ValueError("cell_degrees must be > 0")
        if not isinstance(self.spawn_probability, (int, float)) or not 0.0 <= self.spawn_probability <= 1.0:
            raise ValueError("spawn_probability must be within [0.0, 1.0]")
        if not isinstance(self.spawn_tag, str) or not self.spawn_tag:
            raise ValueError("spawn_tag must be a non-empty string")
        if isinstance(self.interaction_radius, bool) or not isinstance(self.interaction_radius, int):
            raise ValueError("interaction_radius must be an integer")
        if self.interaction_radius < 0:
            raise ValueError("interaction_radius must be >= 0")
        if isinstance(self.target, bool) or not isinstance(self.target, int) or self.target <= 0:
            raise ValueError("target must be a positive integer")
        if not isinstance(self.storage_key, str) or not self.storage_key:
            raise ValueError("storage_key must be a non-empty string")


def load_game_config_json(path: str | Path) -> GameConfig:
    payload = json.loads(Path(path).read_text(encoding="utf-8"))
    return _config_from_payload(payload)


def _position_field(payload: dict[str, Any], name: str, default: GeoPosition) -> GeoPosition:
    raw = payload.get(name)
    if raw is None:
        return default
    if not isinstance(raw, dict):
        raise ValueError(f"config.{name} must be an object")
    for axis in ("lat", "lng"):
        value = raw.get(axis)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError(f"config.{name}.{axis} must be numeric")
    return GeoPosition.from_dict(raw)


def _config_from_payload(payload: Any) -> GameConfig:
    if not isinstance(payload, dict):
        raise ValueError("config payload must be an object")

    schema_version = payload.get("schema_version")
    if not isinstance(schema_version, int):
        raise ValueError("config must contain integer field: schema_version")
    if schema_version != CONFIG_SCHEMA_VERSION:
        raise ValueError(f"unsupported config schema_version: {schema_version}")

    return GameConfig(
        origin=_position_field(payload, "origin", NULL_ISLAND),
        start_position=_position_field(payload, "start_position", CLASSROOM_POSITION),
        cell_degrees=payload.get("cell_degrees", DEFAULT_CELL_DEGREES),
        spawn_probability=payload.get("spawn_probability", DEFAULT_SPAWN_PROBABILITY),
        spawn_tag=payload.get("spawn_tag", DEFAULT_SPAWN_TAG),
        interaction_radius=payload.get("interaction_radius", DEFAULT_INTERACTION_RADIUS),
        target=payload.get("target", DEFAULT_TARGET),
        storage_key=payload.get("storage_key", DEFAULT_STORAGE_KEY),
    )


def load_config_or_default(path: str | Path | None = None) -> GameConfig:
    """Explicit path, else the shipped defaults file when present, else built-in defaults."""
    if path is not None:
        return load_game_config_json(path)
    if Path(DEFAULT_CONFIG_PATH).exists():
        return load_game_config_json(DEFAULT_CONFIG_PATH)
    return GameConfig()
