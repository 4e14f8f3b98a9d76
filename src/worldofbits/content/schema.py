from __future__ import annotations

from typing import Any

from worldofbits.sim.movement import MOVEMENT_MODES

SUPPORTED_SCHEMA_VERSIONS = {1}
REQUIRED_SAVE_FIELDS = {
    "schema_version",
    "held_token",
    "has_won",
    "player_cell",
    "overrides",
    "movement_mode",
    "save_hash",
}


def _require_int(value: Any, *, field_name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{field_name} must be an integer")
    return value


def _validate_token(value: Any, *, field_name: str) -> None:
    if value is None:
        return
    if _require_int(value, field_name=field_name) <= 0:
        raise ValueError(f"{field_name} must be > 0")


def _validate_cell(value: Any, *, field_name: str) -> None:
    if not isinstance(value, dict):
        raise ValueError(f"{field_name} must be an object")
    if not {"i", "j"} <= value.keys():
        raise ValueError(f"{field_name} requires i and j")
    _require_int(value["i"], field_name=f"{field_name}.i")
    _require_int(value["j"], field_name=f"{field_name}.j")


def validate_save_payload(payload: Any) -> None:
    if not isinstance(payload, dict):
        raise ValueError("save payload must be an object")

    missing = REQUIRED_SAVE_FIELDS - set(payload.keys())
    if missing:
        raise ValueError(f"save payload missing fields: {sorted(missing)}")

    schema_version = _require_int(payload["schema_version"], field_name="schema_version")
    if schema_version not in SUPPORTED_SCHEMA_VERSIONS:
        raise ValueError(f"unsupported schema_version: {schema_version}")

    _validate_token(payload["held_token"], field_name="held_token")
    if not isinstance(payload["has_won"], bool):
        raise ValueError("has_won must be a boolean")
    _validate_cell(payload["player_cell"], field_name="player_cell")

    if payload["movement_mode"] not in MOVEMENT_MODES:
        raise ValueError(f"unsupported movement_mode: {payload['movement_mode']}")

    overrides = payload["overrides"]
    if not isinstance(overrides, list):
        raise ValueError("overrides must be a list")
    for index, row in enumerate(overrides):
        _validate_cell(row, field_name=f"overrides[{index}]")
        if "value" not in row:
            raise ValueError(f"overrides[{index}] missing value")
        _validate_token(row["value"], field_name=f"overrides[{index}].value")

    if not isinstance(payload["save_hash"], str) or not payload["save_hash"]:
        raise ValueError("save_hash must be a non-empty string")
