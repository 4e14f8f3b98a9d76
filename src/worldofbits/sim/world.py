from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Iterator

from worldofbits.sim.grid import GridCell
from worldofbits.sim.rng import cell_seed_key, luck

if TYPE_CHECKING:
    from worldofbits.content.config import GameConfig

SPAWN_TOKEN_VALUE = 1


def _validate_cell_value(value: Any, *, field_name: str) -> int | None:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{field_name} must be a positive integer or null")
    if value <= 0:
        raise ValueError(f"{field_name} must be > 0")
    return value


def base_value(cell: GridCell, config: GameConfig) -> int | None:
    """Procedural content of an untouched cell."""
    roll = luck(cell_seed_key(cell.i, cell.j, config.spawn_tag))
    if roll < config.spawn_probability:
        return SPAWN_TOKEN_VALUE
    return None


@dataclass
class OverrideStore:
    """Sparse record of cells whose content differs from the procedural layer.

    Membership is meaningful on its own: a cell mapped to ``None`` was emptied
    by the player, while a missing cell still defers to :func:`base_value`.
    """

    entries: dict[GridCell, int | None] = field(default_factory=dict)

    def __post_init__(self) -> None:
        for cell, value in self.entries.items():
            if not isinstance(cell, GridCell):
                raise ValueError("override keys must be GridCell instances")
            _validate_cell_value(value, field_name=f"override[{cell.key()}]")

    def __contains__(self, cell: object) -> bool:
        return cell in self.entries

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[GridCell]:
        return iter(self.cells())

    def has(self, cell: GridCell) -> bool:
        return cell in self.entries

    def get(self, cell: GridCell) -> int | None:
        return self.entries.get(cell)

    def set(self, cell: GridCell, value: int | None) -> None:
        self.entries[cell] = _validate_cell_value(value, field_name=f"override[{cell.key()}]")

    def cells(self) -> list[GridCell]:
        return sorted(self.entries)

    def to_list(self) -> list[dict[str, Any]]:
        return [{**cell.to_dict(), "value": self.entries[cell]} for cell in self.cells()]

    @classmethod
    def from_list(cls, rows: list[dict[str, Any]]) -> "OverrideStore":
        if not isinstance(rows, list):
            raise ValueError("overrides must be a list")
        entries: dict[GridCell, int | None] = {}
        for index, row in enumerate(rows):
            if not isinstance(row, dict):
                raise ValueError(f"overrides[{index}] must be an object")
            if "value" not in row:
                raise ValueError(f"overrides[{index}] missing value")
            for axis in ("i", "j"):
                raw = row.get(axis)
                if isinstance(raw, bool) or not isinstance(raw, int):
                    raise ValueError(f"overrides[{index}].{axis} must be an integer")
            cell = GridCell(i=row["i"], j=row["j"])
            if cell in entries:
                raise ValueError(f"duplicate override cell: {cell.key()}")
            entries[cell] = _validate_cell_value(row["value"], field_name=f"overrides[{index}].value")
        return cls(entries=entries)


def effective_value(cell: GridCell, overrides: OverrideStore, config: GameConfig) -> int | None:
    if overrides.has(cell):
        return overrides.get(cell)
    return base_value(cell, config)
