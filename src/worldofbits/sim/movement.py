from __future__ import annotations

from pathlib import Path
from typing import Callable

from worldofbits.sim.grid import GeoPosition, GridCell

BUTTONS_MODE = "buttons"
GEOLOCATION_MODE = "geolocation"
MOVEMENT_MODES = (BUTTONS_MODE, GEOLOCATION_MODE)

DIRECTIONS: dict[str, tuple[int, int]] = {
    "north": (1, 0),
    "south": (-1, 0),
    "east": (0, 1),
    "west": (0, -1),
}

PositionFeed = Callable[[], "GeoPosition | None"]


class LocationUnavailableError(RuntimeError):
    """Raised when a live position source has no way to obtain positions."""


def chebyshev_distance(a: GridCell, b: GridCell) -> int:
    return max(abs(a.i - b.i), abs(a.j - b.j))


def can_interact(cell: GridCell, player_cell: GridCell, radius: int) -> bool:
    return chebyshev_distance(cell, player_cell) <= radius


def direction_delta(direction: str) -> tuple[int, int]:
    if direction not in DIRECTIONS:
        raise ValueError(f"unknown direction: {direction}")
    return DIRECTIONS[direction]


class MovementSource:
    """Something that drives the player's position.

    Sources only call back into the session between ``start()`` and
    ``stop()``; once stopped, no further callbacks are delivered.
    """

    mode: str

    def __init__(self) -> None:
        self.active = False

    def name(self) -> str:
        return self.mode

    def start(self) -> None:
        self.active = True

    def stop(self) -> None:
        self.active = False


class ButtonMovementSource(MovementSource):
    mode = BUTTONS_MODE

    def __init__(self, on_step: Callable[[int, int], object]) -> None:
        super().__init__()
        self._on_step = on_step

    def press(self, direction: str) -> bool:
        di, dj = direction_delta(direction)
        if not self.active:
            return False
        self._on_step(di, dj)
        return True


class LivePositionSource(MovementSource):
    """Polled position stream; at most one update is delivered per ``poll()``."""

    mode = GEOLOCATION_MODE

    def __init__(self, feed: PositionFeed | None, on_position: Callable[[GeoPosition], object]) -> None:
        super().__init__()
        self._feed = feed
        self._on_position = on_position

    def start(self) -> None:
        if self._feed is None:
            raise LocationUnavailableError("no position feed is available")
        super().start()

    def poll(self) -> GeoPosition | None:
        if not self.active or self._feed is None:
            return None
        position = self._feed()
        # The feed callback may have stopped this source.
        if position is None or not self.active:
            return None
        self._on_position(position)
        return position


class FilePositionFeed:
    """Replays ``lat,lng`` lines from a text file, one position per call."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._positions = self._read_positions(self.path)
        self._index = 0

    @staticmethod
    def _read_positions(path: Path) -> list[GeoPosition]:
        positions: list[GeoPosition] = []
        for line_number, raw in enumerate(path.read_text(encoding="utf-8").splitlines(), start=1):
            line = raw.strip()
            if not line or line.startswith("#"):
                continue
            parts = line.split(",")
            if len(parts) != 2:
                raise ValueError(f"{path}:{line_number}: expected 'lat,lng'")
            positions.append(GeoPosition(lat=float(parts[0]), lng=float(parts[1])))
        return positions

    def __len__(self) -> int:
        return len(self._positions)

    def __call__(self) -> GeoPosition | None:
        if self._index >= len(self._positions):
            return None
        position = self._positions[self._index]
        self._index += 1
        return position
