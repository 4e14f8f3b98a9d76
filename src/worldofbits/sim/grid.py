from __future__ import annotations

import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from worldofbits.content.config import GameConfig


@dataclass(frozen=True, order=True)
class GridCell:
    """Integer grid coordinate (i, j); i runs along latitude, j along longitude."""

    i: int
    j: int

    def offset(self, di: int, dj: int) -> "GridCell":
        return GridCell(self.i + di, self.j + dj)

    def key(self) -> str:
        return f"{self.i}:{self.j}"

    def to_dict(self) -> dict[str, int]:
        return {"i": self.i, "j": self.j}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "GridCell":
        return cls(i=int(data["i"]), j=int(data["j"]))


@dataclass(frozen=True)
class GeoPosition:
    lat: float
    lng: float

    def to_dict(self) -> dict[str, float]:
        return {"lat": self.lat, "lng": self.lng}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "GeoPosition":
        return cls(lat=float(data["lat"]), lng=float(data["lng"]))


@dataclass(frozen=True)
class GeoBounds:
    south_west: GeoPosition
    north_east: GeoPosition

    def __post_init__(self) -> None:
        if self.south_west.lat > self.north_east.lat or self.south_west.lng > self.north_east.lng:
            raise ValueError("bounds south_west must not lie north or east of north_east")

    def contains(self, position: GeoPosition) -> bool:
        return (
            self.south_west.lat <= position.lat <= self.north_east.lat
            and self.south_west.lng <= position.lng <= self.north_east.lng
        )

    def center(self) -> GeoPosition:
        return GeoPosition(
            lat=(self.south_west.lat + self.north_east.lat) / 2.0,
            lng=(self.south_west.lng + self.north_east.lng) / 2.0,
        )


def to_cell(position: GeoPosition, config: GameConfig) -> GridCell:
    i = math.floor((position.lat - config.origin.lat) / config.cell_degrees)
    j = math.floor((position.lng - config.origin.lng) / config.cell_degrees)
    return GridCell(i=int(i), j=int(j))


def to_bounds(cell: GridCell, config: GameConfig) -> GeoBounds:
    size = config.cell_degrees
    return GeoBounds(
        south_west=GeoPosition(
            lat=config.origin.lat + cell.i * size,
            lng=config.origin.lng + cell.j * size,
        ),
        north_east=GeoPosition(
            lat=config.origin.lat + (cell.i + 1) * size,
            lng=config.origin.lng + (cell.j + 1) * size,
        ),
    )


def to_center(cell: GridCell, config: GameConfig) -> GeoPosition:
    size = config.cell_degrees
    return GeoPosition(
        lat=config.origin.lat + (cell.i + 0.5) * size,
        lng=config.origin.lng + (cell.j + 0.5) * size,
    )


def cells_in_bounds(bounds: GeoBounds, config: GameConfig) -> list[GridCell]:
    """Every cell whose extent intersects ``bounds``, south to north then west to east."""
    low = to_cell(bounds.south_west, config)
    high = to_cell(bounds.north_east, config)
    return [
        GridCell(i, j)
        for i in range(low.i, high.i + 1)
        for j in range(low.j, high.j + 1)
    ]


def cells_around(center: GridCell, radius: int) -> list[GridCell]:
    if radius < 0:
        raise ValueError("radius must be >= 0")
    return [
        GridCell(center.i + di, center.j + dj)
        for di in range(-radius, radius + 1)
        for dj in range(-radius, radius + 1)
    ]
