from __future__ import annotations

from typing import TYPE_CHECKING, Callable

from worldofbits.logger import get_logger
from worldofbits.sim.grid import GeoBounds, GeoPosition, GridCell, cells_in_bounds, to_bounds

if TYPE_CHECKING:
    from worldofbits.content.config import GameConfig

Handle = int

log = get_logger(__name__)


class RenderSurface:
    """Map surface the engine draws on.

    Implementations own the actual drawing; the engine only asks for
    rectangles, labels, markers and the current visible bounds.
    """

    def render_rectangle(self, bounds: GeoBounds) -> Handle:
        raise NotImplementedError

    def remove_rectangle(self, handle: Handle) -> None:
        raise NotImplementedError

    def bind_label(self, handle: Handle, text: str | None) -> None:
        raise NotImplementedError

    def on_click(self, handle: Handle, callback: Callable[[Handle], None]) -> None:
        raise NotImplementedError

    def get_viewport_bounds(self) -> GeoBounds:
        raise NotImplementedError

    def on_viewport_settled(self, callback: Callable[[], None]) -> None:
        raise NotImplementedError

    def pan_to(self, position: GeoPosition) -> None:
        raise NotImplementedError

    def place_marker(self, position: GeoPosition, label: str | None = None) -> Handle:
        raise NotImplementedError

    def move_marker(self, handle: Handle, position: GeoPosition) -> None:
        raise NotImplementedError

    def set_status(self, text: str) -> None:
        """Optional status line; surfaces without one ignore it."""


def label_for(value: int | None) -> str | None:
    return None if value is None else str(value)


class ViewportManager:
    """Materializes one visual per visible cell and nothing else.

    Visuals are disposable: every settle tears them all down and rebuilds
    them from ``resolve_value``. Logical cell state lives elsewhere and is
    never touched here.
    """

    def __init__(
        self,
        surface: RenderSurface,
        resolve_value: Callable[[GridCell], int | None],
        on_cell_activated: Callable[[GridCell], object],
        config: GameConfig,
    ) -> None:
        self.surface = surface
        self.config = config
        self._resolve_value = resolve_value
        self._on_cell_activated = on_cell_activated
        self._handles_by_cell: dict[GridCell, Handle] = {}
        self._cells_by_handle: dict[Handle, GridCell] = {}

    def attach(self) -> None:
        self.surface.on_viewport_settled(self.reconcile)

    def materialized_cells(self) -> list[GridCell]:
        return sorted(self._handles_by_cell)

    def handle_for(self, cell: GridCell) -> Handle | None:
        return self._handles_by_cell.get(cell)

    def clear(self) -> None:
        for handle in list(self._cells_by_handle):
            self.surface.remove_rectangle(handle)
        self._handles_by_cell.clear()
        self._cells_by_handle.clear()

    def reconcile(self) -> list[GridCell]:
        needed = cells_in_bounds(self.surface.get_viewport_bounds(), self.config)
        self.clear()
        for cell in needed:
            self._materialize(cell)
        log.debug("viewport reconciled cells=%d", len(needed))
        return needed

    def refresh_cell(self, cell: GridCell) -> bool:
        handle = self._handles_by_cell.get(cell)
        if handle is None:
            return False
        self.surface.bind_label(handle, label_for(self._resolve_value(cell)))
        return True

    def _materialize(self, cell: GridCell) -> Handle:
        handle = self.surface.render_rectangle(to_bounds(cell, self.config))
        self._handles_by_cell[cell] = handle
        self._cells_by_handle[handle] = cell
        self.surface.bind_label(handle, label_for(self._resolve_value(cell)))
        self.surface.on_click(handle, self._handle_clicked)
        return handle

    def _handle_clicked(self, handle: Handle) -> None:
        cell = self._cells_by_handle.get(handle)
        if cell is None:
            log.debug("ignoring click on stale visual handle=%s", handle)
            return
        self._on_cell_activated(cell)
