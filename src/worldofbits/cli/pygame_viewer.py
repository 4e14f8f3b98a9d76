from __future__ import annotations

import argparse
import importlib.metadata
import os
import platform
import sys
from dataclasses import dataclass, field
from typing import Any, Callable

from worldofbits.content.config import GameConfig, load_config_or_default
from worldofbits.content.io import JsonFileStore
from worldofbits.logger import configure_logging, get_logger
from worldofbits.sim.grid import GeoBounds, GeoPosition
from worldofbits.sim.movement import FilePositionFeed
from worldofbits.sim.session import GameSession
from worldofbits.sim.viewport import Handle, RenderSurface

CELL_PIXELS = 40
WINDOW_SIZE = (1280, 800)
STATUS_BAR_HEIGHT = 36
POSITION_POLL_SECONDS = 1.0
DEFAULT_SAVE_DIR = "saves"

BACKGROUND_COLOR = (24, 26, 33)
CELL_BORDER_COLOR = (70, 76, 92)
TOKEN_FILL_COLOR = (58, 92, 140)
LABEL_COLOR = (236, 236, 240)
MARKER_COLOR = (232, 88, 72)
STATUS_BG_COLOR = (14, 15, 20)

KEY_DIRECTIONS = {
    "K_UP": "north",
    "K_w": "north",
    "K_DOWN": "south",
    "K_s": "south",
    "K_RIGHT": "east",
    "K_d": "east",
    "K_LEFT": "west",
    "K_a": "west",
}

pygame: Any | None = None
log = get_logger(__name__)


@dataclass
class PygameSurface(RenderSurface):
    """Flat projection of geographic space onto the window; the top strip holds the status line."""

    config: GameConfig
    size: tuple[int, int] = WINDOW_SIZE
    cell_pixels: int = CELL_PIXELS
    center: GeoPosition | None = None
    rectangles: dict[Handle, GeoBounds] = field(default_factory=dict)
    labels: dict[Handle, str | None] = field(default_factory=dict)
    click_callbacks: dict[Handle, Callable[[Handle], None]] = field(default_factory=dict)
    markers: dict[Handle, tuple[GeoPosition, str | None]] = field(default_factory=dict)
    settled_callbacks: list[Callable[[], None]] = field(default_factory=list)
    status: str = ""
    _next_handle: int = 1

    def __post_init__(self) -> None:
        if self.center is None:
            self.center = self.config.start_position

    @property
    def degrees_per_pixel(self) -> float:
        return self.config.cell_degrees / self.cell_pixels

    def _allocate_handle(self) -> Handle:
        handle = self._next_handle
        self._next_handle += 1
        return handle

    def world_to_pixel(self, position: GeoPosition) -> tuple[float, float]:
        width, height = self.size
        x = (position.lng - self.center.lng) / self.degrees_per_pixel + width / 2.0
        y = height / 2.0 - (position.lat - self.center.lat) / self.degrees_per_pixel
        return (x, y)

    def pixel_to_world(self, pixel_x: float, pixel_y: float) -> GeoPosition:
        width, height = self.size
        return GeoPosition(
            lat=self.center.lat + (height / 2.0 - pixel_y) * self.degrees_per_pixel,
            lng=self.center.lng + (pixel_x - width / 2.0) * self.degrees_per_pixel,
        )

    def render_rectangle(self, bounds: GeoBounds) -> Handle:
        handle = self._allocate_handle()
        self.rectangles[handle] = bounds
        self.labels[handle] = None
        return handle

    def remove_rectangle(self, handle: Handle) -> None:
        self.rectangles.pop(handle, None)
        self.labels.pop(handle, None)
        self.click_callbacks.pop(handle, None)

    def bind_label(self, handle: Handle, text: str | None) -> None:
        if handle in self.rectangles:
            self.labels[handle] = text

    def on_click(self, handle: Handle, callback: Callable[[Handle], None]) -> None:
        self.click_callbacks[handle] = callback

    def get_viewport_bounds(self) -> GeoBounds:
        width, height = self.size
        return GeoBounds(
            south_west=self.pixel_to_world(0, height),
            north_east=self.pixel_to_world(width, STATUS_BAR_HEIGHT),
        )

    def on_viewport_settled(self, callback: Callable[[], None]) -> None:
        self.settled_callbacks.append(callback)

    def pan_to(self, position: GeoPosition) -> None:
        self.center = position
        for callback in list(self.settled_callbacks):
            callback()

    def pan_by_pixels(self, dx: float, dy: float) -> None:
        self.pan_to(
            GeoPosition(
                lat=self.center.lat + dy * self.degrees_per_pixel,
                lng=self.center.lng - dx * self.degrees_per_pixel,
            )
        )

    def place_marker(self, position: GeoPosition, label: str | None = None) -> Handle:
        handle = self._allocate_handle()
        self.markers[handle] = (position, label)
        return handle

    def move_marker(self, handle: Handle, position: GeoPosition) -> None:
        _, label = self.markers[handle]
        self.markers[handle] = (position, label)

    def set_status(self, text: str) -> None:
        self.status = text

    def click_pixel(self, pixel_x: int, pixel_y: int) -> bool:
        if pixel_y < STATUS_BAR_HEIGHT:
            return False
        position = self.pixel_to_world(pixel_x, pixel_y)
        for handle, bounds in list(self.rectangles.items()):
            if bounds.contains(position) and handle in self.click_callbacks:
                self.click_callbacks[handle](handle)
                return True
        return False

    def draw(self, screen: Any, font: Any, small_font: Any) -> None:
        screen.fill(BACKGROUND_COLOR)
        for handle, bounds in self.rectangles.items():
            left, top = self.world_to_pixel(GeoPosition(lat=bounds.north_east.lat, lng=bounds.south_west.lng))
            right, bottom = self.world_to_pixel(GeoPosition(lat=bounds.south_west.lat, lng=bounds.north_east.lng))
            rect = pygame.Rect(int(left), int(top), int(right - left) + 1, int(bottom - top) + 1)
            label = self.labels.get(handle)
            if label is not None:
                pygame.draw.rect(screen, TOKEN_FILL_COLOR, rect)
                text = small_font.render(label, True, LABEL_COLOR)
                screen.blit(text, text.get_rect(center=rect.center))
            pygame.draw.rect(screen, CELL_BORDER_COLOR, rect, 1)

        for position, label in self.markers.values():
            x, y = self.world_to_pixel(position)
            pygame.draw.circle(screen, MARKER_COLOR, (int(x), int(y)), max(4, self.cell_pixels // 4))
            if label:
                text = small_font.render(label, True, LABEL_COLOR)
                screen.blit(text, (int(x) + 10, int(y) - 20))

        status_rect = pygame.Rect(0, 0, self.size[0], STATUS_BAR_HEIGHT)
        pygame.draw.rect(screen, STATUS_BG_COLOR, status_rect)
        screen.blit(font.render(self.status, True, LABEL_COLOR), (12, 8))


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="worldofbits-viewer",
        description="Run the World of Bits pygame viewer.",
    )
    parser.add_argument("--config", default=None, help="Optional game config JSON path.")
    parser.add_argument("--save-dir", default=DEFAULT_SAVE_DIR, help="Directory holding the persisted game state.")
    parser.add_argument("--position-file", default=None, help="Text file of 'lat,lng' lines replayed in geolocation mode.")
    parser.add_argument(
        "--headless",
        action="store_true",
        help="Force SDL dummy video driver for CI/testing and exit without opening a real window.",
    )
    parser.add_argument("--log-level", default="INFO", help="Logging level name.")
    parser.add_argument("--log-file", default=None, help="Also append log records to this file.")
    return parser


def _env_flag_enabled(var_name: str) -> bool:
    return os.environ.get(var_name, "").strip().lower() in {"1", "true", "yes", "on"}


def _print_startup_banner() -> None:
    try:
        pygame_version = importlib.metadata.version("pygame")
    except importlib.metadata.PackageNotFoundError:
        pygame_version = "not-installed"
    print(
        "[worldofbits.viewer] startup "
        f"python={platform.python_version()} "
        f"pygame={pygame_version} "
        f"platform={platform.platform()}"
    )
    for name in ("SDL_VIDEODRIVER", "SDL_AUDIODRIVER"):
        value = os.environ.get(name, "<unset>")
        print(f"[worldofbits.viewer] env {name}={value}")


def _ensure_pygame_imported() -> Any:
    global pygame
    if pygame is None:
        import pygame as pygame_module

        pygame = pygame_module
    return pygame


def build_viewer_session(
    config: GameConfig,
    *,
    save_dir: str,
    position_file: str | None = None,
    size: tuple[int, int] = WINDOW_SIZE,
) -> tuple[GameSession, PygameSurface]:
    surface = PygameSurface(config=config, size=size)
    feed = FilePositionFeed(position_file) if position_file else None
    session = GameSession(surface, JsonFileStore(save_dir), config, feed=feed)
    session.start()
    return session, surface


def _key_direction(pygame_module: Any, key: int) -> str | None:
    for key_name, direction in KEY_DIRECTIONS.items():
        if key == getattr(pygame_module, key_name):
            return direction
    return None


def run_pygame_viewer(
    *,
    config_path: str | None = None,
    save_dir: str = DEFAULT_SAVE_DIR,
    position_file: str | None = None,
    headless: bool = False,
) -> int:
    if headless:
        os.environ["SDL_VIDEODRIVER"] = "dummy"
        print("[worldofbits.viewer] warning: headless mode active; no window will open.")

    _print_startup_banner()
    pygame_module = _ensure_pygame_imported()

    try:
        pygame_module.init()
    except Exception as exc:
        print(
            "[worldofbits.viewer] failed during pygame.init(): "
            f"{exc}. Hint: set SDL_VIDEODRIVER=dummy for headless mode.",
            file=sys.stderr,
        )
        return 1

    try:
        config = load_config_or_default(config_path)
        session, surface = build_viewer_session(config, save_dir=save_dir, position_file=position_file)
    except (OSError, ValueError) as exc:
        print(f"[worldofbits.viewer] failed to initialize session: {exc}", file=sys.stderr)
        pygame_module.quit()
        return 1

    try:
        pygame_module.display.set_caption("World of Bits")
        screen = pygame_module.display.set_mode(WINDOW_SIZE)
    except Exception as exc:
        print(
            "[worldofbits.viewer] failed during pygame.display.set_mode(...): "
            f"{exc}. Hint: GUI sessions require a valid display; use --headless or WORLDOFBITS_HEADLESS=1.",
            file=sys.stderr,
        )
        pygame_module.quit()
        return 1

    print(f"[worldofbits.viewer] display initialized: {pygame_module.display.get_driver()}, window size={WINDOW_SIZE}")

    font = pygame_module.font.SysFont("consolas", 20)
    small_font = pygame_module.font.SysFont("consolas", 15)

    if headless:
        surface.draw(screen, font, small_font)
        session.stop()
        pygame_module.quit()
        return 0

    clock = pygame_module.time.Clock()
    poll_accumulator = 0.0
    drag_origin: tuple[int, int] | None = None
    running = True

    while running:
        dt = clock.tick(60) / 1000.0
        poll_accumulator += dt

        for event in pygame_module.event.get():
            if event.type == pygame_module.QUIT:
                running = False
            elif event.type == pygame_module.KEYDOWN and event.key == pygame_module.K_ESCAPE:
                running = False
            elif event.type == pygame_module.KEYDOWN and event.key == pygame_module.K_g:
                mode = session.toggle_movement_mode()
                log.info("movement mode switched to %s", mode)
            elif event.type == pygame_module.KEYDOWN and event.key == pygame_module.K_r:
                session.reset()
                log.info("new game started")
            elif event.type == pygame_module.KEYDOWN:
                direction = _key_direction(pygame_module, event.key)
                if direction is not None:
                    session.move(direction)
            elif event.type == pygame_module.MOUSEBUTTONDOWN and event.button == 1:
                surface.click_pixel(event.pos[0], event.pos[1])
            elif event.type == pygame_module.MOUSEBUTTONDOWN and event.button == 3:
                drag_origin = event.pos
            elif event.type == pygame_module.MOUSEBUTTONUP and event.button == 3 and drag_origin is not None:
                surface.pan_by_pixels(event.pos[0] - drag_origin[0], event.pos[1] - drag_origin[1])
                drag_origin = None

        if poll_accumulator >= POSITION_POLL_SECONDS:
            session.poll_movement()
            poll_accumulator = 0.0

        surface.draw(screen, font, small_font)
        pygame_module.display.flip()

    session.stop()
    pygame_module.quit()
    return 0


def main(argv: list[str] | None = None) -> None:
    args = _build_parser().parse_args(argv)
    configure_logging(args.log_level, logfile=args.log_file)
    headless = args.headless or _env_flag_enabled("WORLDOFBITS_HEADLESS")
    raise SystemExit(
        run_pygame_viewer(
            config_path=args.config,
            save_dir=args.save_dir,
            position_file=args.position_file,
            headless=headless,
        )
    )


if __name__ == "__main__":
    main()
