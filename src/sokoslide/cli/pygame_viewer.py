from __future__ import annotations

import argparse
import importlib.metadata
import json
import math
import os
import platform
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Sequence

from sokoslide.content.io import load_level_json, load_session_json, save_session_json
from sokoslide.sim.camera import CameraTarget, ViewportConfig
from sokoslide.sim.core import RESET_COMMAND, UNDO_COMMAND, Session, create_session
from sokoslide.sim.hash import level_hash, session_hash
from sokoslide.sim.movement import MoveResult
from sokoslide.sim.timing import STEP_MS, format_elapsed
from sokoslide.sim.world import Position

WINDOW_SIZE = (960, 720)
TILE_SIZE = 32
FRAME_RATE = 60
CAMERA_EASE_PER_SECOND = 8.0
HUD_MARGIN = 12
DEFAULT_LEVEL_PATH = "content/examples/chapter_two_areas.json"
DEFAULT_SAVE_PATH = "saves/session_save.json"

BACKGROUND_COLOR = (26, 26, 26)
FLOOR_COLOR = (58, 52, 48)
WALL_COLOR = (112, 96, 80)
GOAL_COLOR = (196, 64, 64)
BOX_COLOR = (204, 150, 72)
BOX_ON_GOAL_COLOR = (96, 176, 96)
PLAYER_COLOR = (80, 160, 255)
DOOR_CLOSED_COLOR = (150, 40, 160)
DOOR_OPEN_COLOR = (90, 70, 96)
FINISH_COLOR = (240, 220, 80)
TRIGGER_COLOR = (70, 90, 120)
AREA_OUTLINE_COLOR = (200, 200, 200)
TEXT_COLOR = (235, 235, 235)

# pygame key names -> session commands
KEY_COMMANDS: dict[str, str] = {
    "w": "up",
    "a": "left",
    "s": "down",
    "d": "right",
    "up": "up",
    "down": "down",
    "left": "left",
    "right": "right",
    "q": RESET_COMMAND,
    "e": UNDO_COMMAND,
}

pygame: Any | None = None


def clamp01(value: float) -> float:
    return max(0.0, min(1.0, value))


def lerp(a: float, b: float, t: float) -> float:
    return a + (b - a) * t


def path_point(path: Sequence[Position], progress_steps: float) -> tuple[float, float]:
    """Continuous position ``progress_steps`` cells along a cell path."""
    if not path:
        raise ValueError("path must not be empty")
    if progress_steps <= 0:
        return (float(path[0].x), float(path[0].y))
    last_index = len(path) - 1
    if progress_steps >= last_index:
        return (float(path[-1].x), float(path[-1].y))
    index = int(math.floor(progress_steps))
    t = progress_steps - index
    start = path[index]
    end = path[index + 1]
    return (lerp(start.x, end.x, t), lerp(start.y, end.y, t))


def interpolate_move(
    result: MoveResult,
    elapsed_ms: float,
    step_ms: float = STEP_MS,
) -> tuple[tuple[float, float], tuple[float, float] | None]:
    """Player and pushed-box positions ``elapsed_ms`` into a slide.

    The box starts once the player reaches the cell the box is leaving, i.e.
    after ``result.box_start_delay_steps`` steps.
    """
    progress = elapsed_ms / step_ms if step_ms > 0 else float(len(result.player_path))
    player_xy = path_point(result.player_path, progress)
    if result.box_moved is None:
        return player_xy, None
    box_xy = path_point(result.box_moved.path, progress - result.box_start_delay_steps)
    return player_xy, box_xy


@dataclass
class CameraView:
    """Rendered camera transform easing toward the session's target."""

    x: float = 0.0
    y: float = 0.0
    scale: float = 1.0

    def snap(self, target: CameraTarget) -> None:
        self.x = target.x
        self.y = target.y
        self.scale = target.scale

    def approach(self, target: CameraTarget, dt_seconds: float, rate: float = CAMERA_EASE_PER_SECOND) -> None:
        t = clamp01(1.0 - math.exp(-rate * max(0.0, dt_seconds)))
        self.x = lerp(self.x, target.x, t)
        self.y = lerp(self.y, target.y, t)
        self.scale = lerp(self.scale, target.scale, t)


def board_to_screen(
    board_x: float,
    board_y: float,
    *,
    board_size: tuple[float, float],
    view: CameraView,
    window_size: tuple[int, int] = WINDOW_SIZE,
) -> tuple[float, float]:
    """Board pixel -> screen pixel; the board is centered in the window before the camera applies."""
    center_x = window_size[0] / 2.0
    center_y = window_size[1] / 2.0
    return (
        center_x + view.x + (board_x - board_size[0] / 2.0) * view.scale,
        center_y + view.y + (board_y - board_size[1] / 2.0) * view.scale,
    )


@dataclass
class SessionController:
    """Viewer input adapter; the session stays the source of truth."""

    session: Session
    move_started_ms: float = 0.0
    status_message: str = ""

    def handle_key(self, key_name: str) -> bool:
        command = KEY_COMMANDS.get(key_name.lower())
        if command is None:
            return False
        return self.apply(command)

    def apply(self, command: str) -> bool:
        if command == UNDO_COMMAND:
            changed = self.session.undo()
            self.status_message = "undo" if changed else "undo ignored"
            return changed
        if command == RESET_COMMAND:
            changed = self.session.reset()
            self.status_message = "reset" if changed else "reset ignored"
            return changed

        outcome = self.session.move(command)
        if not outcome.moved:
            self.status_message = f"{command} ignored ({outcome.noop_reason})"
            return False
        self.move_started_ms = self.session.gate.clock()
        if outcome.chapter_finished:
            self.status_message = "chapter finished"
        elif outcome.doors_just_opened or outcome.legacy_door_just_opened:
            self.status_message = "door opened"
        else:
            self.status_message = command
        return True

    def animation_elapsed_ms(self) -> float:
        return self.session.gate.clock() - self.move_started_ms


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="sokoslide-viewer", description="Playable sokoslide board viewer.")
    parser.add_argument("level_path", nargs="?", default=DEFAULT_LEVEL_PATH, help="Level JSON document to play.")
    parser.add_argument(
        "--headless",
        action="store_true",
        help="Force SDL dummy video driver for CI/testing and exit without opening a real window.",
    )
    parser.add_argument("--load-save", help="Optional session save JSON to resume on startup.")
    parser.add_argument(
        "--save-path",
        default=DEFAULT_SAVE_PATH,
        help="Session save JSON path used by F5 save and F9 load.",
    )
    parser.add_argument("--tile-size", type=int, default=TILE_SIZE, help="Tile size in pixels.")
    return parser


def _env_flag_enabled(var_name: str) -> bool:
    return os.environ.get(var_name, "").strip().lower() in {"1", "true", "yes", "on"}


def _print_startup_banner() -> None:
    try:
        pygame_version = importlib.metadata.version("pygame")
    except importlib.metadata.PackageNotFoundError:
        pygame_version = "not-installed"
    print(
        "[sokoslide.viewer] startup "
        f"python={platform.python_version()} "
        f"pygame={pygame_version} "
        f"platform={platform.platform()}"
    )
    for name in ("SDL_VIDEODRIVER", "SDL_AUDIODRIVER"):
        value = os.environ.get(name, "<unset>")
        print(f"[sokoslide.viewer] env {name}={value}")


def _ensure_pygame_imported() -> Any:
    global pygame
    if pygame is None:
        import pygame as pygame_module

        pygame = pygame_module
    return pygame


def _viewport_config(tile_size: int) -> ViewportConfig:
    return ViewportConfig(width=WINDOW_SIZE[0], height=WINDOW_SIZE[1], tile_size=tile_size)


def _build_viewer_session(level_path: str, *, tile_size: int = TILE_SIZE, clock: Any = None) -> Session:
    level = load_level_json(level_path)
    session = create_session(level, viewport=_viewport_config(tile_size), clock=clock)
    print(f"[sokoslide.viewer] level path={level_path} level_hash={level_hash(level)}")
    return session


def _load_viewer_session(save_path: str, *, tile_size: int = TILE_SIZE, clock: Any = None) -> Session:
    session = load_session_json(save_path, viewport=_viewport_config(tile_size), clock=clock)
    print(
        "[sokoslide.viewer] loaded "
        f"path={save_path} "
        f"input_log={len(session.input_log)} "
        f"session_hash={session_hash(session)}"
    )
    return session


def _save_viewer_session(session: Session, save_path: str) -> None:
    save_session_json(save_path, session)
    payload = json.loads(Path(save_path).read_text(encoding="utf-8"))
    print(
        "[sokoslide.viewer] saved "
        f"path={save_path} "
        f"save_hash={payload.get('save_hash', '<missing>')} "
        f"session_hash={session_hash(session)}"
    )


def _draw_session(screen: Any, font: Any, controller: SessionController, view: CameraView, tile_size: int) -> None:
    session = controller.session
    level = session.level
    board_size = (level.width * tile_size, level.height * tile_size)
    cell = max(1, int(math.ceil(tile_size * view.scale)))

    def cell_rect(x: float, y: float, inset: float = 0.0) -> Any:
        sx, sy = board_to_screen(x * tile_size, y * tile_size, board_size=board_size, view=view)
        pad = int(inset * cell)
        return pygame.Rect(int(sx) + pad, int(sy) + pad, max(1, cell - 2 * pad), max(1, cell - 2 * pad))

    screen.fill(BACKGROUND_COLOR)
    for y in range(level.height):
        for x in range(level.width):
            color = WALL_COLOR if Position(x, y) in level.walls else FLOOR_COLOR
            pygame.draw.rect(screen, color, cell_rect(x, y))
    for trigger in level.camera_triggers:
        pygame.draw.rect(screen, TRIGGER_COLOR, cell_rect(trigger.position.x, trigger.position.y, 0.1))
    if level.finish_position is not None:
        pygame.draw.rect(screen, FINISH_COLOR, cell_rect(level.finish_position.x, level.finish_position.y, 0.1))
    for goal in level.goals:
        pygame.draw.rect(screen, GOAL_COLOR, cell_rect(goal.x, goal.y, 0.3))

    doors = session.door_state()
    if level.door is not None:
        color = DOOR_OPEN_COLOR if doors.legacy_open else DOOR_CLOSED_COLOR
        pygame.draw.rect(screen, color, cell_rect(level.door.position.x, level.door.position.y, 0.05))
    for area in level.sub_areas:
        if area.door is not None:
            color = DOOR_OPEN_COLOR if area.area_id in doors.open_area_ids else DOOR_CLOSED_COLOR
            pygame.draw.rect(screen, color, cell_rect(area.door.position.x, area.door.position.y, 0.05))
        ax, ay = board_to_screen(
            area.bounds.min_x * tile_size,
            area.bounds.min_y * tile_size,
            board_size=board_size,
            view=view,
        )
        outline = pygame.Rect(
            int(ax),
            int(ay),
            max(1, int(area.bounds.width_tiles * tile_size * view.scale)),
            max(1, int(area.bounds.height_tiles * tile_size * view.scale)),
        )
        pygame.draw.rect(screen, AREA_OUTLINE_COLOR, outline, 1)

    player_xy = (float(session.state.player.x), float(session.state.player.y))
    moving_box: tuple[int, tuple[float, float]] | None = None
    last_move = session.last_move
    if last_move is not None and session.busy:
        player_xy, box_xy = interpolate_move(last_move, controller.animation_elapsed_ms(), session.gate.step_ms)
        if last_move.box_moved is not None and box_xy is not None:
            moving_box = (last_move.box_moved.index, box_xy)

    goal_cells = set(level.goals)
    for index, box in enumerate(session.state.boxes):
        box_xy = (float(box.x), float(box.y))
        if moving_box is not None and moving_box[0] == index:
            box_xy = moving_box[1]
        color = BOX_ON_GOAL_COLOR if box in goal_cells else BOX_COLOR
        pygame.draw.rect(screen, color, cell_rect(box_xy[0], box_xy[1], 0.1))
    pygame.draw.ellipse(screen, PLAYER_COLOR, cell_rect(player_xy[0], player_xy[1], 0.15))

    target = session.camera_target()
    hud_lines = [
        f"time {format_elapsed(session.elapsed_ms)}  stars {session.stars()}",
        f"camera {target.mode} area={target.area_id if target.area_id is not None else '-'} scale={target.scale:.2f}",
        f"areas done {','.join(str(a) for a in session.completed_area_ids) or '-'}  undo depth {session.history.depth}",
        controller.status_message,
    ]
    for row, line in enumerate(hud_lines):
        surface = font.render(line, True, TEXT_COLOR)
        screen.blit(surface, (HUD_MARGIN, HUD_MARGIN + row * (font.get_linesize() + 2)))


def run_pygame_viewer(
    level_path: str = DEFAULT_LEVEL_PATH,
    *,
    headless: bool = False,
    load_save: str | None = None,
    save_path: str = DEFAULT_SAVE_PATH,
    tile_size: int = TILE_SIZE,
) -> int:
    if headless:
        os.environ["SDL_VIDEODRIVER"] = "dummy"
        print("[sokoslide.viewer] warning: headless mode active; no window will open.")

    _print_startup_banner()
    pygame_module = _ensure_pygame_imported()

    try:
        pygame_module.init()
    except Exception as exc:
        print(
            "[sokoslide.viewer] failed during pygame.init(): "
            f"{exc}. Hint: set SDL_VIDEODRIVER=dummy for headless mode.",
            file=sys.stderr,
        )
        return 1

    clock_ms = pygame_module.time.get_ticks
    try:
        if load_save:
            session = _load_viewer_session(load_save, tile_size=tile_size, clock=clock_ms)
        else:
            session = _build_viewer_session(level_path, tile_size=tile_size, clock=clock_ms)
    except (OSError, ValueError) as exc:
        print(f"[sokoslide.viewer] failed to initialize session: {exc}", file=sys.stderr)
        pygame_module.quit()
        return 1

    try:
        pygame_module.display.set_caption("sokoslide")
        screen = pygame_module.display.set_mode(WINDOW_SIZE)
    except Exception as exc:
        print(
            "[sokoslide.viewer] failed during pygame.display.set_mode(...): "
            f"{exc}. Hint: use --headless or SOKOSLIDE_HEADLESS=1 without a display.",
            file=sys.stderr,
        )
        pygame_module.quit()
        return 1

    print(f"[sokoslide.viewer] display initialized: {pygame_module.display.get_driver()}, window size={WINDOW_SIZE}")
    font = pygame_module.font.Font(None, 22)
    controller = SessionController(session=session)
    view = CameraView()
    view.snap(session.camera_target())

    if headless:
        _draw_session(screen, font, controller, view, tile_size)
        pygame_module.quit()
        return 0

    frame_clock = pygame_module.time.Clock()
    running = True
    while running:
        dt_seconds = frame_clock.tick(FRAME_RATE) / 1000.0
        for event in pygame_module.event.get():
            if event.type == pygame_module.QUIT:
                running = False
            elif event.type == pygame_module.KEYDOWN:
                key_name = pygame_module.key.name(event.key)
                if key_name == "escape":
                    running = False
                elif key_name == "f5":
                    try:
                        _save_viewer_session(controller.session, save_path)
                        controller.status_message = "saved"
                    except (OSError, ValueError) as exc:
                        print(f"[sokoslide.viewer] save failed path={save_path}: {exc}", file=sys.stderr)
                elif key_name == "f9":
                    if not Path(save_path).exists():
                        print(f"[sokoslide.viewer] load skipped; file not found path={save_path}")
                        continue
                    try:
                        controller = SessionController(
                            session=_load_viewer_session(save_path, tile_size=tile_size, clock=clock_ms)
                        )
                        view.snap(controller.session.camera_target())
                    except (OSError, ValueError) as exc:
                        print(f"[sokoslide.viewer] load failed path={save_path}: {exc}", file=sys.stderr)
                else:
                    controller.handle_key(key_name)

        view.approach(controller.session.camera_target(), dt_seconds)
        _draw_session(screen, font, controller, view, tile_size)
        pygame_module.display.flip()

    pygame_module.quit()
    return 0


def main(argv: list[str] | None = None) -> None:
    parser = _build_parser()
    args = parser.parse_args(argv)
    headless = args.headless or _env_flag_enabled("SOKOSLIDE_HEADLESS")
    raise SystemExit(
        run_pygame_viewer(
            level_path=args.level_path,
            headless=headless,
            load_save=args.load_save,
            save_path=args.save_path,
            tile_size=args.tile_size,
        )
    )


if __name__ == "__main__":
    main()
