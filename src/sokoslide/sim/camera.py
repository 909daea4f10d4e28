from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from sokoslide.sim.rules import SessionModule
from sokoslide.sim.world import (
    TRIGGER_FOLLOW,
    TRIGGER_LOCK_AREA,
    TRIGGER_ZOOM,
    LevelDescriptor,
    Position,
    SubArea,
)

if TYPE_CHECKING:
    from sokoslide.sim.core import MoveOutcome, Session

CAMERA_FIXED = "fixed"
CAMERA_FOLLOW = "follow"
CAMERA_LOCKED_AREA = "locked_area"

DEFAULT_VIEWPORT_WIDTH = 960
DEFAULT_VIEWPORT_HEIGHT = 720
DEFAULT_TILE_SIZE = 32
DEFAULT_MIN_SCALE = 0.25
DEFAULT_MAX_SCALE = 2.0
DEFAULT_PADDING_TILES = 1.0


@dataclass(frozen=True)
class ViewportConfig:
    width: float = DEFAULT_VIEWPORT_WIDTH
    height: float = DEFAULT_VIEWPORT_HEIGHT
    tile_size: float = DEFAULT_TILE_SIZE
    min_scale: float = DEFAULT_MIN_SCALE
    max_scale: float = DEFAULT_MAX_SCALE
    padding_tiles: float = DEFAULT_PADDING_TILES
    vertical_bias_tiles: float = 0.0

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ValueError("viewport width and height must be > 0")
        if self.tile_size <= 0:
            raise ValueError("viewport tile_size must be > 0")
        if self.min_scale <= 0 or self.max_scale < self.min_scale:
            raise ValueError("viewport scale bounds must satisfy 0 < min_scale <= max_scale")
        if self.padding_tiles < 0:
            raise ValueError("viewport padding_tiles must be >= 0")


@dataclass(frozen=True)
class CameraTarget:
    """Board-centered translation (pixels, already multiplied by scale) and scale."""

    x: float
    y: float
    scale: float
    mode: str
    area_id: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"x": self.x, "y": self.y, "scale": self.scale, "mode": self.mode, "area_id": self.area_id}


FIXED_TARGET = CameraTarget(x=0.0, y=0.0, scale=1.0, mode=CAMERA_FIXED)


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(value, high))


def fit_area_target(area: SubArea, level: LevelDescriptor, viewport: ViewportConfig) -> CameraTarget:
    if area.camera is not None:
        return CameraTarget(
            x=area.camera.x,
            y=area.camera.y,
            scale=area.camera.scale,
            mode=CAMERA_LOCKED_AREA,
            area_id=area.area_id,
        )

    tile = viewport.tile_size
    padded_width = (area.bounds.width_tiles + 2 * viewport.padding_tiles) * tile
    padded_height = (area.bounds.height_tiles + 2 * viewport.padding_tiles) * tile
    scale = clamp(
        min(viewport.width / padded_width, viewport.height / padded_height),
        viewport.min_scale,
        viewport.max_scale,
    )

    center_tile_x, center_tile_y = area.bounds.center_tile
    area_center_x = center_tile_x * tile + tile / 2.0
    area_center_y = center_tile_y * tile + tile / 2.0
    board_width = level.width * tile
    board_height = level.height * tile
    return CameraTarget(
        x=(board_width / 2.0 - area_center_x) * scale,
        y=(board_height / 2.0 - area_center_y) * scale - viewport.vertical_bias_tiles * tile * scale,
        scale=scale,
        mode=CAMERA_LOCKED_AREA,
        area_id=area.area_id,
    )


def follow_target(player: Position, level: LevelDescriptor, viewport: ViewportConfig, zoom: float) -> CameraTarget:
    tile = viewport.tile_size
    player_center_x = player.x * tile + tile / 2.0
    player_center_y = player.y * tile + tile / 2.0
    return CameraTarget(
        x=(level.width * tile / 2.0 - player_center_x) * zoom,
        y=(level.height * tile / 2.0 - player_center_y) * zoom,
        scale=zoom,
        mode=CAMERA_FOLLOW,
    )


class CameraController(SessionModule):
    """Viewport state machine: fixed, follow-player, or locked to one sub-area.

    Only the target transform is modelled; easing toward it belongs to the
    renderer.
    """

    name = "camera"

    def __init__(self, viewport: ViewportConfig | None = None) -> None:
        self.viewport = viewport or ViewportConfig()
        self.level: LevelDescriptor | None = None
        self.player: Position | None = None
        self.mode = CAMERA_FIXED
        self.area_id: int | None = None
        self.zoom = 1.0

    def reset_for_level(self, level: LevelDescriptor, player: Position) -> None:
        self.level = level
        self.player = player
        self.zoom = level.follow_zoom
        self.area_id = None
        if level.sub_areas:
            self.mode = CAMERA_LOCKED_AREA
            self.area_id = level.sub_areas[0].area_id
        else:
            self.mode = level.initial_camera_mode
            if self.mode == CAMERA_LOCKED_AREA:
                self.area_id = level.initial_camera_area_id
        # A resting player may already stand on a trigger.
        self.observe(player)

    def observe(self, player: Position) -> bool:
        """Apply the trigger under ``player``; return True when the mode changed."""
        self.player = player
        if self.level is None:
            return False
        trigger = self.level.triggers_by_position.get(player)
        if trigger is None:
            return False

        previous = (self.mode, self.area_id, self.zoom)
        if trigger.kind == TRIGGER_FOLLOW:
            if self.mode != CAMERA_FOLLOW:
                self.zoom = self.level.follow_zoom
            self.mode = CAMERA_FOLLOW
            self.area_id = None
        elif trigger.kind == TRIGGER_ZOOM:
            self.mode = CAMERA_FOLLOW
            self.area_id = None
            self.zoom = float(trigger.zoom)
        elif trigger.kind == TRIGGER_LOCK_AREA:
            if self.level.area_by_id(int(trigger.target_area_id)) is None:
                return False
            self.mode = CAMERA_LOCKED_AREA
            self.area_id = trigger.target_area_id
        return (self.mode, self.area_id, self.zoom) != previous

    def target(self) -> CameraTarget:
        if self.level is None or self.mode == CAMERA_FIXED:
            return FIXED_TARGET
        if self.mode == CAMERA_FOLLOW:
            if self.player is None:
                return FIXED_TARGET
            return follow_target(self.player, self.level, self.viewport, self.zoom)
        area = self.level.area_by_id(self.area_id) if self.area_id is not None else None
        if area is None:
            return FIXED_TARGET
        return fit_area_target(area, self.level, self.viewport)

    def to_dict(self) -> dict[str, Any]:
        return {"mode": self.mode, "area_id": self.area_id, "zoom": self.zoom}

    def restore(self, payload: dict[str, Any]) -> None:
        self.mode = str(payload.get("mode", CAMERA_FIXED))
        area_id = payload.get("area_id")
        self.area_id = int(area_id) if area_id is not None else None
        self.zoom = float(payload.get("zoom", self.zoom))

    def on_session_start(self, session: Session) -> None:
        self.reset_for_level(session.level, session.state.player)

    def on_move(self, session: Session, outcome: MoveOutcome) -> None:
        self.observe(session.state.player)

    def on_undo(self, session: Session) -> None:
        self.observe(session.state.player)

    def on_reset(self, session: Session) -> None:
        self.reset_for_level(session.level, session.state.player)
