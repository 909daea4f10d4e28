from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

DIRECTIONS = ("up", "down", "left", "right")
DOOR_ORIENTATIONS = {"lr", "ud"}
CAMERA_MODES = {"fixed", "follow", "locked_area"}
CAMERA_MODE_DOCUMENT_NAMES = {"fixed": "fixed", "follow": "follow", "locked_area": "lockedArea"}
TRIGGER_FOLLOW = "follow"
TRIGGER_LOCK_AREA = "lock_area"
TRIGGER_ZOOM = "zoom"
TRIGGER_KINDS = {TRIGGER_FOLLOW, TRIGGER_LOCK_AREA, TRIGGER_ZOOM}
DEFAULT_FOLLOW_ZOOM = 2.0


@dataclass(frozen=True, order=True)
class Position:
    """Integer grid cell (x grows right, y grows down)."""

    x: int
    y: int

    def offset(self, dx: int, dy: int) -> "Position":
        return Position(self.x + dx, self.y + dy)

    def to_dict(self) -> dict[str, int]:
        return {"x": self.x, "y": self.y}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Position":
        return cls(x=int(data["x"]), y=int(data["y"]))


@dataclass(frozen=True)
class Door:
    position: Position
    orientation: str = "lr"

    def __post_init__(self) -> None:
        if self.orientation not in DOOR_ORIENTATIONS:
            raise ValueError(f"invalid door orientation: {self.orientation}")

    def to_dict(self) -> dict[str, Any]:
        return {**self.position.to_dict(), "orientation": self.orientation}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Door":
        return cls(position=Position.from_dict(data), orientation=str(data.get("orientation", "lr")))


@dataclass(frozen=True)
class AreaBounds:
    """Inclusive tile bounds of a sub-area."""

    min_x: int
    min_y: int
    max_x: int
    max_y: int

    def __post_init__(self) -> None:
        if self.max_x < self.min_x or self.max_y < self.min_y:
            raise ValueError("area bounds max must be >= min")

    def contains(self, pos: Position) -> bool:
        return self.min_x <= pos.x <= self.max_x and self.min_y <= pos.y <= self.max_y

    @property
    def width_tiles(self) -> int:
        return self.max_x - self.min_x + 1

    @property
    def height_tiles(self) -> int:
        return self.max_y - self.min_y + 1

    @property
    def center_tile(self) -> tuple[float, float]:
        return ((self.min_x + self.max_x) / 2.0, (self.min_y + self.max_y) / 2.0)

    def to_dict(self) -> dict[str, int]:
        return {"minX": self.min_x, "minY": self.min_y, "maxX": self.max_x, "maxY": self.max_y}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AreaBounds":
        return cls(
            min_x=int(data["minX"]),
            min_y=int(data["minY"]),
            max_x=int(data["maxX"]),
            max_y=int(data["maxY"]),
        )


@dataclass(frozen=True)
class AreaCameraOverride:
    """Explicit lock-area transform that replaces the auto-fit computation."""

    x: float
    y: float
    scale: float

    def to_dict(self) -> dict[str, float]:
        return {"x": self.x, "y": self.y, "scale": self.scale}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AreaCameraOverride":
        return cls(x=float(data["x"]), y=float(data["y"]), scale=float(data["scale"]))


@dataclass(frozen=True)
class SubArea:
    area_id: int
    bounds: AreaBounds
    box_indices: tuple[int, ...] = ()
    goal_indices: tuple[int, ...] = ()
    door: Door | None = None
    camera: AreaCameraOverride | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "id": self.area_id,
            "bounds": self.bounds.to_dict(),
            "boxIndices": list(self.box_indices),
            "goalIndices": list(self.goal_indices),
        }
        if self.door is not None:
            payload["door"] = self.door.to_dict()
        if self.camera is not None:
            payload["camera"] = self.camera.to_dict()
        return payload


@dataclass(frozen=True)
class CameraTrigger:
    """Tile that retargets the camera when the player comes to rest on it.

    ``kind`` selects the payload: ``follow`` needs nothing, ``lock_area``
    reads ``target_area_id`` and ``zoom`` reads ``zoom``.
    """

    position: Position
    kind: str
    target_area_id: int | None = None
    zoom: float | None = None

    def __post_init__(self) -> None:
        if self.kind not in TRIGGER_KINDS:
            raise ValueError(f"invalid camera trigger kind: {self.kind}")
        if self.kind == TRIGGER_LOCK_AREA and self.target_area_id is None:
            raise ValueError("lock_area camera trigger requires target_area_id")
        if self.kind == TRIGGER_ZOOM and (self.zoom is None or self.zoom <= 0):
            raise ValueError("zoom camera trigger requires zoom > 0")

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = self.position.to_dict()
        if self.kind == TRIGGER_ZOOM:
            payload["zoom"] = self.zoom
        elif self.kind == TRIGGER_LOCK_AREA:
            payload["mode"] = "lockArea"
            payload["targetAreaId"] = self.target_area_id
        else:
            payload["mode"] = "follow"
        return payload


@dataclass(frozen=True)
class GameState:
    """Dynamic state of one session; ``boxes[i]`` is always the box that started at index i."""

    player: Position
    boxes: tuple[Position, ...]

    def box_index_at(self, pos: Position) -> int:
        for index, box in enumerate(self.boxes):
            if box == pos:
                return index
        return -1

    def with_box(self, index: int, pos: Position) -> "GameState":
        boxes = list(self.boxes)
        boxes[index] = pos
        return GameState(player=self.player, boxes=tuple(boxes))

    def to_dict(self) -> dict[str, Any]:
        return {
            "player": self.player.to_dict(),
            "boxes": [box.to_dict() for box in self.boxes],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "GameState":
        return cls(
            player=Position.from_dict(data["player"]),
            boxes=tuple(Position.from_dict(box) for box in data.get("boxes", [])),
        )


def _valid_indices(indices: tuple[int, ...], size: int) -> tuple[int, ...]:
    return tuple(index for index in indices if 0 <= index < size)


@dataclass(frozen=True)
class LevelDescriptor:
    """Immutable level geometry and metadata.

    Lookup structures (wall set, door owners, validated area membership) are
    built once in ``__post_init__`` so the resolver and evaluator never
    re-validate indices per call.
    """

    width: int
    height: int
    walls: frozenset[Position]
    boxes: tuple[Position, ...]
    goals: tuple[Position, ...]
    initial_player: Position
    door: Door | None = None
    sub_areas: tuple[SubArea, ...] = ()
    camera_triggers: tuple[CameraTrigger, ...] = ()
    finish_position: Position | None = None
    level_number: int | None = None
    chapter_number: int | None = None
    star_thresholds: tuple[int, ...] = ()
    follow_zoom: float = DEFAULT_FOLLOW_ZOOM
    initial_camera_mode: str = "fixed"
    initial_camera_area_id: int | None = None
    area_box_indices: dict[int, tuple[int, ...]] = field(init=False, repr=False, compare=False)
    area_goal_indices: dict[int, tuple[int, ...]] = field(init=False, repr=False, compare=False)
    area_doors: dict[Position, int] = field(init=False, repr=False, compare=False)
    triggers_by_position: dict[Position, CameraTrigger] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ValueError("level width and height must be > 0")
        if not self.in_bounds(self.initial_player):
            raise ValueError("initial_player must be inside the level")
        if self.initial_camera_mode not in CAMERA_MODES:
            raise ValueError(f"invalid initial camera mode: {self.initial_camera_mode}")
        if self.follow_zoom <= 0:
            raise ValueError("follow_zoom must be > 0")

        seen_ids: set[int] = set()
        for area in self.sub_areas:
            if area.area_id in seen_ids:
                raise ValueError(f"duplicate sub-area id: {area.area_id}")
            seen_ids.add(area.area_id)

        # Frozen dataclass: derived lookups are attached with object.__setattr__.
        object.__setattr__(
            self,
            "area_box_indices",
            {area.area_id: _valid_indices(area.box_indices, len(self.boxes)) for area in self.sub_areas},
        )
        object.__setattr__(
            self,
            "area_goal_indices",
            {area.area_id: _valid_indices(area.goal_indices, len(self.goals)) for area in self.sub_areas},
        )
        area_doors: dict[Position, int] = {}
        for area in self.sub_areas:
            if area.door is not None and area.door.position not in area_doors:
                area_doors[area.door.position] = area.area_id
        object.__setattr__(self, "area_doors", area_doors)
        triggers: dict[Position, CameraTrigger] = {}
        for trigger in self.camera_triggers:
            triggers.setdefault(trigger.position, trigger)
        object.__setattr__(self, "triggers_by_position", triggers)

    @property
    def chapter_mode(self) -> bool:
        return bool(self.sub_areas)

    def in_bounds(self, pos: Position) -> bool:
        return 0 <= pos.x < self.width and 0 <= pos.y < self.height

    def area_by_id(self, area_id: int) -> SubArea | None:
        for area in self.sub_areas:
            if area.area_id == area_id:
                return area
        return None

    def initial_state(self) -> GameState:
        return GameState(player=self.initial_player, boxes=tuple(self.boxes))

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "width": self.width,
            "height": self.height,
            "walls": [wall.to_dict() for wall in sorted(self.walls)],
            "boxes": [box.to_dict() for box in self.boxes],
            "goals": [goal.to_dict() for goal in self.goals],
            "initialPlayer": self.initial_player.to_dict(),
            "followZoom": self.follow_zoom,
            "initialCameraState": {"mode": CAMERA_MODE_DOCUMENT_NAMES[self.initial_camera_mode]},
        }
        if self.initial_camera_area_id is not None:
            payload["initialCameraState"]["lockedAreaId"] = self.initial_camera_area_id
        if self.door is not None:
            payload["door"] = self.door.to_dict()
        if self.sub_areas:
            payload["subLevels"] = [area.to_dict() for area in self.sub_areas]
        if self.camera_triggers:
            payload["cameraTriggers"] = [trigger.to_dict() for trigger in self.camera_triggers]
        if self.finish_position is not None:
            payload["finishPosition"] = self.finish_position.to_dict()
        if self.level_number is not None:
            payload["levelNumber"] = self.level_number
        if self.chapter_number is not None:
            payload["chapterNumber"] = self.chapter_number
        if self.star_thresholds:
            payload["starThresholds"] = {
                str(stars): threshold for stars, threshold in zip((3, 2, 1), self.star_thresholds)
            }
        return payload
