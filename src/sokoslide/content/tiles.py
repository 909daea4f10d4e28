from __future__ import annotations

from typing import Any, Iterable

from sokoslide.sim.world import (
    TRIGGER_FOLLOW,
    TRIGGER_LOCK_AREA,
    AreaBounds,
    CameraTrigger,
    Position,
    SubArea,
)

FLOOR_TILE = "floor"
CAMERA_FOLLOW_TILE = "cameraFollow"
CAMERA_LOCK_AREA_TILE = "cameraLockArea"
NON_COLLIDING_TILES = {FLOOR_TILE, CAMERA_FOLLOW_TILE, CAMERA_LOCK_AREA_TILE}


def tile_is_wall(tile_type: str) -> bool:
    """Any authored tile that is not floor or a camera trigger collides."""
    return tile_type not in NON_COLLIDING_TILES


def walls_from_tiles(tiles: Iterable[dict[str, Any]]) -> frozenset[Position]:
    walls: set[Position] = set()
    for tile in tiles:
        if tile_is_wall(str(tile.get("tileType", FLOOR_TILE))):
            walls.add(Position.from_dict(tile))
    return frozenset(walls)


def _area_containing(pos: Position, areas: Iterable[SubArea]) -> SubArea | None:
    for area in areas:
        if area.bounds.contains(pos):
            return area
    return None


def camera_triggers_from_tiles(
    tiles: Iterable[dict[str, Any]],
    areas: tuple[SubArea, ...] = (),
) -> tuple[CameraTrigger, ...]:
    """Triggers painted as tiles; lock tiles without a target lock the area around them."""
    triggers: list[CameraTrigger] = []
    for tile in tiles:
        tile_type = tile.get("tileType")
        if tile_type == CAMERA_FOLLOW_TILE:
            triggers.append(CameraTrigger(position=Position.from_dict(tile), kind=TRIGGER_FOLLOW))
        elif tile_type == CAMERA_LOCK_AREA_TILE:
            position = Position.from_dict(tile)
            target = tile.get("targetAreaId")
            if target is None:
                area = _area_containing(position, areas)
                if area is None:
                    continue
                target = area.area_id
            triggers.append(CameraTrigger(position=position, kind=TRIGGER_LOCK_AREA, target_area_id=int(target)))
    return tuple(triggers)


def assign_area_members(
    bounds: AreaBounds,
    boxes: Iterable[Position],
    goals: Iterable[Position],
) -> tuple[tuple[int, ...], tuple[int, ...]]:
    """Box and goal indices that lie inside ``bounds``."""
    box_indices = tuple(index for index, box in enumerate(boxes) if bounds.contains(box))
    goal_indices = tuple(index for index, goal in enumerate(goals) if bounds.contains(goal))
    return box_indices, goal_indices


def level_payload_from_rows(rows: Iterable[str], **extra: Any) -> dict[str, Any]:
    """Level document from classic Sokoban text rows.

    ``#`` wall, ``@`` player, ``+`` player on goal, ``$`` box, ``*`` box on
    goal, ``.`` goal; anything else is floor. Boxes and goals are numbered in
    row-major order. ``extra`` fields are merged into the document.
    """
    grid = list(rows)
    if not grid:
        raise ValueError("rows must not be empty")
    walls: list[dict[str, int]] = []
    boxes: list[dict[str, int]] = []
    goals: list[dict[str, int]] = []
    player: dict[str, int] | None = None
    for y, row in enumerate(grid):
        for x, ch in enumerate(row):
            cell = {"x": x, "y": y}
            if ch == "#":
                walls.append(cell)
            if ch in "@+":
                if player is not None:
                    raise ValueError("rows must contain exactly one player")
                player = cell
            if ch in "$*":
                boxes.append(cell)
            if ch in ".+*":
                goals.append(cell)
    if player is None:
        raise ValueError("rows must contain exactly one player")
    return {
        "width": max(len(row) for row in grid),
        "height": len(grid),
        "walls": walls,
        "boxes": boxes,
        "goals": goals,
        "initialPlayer": player,
        **extra,
    }
