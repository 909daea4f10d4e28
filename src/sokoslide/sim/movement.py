from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from sokoslide.sim.doors import DoorState, is_blocked
from sokoslide.sim.world import DIRECTIONS, GameState, LevelDescriptor, Position

DIRECTION_DELTAS: dict[str, tuple[int, int]] = {
    "up": (0, -1),
    "down": (0, 1),
    "left": (-1, 0),
    "right": (1, 0),
}


def parse_direction(value: Any) -> str | None:
    """Normalize a direction input; unknown values map to ``None``."""
    if not isinstance(value, str):
        return None
    normalized = value.strip().lower()
    if normalized not in DIRECTIONS:
        return None
    return normalized


@dataclass(frozen=True)
class BoxMove:
    index: int
    path: tuple[Position, ...]

    def to_dict(self) -> dict[str, Any]:
        return {"index": self.index, "path": [pos.to_dict() for pos in self.path]}


@dataclass(frozen=True)
class MoveResult:
    """Animation descriptor for one slide.

    ``player_path[0]`` is the pre-move cell and every further entry is one
    cell along ``direction``. ``box_moved.path`` follows the same rule for the
    single pushed box.
    """

    direction: str
    player_path: tuple[Position, ...]
    box_moved: BoxMove | None = None

    @property
    def steps(self) -> int:
        return len(self.player_path) - 1

    @property
    def box_start_delay_steps(self) -> int:
        if self.box_moved is None:
            return 0
        return len(self.player_path) - len(self.box_moved.path)

    def to_dict(self) -> dict[str, Any]:
        return {
            "direction": self.direction,
            "player_path": [pos.to_dict() for pos in self.player_path],
            "box_moved": self.box_moved.to_dict() if self.box_moved is not None else None,
        }


def resolve_move(
    direction: str,
    state: GameState,
    level: LevelDescriptor,
    door_state: DoorState,
) -> tuple[GameState, MoveResult] | None:
    """Slide the player along ``direction`` until blocked.

    Returns ``None`` when the player cannot advance a single cell. At most one
    box moves per call; a second box ahead of the pushed one stops the slide.
    """
    if direction not in DIRECTION_DELTAS:
        return None
    dx, dy = DIRECTION_DELTAS[direction]

    current = state
    player_path: list[Position] = [current.player]
    moving_index = -1
    box_path: list[Position] = []

    while True:
        next_player = current.player.offset(dx, dy)
        if is_blocked(next_player, level, door_state):
            break

        box_index = current.box_index_at(next_player)
        if box_index != -1:
            next_box = next_player.offset(dx, dy)
            if is_blocked(next_box, level, door_state) or current.box_index_at(next_box) != -1:
                break
            if moving_index == -1:
                moving_index = box_index
                box_path.append(next_player)
            box_path.append(next_box)
            current = current.with_box(box_index, next_box)

        current = GameState(player=next_player, boxes=current.boxes)
        player_path.append(next_player)

    if len(player_path) == 1:
        return None

    box_moved = BoxMove(index=moving_index, path=tuple(box_path)) if moving_index != -1 else None
    return current, MoveResult(direction=direction, player_path=tuple(player_path), box_moved=box_moved)
