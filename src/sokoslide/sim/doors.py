from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable

from sokoslide.sim.world import LevelDescriptor, Position


@dataclass
class DoorState:
    """Open/closed latch for the legacy door and every sub-area door.

    Doors only ever open; ``latch`` never removes an id and never clears
    ``legacy_open``.
    """

    legacy_open: bool = False
    open_area_ids: set[int] = field(default_factory=set)

    def latch(self, *, legacy_open: bool = False, area_ids: Iterable[int] = ()) -> list[int]:
        """Open doors and return the area ids that were not already open."""
        if legacy_open:
            self.legacy_open = True
        opened: list[int] = []
        for area_id in area_ids:
            if area_id not in self.open_area_ids:
                self.open_area_ids.add(area_id)
                opened.append(area_id)
        return opened

    def copy(self) -> "DoorState":
        return DoorState(legacy_open=self.legacy_open, open_area_ids=set(self.open_area_ids))

    def to_dict(self) -> dict[str, Any]:
        return {"legacy_open": self.legacy_open, "open_area_ids": sorted(self.open_area_ids)}

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "DoorState":
        if data is None:
            return cls()
        return cls(
            legacy_open=bool(data.get("legacy_open", False)),
            open_area_ids={int(area_id) for area_id in data.get("open_area_ids", [])},
        )


def is_door_blocking(pos: Position, level: LevelDescriptor, door_state: DoorState) -> bool:
    if level.door is not None and level.door.position == pos:
        return not door_state.legacy_open
    area_id = level.area_doors.get(pos)
    if area_id is not None:
        return area_id not in door_state.open_area_ids
    return False


def is_blocked(pos: Position, level: LevelDescriptor, door_state: DoorState) -> bool:
    """True when ``pos`` cannot be entered by the player or a box."""
    if not level.in_bounds(pos):
        return True
    if pos in level.walls:
        return True
    return is_door_blocking(pos, level, door_state)
