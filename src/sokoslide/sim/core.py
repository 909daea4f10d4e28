from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from sokoslide.sim.camera import CameraController, CameraTarget, ViewportConfig
from sokoslide.sim.completion import (
    CompletionResult,
    evaluate_completion,
    is_chapter_finished,
    newly_completed,
)
from sokoslide.sim.doors import DoorState
from sokoslide.sim.history import History
from sokoslide.sim.movement import BoxMove, MoveResult, parse_direction, resolve_move
from sokoslide.sim.rules import SessionModule
from sokoslide.sim.timing import STEP_MS, Clock, InputGate, SessionTimer, stars_for_time
from sokoslide.sim.world import DIRECTIONS, GameState, LevelDescriptor, Position

SESSION_SCHEMA_VERSION = 1
UNDO_COMMAND = "undo"
RESET_COMMAND = "reset"
SESSION_COMMANDS = set(DIRECTIONS) | {UNDO_COMMAND, RESET_COMMAND}

NOOP_INVALID_DIRECTION = "invalid_direction"
NOOP_BUSY = "busy"
NOOP_FINISHED = "finished"
NOOP_BLOCKED = "blocked"


@dataclass(frozen=True)
class MoveOutcome:
    """Result of ``Session.move``: a no-op (with reason) or a committed slide."""

    moved: bool
    result: MoveResult | None = None
    newly_completed_area_ids: tuple[int, ...] = ()
    doors_just_opened: tuple[int, ...] = ()
    legacy_door_just_opened: bool = False
    overall_won: bool = False
    chapter_finished: bool = False
    noop_reason: str | None = None

    @classmethod
    def noop(cls, reason: str) -> "MoveOutcome":
        return cls(moved=False, noop_reason=reason)

    @property
    def player_path(self) -> tuple[Position, ...]:
        return self.result.player_path if self.result is not None else ()

    @property
    def box_moved(self) -> BoxMove | None:
        return self.result.box_moved if self.result is not None else None

    def to_dict(self) -> dict[str, Any]:
        return {
            "moved": self.moved,
            "result": self.result.to_dict() if self.result is not None else None,
            "newly_completed_area_ids": list(self.newly_completed_area_ids),
            "doors_just_opened": list(self.doors_just_opened),
            "legacy_door_just_opened": self.legacy_door_just_opened,
            "overall_won": self.overall_won,
            "chapter_finished": self.chapter_finished,
            "noop_reason": self.noop_reason,
        }


def _restore_state(data: dict[str, Any], level: LevelDescriptor, *, field_name: str) -> GameState:
    """Rebuild a saved state, rejecting cells no move could have produced."""
    state = GameState.from_dict(data)
    if len(state.boxes) != len(level.boxes):
        raise ValueError(f"{field_name} box count does not match level")
    cells = [(f"{field_name}.player", state.player)]
    cells.extend((f"{field_name}.boxes[{index}]", box) for index, box in enumerate(state.boxes))
    for cell_name, cell in cells:
        if not level.in_bounds(cell):
            raise ValueError(f"{cell_name} must be inside the level")
        if cell in level.walls:
            raise ValueError(f"{cell_name} must not be on a wall")
    if len(set(state.boxes)) != len(state.boxes):
        raise ValueError(f"{field_name}.boxes must not share a cell")
    if state.player in state.boxes:
        raise ValueError(f"{field_name}.player must not share a cell with a box")
    return state


class Session:
    """One play session of one level.

    All mutation goes through ``move``, ``undo`` and ``reset``; registered
    session modules observe each of them after the session state settles.
    """

    def __init__(
        self,
        level: LevelDescriptor,
        *,
        viewport: ViewportConfig | None = None,
        clock: Clock | None = None,
        step_ms: float = STEP_MS,
        history_depth: int | None = None,
        freeze_on_finish: bool = True,
    ) -> None:
        self.level = level
        self.state: GameState = level.initial_state()
        self.history = History(max_depth=history_depth)
        self.doors = DoorState()
        self.completed_area_ids: tuple[int, ...] = ()
        self.overall_won = False
        self.chapter_finished = False
        self.last_move: MoveResult | None = None
        self.input_log: list[str] = []
        self.freeze_on_finish = freeze_on_finish
        self.gate = InputGate(clock=clock, step_ms=step_ms)
        self.timer = SessionTimer(clock=clock)
        self.modules: list[SessionModule] = []
        self._refresh_completion()
        self.chapter_finished = self._finished_at_rest()
        self.camera = CameraController(viewport)
        self.register_module(self.camera)

    def register_module(self, module: SessionModule) -> None:
        if any(existing.name == module.name for existing in self.modules):
            raise ValueError(f"duplicate session module name: {module.name}")
        self.modules.append(module)
        module.on_session_start(self)

    def get_module(self, module_name: str) -> SessionModule | None:
        for module in self.modules:
            if module.name == module_name:
                return module
        return None

    @property
    def busy(self) -> bool:
        return self.gate.is_busy()

    def completion(self) -> CompletionResult:
        return evaluate_completion(self.state, self.level)

    def _refresh_completion(self) -> tuple[list[int], list[int], bool]:
        result = self.completion()
        newly = newly_completed(self.completed_area_ids, result)
        legacy_was_open = self.doors.legacy_open
        opened = self.doors.latch(
            legacy_open=result.overall_won and not self.level.chapter_mode,
            area_ids=result.completed_area_ids,
        )
        self.completed_area_ids = result.completed_area_ids
        self.overall_won = result.overall_won
        return newly, opened, self.doors.legacy_open and not legacy_was_open

    def _finished_at_rest(self) -> bool:
        # A finish tile only counts when a committed move ends on it.
        if self.level.finish_position is not None:
            return False
        return self.overall_won

    def move(self, direction: Any) -> MoveOutcome:
        parsed = parse_direction(direction)
        if parsed is None:
            return MoveOutcome.noop(NOOP_INVALID_DIRECTION)
        if self.gate.is_busy():
            return MoveOutcome.noop(NOOP_BUSY)
        if self.freeze_on_finish and self.chapter_finished:
            return MoveOutcome.noop(NOOP_FINISHED)

        resolved = resolve_move(parsed, self.state, self.level, self.doors)
        if resolved is None:
            return MoveOutcome.noop(NOOP_BLOCKED)
        new_state, result = resolved

        self.history.push(self.state)
        self.state = new_state
        self.last_move = result
        self.input_log.append(parsed)
        self.timer.start()
        self.gate.hold(result.steps)

        newly, opened, legacy_opened = self._refresh_completion()
        if is_chapter_finished(self.state, self.level, self.completion()):
            self.chapter_finished = True
            self.timer.stop()

        outcome = MoveOutcome(
            moved=True,
            result=result,
            newly_completed_area_ids=tuple(newly),
            doors_just_opened=tuple(opened),
            legacy_door_just_opened=legacy_opened,
            overall_won=self.overall_won,
            chapter_finished=self.chapter_finished,
        )
        for module in self.modules:
            module.on_move(self, outcome)
        return outcome

    def undo(self) -> bool:
        if self.gate.is_busy():
            return False
        previous = self.history.pop()
        if previous is None:
            return False
        self.state = previous
        self.last_move = None
        self.input_log.append(UNDO_COMMAND)
        # Doors stay latched; only the finish flag follows the restored state.
        self._refresh_completion()
        self.chapter_finished = self._finished_at_rest()
        if not self.chapter_finished:
            self.timer.resume()
        for module in self.modules:
            module.on_undo(self)
        return True

    def reset(self) -> bool:
        if self.gate.is_busy():
            return False
        self.state = self.level.initial_state()
        self.history.clear()
        self.last_move = None
        self.doors = DoorState()
        self.completed_area_ids = ()
        self.overall_won = False
        self.timer.clear()
        self.gate.release()
        self.input_log.append(RESET_COMMAND)
        self._refresh_completion()
        self.chapter_finished = self._finished_at_rest()
        for module in self.modules:
            module.on_reset(self)
        return True

    def apply_command(self, command: str) -> bool:
        """Apply one input-log command; returns True when it changed the session."""
        if command == UNDO_COMMAND:
            return self.undo()
        if command == RESET_COMMAND:
            return self.reset()
        return self.move(command).moved

    def door_state(self) -> DoorState:
        return self.doors.copy()

    def camera_target(self) -> CameraTarget:
        return self.camera.target()

    @property
    def elapsed_ms(self) -> float:
        return self.timer.elapsed_ms

    def stars(self) -> int:
        if not self.chapter_finished:
            return 0
        return stars_for_time(self.timer.elapsed_ms, self.level.star_thresholds)

    def session_payload(self) -> dict[str, Any]:
        return {
            "schema_version": SESSION_SCHEMA_VERSION,
            "state": self.state.to_dict(),
            "history": [entry.to_dict() for entry in self.history.entries()],
            "doors": self.doors.to_dict(),
            "completed_area_ids": list(self.completed_area_ids),
            "chapter_finished": self.chapter_finished,
            "input_log": list(self.input_log),
            "camera": self.camera.to_dict(),
        }

    @classmethod
    def from_session_payload(cls, level: LevelDescriptor, payload: dict[str, Any], **kwargs: Any) -> "Session":
        schema_version = int(payload["schema_version"])
        if schema_version != SESSION_SCHEMA_VERSION:
            raise ValueError(f"unsupported session schema_version: {schema_version}")

        session = cls(level, **kwargs)
        session.state = _restore_state(payload["state"], level, field_name="session.state")
        for index, entry in enumerate(payload.get("history", [])):
            session.history.push(_restore_state(entry, level, field_name=f"session.history[{index}]"))
        session.doors = DoorState.from_dict(payload.get("doors"))
        session.input_log = [str(command) for command in payload.get("input_log", [])]
        session._refresh_completion()
        session.chapter_finished = bool(payload.get("chapter_finished", False))
        session.camera.player = session.state.player
        session.camera.restore(payload.get("camera", {}))
        return session


def create_session(level: LevelDescriptor, **kwargs: Any) -> Session:
    return Session(level, **kwargs)
