from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from sokoslide.sim.world import GameState, LevelDescriptor


@dataclass(frozen=True)
class CompletionResult:
    overall_won: bool
    completed_area_ids: tuple[int, ...] = ()


def _goals_covered(goals: Iterable, boxes: Iterable) -> bool:
    occupied = set(boxes)
    return all(goal in occupied for goal in goals)


def is_area_complete(state: GameState, level: LevelDescriptor, area_id: int) -> bool:
    goal_indices = level.area_goal_indices.get(area_id, ())
    if not goal_indices:
        return False
    goals = [level.goals[index] for index in goal_indices]
    boxes = [state.boxes[index] for index in level.area_box_indices.get(area_id, ())]
    return _goals_covered(goals, boxes)


def evaluate_completion(state: GameState, level: LevelDescriptor) -> CompletionResult:
    """Instantaneous completion reading for ``state``; holds no memory between calls."""
    if not level.chapter_mode:
        return CompletionResult(overall_won=_goals_covered(level.goals, state.boxes))

    completed = tuple(
        area.area_id for area in level.sub_areas if is_area_complete(state, level, area.area_id)
    )
    return CompletionResult(
        overall_won=len(completed) == len(level.sub_areas),
        completed_area_ids=completed,
    )


def newly_completed(previous: Iterable[int], result: CompletionResult) -> list[int]:
    known = set(previous)
    return [area_id for area_id in result.completed_area_ids if area_id not in known]


def is_chapter_finished(state: GameState, level: LevelDescriptor, result: CompletionResult) -> bool:
    # A finish tile, when present, is the only chapter completion condition.
    if level.finish_position is not None:
        return state.player == level.finish_position
    return result.overall_won
