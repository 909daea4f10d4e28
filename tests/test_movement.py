from sokoslide.content.schema import parse_level_payload
from sokoslide.content.tiles import level_payload_from_rows
from sokoslide.sim.doors import DoorState
from sokoslide.sim.movement import parse_direction, resolve_move
from sokoslide.sim.world import GameState, LevelDescriptor, Position


def _level(*rows: str) -> LevelDescriptor:
    return parse_level_payload(level_payload_from_rows(rows))


def test_slide_runs_until_wall() -> None:
    level = _level("#@    #")
    resolved = resolve_move("right", level.initial_state(), level, DoorState())

    assert resolved is not None
    state, result = resolved
    assert state.player == Position(5, 0)
    assert result.player_path == tuple(Position(x, 0) for x in range(1, 6))
    assert result.steps == 4
    assert result.box_moved is None


def test_blocked_first_cell_is_noop() -> None:
    level = _level("#@ #")

    assert resolve_move("left", level.initial_state(), level, DoorState()) is None


def test_out_of_bounds_counts_as_blocked() -> None:
    level = _level("@  ")

    assert resolve_move("left", level.initial_state(), level, DoorState()) is None
    assert resolve_move("up", level.initial_state(), level, DoorState()) is None


def test_push_slides_box_until_it_hits_wall() -> None:
    level = _level("#@ $  #")
    state, result = resolve_move("right", level.initial_state(), level, DoorState())

    assert state.boxes == (Position(5, 0),)
    assert state.player == Position(4, 0)
    assert result.box_moved is not None
    assert result.box_moved.index == 0
    assert result.box_moved.path == (Position(3, 0), Position(4, 0), Position(5, 0))
    assert result.player_path[-1] == Position(4, 0)
    assert result.box_start_delay_steps == 1


def test_box_against_box_does_not_move() -> None:
    level = _level("#@$$ #")

    assert resolve_move("right", level.initial_state(), level, DoorState()) is None


def test_pushed_box_stops_behind_second_box() -> None:
    level = _level("#@ $ $ #")
    state, result = resolve_move("right", level.initial_state(), level, DoorState())

    assert state.boxes == (Position(4, 0), Position(5, 0))
    assert state.player == Position(3, 0)
    assert result.box_moved.index == 0


def test_pushing_second_box_keeps_its_index() -> None:
    level = _level("#$ @$ #")
    state, result = resolve_move("right", level.initial_state(), level, DoorState())

    assert state.boxes == (Position(1, 0), Position(5, 0))
    assert state.player == Position(4, 0)
    assert result.box_moved.index == 1
    assert len(state.boxes) == len(level.boxes)


def test_closed_door_blocks_and_open_door_passes() -> None:
    payload = level_payload_from_rows(["#@  #"], door={"x": 3, "y": 0, "orientation": "lr"})
    level = parse_level_payload(payload)

    closed_state, _ = resolve_move("right", level.initial_state(), level, DoorState())
    open_state, _ = resolve_move("right", level.initial_state(), level, DoorState(legacy_open=True))

    assert closed_state.player == Position(2, 0)
    assert open_state.player == Position(3, 0)


def test_resolver_does_not_mutate_input_state() -> None:
    level = _level("#@$ #")
    initial = level.initial_state()

    resolve_move("right", initial, level, DoorState())

    assert initial == GameState(player=Position(1, 0), boxes=(Position(2, 0),))


def test_parse_direction_normalizes_and_rejects_unknown() -> None:
    assert parse_direction(" Right ") == "right"
    assert parse_direction("north") is None
    assert parse_direction(3) is None
