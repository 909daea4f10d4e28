import json
from pathlib import Path

import pytest

from sokoslide.content.io import load_level_json, save_level_json
from sokoslide.content.schema import parse_level_payload
from sokoslide.content.tiles import level_payload_from_rows, tile_is_wall
from sokoslide.sim.core import create_session
from sokoslide.sim.hash import level_hash
from sokoslide.sim.world import TRIGGER_FOLLOW, TRIGGER_LOCK_AREA, TRIGGER_ZOOM, Position


def _minimal_payload() -> dict:
    return {"width": 3, "height": 1, "initialPlayer": {"x": 0, "y": 0}}


def test_minimal_level_disables_optional_features() -> None:
    level = parse_level_payload(_minimal_payload())

    assert level.walls == frozenset()
    assert level.boxes == ()
    assert level.door is None
    assert level.sub_areas == ()
    assert level.camera_triggers == ()
    assert level.finish_position is None
    assert level.star_thresholds == ()
    assert level.follow_zoom == 2.0
    assert level.initial_camera_mode == "fixed"


def test_unknown_fields_are_ignored() -> None:
    payload = {**_minimal_payload(), "editorVersion": 9, "theme": {"palette": "dusk"}}

    assert parse_level_payload(payload) == parse_level_payload(_minimal_payload())


def test_tile_authored_level_derives_walls_triggers_and_members() -> None:
    level = load_level_json("content/examples/tile_authored.json")

    assert len(level.walls) == 12
    assert Position(3, 1) not in level.walls
    assert level.sub_areas[0].box_indices == (0,)
    assert level.sub_areas[0].goal_indices == (0,)
    trigger = level.triggers_by_position[Position(3, 1)]
    assert trigger.kind == TRIGGER_LOCK_AREA
    assert trigger.target_area_id == 7
    assert level.initial_camera_mode == "locked_area"
    assert level.initial_camera_area_id == 7


def test_tile_authored_level_is_playable() -> None:
    session = create_session(load_level_json("content/examples/tile_authored.json"), step_ms=0)
    outcome = session.move("right")

    assert outcome.newly_completed_area_ids == (7,)
    assert outcome.chapter_finished is True


def test_any_unrecognized_tile_type_collides() -> None:
    assert tile_is_wall("wallTop") is True
    assert tile_is_wall("decorativeCrate") is True
    assert tile_is_wall("floor") is False
    assert tile_is_wall("cameraFollow") is False


def test_explicit_walls_take_precedence_over_tiles() -> None:
    payload = {
        **_minimal_payload(),
        "tiles": [{"x": 1, "y": 0, "tileType": "wallTop"}],
        "walls": [{"x": 2, "y": 0}],
    }

    assert parse_level_payload(payload).walls == frozenset({Position(2, 0)})


def test_camera_trigger_variants() -> None:
    level = load_level_json("content/examples/camera_room.json")

    assert level.triggers_by_position[Position(6, 1)].kind == TRIGGER_FOLLOW
    zoom = level.triggers_by_position[Position(6, 2)]
    assert zoom.kind == TRIGGER_ZOOM
    assert zoom.zoom == 3.0
    assert level.follow_zoom == 1.5


def test_lock_trigger_without_target_is_skipped() -> None:
    payload = {**_minimal_payload(), "cameraTriggers": [{"x": 1, "y": 0, "mode": "lockArea"}]}

    assert parse_level_payload(payload).camera_triggers == ()


def test_star_thresholds_accept_object_or_list() -> None:
    as_object = parse_level_payload({**_minimal_payload(), "starThresholds": {"1": 30, "2": 20, "3": 10}})
    as_list = parse_level_payload({**_minimal_payload(), "starThresholds": [30, 0, 10, 20]})

    assert as_object.star_thresholds == (10, 20, 30)
    assert as_list.star_thresholds == (10, 20, 30)


def test_xsb_rows_build_level_documents() -> None:
    payload = level_payload_from_rows(["#####", "#@$.#", "#####"], levelNumber=4)
    level = parse_level_payload(payload)

    assert (level.width, level.height) == (5, 3)
    assert level.boxes == (Position(2, 1),)
    assert level.goals == (Position(3, 1),)
    assert level.initial_player == Position(1, 1)
    assert level.level_number == 4
    with pytest.raises(ValueError, match="exactly one player"):
        level_payload_from_rows(["#  #"])


@pytest.mark.parametrize(
    ("patch", "message"),
    [
        ({"width": 0}, "level.width and level.height must be > 0"),
        ({"width": "wide"}, "level.width must be an integer"),
        ({"boxes": [{"x": 9, "y": 0}]}, r"level.boxes\[0\] must be inside the level"),
        ({"walls": [{"x": 0, "y": 0}]}, "level.initialPlayer must not be on a wall"),
        ({"boxes": [{"x": 0, "y": 0}]}, "level.initialPlayer must not share a cell with a box"),
        ({"door": {"x": 1, "y": 0, "orientation": "diag"}}, "level.door.orientation must be one of"),
        ({"cameraTriggers": [{"x": 1, "y": 0, "mode": "orbit"}]}, "mode must be one of"),
        ({"followZoom": -1}, "level.followZoom must be > 0"),
        ({"subLevels": [{"id": 1, "bounds": {"minX": 2, "minY": 0, "maxX": 1, "maxY": 0}}]}, "max must be >= min"),
        (
            {
                "subLevels": [
                    {"id": 1, "bounds": {"minX": 0, "minY": 0, "maxX": 1, "maxY": 0}},
                    {"id": 1, "bounds": {"minX": 2, "minY": 0, "maxX": 2, "maxY": 0}},
                ]
            },
            "duplicate sub-area id: 1",
        ),
    ],
)
def test_structural_errors_raise_with_field_path(patch: dict, message: str) -> None:
    with pytest.raises(ValueError, match=message):
        parse_level_payload({**_minimal_payload(), **patch})


def test_missing_initial_player_is_rejected() -> None:
    with pytest.raises(ValueError, match="initialPlayer"):
        parse_level_payload({"width": 2, "height": 2})


def test_level_save_round_trip_preserves_hash(tmp_path: Path) -> None:
    for name in ("chapter_two_areas", "legacy_finish", "camera_room", "tile_authored"):
        source = load_level_json(f"content/examples/{name}.json")
        out_path = tmp_path / f"{name}.json"
        save_level_json(out_path, source)

        assert level_hash(load_level_json(out_path)) == level_hash(source)
        assert "tiles" not in json.loads(out_path.read_text(encoding="utf-8"))
