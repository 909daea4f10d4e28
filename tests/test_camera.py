from dataclasses import replace

import pytest

from sokoslide.content.io import load_level_json
from sokoslide.sim.camera import (
    CAMERA_FIXED,
    CAMERA_FOLLOW,
    CAMERA_LOCKED_AREA,
    FIXED_TARGET,
    CameraController,
    ViewportConfig,
    fit_area_target,
    follow_target,
)
from sokoslide.sim.core import create_session
from sokoslide.sim.world import (
    TRIGGER_LOCK_AREA,
    AreaBounds,
    AreaCameraOverride,
    CameraTrigger,
    LevelDescriptor,
    Position,
    SubArea,
)


def _open_level(sub_areas: tuple[SubArea, ...] = ()) -> LevelDescriptor:
    return LevelDescriptor(
        width=8,
        height=8,
        walls=frozenset(),
        boxes=(),
        goals=(),
        initial_player=Position(1, 1),
        sub_areas=sub_areas,
    )


def test_lock_area_fit_centers_and_scales_area() -> None:
    area = SubArea(area_id=1, bounds=AreaBounds(0, 0, 3, 3))
    level = _open_level((area,))
    viewport = ViewportConfig(width=180, height=240, tile_size=20)

    target = fit_area_target(area, level, viewport)

    assert target.scale == pytest.approx(1.5)
    assert target.x == pytest.approx(60.0)
    assert target.y == pytest.approx(60.0)
    assert target.mode == CAMERA_LOCKED_AREA
    assert target.area_id == 1


def test_lock_area_scale_is_clamped() -> None:
    tiny = SubArea(area_id=1, bounds=AreaBounds(0, 0, 0, 0))
    level = _open_level((tiny,))

    assert fit_area_target(tiny, level, ViewportConfig()).scale == 2.0
    wide = SubArea(area_id=2, bounds=AreaBounds(0, 0, 7, 7))
    small = ViewportConfig(width=10, height=10, tile_size=32)
    assert fit_area_target(wide, _open_level((wide,)), small).scale == 0.25


def test_area_camera_override_replaces_fit() -> None:
    area = SubArea(
        area_id=4,
        bounds=AreaBounds(0, 0, 3, 3),
        camera=AreaCameraOverride(x=-10.0, y=5.0, scale=0.75),
    )

    target = fit_area_target(area, _open_level((area,)), ViewportConfig())

    assert (target.x, target.y, target.scale, target.area_id) == (-10.0, 5.0, 0.75, 4)


def test_vertical_bias_shifts_lock_area_up() -> None:
    area = SubArea(area_id=1, bounds=AreaBounds(0, 0, 3, 3))
    level = _open_level((area,))
    viewport = ViewportConfig(width=180, height=240, tile_size=20, vertical_bias_tiles=2.5)

    assert fit_area_target(area, level, viewport).y == pytest.approx(60.0 - 2.5 * 20 * 1.5)


def test_follow_target_centers_player() -> None:
    target = follow_target(Position(1, 1), _open_level(), ViewportConfig(tile_size=20), zoom=2.0)

    assert target.x == pytest.approx((80 - 30) * 2.0)
    assert target.y == pytest.approx((80 - 30) * 2.0)
    assert target.scale == 2.0
    assert target.mode == CAMERA_FOLLOW


def test_chapter_level_starts_locked_on_first_area() -> None:
    session = create_session(load_level_json("content/examples/chapter_two_areas.json"), step_ms=0)
    target = session.camera_target()

    assert target.mode == CAMERA_LOCKED_AREA
    assert target.area_id == 1
    assert target.scale == pytest.approx(2.0)
    assert target.x == pytest.approx(32.0)
    assert target.y == pytest.approx(64.0)


def test_lock_trigger_switches_area_on_rest() -> None:
    session = create_session(load_level_json("content/examples/chapter_two_areas.json"), step_ms=0)
    for direction in ("right", "left", "down"):
        session.move(direction)

    target = session.camera_target()
    assert session.state.player == Position(1, 3)
    assert target.area_id == 2
    assert target.y == pytest.approx(-64.0)


def test_follow_and_zoom_triggers() -> None:
    session = create_session(load_level_json("content/examples/camera_room.json"), step_ms=0)
    assert session.camera.mode == CAMERA_FIXED
    assert session.camera_target() == FIXED_TARGET

    session.move("right")
    assert session.camera.mode == CAMERA_FOLLOW
    assert session.camera.zoom == 1.5
    assert session.camera_target().x == pytest.approx(-120.0)
    assert session.camera_target().y == pytest.approx(24.0)

    session.move("down")
    assert session.camera.zoom == 3.0

    session.move("left")
    target = session.camera_target()
    assert session.state.player == Position(2, 2)
    assert target.scale == 3.0
    assert target.x == pytest.approx(144.0)
    assert target.y == pytest.approx(-48.0)


def test_follow_trigger_keeps_zoom_when_already_following() -> None:
    level = load_level_json("content/examples/camera_room.json")
    camera = CameraController()
    camera.reset_for_level(level, level.initial_player)
    camera.observe(Position(6, 2))

    assert camera.observe(Position(6, 1)) is False
    assert camera.zoom == 3.0


def test_lock_trigger_to_unknown_area_is_ignored() -> None:
    level = LevelDescriptor(
        width=4,
        height=1,
        walls=frozenset(),
        boxes=(),
        goals=(),
        initial_player=Position(0, 0),
        camera_triggers=(CameraTrigger(position=Position(3, 0), kind=TRIGGER_LOCK_AREA, target_area_id=9),),
    )
    camera = CameraController()
    camera.reset_for_level(level, level.initial_player)

    assert camera.observe(Position(3, 0)) is False
    assert camera.target() == FIXED_TARGET


def test_camera_reset_restores_initial_mode() -> None:
    session = create_session(load_level_json("content/examples/camera_room.json"), step_ms=0)
    session.move("right")
    session.reset()

    assert session.camera.mode == CAMERA_FIXED
    assert session.camera.zoom == 1.5


def test_viewport_config_validation() -> None:
    with pytest.raises(ValueError, match="tile_size"):
        ViewportConfig(tile_size=0)
    with pytest.raises(ValueError, match="scale bounds"):
        ViewportConfig(min_scale=2.0, max_scale=1.0)


def test_chapter_start_applies_trigger_under_player() -> None:
    level = load_level_json("content/examples/chapter_two_areas.json")
    start_trigger = CameraTrigger(position=level.initial_player, kind=TRIGGER_LOCK_AREA, target_area_id=2)
    session = create_session(replace(level, camera_triggers=(*level.camera_triggers, start_trigger)), step_ms=0)

    assert session.camera_target().area_id == 2
    session.move("right")
    session.reset()
    assert session.camera_target().area_id == 2
