from __future__ import annotations

from typing import Any

from sokoslide.content.tiles import assign_area_members, camera_triggers_from_tiles, walls_from_tiles
from sokoslide.sim.timing import normalize_star_thresholds
from sokoslide.sim.world import (
    DEFAULT_FOLLOW_ZOOM,
    DOOR_ORIENTATIONS,
    TRIGGER_FOLLOW,
    TRIGGER_LOCK_AREA,
    TRIGGER_ZOOM,
    AreaBounds,
    AreaCameraOverride,
    CameraTrigger,
    Door,
    LevelDescriptor,
    Position,
    SubArea,
)

SUPPORTED_SAVE_SCHEMA_VERSIONS = {1}
CAMERA_MODE_ALIASES = {
    "fixed": "fixed",
    "follow": "follow",
    "lockedArea": "locked_area",
    "locked_area": "locked_area",
}
TRIGGER_MODE_ALIASES = {
    "follow": TRIGGER_FOLLOW,
    "lockArea": TRIGGER_LOCK_AREA,
    "lock_area": TRIGGER_LOCK_AREA,
}


def _require_int(value: Any, *, field_name: str) -> int:
    if isinstance(value, bool):
        raise ValueError(f"{field_name} must be an integer")
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if not isinstance(value, int):
        raise ValueError(f"{field_name} must be an integer")
    return value


def _require_number(value: Any, *, field_name: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{field_name} must be a number")
    return float(value)


def _require_object(value: Any, *, field_name: str) -> dict[str, Any]:
    if not isinstance(value, dict):
        raise ValueError(f"{field_name} must be an object")
    return value


def _optional_list(payload: dict[str, Any], key: str, *, field_name: str) -> list[Any]:
    value = payload.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValueError(f"{field_name}.{key} must be a list when present")
    return value


def _parse_position(value: Any, *, field_name: str) -> Position:
    data = _require_object(value, field_name=field_name)
    return Position(
        x=_require_int(data.get("x"), field_name=f"{field_name}.x"),
        y=_require_int(data.get("y"), field_name=f"{field_name}.y"),
    )


def _parse_positions(payload: dict[str, Any], key: str, *, field_name: str) -> tuple[Position, ...]:
    return tuple(
        _parse_position(item, field_name=f"{field_name}.{key}[{index}]")
        for index, item in enumerate(_optional_list(payload, key, field_name=field_name))
    )


def _parse_door(value: Any, *, field_name: str) -> Door | None:
    if value is None:
        return None
    data = _require_object(value, field_name=field_name)
    orientation = data.get("orientation", "lr")
    if orientation not in DOOR_ORIENTATIONS:
        raise ValueError(f"{field_name}.orientation must be one of: {', '.join(sorted(DOOR_ORIENTATIONS))}")
    return Door(position=_parse_position(data, field_name=field_name), orientation=orientation)


def _parse_indices(value: Any, *, field_name: str) -> tuple[int, ...]:
    if not isinstance(value, list):
        raise ValueError(f"{field_name} must be a list")
    return tuple(_require_int(item, field_name=f"{field_name}[{index}]") for index, item in enumerate(value))


def _parse_bounds(value: Any, *, field_name: str) -> AreaBounds:
    data = _require_object(value, field_name=field_name)
    values = {key: _require_int(data.get(key), field_name=f"{field_name}.{key}") for key in ("minX", "minY", "maxX", "maxY")}
    if values["maxX"] < values["minX"] or values["maxY"] < values["minY"]:
        raise ValueError(f"{field_name} max must be >= min")
    return AreaBounds(min_x=values["minX"], min_y=values["minY"], max_x=values["maxX"], max_y=values["maxY"])


def _parse_area_camera(value: Any, *, field_name: str) -> AreaCameraOverride | None:
    if value is None:
        return None
    data = _require_object(value, field_name=field_name)
    scale = _require_number(data.get("scale"), field_name=f"{field_name}.scale")
    if scale <= 0:
        raise ValueError(f"{field_name}.scale must be > 0")
    return AreaCameraOverride(
        x=_require_number(data.get("x"), field_name=f"{field_name}.x"),
        y=_require_number(data.get("y"), field_name=f"{field_name}.y"),
        scale=scale,
    )


def _parse_sub_area(
    value: Any,
    *,
    field_name: str,
    boxes: tuple[Position, ...],
    goals: tuple[Position, ...],
) -> SubArea:
    data = _require_object(value, field_name=field_name)
    bounds = _parse_bounds(data.get("bounds"), field_name=f"{field_name}.bounds")
    assigned_boxes, assigned_goals = assign_area_members(bounds, boxes, goals)
    box_indices = assigned_boxes
    if data.get("boxIndices") is not None:
        box_indices = _parse_indices(data["boxIndices"], field_name=f"{field_name}.boxIndices")
    goal_indices = assigned_goals
    if data.get("goalIndices") is not None:
        goal_indices = _parse_indices(data["goalIndices"], field_name=f"{field_name}.goalIndices")
    return SubArea(
        area_id=_require_int(data.get("id"), field_name=f"{field_name}.id"),
        bounds=bounds,
        box_indices=box_indices,
        goal_indices=goal_indices,
        door=_parse_door(data.get("door"), field_name=f"{field_name}.door"),
        camera=_parse_area_camera(data.get("camera"), field_name=f"{field_name}.camera"),
    )


def _parse_camera_trigger(value: Any, *, field_name: str) -> CameraTrigger | None:
    data = _require_object(value, field_name=field_name)
    position = _parse_position(data, field_name=field_name)
    if data.get("zoom") is not None:
        zoom = _require_number(data["zoom"], field_name=f"{field_name}.zoom")
        if zoom <= 0:
            raise ValueError(f"{field_name}.zoom must be > 0")
        return CameraTrigger(position=position, kind=TRIGGER_ZOOM, zoom=zoom)

    mode = data.get("mode")
    if mode not in TRIGGER_MODE_ALIASES:
        raise ValueError(f"{field_name}.mode must be one of: follow, lockArea")
    kind = TRIGGER_MODE_ALIASES[mode]
    if kind == TRIGGER_FOLLOW:
        return CameraTrigger(position=position, kind=kind)
    if data.get("targetAreaId") is None:
        return None
    return CameraTrigger(
        position=position,
        kind=kind,
        target_area_id=_require_int(data["targetAreaId"], field_name=f"{field_name}.targetAreaId"),
    )


def _parse_star_thresholds(value: Any, *, field_name: str) -> tuple[int, ...]:
    if value is None:
        return ()
    if isinstance(value, dict):
        raw = list(value.values())
    elif isinstance(value, list):
        raw = value
    else:
        raise ValueError(f"{field_name} must be an object or list when present")
    numbers = [_require_number(item, field_name=f"{field_name}[{index}]") for index, item in enumerate(raw)]
    return normalize_star_thresholds(numbers)


def _parse_initial_camera(value: Any, *, field_name: str) -> tuple[str, int | None]:
    if value is None:
        return "fixed", None
    data = _require_object(value, field_name=field_name)
    mode = data.get("mode", "fixed")
    if mode not in CAMERA_MODE_ALIASES:
        raise ValueError(f"{field_name}.mode must be one of: fixed, follow, lockedArea")
    area_id = data.get("lockedAreaId")
    return CAMERA_MODE_ALIASES[mode], (
        _require_int(area_id, field_name=f"{field_name}.lockedAreaId") if area_id is not None else None
    )


def parse_level_payload(payload: Any, *, field_prefix: str = "level") -> LevelDescriptor:
    """Build a ``LevelDescriptor`` from a level document.

    Unknown fields are ignored and absent optional fields disable their
    feature; structurally wrong fields raise ``ValueError``.
    """
    data = _require_object(payload, field_name=field_prefix)
    width = _require_int(data.get("width"), field_name=f"{field_prefix}.width")
    height = _require_int(data.get("height"), field_name=f"{field_prefix}.height")
    if width <= 0 or height <= 0:
        raise ValueError(f"{field_prefix}.width and {field_prefix}.height must be > 0")

    if "initialPlayer" not in data:
        raise ValueError(f"{field_prefix} must contain field: initialPlayer")
    initial_player = _parse_position(data["initialPlayer"], field_name=f"{field_prefix}.initialPlayer")
    boxes = _parse_positions(data, "boxes", field_name=field_prefix)
    goals = _parse_positions(data, "goals", field_name=field_prefix)

    tiles = _optional_list(data, "tiles", field_name=field_prefix)
    for index, tile in enumerate(tiles):
        _parse_position(tile, field_name=f"{field_prefix}.tiles[{index}]")
    if data.get("walls") is not None:
        walls = frozenset(_parse_positions(data, "walls", field_name=field_prefix))
    else:
        walls = walls_from_tiles(tiles)

    for index, box in enumerate(boxes):
        if not (0 <= box.x < width and 0 <= box.y < height):
            raise ValueError(f"{field_prefix}.boxes[{index}] must be inside the level")
        if box in walls:
            raise ValueError(f"{field_prefix}.boxes[{index}] must not be on a wall")
    if initial_player in walls:
        raise ValueError(f"{field_prefix}.initialPlayer must not be on a wall")
    if initial_player in boxes:
        raise ValueError(f"{field_prefix}.initialPlayer must not share a cell with a box")

    sub_areas = tuple(
        _parse_sub_area(area, field_name=f"{field_prefix}.subLevels[{index}]", boxes=boxes, goals=goals)
        for index, area in enumerate(_optional_list(data, "subLevels", field_name=field_prefix))
    )

    if data.get("cameraTriggers") is not None:
        parsed_triggers = (
            _parse_camera_trigger(trigger, field_name=f"{field_prefix}.cameraTriggers[{index}]")
            for index, trigger in enumerate(_optional_list(data, "cameraTriggers", field_name=field_prefix))
        )
        camera_triggers = tuple(trigger for trigger in parsed_triggers if trigger is not None)
    else:
        camera_triggers = camera_triggers_from_tiles(tiles, sub_areas)

    finish_position = None
    if data.get("finishPosition") is not None:
        finish_position = _parse_position(data["finishPosition"], field_name=f"{field_prefix}.finishPosition")

    follow_zoom = DEFAULT_FOLLOW_ZOOM
    if data.get("followZoom") is not None:
        follow_zoom = _require_number(data["followZoom"], field_name=f"{field_prefix}.followZoom")
        if follow_zoom <= 0:
            raise ValueError(f"{field_prefix}.followZoom must be > 0")

    camera_mode, camera_area_id = _parse_initial_camera(
        data.get("initialCameraState"),
        field_name=f"{field_prefix}.initialCameraState",
    )

    try:
        return LevelDescriptor(
            width=width,
            height=height,
            walls=walls,
            boxes=boxes,
            goals=goals,
            initial_player=initial_player,
            door=_parse_door(data.get("door"), field_name=f"{field_prefix}.door"),
            sub_areas=sub_areas,
            camera_triggers=camera_triggers,
            finish_position=finish_position,
            level_number=(
                _require_int(data["levelNumber"], field_name=f"{field_prefix}.levelNumber")
                if data.get("levelNumber") is not None
                else None
            ),
            chapter_number=(
                _require_int(data["chapterNumber"], field_name=f"{field_prefix}.chapterNumber")
                if data.get("chapterNumber") is not None
                else None
            ),
            star_thresholds=_parse_star_thresholds(
                data.get("starThresholds"),
                field_name=f"{field_prefix}.starThresholds",
            ),
            follow_zoom=follow_zoom,
            initial_camera_mode=camera_mode,
            initial_camera_area_id=camera_area_id,
        )
    except ValueError as exc:
        raise ValueError(f"{field_prefix}: {exc}") from exc


def validate_session_save_payload(payload: Any) -> None:
    data = _require_object(payload, field_name="save")
    schema_version = data.get("schema_version")
    if isinstance(schema_version, bool) or not isinstance(schema_version, int):
        raise ValueError("save must contain integer field: schema_version")
    if schema_version not in SUPPORTED_SAVE_SCHEMA_VERSIONS:
        raise ValueError(f"unsupported save schema_version: {schema_version}")
    for key in ("level", "session"):
        _require_object(data.get(key), field_name=f"save.{key}")
    if not isinstance(data.get("save_hash"), str):
        raise ValueError("save must contain string field: save_hash")

    session = data["session"]
    _parse_position(
        _require_object(session.get("state"), field_name="save.session.state").get("player"),
        field_name="save.session.state.player",
    )
    history = session.get("history", [])
    if not isinstance(history, list):
        raise ValueError("save.session.history must be a list")
    input_log = session.get("input_log", [])
    if not isinstance(input_log, list) or not all(isinstance(command, str) for command in input_log):
        raise ValueError("save.session.input_log must be a list of strings")
