import json
from pathlib import Path

import pytest

from sokoslide.content.io import load_level_json, load_session_json, save_session_json
from sokoslide.sim.core import Session, create_session
from sokoslide.sim.hash import save_hash, session_hash, state_hash
from sokoslide.sim.world import Position


def _build_session() -> Session:
    session = create_session(load_level_json("content/examples/chapter_two_areas.json"), step_ms=0)
    for direction in ("right", "left", "down"):
        session.move(direction)
    return session


def test_session_save_then_load_round_trip(tmp_path: Path) -> None:
    session = _build_session()
    before = session_hash(session)
    save_path = tmp_path / "session.json"

    save_session_json(save_path, session)
    loaded = load_session_json(save_path, step_ms=0)

    assert session_hash(loaded) == before
    assert loaded.state == session.state
    assert loaded.history.entries() == session.history.entries()
    assert loaded.door_state().open_area_ids == {1}
    assert loaded.input_log == ["right", "left", "down"]
    assert loaded.camera_target().area_id == 2


def test_loaded_session_continues_play(tmp_path: Path) -> None:
    save_path = tmp_path / "session.json"
    save_session_json(save_path, _build_session())
    loaded = load_session_json(save_path, step_ms=0)

    outcome = loaded.move("right")
    assert outcome.chapter_finished is True
    assert loaded.undo() is True
    assert loaded.undo() is True
    assert loaded.state.player == Position(1, 1)


def test_save_payload_layout_and_hash(tmp_path: Path) -> None:
    save_path = tmp_path / "session.json"
    save_session_json(save_path, _build_session())
    payload = json.loads(save_path.read_text(encoding="utf-8"))

    assert sorted(payload) == ["level", "level_hash", "save_hash", "schema_version", "session"]
    assert payload["save_hash"] == save_hash(payload)
    assert payload["session"]["schema_version"] == 1
    assert not list(tmp_path.glob("*.tmp"))


def test_tampered_save_is_rejected(tmp_path: Path) -> None:
    save_path = tmp_path / "session.json"
    save_session_json(save_path, _build_session())
    payload = json.loads(save_path.read_text(encoding="utf-8"))
    payload["session"]["state"]["player"] = {"x": 4, "y": 3}
    save_path.write_text(json.dumps(payload), encoding="utf-8")

    with pytest.raises(ValueError, match="save_hash mismatch"):
        load_session_json(save_path)


def test_unsupported_schema_version_is_rejected(tmp_path: Path) -> None:
    save_path = tmp_path / "session.json"
    save_session_json(save_path, _build_session())
    payload = json.loads(save_path.read_text(encoding="utf-8"))
    payload["schema_version"] = 99
    save_path.write_text(json.dumps(payload), encoding="utf-8")

    with pytest.raises(ValueError, match="unsupported save schema_version: 99"):
        load_session_json(save_path)


def test_state_hash_is_stable_across_identical_runs() -> None:
    first = _build_session()
    second = _build_session()

    assert state_hash(first.state) == state_hash(second.state)
    assert session_hash(first) == session_hash(second)
    second.undo()
    assert session_hash(first) != session_hash(second)


def _write_rehashed(path: Path, payload: dict) -> None:
    payload["save_hash"] = save_hash(payload)
    path.write_text(json.dumps(payload), encoding="utf-8")


@pytest.mark.parametrize(
    ("section", "patch", "message"),
    [
        ("state", {"player": {"x": 0, "y": 0}}, "session.state.player must not be on a wall"),
        (
            "state",
            {"boxes": [{"x": 40, "y": -3}, {"x": 3, "y": 3}]},
            r"session.state.boxes\[0\] must be inside the level",
        ),
        (
            "state",
            {"boxes": [{"x": 3, "y": 3}, {"x": 3, "y": 3}]},
            "session.state.boxes must not share a cell",
        ),
        (
            "state",
            {"player": {"x": 3, "y": 3}},
            "session.state.player must not share a cell with a box",
        ),
        ("history", {"player": {"x": 6, "y": 4}}, r"session.history\[0\].player must not be on a wall"),
    ],
)
def test_rehashed_save_with_impossible_state_is_rejected(
    tmp_path: Path, section: str, patch: dict, message: str
) -> None:
    save_path = tmp_path / "session.json"
    save_session_json(save_path, _build_session())
    payload = json.loads(save_path.read_text(encoding="utf-8"))
    if section == "state":
        payload["session"]["state"].update(patch)
    else:
        payload["session"]["history"][0].update(patch)
    _write_rehashed(save_path, payload)

    with pytest.raises(ValueError, match=message):
        load_session_json(save_path)
