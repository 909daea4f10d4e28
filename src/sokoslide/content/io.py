from __future__ import annotations

import json
import os
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Any

from sokoslide.content.schema import parse_level_payload, validate_session_save_payload
from sokoslide.sim.core import Session
from sokoslide.sim.hash import level_hash, save_hash
from sokoslide.sim.world import LevelDescriptor

SCHEMA_VERSION = 1
CANONICAL_JSON_INDENT = 2
CANONICAL_JSON_SEPARATORS = (",", ": ")


def _canonical_json(payload: dict[str, Any]) -> str:
    return json.dumps(
        payload,
        indent=CANONICAL_JSON_INDENT,
        separators=CANONICAL_JSON_SEPARATORS,
        sort_keys=True,
    )


def _write_atomic_json(path: str | Path, payload: dict[str, Any]) -> None:
    destination = Path(path)
    destination.parent.mkdir(parents=True, exist_ok=True)
    serialized = _canonical_json(payload)

    temp_path: Path | None = None
    try:
        with NamedTemporaryFile(
            mode="w",
            encoding="utf-8",
            dir=destination.parent,
            delete=False,
            suffix=".tmp",
        ) as temp_file:
            temp_file.write(serialized)
            temp_file.flush()
            os.fsync(temp_file.fileno())
            temp_path = Path(temp_file.name)
        os.replace(temp_path, destination)
    except Exception:
        if temp_path is not None:
            temp_path.unlink(missing_ok=True)
        raise


def _read_json_object(path: str | Path) -> dict[str, Any]:
    payload = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(payload, dict):
        raise ValueError(f"{path} must contain a JSON object")
    return payload


def load_level_json(path: str | Path) -> LevelDescriptor:
    return parse_level_payload(_read_json_object(path))


def save_level_json(path: str | Path, level: LevelDescriptor) -> None:
    _write_atomic_json(path, level.to_dict())


def _build_save_payload(session: Session) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "schema_version": SCHEMA_VERSION,
        "level": session.level.to_dict(),
        "level_hash": level_hash(session.level),
        "session": session.session_payload(),
    }
    payload["save_hash"] = save_hash(payload)
    return payload


def save_session_json(path: str | Path, session: Session) -> None:
    payload = _build_save_payload(session)
    validate_session_save_payload(payload)
    _write_atomic_json(path, payload)


def load_session_json(path: str | Path, **session_kwargs: Any) -> Session:
    payload = _read_json_object(path)
    validate_session_save_payload(payload)

    expected_hash = payload["save_hash"]
    actual_hash = save_hash(payload)
    if expected_hash != actual_hash:
        raise ValueError(
            f"save_hash mismatch while loading save (stored={expected_hash}, recomputed={actual_hash})"
        )

    level = parse_level_payload(payload["level"])
    return Session.from_session_payload(level, payload["session"], **session_kwargs)
