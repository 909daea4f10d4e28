from __future__ import annotations

import hashlib
import json
from typing import Any

from sokoslide.sim.core import Session
from sokoslide.sim.world import GameState, LevelDescriptor


def _canonical_digest(payload: Any) -> str:
    encoded = json.dumps(payload, sort_keys=True, separators=(",", ":")).encode("utf-8")
    return hashlib.sha256(encoded).hexdigest()


def level_hash(level: LevelDescriptor) -> str:
    return _canonical_digest(level.to_dict())


def state_hash(state: GameState) -> str:
    return _canonical_digest(state.to_dict())


def session_hash(session: Session) -> str:
    payload = {
        "level": level_hash(session.level),
        "session": session.session_payload(),
    }
    return _canonical_digest(payload)


def save_hash(payload: dict[str, Any]) -> str:
    hash_payload = {
        "schema_version": payload["schema_version"],
        "level": payload["level"],
        "session": payload["session"],
    }
    return _canonical_digest(hash_payload)
