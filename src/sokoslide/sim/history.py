from __future__ import annotations

from sokoslide.sim.world import GameState


class History:
    """Undo stack of pre-move states.

    ``max_depth=None`` keeps every entry for the session lifetime; a cap drops
    the oldest entries first.
    """

    def __init__(self, max_depth: int | None = None) -> None:
        if max_depth is not None and max_depth <= 0:
            raise ValueError("history max_depth must be > 0 when set")
        self.max_depth = max_depth
        self._entries: list[GameState] = []

    def push(self, state: GameState) -> None:
        self._entries.append(state)
        if self.max_depth is not None and len(self._entries) > self.max_depth:
            del self._entries[: len(self._entries) - self.max_depth]

    def pop(self) -> GameState | None:
        if not self._entries:
            return None
        return self._entries.pop()

    def clear(self) -> None:
        self._entries.clear()

    @property
    def depth(self) -> int:
        return len(self._entries)

    def entries(self) -> list[GameState]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)
