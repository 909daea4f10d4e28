from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from sokoslide.sim.core import MoveOutcome, Session


class SessionModule:
    """Observer substrate for play sessions.

    Modules are registered on a ``Session`` and every hook runs in stable
    registration order after the session has committed its own state.
    """

    name: str

    def on_session_start(self, session: Session) -> None:
        """Called once when the module is registered."""

    def on_move(self, session: Session, outcome: MoveOutcome) -> None:
        """Called after each accepted (non no-op) move."""

    def on_undo(self, session: Session) -> None:
        """Called after undo restored a previous state."""

    def on_reset(self, session: Session) -> None:
        """Called after the session returned to the level's initial state."""
