from __future__ import annotations

import argparse
import sys
from typing import Sequence

from sokoslide.content.io import load_level_json, load_session_json, save_session_json
from sokoslide.sim.core import RESET_COMMAND, SESSION_COMMANDS, UNDO_COMMAND, Session, create_session
from sokoslide.sim.hash import level_hash, session_hash, state_hash
from sokoslide.sim.world import LevelDescriptor

COMMAND_SHORTHAND = {
    "u": "up",
    "d": "down",
    "l": "left",
    "r": "right",
    "z": UNDO_COMMAND,
    "x": RESET_COMMAND,
}


def parse_commands(text: str) -> list[str]:
    """Split ``right,up undo`` or shorthand ``RRUZ`` into session commands."""
    tokens = [token for token in text.replace(",", " ").split() if token]
    if len(tokens) == 1 and tokens[0].lower() not in SESSION_COMMANDS:
        tokens = list(tokens[0])
    commands: list[str] = []
    for token in tokens:
        normalized = token.strip().lower()
        normalized = COMMAND_SHORTHAND.get(normalized, normalized)
        if normalized not in SESSION_COMMANDS:
            raise ValueError(f"unknown command: {token}")
        commands.append(normalized)
    return commands


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sokoslide-replay",
        description=(
            "Deterministic replay tool. Replays a command list (or a saved session's input log) "
            "from the level's initial state and prints state hashes."
        ),
    )
    parser.add_argument("level_path", nargs="?", help="Path to a level JSON document")
    parser.add_argument("--moves", default="", help="Commands, e.g. 'right,up,undo' or shorthand 'RUZ'")
    parser.add_argument("--load-save", help="Replay the input log of a saved session and verify its final state")
    parser.add_argument("--per-move", action="store_true", help="Print one line per replayed command")
    parser.add_argument("--dump-final-save", help="Optional path to write the replayed session save")
    return parser


def _print_header(level: LevelDescriptor) -> None:
    print(
        "header "
        f"level_hash={level_hash(level)} "
        f"width={level.width} height={level.height} "
        f"boxes={len(level.boxes)} goals={len(level.goals)} "
        f"areas={len(level.sub_areas)}"
    )


def _replay(level: LevelDescriptor, commands: Sequence[str], *, per_move: bool) -> Session:
    session = create_session(level, step_ms=0)
    print(f"start_hash={state_hash(session.state)}")
    for index, command in enumerate(commands):
        if command in (UNDO_COMMAND, RESET_COMMAND):
            changed = session.apply_command(command)
            if per_move:
                print(f"command index={index} command={command} changed={int(changed)} hash={state_hash(session.state)}")
            continue
        outcome = session.move(command)
        if per_move:
            box_text = "-"
            if outcome.box_moved is not None:
                box_text = f"{outcome.box_moved.index}:{len(outcome.box_moved.path) - 1}"
            opened = ",".join(str(area_id) for area_id in outcome.doors_just_opened) or "-"
            print(
                f"command index={index} command={command} "
                f"moved={int(outcome.moved)} "
                f"steps={max(0, len(outcome.player_path) - 1)} "
                f"box={box_text} "
                f"doors_opened={opened} "
                f"noop={outcome.noop_reason or '-'} "
                f"hash={state_hash(session.state)}"
            )
    return session


def _print_summary(session: Session, command_count: int) -> None:
    open_areas = ",".join(str(area_id) for area_id in sorted(session.doors.open_area_ids)) or "-"
    print(f"end_hash={state_hash(session.state)}")
    print(f"session_hash={session_hash(session)}")
    print(
        "summary "
        f"commands={command_count} "
        f"history_depth={session.history.depth} "
        f"overall_won={int(session.overall_won)} "
        f"chapter_finished={int(session.chapter_finished)} "
        f"legacy_door_open={int(session.doors.legacy_open)} "
        f"open_areas={open_areas}"
    )


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    try:
        if args.load_save:
            saved = load_session_json(args.load_save, step_ms=0)
            level = saved.level
            commands = list(saved.input_log)
        elif args.level_path:
            saved = None
            level = load_level_json(args.level_path)
            commands = parse_commands(args.moves)
        else:
            parser.error("level_path or --load-save is required")
    except (OSError, ValueError) as exc:
        print(f"[sokoslide.replay] load failed: {exc}", file=sys.stderr)
        return 1

    _print_header(level)
    session = _replay(level, commands, per_move=args.per_move)
    _print_summary(session, len(commands))

    if saved is not None:
        if state_hash(saved.state) != state_hash(session.state):
            print(
                "integrity=MISMATCH "
                f"saved={state_hash(saved.state)} replayed={state_hash(session.state)}",
                file=sys.stderr,
            )
            return 1
        print("integrity=OK")

    if args.dump_final_save:
        save_session_json(args.dump_final_save, session)
        print(f"dumped path={args.dump_final_save}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
