from __future__ import annotations

import logging
import sys
from dataclasses import replace
from typing import Callable, Iterable, List, Optional

from ...engine.game import Game
from ...engine.move import move_to_uci
from ...search.service import MATE_SCORE, SearchConfig, SearchResult, SearchService


logger = logging.getLogger(__name__)

Writer = Callable[[str], None]

_SPIN_OPTIONS = {
    "depth": ("Depth", 0, 4),
    "lines": ("Lines", 1, 64),
    "threshold": ("Threshold", 0, 100_000),
}


class UCIEngine:
    """UCI protocol adapter around the game wrapper and search.

    Notes:
    - Searches run synchronously; ``go`` returns after ``bestmove`` is written.
    - Command set: uci, isready, ucinewgame, position, setoption, go [depth N], quit.
    - The engine always plays the side to move of the current position.
    """

    def __init__(self, config: Optional[SearchConfig] = None) -> None:
        self.config = config or SearchConfig()
        self.search = SearchService(self.config)
        self.game: Game = Game.new(search=self.search)

    # ---- Command handlers ----
    def cmd_uci(self, write: Writer) -> None:
        write("id name pawnstorm")
        write("id author pawnstorm developers")
        for key, (name, lo, hi) in _SPIN_OPTIONS.items():
            write(f"option name {name} type spin default {getattr(self.config, key)} min {lo} max {hi}")
        write("option name Seed type string default <empty>")
        write("uciok")

    def cmd_isready(self, write: Writer) -> None:
        write("readyok")

    def cmd_ucinewgame(self) -> None:
        self.game = Game.new(search=self.search)

    def cmd_position(self, args: List[str]) -> None:
        # position [startpos | fen <FEN>] [moves m1 m2 ...]
        if not args:
            return
        idx = 0
        if args[0] == "startpos":
            game = Game.new(search=self.search)
            idx = 1
        elif args[0] == "fen":
            idx = 1
            while idx < len(args) and args[idx] != "moves":
                idx += 1
            try:
                game = Game.from_fen(" ".join(args[1:idx]), search=self.search)
            except ValueError as e:
                logger.warning("ignoring position: %s", e)
                return
        else:
            logger.warning("ignoring position: unknown keyword %r", args[0])
            return

        if idx < len(args) and args[idx] == "moves":
            try:
                game.apply_moves(" ".join(args[idx + 1:]))
            except ValueError as e:
                logger.warning("ignoring position: %s", e)
                return
        game.color = game.board.turn
        self.game = game

    def cmd_setoption(self, args: List[str]) -> None:
        # setoption name <name> [value <value>]
        if "name" not in args:
            return
        i = args.index("name") + 1
        j = args.index("value") if "value" in args else len(args)
        name = " ".join(args[i:j]).strip().lower()
        value = " ".join(args[j + 1:]).strip()
        if name == "seed":
            seed = int(value) if value.lstrip("-").isdigit() else None
            self._reconfigure(replace(self.config, seed=seed))
            return
        if name not in _SPIN_OPTIONS:
            logger.warning("unknown option %r", name)
            return
        _, lo, hi = _SPIN_OPTIONS[name]
        try:
            number = int(value)
        except ValueError:
            logger.warning("option %s expects an integer, got %r", name, value)
            return
        self._reconfigure(replace(self.config, **{name: max(lo, min(hi, number))}))

    def cmd_go(self, args: List[str], write: Writer) -> None:
        cfg = self.config
        if "depth" in args:
            i = args.index("depth")
            if i + 1 < len(args) and args[i + 1].isdigit():
                hi = _SPIN_OPTIONS["depth"][2]
                cfg = replace(cfg, depth=min(hi, int(args[i + 1])))
        self.game.color = self.game.board.turn
        res = self.game.engine_move(cfg)
        if res is None:
            write("bestmove 0000")
            return
        self._emit_info(res, cfg.depth, write)
        write(f"bestmove {move_to_uci(res.move)}")

    # ---- Utilities ----
    def _reconfigure(self, config: SearchConfig) -> None:
        self.config = config
        self.search.config = config

    def _emit_info(self, res: SearchResult, depth: int, write: Writer) -> None:
        if res.score is None:
            write(f"info depth 0 nodes 0 time {res.time_ms} pv {move_to_uci(res.move)}")
            return
        if abs(res.score) > MATE_SCORE // 10:
            moves = MATE_SCORE - abs(res.score) + 1
            score = f"mate {moves if res.score > 0 else -moves}"
        else:
            score = f"cp {res.score // 10}"
        write(
            f"info depth {depth} nodes {res.nodes} time {res.time_ms} "
            f"score {score} pv {move_to_uci(res.move)}"
        )


def _default_writer(line: str) -> None:
    sys.stdout.write(line + "\n")
    sys.stdout.flush()


def run_uci(lines: Optional[Iterable[str]] = None, write: Writer = _default_writer) -> None:
    eng = UCIEngine()
    if lines is None:
        lines = sys.stdin
    for raw in lines:
        line = raw.strip()
        if not line:
            continue
        parts = line.split()
        cmd, args = parts[0], parts[1:]

        if cmd == "uci":
            eng.cmd_uci(write)
        elif cmd == "isready":
            eng.cmd_isready(write)
        elif cmd == "setoption":
            eng.cmd_setoption(args)
        elif cmd == "ucinewgame":
            eng.cmd_ucinewgame()
        elif cmd == "position":
            eng.cmd_position(args)
        elif cmd == "go":
            eng.cmd_go(args, write)
        elif cmd == "quit":
            break
        # Ignore unknown commands per UCI convention
