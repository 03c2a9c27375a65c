from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from pawnstorm.search.service import SearchConfig, SearchResult, SearchService

from .board import Board
from .move import move_to_uci, parse_uci
from .tables import BLACK, WHITE


logger = logging.getLogger(__name__)


def parse_color(value: str) -> int:
    """Map ``'w'``/``'white'``/``'b'``/``'black'`` to a color constant.

    Raises:
        ValueError: For any other value.
    """
    v = value.strip().lower()
    if v in ("w", "white"):
        return WHITE
    if v in ("b", "black"):
        return BLACK
    raise ValueError(f"invalid color: {value!r}")


@dataclass
class Game:
    """Engine-facing game wrapper around a board.

    Responsibility: track the played moves, apply moves coming from an
    external client, and ask the search for the engine's own move.
    """

    board: Board
    color: int = WHITE
    search: Optional[SearchService] = None
    move_history: List[int] = field(default_factory=list)

    @classmethod
    def new(cls, color: int = WHITE, search: Optional[SearchService] = None) -> "Game":
        return cls(board=Board.startpos(), color=color, search=search)

    @classmethod
    def from_fen(cls, fen: str, color: int = WHITE, search: Optional[SearchService] = None) -> "Game":
        return cls(board=Board.from_fen(fen), color=color, search=search)

    def to_fen(self) -> str:
        return self.board.to_fen()

    @property
    def move_count(self) -> int:
        return len(self.move_history)

    def legal_moves(self) -> List[int]:
        return self.board.legal_moves()

    def apply_move(self, uci: str) -> int:
        """Apply one externally supplied move with result tracking.

        Args:
            uci (str): Move in UCI notation.

        Returns:
            int: The packed move that was applied.

        Raises:
            ValueError: If the notation is malformed, the game is already
                decided, or the move is illegal.
        """
        move = parse_uci(uci)
        if self.board.result is not None:
            raise ValueError("game is over")
        if move not in self.board.legal_moves():
            raise ValueError("illegal move")
        self.board.perform_move(move, check_result=True)
        self.move_history.append(move)
        return move

    def apply_moves(self, moves: str) -> List[int]:
        """Apply a space-separated move list as streamed by a game server.

        The list is the full game so far; only the moves beyond those already
        played are applied. Either every new move is applied or none is.

        Returns:
            List[int]: The packed moves applied by this call.

        Raises:
            ValueError: If the list does not extend the game, or any new move
                is malformed or illegal. The game is left unchanged.
        """
        tokens = moves.split()
        if len(tokens) < self.move_count:
            raise ValueError("move list is shorter than the game")
        for i, played in enumerate(self.move_history):
            if parse_uci(tokens[i]) != played:
                raise ValueError(f"move list diverges at ply {i + 1}")

        applied: List[int] = []
        try:
            for tok in tokens[self.move_count:]:
                applied.append(self.apply_move(tok))
        except ValueError:
            for _ in applied:
                self.undo_move()
            raise
        return applied

    def undo_move(self) -> int:
        if not self.move_history:
            raise ValueError("no moves to undo")
        self.board.revert_last_move()
        return self.move_history.pop()

    def engine_move(self, config: Optional[SearchConfig] = None) -> Optional[SearchResult]:
        """Run move selection for the engine's color without applying it.

        Returns:
            Optional[SearchResult]: ``None`` if the game is over, it is the
            opponent's turn, or there is no legal move.
        """
        if self.search is None:
            self.search = SearchService()
        return self.search.select_move(self.board, self.color, config)

    def play_engine_move(self, config: Optional[SearchConfig] = None) -> Optional[SearchResult]:
        res = self.engine_move(config)
        if res is not None:
            self.board.perform_move(res.move, check_result=True)
            self.move_history.append(res.move)
            logger.info("engine played %s", move_to_uci(res.move))
        return res

    # --- State flags for protocol ---
    @property
    def result(self) -> Optional[int]:
        return self.board.result

    def in_check(self) -> bool:
        return self.board.is_check

    def checkmate(self) -> bool:
        return self.board.is_checkmate()

    def stalemate(self) -> bool:
        return self.board.is_stalemate()

    def is_draw(self) -> bool:
        return self.board.is_draw()

    def move_history_uci(self) -> List[str]:
        return [move_to_uci(m) for m in self.move_history]
