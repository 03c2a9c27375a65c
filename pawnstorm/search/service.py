from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass, field
from typing import Final, List, Optional

from pawnstorm.engine.board import DRAW, Board
from pawnstorm.engine.move import encode_move, move_to_uci
from pawnstorm.engine.tables import PAWN, PROMOTION_RANK, QUEEN
from pawnstorm.eval import evaluate


logger = logging.getLogger(__name__)

MATE_SCORE: Final = 10_000_000
# Cutoff sentinel, beyond any reachable score
INF: Final = 1 << 62


@dataclass(frozen=True)
class SearchConfig:
    """Search knobs.

    Attributes:
        depth (int): Opponent replies searched after the root move before the
            static evaluation is applied (one unit = a reply and, beyond the
            first, the engine's answer to it).
        lines (int): Size of the candidate shortlist.
        threshold (int): Candidates trailing the best score by more than this
            are never selected.
        seed (Optional[int]): Seed for the tie-break generator.
    """

    depth: int = 1
    lines: int = 10
    threshold: int = 50
    seed: Optional[int] = None

    def __post_init__(self) -> None:
        if self.depth < 0:
            raise ValueError("depth must be >= 0")
        if self.lines < 1:
            raise ValueError("lines must be >= 1")
        if self.threshold < 0:
            raise ValueError("threshold must be >= 0")


@dataclass
class Candidate:
    move: int
    score: int


@dataclass
class SearchResult:
    move: int
    score: Optional[int]  # None when the move was played without searching
    candidates: List[Candidate] = field(default_factory=list)
    nodes: int = 0
    time_ms: int = 0
    searched: bool = True


def finished_score(result: int, color: int, depth: int) -> int:
    """Score a finished game from ``color``'s perspective.

    Wins found closer to the root score higher; losses found closer to the
    root score lower.
    """
    if result == DRAW:
        return 0
    if result == color:
        return MATE_SCORE - depth
    return -(MATE_SCORE - depth + 1)


def format_score(score: int) -> str:
    """Render a score in pawns, or as ``#N`` / ``#-N`` for mates."""
    if abs(score) > MATE_SCORE // 10:
        sign = "-" if score < 0 else ""
        return f"#{sign}{MATE_SCORE - abs(score) + 1}"
    return f"{score / 1000:g}"


class SearchService:
    """Fixed-depth single-bound minimax with randomized near-optimal selection.

    The service keeps no position state between calls; the board passed in is
    mutated during the search and restored before returning.
    """

    def __init__(self, config: Optional[SearchConfig] = None, rng: Optional[random.Random] = None) -> None:
        self.config = config or SearchConfig()
        self._rng = rng if rng is not None else random.Random(self.config.seed)
        self.nodes = 0

    def select_move(self, board: Board, color: int, config: Optional[SearchConfig] = None) -> Optional[SearchResult]:
        """Choose a move for ``color``.

        Args:
            board (Board): Position to search; restored before returning.
            color (int): Side the engine plays.
            config (Optional[SearchConfig]): Per-call override of the service
                configuration.

        Returns:
            Optional[SearchResult]: ``None`` when the game is over, it is not
            ``color``'s turn, or no legal move exists.
        """
        cfg = config or self.config
        if board.result is not None or board.turn != color:
            return None
        legal = board.legal_moves()
        if not legal:
            return None
        if len(legal) == 1:
            logger.info("only move %s", move_to_uci(legal[0]))
            return SearchResult(move=legal[0], score=None, searched=False)

        rng = self._rng if config is None or config.seed is None else random.Random(config.seed)
        start = time.perf_counter()
        self.nodes = 0

        ordered: List[Candidate] = []
        for move in legal:
            board.perform_move(move, check_result=True)
            ordered.append(Candidate(move, self._leaf(board, color, 0)))
            board.revert_last_move()
        ordered.sort(key=lambda c: c.score, reverse=True)

        shortlist: List[Candidate] = []
        for cand in ordered:
            bound = shortlist[0].score - cfg.threshold if shortlist else -INF
            board.perform_move(cand.move, check_result=True)
            score = self.minimax(board, color, 0, False, bound, cfg.depth)
            board.revert_last_move()
            if score <= -INF:
                continue
            idx = next((i for i, c in enumerate(shortlist) if score > c.score), len(shortlist))
            if idx < cfg.lines:
                shortlist.insert(idx, Candidate(cand.move, score))
                del shortlist[cfg.lines:]

        best = shortlist[0].score
        while len(shortlist) > 1 and best - shortlist[-1].score > cfg.threshold:
            shortlist.pop()

        chosen = rng.choice(shortlist)
        time_ms = int((time.perf_counter() - start) * 1000)
        logger.info(
            "candidates: %s",
            ", ".join(f"{move_to_uci(c.move)} ({format_score(c.score)})" for c in shortlist),
        )
        logger.info(
            "picked move %s (%s) nodes=%d time_ms=%d",
            move_to_uci(chosen.move),
            format_score(chosen.score),
            self.nodes,
            time_ms,
        )
        return SearchResult(
            move=chosen.move,
            score=chosen.score,
            candidates=list(shortlist),
            nodes=self.nodes,
            time_ms=time_ms,
        )

    def minimax(self, board: Board, color: int, depth: int, is_same: bool, bound: int, max_depth: int) -> int:
        """Search the side to move's replies from ``color``'s perspective.

        Args:
            board (Board): Position after the move being scored.
            color (int): Side the engine plays; scores are from its view.
            depth (int): Completed opponent replies so far.
            is_same (bool): True when ``color`` is to move (maximizing node).
            bound (int): Best score of the parent node. Once a child reaches it
                (``>=`` when maximizing, ``<=`` when minimizing) this node
                cannot influence the parent and returns the ``±INF`` sentinel.
            max_depth (int): Depth at which the static evaluation is applied.

        Returns:
            int: Node score, or ``INF``/``-INF`` on a cutoff.
        """
        self.nodes += 1
        if board.result is not None:
            return finished_score(board.result, color, depth)
        # Mate takes precedence over a rule draw reached on the same move
        if board.is_draw_by_rule() and not (board.is_check and board.has_no_moves()):
            return 0
        if depth >= max_depth:
            return self._leaf(board, color, depth)

        mover = board.turn
        last_rank = PROMOTION_RANK[mover]
        best = -INF if is_same else INF
        had_moves = False
        for piece in board.pieces_of(mover):
            from_sq = piece.square
            for to_sq in board.generate_legal_moves(piece):
                had_moves = True
                promo = QUEEN if piece.type == PAWN and to_sq >> 3 == last_rank else 0
                board.perform_move(encode_move(from_sq, to_sq, promo))
                if board.is_in_check(mover):
                    board.revert_last_move()
                    continue
                score = self.minimax(board, color, depth if is_same else depth + 1, not is_same, best, max_depth)
                board.revert_last_move()
                if is_same:
                    if score >= bound:
                        return INF
                    best = max(best, score)
                else:
                    if score <= bound:
                        return -INF
                    best = min(best, score)

        if not had_moves:
            return finished_score(mover ^ 1 if board.is_check else DRAW, color, depth)
        return best

    def _leaf(self, board: Board, color: int, depth: int) -> int:
        # Nodes are counted by minimax only
        if board.has_no_moves():
            return finished_score(board.turn ^ 1 if board.is_check else DRAW, color, depth)
        if board.result is not None:
            return finished_score(board.result, color, depth)
        return evaluate(board, color)
