from __future__ import annotations

from typing import Dict

from .board import Board
from .move import move_to_uci


def perft(board: Board, depth: int) -> int:
    """Count legal move paths of length `depth` from `board`.

    Definition:
    - depth == 0 returns 1 (the current node).
    - depth > 0 returns the sum over all legal child positions' perft(depth-1).

    The board is walked with make/unmake and is left unchanged.

    Raises:
        ValueError: If ``depth`` is negative.
    """
    if depth < 0:
        raise ValueError("depth must be >= 0")
    if depth == 0:
        return 1

    moves = board.legal_moves()
    if depth == 1:
        return len(moves)
    nodes = 0
    for m in moves:
        board.perform_move(m)
        nodes += perft(board, depth - 1)
        board.revert_last_move()
    return nodes


def divide(board: Board, depth: int) -> Dict[str, int]:
    """Return perft(depth - 1) for each root move, keyed by UCI string."""
    if depth < 1:
        raise ValueError("depth must be >= 1")
    out: Dict[str, int] = {}
    for m in board.legal_moves():
        board.perform_move(m)
        out[move_to_uci(m)] = perft(board, depth - 1)
        board.revert_last_move()
    return out
