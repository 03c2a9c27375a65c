from __future__ import annotations

from typing import Any, Tuple

import pytest

from pawnstorm.engine.board import WHITE_WINS, Board, STARTPOS_FEN
from pawnstorm.engine.move import move_to_uci, parse_uci


KIWIPETE = "r3k2r/p1ppqpb1/bn2pnp1/3PN3/1p2P3/2N2Q1p/PPPBBPPP/R3K2R w KQkq - 0 1"
# Promotions with and without capture, en passant and both castlings available
SPECIALS = "r3k2r/1P6/8/2pP4/8/8/8/R3K2R w KQkq c6 0 2"


def snapshot(b: Board) -> Tuple[Any, ...]:
    return (
        b.to_fen(),
        dict(b.positions),
        b.position,
        b.result,
        b.is_check,
        tuple(b.piece_counts),
        tuple(b.material),
        sorted((p.id, p.type, p.color, p.square) for c in (0, 1) for p in b.pieces[c].values()),
        [p.id if p is not None else None for p in b.squares],
        tuple(k.id for k in b.kings),
        b.ply_count,
    )


@pytest.mark.parametrize("fen", [STARTPOS_FEN, KIWIPETE, SPECIALS])
def test_every_legal_move_reverts_cleanly(fen: str) -> None:
    b = Board.from_fen(fen)
    before = snapshot(b)
    for m in b.legal_moves():
        b.perform_move(m, check_result=True)
        b.revert_last_move()
        assert snapshot(b) == before, move_to_uci(m)


def test_deep_walk_reverts_to_the_root() -> None:
    b = Board.from_fen(KIWIPETE)
    stack = [snapshot(b)]
    for ply in range(12):
        moves = b.legal_moves()
        if not moves:
            break
        b.perform_move(moves[(ply * 7) % len(moves)], check_result=True)
        stack.append(snapshot(b))
    while b.ply_count:
        stack.pop()
        b.revert_last_move()
        assert snapshot(b) == stack[-1]


def test_special_moves_are_all_generated() -> None:
    b = Board.from_fen(SPECIALS)
    ucis = {move_to_uci(m) for m in b.legal_moves()}
    assert {"b7b8q", "b7b8n", "b7a8q", "b7a8r", "d5c6", "e1g1", "e1c1"} <= ucis


def test_revert_clears_a_detected_result() -> None:
    b = Board.from_fen("6k1/5ppp/8/8/8/8/8/R5K1 w - - 0 1")
    b.perform_move(parse_uci("a1a8"), check_result=True)
    assert b.result == WHITE_WINS
    b.revert_last_move()
    assert b.result is None
    assert b.to_fen() == "6k1/5ppp/8/8/8/8/8/R5K1 w - - 0 1"


def test_revert_on_empty_history_is_noop() -> None:
    b = Board.startpos()
    before = snapshot(b)
    b.revert_last_move()
    assert snapshot(b) == before
    assert b.last_move() is None


def test_perform_from_empty_square_raises() -> None:
    b = Board.startpos()
    with pytest.raises(ValueError):
        b.perform_move(parse_uci("e4e5"))
