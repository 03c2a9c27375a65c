from __future__ import annotations

from pawnstorm.engine.board import Board
from pawnstorm.engine.move import parse_uci
from pawnstorm.engine.tables import WHITE
from pawnstorm.eval import evaluate
from pawnstorm.search.service import INF, MATE_SCORE, SearchService


def _after(uci: str) -> Board:
    b = Board.startpos()
    b.perform_move(parse_uci(uci))
    return b


def test_leaf_depth_returns_static_eval() -> None:
    b = _after("e2e4")
    assert SearchService().minimax(b, WHITE, 0, False, -INF, 0) == evaluate(b, WHITE)


def test_minimizing_node_cuts_below_the_bound() -> None:
    b = _after("e2e4")
    fen = b.to_fen()
    assert SearchService().minimax(b, WHITE, 0, False, 10**9, 1) == -INF
    assert b.to_fen() == fen
    assert b.ply_count == 1


def test_maximizing_node_cuts_above_the_bound() -> None:
    b = Board.startpos()
    assert SearchService().minimax(b, WHITE, 0, True, -(10**9), 1) == INF


def test_full_window_matches_the_worst_reply() -> None:
    b = _after("e2e4")
    service = SearchService()
    worst = INF
    for m in b.legal_moves():
        b.perform_move(m)
        worst = min(worst, evaluate(b, WHITE))
        b.revert_last_move()
    assert service.minimax(b, WHITE, 0, False, -INF, 1) == worst
    assert service.nodes > 0


def test_drawn_node_scores_zero() -> None:
    b = Board.from_fen("4k3/8/8/8/8/8/8/R3K3 b - - 100 80")
    assert SearchService().minimax(b, WHITE, 0, False, -INF, 1) == 0


def test_mate_on_the_hundredth_halfmove_beats_the_rule_draw() -> None:
    b = Board.from_fen("R5k1/5ppp/8/8/8/8/8/6K1 b - - 100 80")
    assert SearchService().minimax(b, WHITE, 0, False, -INF, 1) == MATE_SCORE
    assert SearchService().minimax(b, WHITE, 1, False, -INF, 1) == MATE_SCORE - 1


def test_each_node_is_counted_once() -> None:
    b = _after("e2e4")
    service = SearchService()
    service.minimax(b, WHITE, 0, False, -INF, 1)
    # The node itself plus one leaf per black reply
    assert service.nodes == 1 + 20

    leaf = SearchService()
    leaf.minimax(b, WHITE, 1, False, -INF, 1)
    assert leaf.nodes == 1
