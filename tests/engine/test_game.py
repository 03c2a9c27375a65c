from __future__ import annotations

import pytest

from pawnstorm.engine.board import DRAW, WHITE_WINS, STARTPOS_FEN
from pawnstorm.engine.game import Game, parse_color
from pawnstorm.engine.move import move_to_uci
from pawnstorm.engine.tables import BLACK, WHITE
from pawnstorm.search.service import SearchConfig


MATE_IN_ONE = "6k1/5ppp/8/8/8/8/8/R5K1 w - - 0 1"


@pytest.mark.parametrize(
    ("value", "expected"),
    [("w", WHITE), ("White", WHITE), ("b", BLACK), (" black ", BLACK)],
)
def test_parse_color(value: str, expected: int) -> None:
    assert parse_color(value) == expected


def test_parse_color_rejects_unknown() -> None:
    with pytest.raises(ValueError):
        parse_color("red")


def test_apply_and_undo() -> None:
    g = Game.new()
    g.apply_move("e2e4")
    g.apply_move("e7e5")
    assert g.move_history_uci() == ["e2e4", "e7e5"]
    assert move_to_uci(g.undo_move()) == "e7e5"
    assert g.move_history_uci() == ["e2e4"]
    g.undo_move()
    assert g.to_fen() == STARTPOS_FEN
    with pytest.raises(ValueError, match="no moves to undo"):
        g.undo_move()


def test_apply_move_rejects_illegal_and_malformed() -> None:
    g = Game.new()
    with pytest.raises(ValueError, match="illegal move"):
        g.apply_move("e2e5")
    with pytest.raises(ValueError):
        g.apply_move("zz")
    assert g.move_count == 0


def test_apply_moves_only_plays_the_new_suffix() -> None:
    g = Game.new()
    assert len(g.apply_moves("e2e4 e7e5")) == 2
    applied = g.apply_moves("e2e4 e7e5 g1f3")
    assert [move_to_uci(m) for m in applied] == ["g1f3"]
    assert g.move_count == 3
    assert g.apply_moves("e2e4 e7e5 g1f3") == []


def test_apply_moves_rejects_divergent_or_short_lists() -> None:
    g = Game.new()
    g.apply_moves("e2e4 e7e5")
    with pytest.raises(ValueError, match="diverges at ply 2"):
        g.apply_moves("e2e4 e7e6 g1f3")
    with pytest.raises(ValueError, match="shorter"):
        g.apply_moves("e2e4")


def test_failed_apply_moves_leaves_the_game_unchanged() -> None:
    g = Game.new()
    g.apply_moves("e2e4")
    fen = g.to_fen()
    positions = dict(g.board.positions)
    for moves in ("e2e4 e7e5 e1e3 b8c6", "e2e4 e7e5 g1f3 zz"):
        with pytest.raises(ValueError):
            g.apply_moves(moves)
        assert g.to_fen() == fen
        assert g.move_history_uci() == ["e2e4"]
        assert g.board.positions == positions
        assert g.board.ply_count == 1


def test_finished_game_refuses_moves() -> None:
    g = Game.new()
    g.apply_moves("g1f3 g8f6 f3g1 f6g8 g1f3 g8f6 f3g1 f6g8")
    assert g.result == DRAW
    assert g.is_draw()
    with pytest.raises(ValueError, match="game is over"):
        g.apply_move("e2e4")


def test_engine_move_does_not_touch_the_board() -> None:
    g = Game.from_fen(MATE_IN_ONE, WHITE)
    res = g.engine_move(SearchConfig(seed=7))
    assert res is not None
    assert move_to_uci(res.move) == "a1a8"
    assert g.to_fen() == MATE_IN_ONE
    assert g.move_count == 0


def test_play_engine_move_records_the_result() -> None:
    g = Game.from_fen(MATE_IN_ONE, WHITE)
    res = g.play_engine_move(SearchConfig(seed=7))
    assert res is not None
    assert g.move_history_uci() == ["a1a8"]
    assert g.result == WHITE_WINS
    assert g.checkmate()
    assert g.play_engine_move() is None


def test_engine_waits_for_its_turn() -> None:
    g = Game.new(BLACK)
    assert g.engine_move() is None
