from __future__ import annotations

import pytest

from pawnstorm.engine.board import Board, EnPassant, STARTPOS_FEN
from pawnstorm.engine.move import str_to_square
from pawnstorm.engine.tables import ALL_CASTLING, BLACK, WHITE


def test_startpos_round_trip() -> None:
    b = Board.from_fen(STARTPOS_FEN)
    assert b.to_fen() == STARTPOS_FEN
    assert b.turn == WHITE
    assert b.castling == ALL_CASTLING
    assert b.piece_counts == [16, 16]
    assert b.material == [139, 139]
    assert b.positions == {b.position: 1}


@pytest.mark.parametrize(
    "fen",
    [
        "r1bqkbnr/pppp1ppp/2n5/4p3/3P4/5N2/PPP1PPPP/RNBQKB1R b KQ - 2 3",
        "rnbqkbnr/ppp1pppp/8/8/3pP3/8/PPPP1PPP/RNBQKBNR b KQkq e3 0 3",
        "r3k2r/p1ppqpb1/bn2pnp1/3PN3/1p2P3/2N2Q1p/PPPBBPPP/R3K2R w KQkq - 0 1",
        "8/8/8/4k3/8/8/8/4K3 b - - 37 80",
    ],
)
def test_round_trip_various_positions(fen: str) -> None:
    b = Board.from_fen(fen)
    assert b.to_fen() == fen


def test_en_passant_field_is_loaded() -> None:
    b = Board.from_fen("rnbqkbnr/ppp1pppp/8/8/3pP3/8/PPPP1PPP/RNBQKBNR b KQkq e3 0 3")
    assert b.turn == BLACK
    assert b.en_passant == EnPassant(str_to_square("e3"), str_to_square("e4"))


def test_check_flag_is_computed_on_load() -> None:
    b = Board.from_fen("4k3/8/8/8/8/8/8/R3K2r w - - 0 1")
    assert b.is_check
    assert not Board.startpos().is_check


@pytest.mark.parametrize(
    "fen",
    [
        "",  # empty
        "4k3/8/8/8/8/8/4K3 w - - 0 1",  # not enough ranks
        "4k3/8/8/8/8/8/8/4K3 w - - 0",  # missing fields
        "4k3/8/8/8/8/8/8/4K3 x - - 0 1",  # bad side to move
        "4k3/8/8/8/8/8/8/4K3 w A - 0 1",  # bad castling
        "4k3/8/8/8/8/8/8/4K3 w - z9 0 1",  # bad ep square
        "4k3/8/8/8/8/8/8/4K3 w - e3 0 1",  # ep square on the wrong rank
        "4k3/8/8/3PP3/8/8/8/4K3 w - e6 0 1",  # ep pawn belongs to the side to move
        "4k3/8/8/8/8/8/8/4K3 w - e6 0 1",  # no pawn behind the ep square
        "4k3/8/4n3/3Pp3/8/8/8/4K3 w - e6 0 1",  # ep square occupied
        "4k3/8/8/8/8/8/8/4K3 w - - -1 1",  # bad halfmove
        "4k3/8/8/8/8/8/8/4K3 w - - 0 0",  # bad fullmove
        "4k4/8/8/8/8/8/8/4K3 w - - 0 1",  # too many squares
        "4k3/8/8/8/8/8/8/4K2 w - - 0 1",  # too few squares
        "4k3/8/8/8/8/8/8/4X3 w - - 0 1",  # unknown piece
        "8/8/8/8/8/8/8/4K3 w - - 0 1",  # missing black king
        "4k3/8/8/8/8/8/8/3KK3 w - - 0 1",  # two white kings
    ],
)
def test_invalid_fens_raise(fen: str) -> None:
    with pytest.raises(ValueError):
        Board.from_fen(fen)
