"""Precomputed square-indexed move geometry.

Every table here is built once at import time and exposed as nested tuples.
Squares are 0..63 with ``sq >> 3`` the rank and ``sq & 7`` the file.
"""

from __future__ import annotations

from typing import Dict, List, NamedTuple, Optional, Tuple


WHITE, BLACK = 0, 1
COLORS = (WHITE, BLACK)

KING, QUEEN, ROOK, BISHOP, KNIGHT, PAWN = range(6)
PIECE_TYPES = (KING, QUEEN, ROOK, BISHOP, KNIGHT, PAWN)

# Worth in pawn units, indexed by piece type
PIECE_WORTH = (100, 9, 5, 3, 3, 1)

# Promotion targets in the order they are emitted by move generation
PROMOTION_TYPES = (QUEEN, ROOK, BISHOP, KNIGHT)

KING_SIDE, QUEEN_SIDE = 0, 1

WHITE_KING_SIDE = 1
WHITE_QUEEN_SIDE = 2
BLACK_KING_SIDE = 4
BLACK_QUEEN_SIDE = 8
ALL_CASTLING = WHITE_KING_SIDE | WHITE_QUEEN_SIDE | BLACK_KING_SIDE | BLACK_QUEEN_SIDE

FILE_A, FILE_B, FILE_C, FILE_D, FILE_E, FILE_F, FILE_G, FILE_H = range(8)

Ray = Tuple[int, ...]


class CastlingParams(NamedTuple):
    right: int
    king_from: int
    king_to: int
    rook_from: int
    rook_to: int
    empty: Tuple[int, ...]
    safe: Tuple[int, ...]


def opposite(color: int) -> int:
    return color ^ 1


def square(file: int, rank: int) -> int:
    return rank << 3 | file


def relative_rank(color: int, rank: int) -> int:
    """Return ``rank`` (0-based) as seen from ``color``'s side of the board."""
    return rank if color == WHITE else 7 - rank


def _on_board(file: int, rank: int) -> bool:
    return 0 <= file < 8 and 0 <= rank < 8


def _ray(sq: int, df: int, dr: int, single: bool = False) -> Ray:
    out: List[int] = []
    file, rank = sq & 7, sq >> 3
    while True:
        file += df
        rank += dr
        if not _on_board(file, rank):
            break
        out.append(square(file, rank))
        if single:
            break
    return tuple(out)


_ROOK_DIRECTIONS = ((0, 1), (1, 0), (0, -1), (-1, 0))
_BISHOP_DIRECTIONS = ((1, 1), (1, -1), (-1, -1), (-1, 1))
_KNIGHT_STEPS = ((1, 2), (2, 1), (2, -1), (1, -2), (-1, -2), (-2, -1), (-2, 1), (-1, 2))
_KING_STEPS = _ROOK_DIRECTIONS + _BISHOP_DIRECTIONS


def _slider_table(directions: Tuple[Tuple[int, int], ...]) -> Tuple[Tuple[Ray, ...], ...]:
    table = []
    for sq in range(64):
        rays = (_ray(sq, df, dr) for df, dr in directions)
        table.append(tuple(r for r in rays if r))
    return tuple(table)


def _leaper_table(steps: Tuple[Tuple[int, int], ...]) -> Tuple[Tuple[int, ...], ...]:
    table = []
    for sq in range(64):
        dests: List[int] = []
        for df, dr in steps:
            dests.extend(_ray(sq, df, dr, single=True))
        table.append(tuple(dests))
    return tuple(table)


ROOK_RAYS = _slider_table(_ROOK_DIRECTIONS)
BISHOP_RAYS = _slider_table(_BISHOP_DIRECTIONS)
QUEEN_RAYS = tuple(ROOK_RAYS[sq] + BISHOP_RAYS[sq] for sq in range(64))

# Indexed by piece type; only sliders have entries
SLIDER_RAYS: Dict[int, Tuple[Tuple[Ray, ...], ...]] = {
    QUEEN: QUEEN_RAYS,
    ROOK: ROOK_RAYS,
    BISHOP: BISHOP_RAYS,
}

KNIGHT_MOVES = _leaper_table(_KNIGHT_STEPS)
KING_MOVES = _leaper_table(_KING_STEPS)

_FORWARD = (1, -1)
_PAWN_START_RANK = (1, 6)
PROMOTION_RANK = (7, 0)


def _pawn_advances(color: int) -> Tuple[Tuple[int, ...], ...]:
    table = []
    up = _FORWARD[color]
    for sq in range(64):
        rank = sq >> 3
        if rank in (0, 7):
            table.append(())
            continue
        single = sq + 8 * up
        if rank == _PAWN_START_RANK[color]:
            table.append((single, single + 8 * up))
        else:
            table.append((single,))
    return tuple(table)


def _pawn_double_advance(color: int) -> Tuple[Optional[int], ...]:
    up = _FORWARD[color]
    return tuple(
        sq + 16 * up if sq >> 3 == _PAWN_START_RANK[color] else None for sq in range(64)
    )


def _pawn_captures(color: int) -> Tuple[Tuple[int, ...], ...]:
    # Back ranks keep their diagonals: attack detection reads this table in reverse.
    table = []
    up = _FORWARD[color]
    for sq in range(64):
        dests: List[int] = []
        for df in (-1, 1):
            dests.extend(_ray(sq, df, up, single=True))
        table.append(tuple(dests))
    return tuple(table)


PAWN_ADVANCES = (_pawn_advances(WHITE), _pawn_advances(BLACK))
PAWN_DOUBLE_ADVANCE = (_pawn_double_advance(WHITE), _pawn_double_advance(BLACK))
PAWN_CAPTURES = (_pawn_captures(WHITE), _pawn_captures(BLACK))


def _castling_params(color: int, side: int) -> CastlingParams:
    rank = 0 if color == WHITE else 7
    king_from = square(FILE_E, rank)
    if side == KING_SIDE:
        right = WHITE_KING_SIDE if color == WHITE else BLACK_KING_SIDE
        return CastlingParams(
            right=right,
            king_from=king_from,
            king_to=square(FILE_G, rank),
            rook_from=square(FILE_H, rank),
            rook_to=square(FILE_F, rank),
            empty=(square(FILE_F, rank), square(FILE_G, rank)),
            safe=(square(FILE_F, rank), square(FILE_G, rank)),
        )
    right = WHITE_QUEEN_SIDE if color == WHITE else BLACK_QUEEN_SIDE
    return CastlingParams(
        right=right,
        king_from=king_from,
        king_to=square(FILE_C, rank),
        rook_from=square(FILE_A, rank),
        rook_to=square(FILE_D, rank),
        empty=(square(FILE_B, rank), square(FILE_C, rank), square(FILE_D, rank)),
        safe=(square(FILE_D, rank), square(FILE_C, rank)),
    )


CASTLING = tuple(
    (_castling_params(color, KING_SIDE), _castling_params(color, QUEEN_SIDE)) for color in COLORS
)
CASTLING_BY_KING_TO: Dict[int, CastlingParams] = {
    p.king_to: p for pair in CASTLING for p in pair
}
KING_INITIAL_SQUARE = (square(FILE_E, 0), square(FILE_E, 7))


def _castling_mask() -> Tuple[int, ...]:
    mask = [ALL_CASTLING] * 64
    for color in COLORS:
        for params in CASTLING[color]:
            mask[params.rook_from] &= ~params.right
            mask[params.king_from] &= ~params.right
    return tuple(mask)


# Rights kept after any move whose origin or destination is the given square
CASTLING_MASK = _castling_mask()

# 0 for dark squares, 1 for light squares
SQUARE_COLOR = tuple(((sq >> 3) + (sq & 7)) & 1 for sq in range(64))

DISTANCE = tuple(
    tuple(max(abs((a & 7) - (b & 7)), abs((a >> 3) - (b >> 3))) for b in range(64))
    for a in range(64)
)
