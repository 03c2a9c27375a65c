"""Packed integer move encoding.

Layout (stable interchange contract)::

    bits 9..14  origin square
    bits 3..8   destination square
    bits 0..2   promotion piece type (0 = none)

Piece type codes follow :mod:`pawnstorm.engine.tables` (``QUEEN = 1`` ..
``KNIGHT = 4``), so a plain move never collides with a promotion.
"""

from __future__ import annotations

from .tables import BISHOP, KNIGHT, QUEEN, ROOK


PROMOTION_TO_CHAR = {QUEEN: "q", ROOK: "r", BISHOP: "b", KNIGHT: "n"}
CHAR_TO_PROMOTION = {v: k for k, v in PROMOTION_TO_CHAR.items()}


def encode_move(from_sq: int, to_sq: int, promotion: int = 0) -> int:
    return from_sq << 9 | to_sq << 3 | promotion


def move_from(move: int) -> int:
    return move >> 9


def move_to(move: int) -> int:
    return move >> 3 & 63


def move_promotion(move: int) -> int:
    return move & 7


def move_to_uci(move: int) -> str:
    """Serialize a packed move into long algebraic UCI form.

    Args:
        move (int): Packed move.

    Returns:
        str: Move encoded like ``"e2e4"`` or ``"e7e8q"``.
    """
    promo = move_promotion(move)
    return (
        square_to_str(move_from(move))
        + square_to_str(move_to(move))
        + (PROMOTION_TO_CHAR[promo] if promo else "")
    )


def parse_uci(uci: str) -> int:
    """Parse a UCI move string into the packed form.

    Args:
        uci (str): Move encoded in long algebraic notation (e.g. ``"e2e4"``).

    Returns:
        int: Packed move.

    Raises:
        ValueError: If the string has an invalid length, squares, or promotion
            piece.
    """
    if not isinstance(uci, str) or len(uci) not in (4, 5):
        raise ValueError(f"invalid UCI move length: {uci!r}")
    from_sq = str_to_square(uci[0:2])
    to_sq = str_to_square(uci[2:4])
    promo = 0
    if len(uci) == 5:
        ch = uci[4].lower()
        if ch not in CHAR_TO_PROMOTION:
            raise ValueError(f"invalid promotion piece: {ch!r}")
        promo = CHAR_TO_PROMOTION[ch]
    return encode_move(from_sq, to_sq, promo)


def str_to_square(s: str) -> int:
    """Convert algebraic notation into a 0-based square index.

    Raises:
        ValueError: If ``s`` is not a valid square.
    """
    if len(s) != 2 or s[0] < "a" or s[0] > "h" or s[1] < "1" or s[1] > "8":
        raise ValueError(f"invalid square: {s!r}")
    return (int(s[1]) - 1) << 3 | (ord(s[0]) - ord("a"))


def square_to_str(idx: int) -> str:
    if idx < 0 or idx > 63:
        raise ValueError(f"invalid square index: {idx}")
    return chr(ord("a") + (idx & 7)) + str((idx >> 3) + 1)
