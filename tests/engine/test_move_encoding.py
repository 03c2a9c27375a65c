from __future__ import annotations

import pytest

from pawnstorm.engine.move import (
    encode_move,
    move_from,
    move_promotion,
    move_to,
    move_to_uci,
    parse_uci,
    square_to_str,
    str_to_square,
)
from pawnstorm.engine.tables import KNIGHT, QUEEN


def test_bit_layout() -> None:
    m = encode_move(12, 28)
    assert m == (12 << 9) | (28 << 3)
    assert (move_from(m), move_to(m), move_promotion(m)) == (12, 28, 0)


def test_parse_plain_and_promotion() -> None:
    assert parse_uci("e2e4") == encode_move(str_to_square("e2"), str_to_square("e4"))
    promo = parse_uci("e7e8q")
    assert move_promotion(promo) == QUEEN
    assert move_promotion(parse_uci("a2a1N")) == KNIGHT


def test_uci_text_survives_parsing() -> None:
    for text in ("g1f3", "b7a8n"):
        assert move_to_uci(parse_uci(text)) == text


@pytest.mark.parametrize("text", ["", "e2", "e2e9", "i2e4", "e7e8k", "e2e4qq"])
def test_parse_rejects_malformed(text: str) -> None:
    with pytest.raises(ValueError):
        parse_uci(text)


def test_square_helpers() -> None:
    assert str_to_square("a1") == 0
    assert str_to_square("h8") == 63
    assert square_to_str(27) == "d4"
    with pytest.raises(ValueError):
        square_to_str(64)
