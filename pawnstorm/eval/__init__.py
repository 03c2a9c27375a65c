"""Evaluation heuristics and related utilities.

Pure, deterministic, and side-effect free. Scores are integers where one pawn
of material is worth 1000; each term scores one color and `evaluate` returns
the difference between the two sides.
"""

from __future__ import annotations

from typing import Dict, Final, List, NamedTuple, Tuple

from pawnstorm.engine.board import ATTACKED, Board, Piece
from pawnstorm.engine.tables import (
    BISHOP,
    COLORS,
    DISTANCE,
    FILE_C,
    FILE_D,
    FILE_E,
    FILE_F,
    FILE_G,
    KING,
    KNIGHT,
    PAWN,
    PIECE_WORTH,
    QUEEN,
    ROOK,
    WHITE,
    relative_rank,
)


MATERIAL_SCALE: Final = 1000
BISHOP_PAIR_BONUS: Final = 500
ENDGAME_MATERIAL_LIMIT: Final = 35  # rook + bishop + knight worth, both sides

# Board control, per attacked square
CONTROL_BASE: Final = 10
CONTROL_CENTER: Final = 50  # d/e files, relative ranks 4-6
CONTROL_SEMI_CENTER: Final = 25  # c/f files, relative ranks 4-6
CONTROL_DEEP: Final = 20  # relative ranks 7-8
CONTROL_NEAR_KING: Final = 150  # distance <= 1 from the opponent king
CONTROL_CLOSE_TO_KING: Final = 50  # distance 2

UNDEVELOPED_MINOR: Final = -300
UNMOVED_CENTER_PAWN: Final = -300
BLOCKED_CENTER_PAWN: Final = -1000
DOUBLED_PAWNS: Final = -300

HANGING_WEIGHT_OWN_TURN: Final = 100
HANGING_WEIGHT_THEIR_TURN: Final = 1000

PASSED_PAWN: Final = 500
PAWN_ISLAND: Final = -200
ROOK_NO_OWN_PAWN: Final = 100


class Attacks(NamedTuple):
    """Attack snapshot shared by every term of one evaluation.

    Attributes:
        by_piece: piece id -> squares the piece attacks.
        on_square: per color, occupied square -> types of that color's
            pieces attacking it.
    """

    by_piece: Dict[int, List[int]]
    on_square: Tuple[Dict[int, List[int]], Dict[int, List[int]]]


def calculate_attacks(board: Board) -> Attacks:
    by_piece: Dict[int, List[int]] = {}
    on_square: Tuple[Dict[int, List[int]], Dict[int, List[int]]] = ({}, {})
    squares = board.squares
    for color in COLORS:
        targets = on_square[color]
        for piece in board.pieces_of(color):
            attacked = board.generate_pseudo_moves(piece, ATTACKED)
            by_piece[piece.id] = attacked
            for sq in attacked:
                if squares[sq] is not None:
                    targets.setdefault(sq, []).append(piece.type)
    return Attacks(by_piece, on_square)


def is_endgame(board: Board) -> bool:
    """True when no queens remain and little rook/minor material is left."""
    total = 0
    for color in COLORS:
        for piece in board.pieces[color].values():
            if piece.type == QUEEN:
                return False
            if piece.type in (ROOK, BISHOP, KNIGHT):
                total += PIECE_WORTH[piece.type]
    return total < ENDGAME_MATERIAL_LIMIT


def pawn_files(pawns: List[Piece]) -> Dict[int, int]:
    files: Dict[int, int] = {}
    for pawn in pawns:
        file = pawn.square & 7
        files[file] = files.get(file, 0) + 1
    return files


def _forward(color: int) -> int:
    return 1 if color == WHITE else -1


def material(board: Board, color: int) -> int:
    return board.material[color] * MATERIAL_SCALE


def bishop_pair(pieces: List[Piece]) -> int:
    bishops = sum(1 for p in pieces if p.type == BISHOP)
    return BISHOP_PAIR_BONUS if bishops >= 2 else 0


def control(board: Board, color: int, attacks: Attacks, endgame: bool) -> int:
    """Reward attacked squares by advancement, centrality and king proximity.

    The king only contributes in the endgame. Squares in the own half, and
    every square in the endgame, get the base bonus.
    """
    distances = DISTANCE[board.kings[color ^ 1].square]
    score = 0
    for piece in board.pieces_of(color):
        if piece.type == KING and not endgame:
            continue
        for sq in attacks.by_piece[piece.id]:
            rank = relative_rank(color, sq >> 3)
            file = sq & 7
            if endgame or rank < 3:
                score += CONTROL_BASE
            elif rank <= 5:
                if file == FILE_D or file == FILE_E:
                    score += CONTROL_CENTER
                elif file == FILE_C or file == FILE_F:
                    score += CONTROL_SEMI_CENTER
                else:
                    score += CONTROL_BASE
            else:
                score += CONTROL_DEEP
            distance = distances[sq]
            if distance <= 1:
                score += CONTROL_NEAR_KING
            elif distance == 2:
                score += CONTROL_CLOSE_TO_KING
    return score


def development(board: Board, color: int) -> int:
    score = 0
    for piece in board.pieces_of(color):
        rank = relative_rank(color, piece.square >> 3)
        if piece.type in (KNIGHT, BISHOP) and rank == 0:
            score += UNDEVELOPED_MINOR
        elif piece.type == PAWN and (piece.square & 7) in (FILE_D, FILE_E) and rank == 1:
            ahead = piece.square + 8 * _forward(color)
            score += BLOCKED_CENTER_PAWN if board.squares[ahead] is not None else UNMOVED_CENTER_PAWN
    return score


def doubled_pawns(files: Dict[int, int]) -> int:
    return DOUBLED_PAWNS * sum(1 for count in files.values() if count > 1)


def exchange_balance(target: int, attackers: List[int], defenders: List[int]) -> int:
    """Approximate the material outcome of a capture sequence on one square.

    Attackers and defenders are piece types; each side always recaptures with
    its cheapest remaining piece. Returns the net swing (pawn units) for the
    owner of ``target`` at the better stopping point, negative for a loss.

    The attacker and defender sets are fixed up front; pieces uncovered by
    earlier captures are not added.
    """
    # Cheapest piece last so pop() takes it
    queue = (
        sorted(attackers, key=PIECE_WORTH.__getitem__, reverse=True),
        sorted(defenders, key=PIECE_WORTH.__getitem__, reverse=True),
    )
    swings = [0]
    to_take = target
    side = 0
    while queue[side]:
        capturer = queue[side].pop()
        swings.append(-PIECE_WORTH[to_take] if side == 0 else PIECE_WORTH[to_take])
        to_take = capturer
        side ^= 1
    swings.append(swings[-1])

    # Even plies: the owner may stop after recapturing. Odd plies: the attacker may stop.
    min_loss, min_loss_index = 0, 0
    running = swings[1]
    max_win, max_win_index = running, 1
    for i in range(2, len(swings)):
        running += swings[i]
        if i & 1:
            if running > max_win:
                max_win, max_win_index = running, i
        elif running < min_loss:
            min_loss, min_loss_index = running, i

    return min_loss if min_loss_index < max_win_index else max_win


def hanging_pieces(board: Board, color: int, attacks: Attacks) -> int:
    """Penalize attacked non-king pieces by their estimated exchange loss.

    Losses weigh ten times more when the opponent is the side to move.
    """
    weight = HANGING_WEIGHT_OWN_TURN if board.turn == color else HANGING_WEIGHT_THEIR_TURN
    defended = attacks.on_square[color]
    attacked = attacks.on_square[color ^ 1]
    score = 0
    for piece in board.pieces_of(color):
        if piece.type == KING:
            continue
        attackers = attacked.get(piece.square)
        if not attackers:
            continue
        defenders = defended.get(piece.square)
        if not defenders:
            score -= PIECE_WORTH[piece.type] * weight
            continue
        score += exchange_balance(piece.type, attackers, defenders) * weight
    return score


def king_safety(board: Board, color: int, endgame: bool) -> int:
    """Penalize an exposed king and reward pieces sheltering it. Zero in the endgame."""
    if endgame:
        return 0
    king_sq = board.kings[color].square
    file = king_sq & 7
    rank = king_sq >> 3
    rel = relative_rank(color, rank)

    if rel > 3:
        return -3000
    if rel == 3:
        return -2000
    if rel == 2:
        return -1000
    if rel == 1 and FILE_C <= file < FILE_G:
        return -750 if file in (FILE_D, FILE_E) else -500
    if file in (FILE_D, FILE_E):
        return -250
    if file == FILE_F:
        return -100

    upper = rank + _forward(color)
    shield = [(rank, file - 1), (rank, file + 1), (upper, file - 1), (upper, file), (upper, file + 1)]
    score = 0 if rel == 0 and file == FILE_C else 100
    for r, f in shield:
        if not (0 <= f < 8 and 0 <= r < 8):
            continue
        piece = board.squares[r << 3 | f]
        if piece is None or piece.color != color:
            continue
        if r == upper:
            score += 100 if piece.type == PAWN else 50
        else:
            score += 50 if piece.type == PAWN else 25
    return score


def passed_pawns(board: Board, color: int, endgame: bool) -> int:
    """Score passed pawns, their mutual protection and their advancement.

    Only the most advanced pawn on each passed file is scored for protection
    and advancement; a neighbouring passed file one rank behind counts as
    protecting it right now.
    """
    white = color == WHITE
    opponent_pawns = [(p.square & 7, p.square >> 3) for p in board.pawns(color ^ 1)]
    passed: Dict[int, int] = {}
    count = 0
    for pawn in board.pawns(color):
        file = pawn.square & 7
        rank = pawn.square >> 3
        if file in passed:
            passed[file] = max(passed[file], rank) if white else min(passed[file], rank)
            continue
        blocked = any(
            file - 1 <= of <= file + 1 and (orank > rank if white else orank < rank)
            for of, orank in opponent_pawns
        )
        if blocked:
            continue
        passed[file] = rank
        count += 1

    score = count * PASSED_PAWN
    behind = -_forward(color)
    for file, rank in passed.items():
        rel = relative_rank(color, rank)
        protected = (file + 1) in passed or (file - 1) in passed
        protected_now = protected and (
            passed.get(file + 1) == rank + behind or passed.get(file - 1) == rank + behind
        )
        if protected_now:
            score += 2500 if rel == 6 else 1500 if rel == 5 else 700 if rel == 4 else 300
        elif protected:
            score += 1200 if rel == 6 else 600 if rel == 5 else 250 if rel == 4 else 100
        if endgame:
            score += 1000 if rel == 6 else 500 if rel == 5 else 250 if rel == 4 else 0
        else:
            score += 500 if rel == 6 else 200 if rel == 5 else 0
    return score


def pawn_islands(files: Dict[int, int]) -> int:
    islands = 0
    on_island = False
    for file in range(8):
        if file in files:
            if not on_island:
                islands += 1
            on_island = True
        else:
            on_island = False
    return PAWN_ISLAND * max(islands - 1, 0)


def rook_activity(pieces: List[Piece], files: Dict[int, int]) -> int:
    return ROOK_NO_OWN_PAWN * sum(1 for p in pieces if p.type == ROOK and (p.square & 7) not in files)


def evaluate_color(board: Board, color: int, attacks: Attacks, endgame: bool) -> int:
    """Sum the ten positional terms for one side."""
    pieces = board.pieces_of(color)
    files = pawn_files([p for p in pieces if p.type == PAWN])
    return (
        material(board, color)
        + bishop_pair(pieces)
        + control(board, color, attacks, endgame)
        + development(board, color)
        + doubled_pawns(files)
        + hanging_pieces(board, color, attacks)
        + king_safety(board, color, endgame)
        + passed_pawns(board, color, endgame)
        + pawn_islands(files)
        + rook_activity(pieces, files)
    )


def evaluate(board: Board, color: int) -> int:
    """Return the static score of `board` from ``color``'s point of view.

    Args:
        board (Board): Position to score. Terminal states are not detected here.
        color (int): Side whose advantage is positive.

    Returns:
        int: ``evaluate_color(color) - evaluate_color(opponent)``.
    """
    attacks = calculate_attacks(board)
    endgame = is_endgame(board)
    return evaluate_color(board, color, attacks, endgame) - evaluate_color(
        board, color ^ 1, attacks, endgame
    )
