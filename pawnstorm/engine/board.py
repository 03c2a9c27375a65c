from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, NamedTuple, Optional

from .move import encode_move, move_from, move_promotion, move_to, square_to_str, str_to_square
from .tables import (
    BISHOP,
    BLACK,
    BLACK_KING_SIDE,
    BLACK_QUEEN_SIDE,
    CASTLING,
    CASTLING_BY_KING_TO,
    CASTLING_MASK,
    KING,
    KING_INITIAL_SQUARE,
    KING_MOVES,
    KNIGHT,
    KNIGHT_MOVES,
    PAWN,
    PAWN_ADVANCES,
    PAWN_CAPTURES,
    PAWN_DOUBLE_ADVANCE,
    PIECE_WORTH,
    PROMOTION_RANK,
    PROMOTION_TYPES,
    QUEEN,
    ROOK,
    SLIDER_RAYS,
    BISHOP_RAYS,
    ROOK_RAYS,
    SQUARE_COLOR,
    WHITE,
    WHITE_KING_SIDE,
    WHITE_QUEEN_SIDE,
)


STARTPOS_FEN = "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0 1"

# Move generation modes
MOVE, ATTACKED = 0, 1

# Game results; a win is encoded as the winning color
WHITE_WINS, BLACK_WINS, DRAW = WHITE, BLACK, 2

PIECE_CHARS = ("KQRBNP", "kqrbnp")
CHAR_TO_PIECE = {ch: (color, ptype) for color in (WHITE, BLACK) for ptype, ch in enumerate(PIECE_CHARS[color])}
CASTLING_CHARS = (
    (WHITE_KING_SIDE, "K"),
    (WHITE_QUEEN_SIDE, "Q"),
    (BLACK_KING_SIDE, "k"),
    (BLACK_QUEEN_SIDE, "q"),
)


@dataclass(eq=False)
class Piece:
    """A piece owned by one color's registry.

    ``id`` is stable for the lifetime of the board and never reused.
    """

    id: int
    type: int
    color: int
    square: int


class EnPassant(NamedTuple):
    square: int  # square the capturing pawn lands on
    pawn_square: int  # square of the pawn that gets captured


@dataclass
class MoveRecord:
    """Everything `revert_last_move` needs to restore the previous position."""

    move: int
    piece: Piece
    captured: Optional[Piece]
    rook: Optional[Piece]
    rook_from: int
    promoted: bool
    prev_result: Optional[int]
    prev_check: bool
    prev_position: str
    prev_en_passant: Optional[EnPassant]
    prev_castling: int
    prev_halfmove: int
    prev_fullmove: int


def _piece_id(piece: Piece) -> int:
    return piece.id


@dataclass
class Board:
    """Mutable position with piece registries and a make/unmake history.

    Notes:
    - Squares are 0..63 (a1=0 .. h8=63); ``sq >> 3`` is the rank, ``sq & 7`` the file.
    - ``squares`` is a lookup index; ``pieces`` is the authoritative registry.
    - Make/unmake follow strict stack discipline and are not thread-safe.
    """

    squares: List[Optional[Piece]] = field(default_factory=lambda: [None] * 64)
    pieces: List[Dict[int, Piece]] = field(default_factory=lambda: [{}, {}])
    piece_counts: List[int] = field(default_factory=lambda: [0, 0])
    material: List[int] = field(default_factory=lambda: [0, 0])
    kings: List[Optional[Piece]] = field(default_factory=lambda: [None, None])
    turn: int = WHITE
    castling: int = 0
    en_passant: Optional[EnPassant] = None
    halfmove_clock: int = 0
    fullmove_number: int = 1
    is_check: bool = False
    result: Optional[int] = None
    position: str = ""
    positions: Dict[str, int] = field(default_factory=dict)
    _history: List[MoveRecord] = field(default_factory=list, repr=False)

    @classmethod
    def startpos(cls) -> "Board":
        """Create a board initialized to the standard chess starting position."""
        return cls.from_fen(STARTPOS_FEN)

    @classmethod
    def from_fen(cls, fen: str) -> "Board":
        """Create a board from a Forsyth–Edwards Notation (FEN) string.

        Args:
            fen (str): FEN string describing the position to load.

        Returns:
            Board: Board instance initialized with state encoded in ``fen``.

        Raises:
            ValueError: If ``fen`` is empty, has the wrong number of fields, or
                contains invalid piece placement, kings, castling rights, en
                passant square, or move counters.

        Notes:
            Piece ids are assigned sequentially from a1 upwards. The starting
            position is recorded once in the repetition ledger.
        """
        if not fen or not isinstance(fen, str):
            raise ValueError("FEN must be a non-empty string")
        parts = fen.strip().split()
        if len(parts) != 6:
            raise ValueError("FEN must have 6 fields")
        placement, stm, castling, ep, halfmove, fullmove = parts

        board = cls()
        ranks = placement.split("/")
        if len(ranks) != 8:
            raise ValueError("FEN board must have 8 ranks")
        next_id = 0
        for rank_idx, rank in enumerate(ranks[::-1]):  # start from rank 1 (bottom)
            file_idx = 0
            for ch in rank:
                if ch.isdigit():
                    n = int(ch)
                    if n < 1 or n > 8:
                        raise ValueError("invalid empty count in FEN rank")
                    file_idx += n
                    continue
                if ch not in CHAR_TO_PIECE:
                    raise ValueError(f"invalid piece in FEN: {ch!r}")
                if file_idx >= 8:
                    raise ValueError("too many squares in FEN rank")
                color, ptype = CHAR_TO_PIECE[ch]
                if ptype == KING and board.kings[color] is not None:
                    raise ValueError("FEN must have exactly one king per side")
                piece = Piece(next_id, ptype, color, rank_idx << 3 | file_idx)
                next_id += 1
                board._put(piece)
                if ptype == KING:
                    board.kings[color] = piece
                file_idx += 1
            if file_idx != 8:
                raise ValueError("rank does not sum to 8 squares in FEN")
        if board.kings[WHITE] is None or board.kings[BLACK] is None:
            raise ValueError("FEN must have exactly one king per side")

        if stm not in ("w", "b"):
            raise ValueError("side to move must be 'w' or 'b'")
        board.turn = WHITE if stm == "w" else BLACK

        if castling != "-":
            for ch in castling:
                bit = next((b for b, c in CASTLING_CHARS if c == ch), None)
                if bit is None:
                    raise ValueError("invalid castling rights")
                board.castling |= bit

        if ep != "-":
            try:
                ep_square = str_to_square(ep)
            except ValueError as e:
                raise ValueError("invalid en passant square") from e
            expected_rank = 5 if board.turn == WHITE else 2
            if ep_square >> 3 != expected_rank:
                raise ValueError("invalid en passant square rank")
            pawn_square = ep_square - 8 if board.turn == WHITE else ep_square + 8
            pawn = board.squares[pawn_square]
            if board.squares[ep_square] is not None or not (
                pawn is not None and pawn.type == PAWN and pawn.color != board.turn
            ):
                raise ValueError("invalid en passant square: no capturable pawn")
            board.en_passant = EnPassant(ep_square, pawn_square)

        try:
            board.halfmove_clock = int(halfmove)
            board.fullmove_number = int(fullmove)
        except ValueError as e:
            raise ValueError("invalid move counters in FEN") from e
        if board.halfmove_clock < 0 or board.fullmove_number <= 0:
            raise ValueError("invalid move counters in FEN")

        board.is_check = board.is_in_check()
        board.position = board.signature()
        board.positions[board.position] = 1
        return board

    def to_fen(self) -> str:
        """Serialize the current position into a normalized FEN string."""
        ranks_str: List[str] = []
        for rank_idx in range(7, -1, -1):
            run = 0
            row = []
            for file_idx in range(8):
                piece = self.squares[rank_idx << 3 | file_idx]
                if piece is None:
                    run += 1
                    continue
                if run > 0:
                    row.append(str(run))
                    run = 0
                row.append(PIECE_CHARS[piece.color][piece.type])
            if run > 0:
                row.append(str(run))
            ranks_str.append("".join(row))
        placement = "/".join(ranks_str)
        castling = "".join(c for bit, c in CASTLING_CHARS if self.castling & bit) or "-"
        ep = square_to_str(self.en_passant.square) if self.en_passant is not None else "-"
        return f"{placement} {self.side_to_move} {castling} {ep} {self.halfmove_clock} {self.fullmove_number}"

    def signature(self) -> str:
        """Canonical repetition key: placement, side to move, castling, en passant."""
        cells = "".join(
            "." if p is None else PIECE_CHARS[p.color][p.type] for p in self.squares
        )
        ep = self.en_passant.square if self.en_passant is not None else "-"
        return f"{cells} {self.turn} {self.castling} {ep}"

    @property
    def side_to_move(self) -> str:
        return "w" if self.turn == WHITE else "b"

    def piece_at(self, sq: int) -> Optional[Piece]:
        return self.squares[sq]

    def pieces_of(self, color: int) -> List[Piece]:
        """Return ``color``'s live pieces in id order.

        Registry insertion order changes when captures are undone, so callers
        that must be deterministic iterate through this instead.
        """
        return sorted(self.pieces[color].values(), key=_piece_id)

    def pawns(self, color: int) -> List[Piece]:
        return [p for p in self.pieces_of(color) if p.type == PAWN]

    # --- Move generation ---
    def generate_pseudo_moves(self, piece: Piece, mode: int = MOVE) -> List[int]:
        """Return destination squares for ``piece`` ignoring king safety.

        Args:
            piece (Piece): Piece to generate for.
            mode (int): ``MOVE`` for playable moves, ``ATTACKED`` for the set of
                squares the piece attacks (own occupants included, pawn
                diagonals always reported, no advances, no castling).

        Returns:
            List[int]: Destination square indices.
        """
        squares = self.squares
        color = piece.color
        sq = piece.square
        ptype = piece.type
        out: List[int] = []

        if ptype == PAWN:
            if mode == MOVE:
                for to_sq in PAWN_ADVANCES[color][sq]:
                    if squares[to_sq] is not None:
                        break
                    out.append(to_sq)
            ep = self.en_passant
            if ep is not None:
                victim = squares[ep.pawn_square]
                if victim is None or victim.type != PAWN or victim.color == color:
                    ep = None
            for to_sq in PAWN_CAPTURES[color][sq]:
                if ep is not None and to_sq == ep.square:
                    out.append(to_sq)
                    continue
                occ = squares[to_sq]
                if mode == ATTACKED or (occ is not None and occ.color != color):
                    out.append(to_sq)
            return out

        if ptype == KNIGHT or ptype == KING:
            table = KNIGHT_MOVES if ptype == KNIGHT else KING_MOVES
            for to_sq in table[sq]:
                occ = squares[to_sq]
                if occ is None or occ.color != color or mode == ATTACKED:
                    out.append(to_sq)
            if ptype == KING and mode == MOVE:
                out.extend(self._castling_moves(piece))
            return out

        for ray in SLIDER_RAYS[ptype][sq]:
            for to_sq in ray:
                occ = squares[to_sq]
                if occ is None:
                    out.append(to_sq)
                    continue
                if occ.color != color or mode == ATTACKED:
                    out.append(to_sq)
                break
        return out

    def _castling_moves(self, king: Piece) -> List[int]:
        color = king.color
        if king.square != KING_INITIAL_SQUARE[color] or not self.castling & (
            CASTLING[color][0].right | CASTLING[color][1].right
        ):
            return []
        opponent = color ^ 1
        if self.is_square_attacked(king.square, opponent):
            return []
        out: List[int] = []
        for params in CASTLING[color]:
            if not self.castling & params.right:
                continue
            rook = self.squares[params.rook_from]
            if rook is None or rook.type != ROOK or rook.color != color:
                continue
            if any(self.squares[s] is not None for s in params.empty):
                continue
            if any(self.is_square_attacked(s, opponent) for s in params.safe):
                continue
            out.append(params.king_to)
        return out

    def generate_legal_moves(self, piece: Piece) -> List[int]:
        """Return destination squares that do not leave ``piece``'s king attacked.

        Each pseudo-legal destination is tried with a full make, the king is
        tested, and the move is reverted.
        """
        color = piece.color
        opponent = color ^ 1
        from_sq = piece.square
        king = self.kings[color]
        legal: List[int] = []
        for to_sq in self.generate_pseudo_moves(piece, MOVE):
            self.perform_move(encode_move(from_sq, to_sq))
            if not self.is_square_attacked(king.square, opponent):
                legal.append(to_sq)
            self.revert_last_move()
        return legal

    def legal_moves(self) -> List[int]:
        """Return all legal packed moves for the side to move.

        A pawn reaching the last rank yields one move per promotion type.
        """
        moves: List[int] = []
        color = self.turn
        last_rank = PROMOTION_RANK[color]
        for piece in self.pieces_of(color):
            from_sq = piece.square
            for to_sq in self.generate_legal_moves(piece):
                if piece.type == PAWN and to_sq >> 3 == last_rank:
                    moves.extend(encode_move(from_sq, to_sq, promo) for promo in PROMOTION_TYPES)
                else:
                    moves.append(encode_move(from_sq, to_sq))
        return moves

    # --- Make / unmake ---
    def perform_move(self, move: int, check_result: bool = False) -> None:
        """Apply a packed move in place and push its undo record.

        Args:
            move (int): Packed move; legality is the caller's responsibility.
            check_result (bool): When True, detect checkmate and draws after the
                move and store them in ``result``.

        Raises:
            ValueError: If the origin square is empty.
        """
        from_sq = move_from(move)
        to_sq = move_to(move)
        promo = move_promotion(move)
        piece = self.squares[from_sq]
        if piece is None:
            raise ValueError(f"no piece on {square_to_str(from_sq)}")
        color = piece.color
        opponent = color ^ 1
        moved_type = piece.type

        record = MoveRecord(
            move=move,
            piece=piece,
            captured=None,
            rook=None,
            rook_from=-1,
            promoted=False,
            prev_result=self.result,
            prev_check=self.is_check,
            prev_position=self.position,
            prev_en_passant=self.en_passant,
            prev_castling=self.castling,
            prev_halfmove=self.halfmove_clock,
            prev_fullmove=self.fullmove_number,
        )

        ep = self.en_passant
        if moved_type == PAWN and ep is not None and to_sq == ep.square:
            captured = self.squares[ep.pawn_square]
        else:
            captured = self.squares[to_sq]
        if captured is not None:
            self._remove(captured)
            record.captured = captured

        self._relocate(piece, to_sq)

        if moved_type == KING and from_sq == KING_INITIAL_SQUARE[color] and to_sq in CASTLING_BY_KING_TO:
            params = CASTLING_BY_KING_TO[to_sq]
            rook = self.squares[params.rook_from]
            if rook is not None and rook.type == ROOK and rook.color == color:
                self._relocate(rook, params.rook_to)
                record.rook = rook
                record.rook_from = params.rook_from

        if promo and moved_type == PAWN:
            piece.type = promo
            self.material[color] += PIECE_WORTH[promo] - PIECE_WORTH[PAWN]
            record.promoted = True

        self.castling &= CASTLING_MASK[from_sq] & CASTLING_MASK[to_sq]

        self.en_passant = None
        if moved_type == PAWN and PAWN_DOUBLE_ADVANCE[color][from_sq] == to_sq:
            file = to_sq & 7
            for adj_file in (file - 1, file + 1):
                if not 0 <= adj_file < 8:
                    continue
                adj = self.squares[(to_sq & ~7) | adj_file]
                if adj is not None and adj.type == PAWN and adj.color == opponent:
                    self.en_passant = EnPassant((from_sq + to_sq) >> 1, to_sq)
                    break

        if captured is not None or moved_type == PAWN:
            self.halfmove_clock = 0
        else:
            self.halfmove_clock += 1
        if color == BLACK:
            self.fullmove_number += 1

        self.turn = opponent
        self.is_check = self.is_square_attacked(self.kings[opponent].square, color)
        self.position = self.signature()
        self.positions[self.position] = self.positions.get(self.position, 0) + 1
        self._history.append(record)

        if check_result:
            if self.is_check and self.has_no_moves():
                self.result = color
            elif self.is_draw():
                self.result = DRAW

    def revert_last_move(self) -> None:
        """Undo the most recent `perform_move`; a no-op on empty history."""
        if not self._history:
            return
        record = self._history.pop()
        piece = record.piece

        count = self.positions[self.position] - 1
        if count:
            self.positions[self.position] = count
        else:
            del self.positions[self.position]

        if record.promoted:
            self.material[piece.color] -= PIECE_WORTH[piece.type] - PIECE_WORTH[PAWN]
            piece.type = PAWN
        if record.rook is not None:
            self._relocate(record.rook, record.rook_from)
        self._relocate(piece, move_from(record.move))
        if record.captured is not None:
            self._put(record.captured)

        self.turn = piece.color
        self.result = record.prev_result
        self.is_check = record.prev_check
        self.position = record.prev_position
        self.en_passant = record.prev_en_passant
        self.castling = record.prev_castling
        self.halfmove_clock = record.prev_halfmove
        self.fullmove_number = record.prev_fullmove

    @property
    def ply_count(self) -> int:
        return len(self._history)

    def last_move(self) -> Optional[int]:
        return self._history[-1].move if self._history else None

    def _relocate(self, piece: Piece, to_sq: int) -> None:
        self.squares[piece.square] = None
        self.squares[to_sq] = piece
        piece.square = to_sq

    def _put(self, piece: Piece) -> None:
        self.pieces[piece.color][piece.id] = piece
        self.piece_counts[piece.color] += 1
        self.material[piece.color] += PIECE_WORTH[piece.type]
        self.squares[piece.square] = piece

    def _remove(self, piece: Piece) -> None:
        del self.pieces[piece.color][piece.id]
        self.piece_counts[piece.color] -= 1
        self.material[piece.color] -= PIECE_WORTH[piece.type]
        self.squares[piece.square] = None

    # --- Attacks and terminal states ---
    def is_square_attacked(self, sq: int, by_color: int) -> bool:
        """Return True if ``sq`` is attacked by any piece of ``by_color``.

        Scans outward from ``sq`` with the static tables: pawns, knights, king,
        then slider rays.
        """
        squares = self.squares
        for s in PAWN_CAPTURES[by_color ^ 1][sq]:
            p = squares[s]
            if p is not None and p.color == by_color and p.type == PAWN:
                return True
        for s in KNIGHT_MOVES[sq]:
            p = squares[s]
            if p is not None and p.color == by_color and p.type == KNIGHT:
                return True
        for s in KING_MOVES[sq]:
            p = squares[s]
            if p is not None and p.color == by_color and p.type == KING:
                return True
        for ray in ROOK_RAYS[sq]:
            for s in ray:
                p = squares[s]
                if p is None:
                    continue
                if p.color == by_color and (p.type == ROOK or p.type == QUEEN):
                    return True
                break
        for ray in BISHOP_RAYS[sq]:
            for s in ray:
                p = squares[s]
                if p is None:
                    continue
                if p.color == by_color and (p.type == BISHOP or p.type == QUEEN):
                    return True
                break
        return False

    def is_in_check(self, color: Optional[int] = None) -> bool:
        """Return True if ``color`` (default: side to move) has its king attacked."""
        if color is None:
            color = self.turn
        return self.is_square_attacked(self.kings[color].square, color ^ 1)

    def has_no_moves(self) -> bool:
        for piece in self.pieces_of(self.turn):
            if self.generate_legal_moves(piece):
                return False
        return True

    def is_checkmate(self) -> bool:
        return self.is_check and self.has_no_moves()

    def is_stalemate(self) -> bool:
        return not self.is_check and self.has_no_moves()

    def is_insufficient_material(self) -> bool:
        """Return True for king vs king, king+minor vs king, or same-colored bishops only."""
        white_has_more = self.piece_counts[WHITE] > self.piece_counts[BLACK]
        more = WHITE if white_has_more else BLACK
        fewer = more ^ 1
        more_count = self.piece_counts[more]

        if more_count == 1:
            return True

        if self.piece_counts[fewer] == 1 and more_count == 2:
            return any(p.type in (KNIGHT, BISHOP) for p in self.pieces[more].values())

        bishop_color: Optional[int] = None
        for p in self.pieces[more].values():
            if p.type == KING:
                continue
            if p.type != BISHOP:
                return False
            if bishop_color is None:
                bishop_color = SQUARE_COLOR[p.square]
            elif SQUARE_COLOR[p.square] != bishop_color:
                return False
        for p in self.pieces[fewer].values():
            if p.type == KING:
                continue
            if p.type != BISHOP or SQUARE_COLOR[p.square] != bishop_color:
                return False
        return True

    def is_draw_by_rule(self) -> bool:
        """Fifty-move rule, threefold repetition, or insufficient material."""
        return (
            self.halfmove_clock >= 100
            or self.positions.get(self.position, 0) >= 3
            or self.is_insufficient_material()
        )

    def is_draw(self) -> bool:
        return (
            self.halfmove_clock >= 100
            or self.positions.get(self.position, 0) >= 3
            or self.is_stalemate()
            or self.is_insufficient_material()
        )
