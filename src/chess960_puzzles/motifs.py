"""Theme tagging for generated puzzles.

Tags follow the Lichess puzzle theme vocabulary (camelCase). Phase tags
come from the piece count; tactical tags come from replaying the first
solution move and inspecting the board on either side of it. The
`pin` tag is a geometric king-alignment check, not a full pin analysis:
it fires when one of the mover's sliders sees the enemy king through
exactly one enemy piece after the move.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import chess

from chess960_puzzles.analysis import (
    aligned_pins,
    attacked_enemy_pieces,
    get_piece_value,
    is_defended,
    is_in_bad_spot,
    piece_count,
)

__all__ = [
    "THEME_PRIORITY",
    "ThemeResult",
    "classify_motifs",
]

ENDGAME_MAX_PIECES = 10
OPENING_MIN_PIECES = 20
SACRIFICE_MIN_EVAL = 150
MAX_MATE_TAG = 5

# Most specific first; the primary theme is the first one present.
THEME_PRIORITY: tuple[str, ...] = (
    "mateIn1", "mateIn2", "mateIn3", "mateIn4", "mateIn5",
    "mate",
    "smotheredMate", "backRankMate",
    "fork", "pin", "skewer",
    "sacrifice", "discoveredAttack", "doubleCheck",
    "promotion", "underPromotion",
    "deflection", "attraction", "clearance", "interference",
    "xRayAttack", "zugzwang",
    "hangingPiece", "trappedPiece",
    "rookEndgame", "bishopEndgame", "knightEndgame", "pawnEndgame", "queenEndgame",
    "endgame",
    "opening", "middlegame",
    "tactics",
)


@dataclass
class ThemeResult:
    themes: list[str] = field(default_factory=list)
    primary_theme: str = "tactics"

    def add(self, theme: str) -> None:
        if theme not in self.themes:
            self.themes.append(theme)


def _phase_themes(board: chess.Board, result: ThemeResult) -> None:
    count = piece_count(board)
    if count >= OPENING_MIN_PIECES:
        result.add("opening")
        return
    if count > ENDGAME_MAX_PIECES:
        result.add("middlegame")
        return

    result.add("endgame")
    has_rook = bool(board.pieces_mask(chess.ROOK, chess.WHITE) | board.pieces_mask(chess.ROOK, chess.BLACK))
    has_bishop = bool(board.pieces_mask(chess.BISHOP, chess.WHITE) | board.pieces_mask(chess.BISHOP, chess.BLACK))
    has_knight = bool(board.pieces_mask(chess.KNIGHT, chess.WHITE) | board.pieces_mask(chess.KNIGHT, chess.BLACK))
    has_queen = bool(board.pieces_mask(chess.QUEEN, chess.WHITE) | board.pieces_mask(chess.QUEEN, chess.BLACK))
    pawns = chess.popcount(board.pawns)

    if has_rook and not has_queen and count <= 8:
        result.add("rookEndgame")
    if has_bishop and not has_queen and not has_rook and count <= 6:
        result.add("bishopEndgame")
    if has_knight and not (has_queen or has_rook or has_bishop) and count <= 6:
        result.add("knightEndgame")
    if pawns >= 2 and count <= 8 and not has_queen and not has_rook:
        result.add("pawnEndgame")
    if has_queen and count <= 8:
        result.add("queenEndgame")


def _mate_themes(solution_moves: list[str], result: ThemeResult) -> None:
    result.add("mate")
    if solution_moves:
        result.add(f"mateIn{min(len(solution_moves), MAX_MATE_TAG)}")


def _capture_square(board: chess.Board, move: chess.Move) -> int | None:
    """Square of the piece `move` removes; en passant takes beside the landing square."""
    if board.is_castling(move) or not board.is_capture(move):
        return None
    if board.is_en_passant(move):
        return chess.square(chess.square_file(move.to_square), chess.square_rank(move.from_square))
    return move.to_square


def _first_move_themes(
    board: chess.Board,
    move: chess.Move,
    evaluation_cp: int,
    result: ThemeResult,
) -> None:
    mover = board.turn
    moved_piece = board.piece_at(move.from_square)
    captured_square = _capture_square(board, move)
    captured = board.piece_at(captured_square) if captured_square is not None else None
    is_capture = board.is_capture(move)

    if is_capture:
        result.add("tactics")
    if move.promotion:
        result.add("promotion")
        if move.promotion != chess.QUEEN:
            result.add("underPromotion")
    if board.is_en_passant(move):
        result.add("enPassant")
    if board.is_castling(move):
        result.add("castling")
    if captured is not None and not is_defended(board, captured, captured_square):
        result.add("hangingPiece")

    moves_before = board.legal_moves.count()
    after = board.copy(stack=False)
    after.push(move)

    if moved_piece and moved_piece.piece_type != chess.PAWN:
        if after.legal_moves.count() > moves_before:
            result.add("discoveredAttack")

    if after.is_check():
        checking_replies = sum(1 for reply in after.legal_moves if after.gives_check(reply))
        if checking_replies > 1:
            result.add("doubleCheck")

    landing = move.to_square
    if board.is_castling(move):
        landing = after.king(mover)
    if len(attacked_enemy_pieces(after, landing)) >= 2:
        result.add("fork")

    if aligned_pins(after, mover):
        result.add("pin")

    landed = after.piece_at(landing)
    if landed and landed.piece_type != chess.KING and is_in_bad_spot(after, landing):
        given = get_piece_value(landed.piece_type)
        taken = get_piece_value(captured.piece_type) if captured else 0
        mover_eval = evaluation_cp if mover == chess.WHITE else -evaluation_cp
        if given > taken and mover_eval >= SACRIFICE_MIN_EVAL:
            result.add("sacrifice")


def classify_motifs(
    fen: str,
    solution_moves: list[str],
    evaluation_cp: int,
    is_checkmate: bool,
) -> ThemeResult:
    """Tag a puzzle with phase and tactical themes and pick the primary one.

    Args:
        fen: Puzzle start position.
        solution_moves: Solution in UCI, first move by the side to move.
        evaluation_cp: Engine evaluation from White's point of view.
        is_checkmate: Whether the solution ends in checkmate.
    """
    board = chess.Board(fen, chess960=True)
    result = ThemeResult()

    _phase_themes(board, result)
    if is_checkmate:
        _mate_themes(solution_moves, result)

    if solution_moves:
        try:
            move = board.parse_uci(solution_moves[0])
        except ValueError:
            move = None
        if move is not None:
            _first_move_themes(board, move, evaluation_cp, result)

    if not result.themes:
        result.add("tactics")

    result.primary_theme = next(
        (theme for theme in THEME_PRIORITY if theme in result.themes),
        result.themes[0],
    )
    return result
