"""Tests for puzzle theme tagging."""

import chess

from chess960_puzzles.motifs import THEME_PRIORITY, classify_motifs

SCHOLARS_FEN = "r1bqkb1r/pppp1ppp/2n2n2/4p2Q/2B1P3/8/PPPP1PPP/RNB1K1NR w KQkq - 4 4"


class TestPhase:
    def test_opening(self):
        result = classify_motifs(chess.STARTING_FEN, ["e2e4"], 30, False)
        assert "opening" in result.themes
        assert result.primary_theme == "opening"

    def test_middlegame(self):
        # 16 pieces
        fen = "r4rk1/ppp2ppp/8/8/8/8/PPP2PPP/R4RK1 w - - 0 1"
        result = classify_motifs(fen, ["a1d1"], 0, False)
        assert result.themes[0] == "middlegame"

    def test_rook_endgame(self):
        fen = "6k1/5pp1/8/8/8/8/5PP1/R5K1 w - - 0 1"
        result = classify_motifs(fen, ["a1a8"], 0, False)
        assert "endgame" in result.themes
        assert "rookEndgame" in result.themes
        assert "pawnEndgame" not in result.themes

    def test_pawn_endgame(self):
        fen = "8/5k2/5p2/8/8/5P2/5K2/8 w - - 0 1"
        result = classify_motifs(fen, ["f2e3"], 0, False)
        assert "pawnEndgame" in result.themes
        assert "rookEndgame" not in result.themes

    def test_knight_endgame(self):
        fen = "8/5k2/8/8/3N4/8/5K2/8 w - - 0 1"
        result = classify_motifs(fen, ["d4e6"], 0, False)
        assert "knightEndgame" in result.themes

    def test_queen_endgame(self):
        fen = "8/5k2/8/8/3Q4/8/5K2/8 w - - 0 1"
        result = classify_motifs(fen, ["d4d5"], 0, False)
        assert "queenEndgame" in result.themes
        assert "rookEndgame" not in result.themes


class TestMate:
    def test_mate_in_one(self):
        result = classify_motifs(SCHOLARS_FEN, ["h5f7"], 10000, True)
        assert "mate" in result.themes
        assert "mateIn1" in result.themes
        assert result.primary_theme == "mateIn1"

    def test_mate_length_capped(self):
        moves = ["h5f7"] * 9
        result = classify_motifs(SCHOLARS_FEN, moves, 10000, True)
        assert "mateIn5" in result.themes

    def test_capture_tagged(self):
        result = classify_motifs(SCHOLARS_FEN, ["h5f7"], 10000, True)
        assert "tactics" in result.themes
        assert "fork" in result.themes


class TestFirstMove:
    def test_promotion_and_underpromotion(self):
        fen = "8/P6k/8/8/8/8/8/K7 w - - 0 1"
        queen = classify_motifs(fen, ["a7a8q"], 800, False)
        assert "promotion" in queen.themes
        assert "underPromotion" not in queen.themes
        knight = classify_motifs(fen, ["a7a8n"], 300, False)
        assert "underPromotion" in knight.themes

    def test_hanging_piece_capture(self):
        # Rook takes an undefended knight
        fen = "6k1/5ppp/8/3n4/8/8/5PPP/3R2K1 w - - 0 1"
        result = classify_motifs(fen, ["d1d5"], 300, False)
        assert "hangingPiece" in result.themes

    def test_defended_capture_not_hanging(self):
        fen = "6k1/5ppp/2p5/3n4/8/8/5PPP/3R2K1 w - - 0 1"
        result = classify_motifs(fen, ["d1d5"], -200, False)
        assert "hangingPiece" not in result.themes

    def test_knight_fork(self):
        # Nc7+ hits king on e8 and rook on a8
        fen = "r3k3/8/8/1N6/8/8/8/4K3 w - - 0 1"
        result = classify_motifs(fen, ["b5c7"], 500, False)
        assert "fork" in result.themes
        assert result.primary_theme == "fork"

    def test_pin_against_king(self):
        # Ba4 pins the c6 knight to the e8 king
        fen = "4k3/8/2n5/8/8/8/8/3BK3 w - - 0 1"
        result = classify_motifs(fen, ["d1a4"], 100, False)
        assert "pin" in result.themes

    def test_castling(self):
        fen = "4k3/8/8/8/8/8/8/4K2R w K - 0 1"
        result = classify_motifs(fen, ["e1h1"], 50, False)
        assert "castling" in result.themes

    def test_en_passant(self):
        fen = "4k3/8/8/3pP3/8/8/8/4K3 w - d6 0 1"
        result = classify_motifs(fen, ["e5d6"], 50, False)
        assert "enPassant" in result.themes
        assert "tactics" in result.themes

    def test_en_passant_takes_pawn_beside_landing_square(self):
        # exd6 removes the undefended d5 pawn; pawn for pawn is no sacrifice
        fen = "rnb1kbnr/ppp1pppp/8/3pP3/8/8/PPPP1PPP/RNBQKBNR w KQkq d6 0 3"
        result = classify_motifs(fen, ["e5d6"], 300, False)
        assert "enPassant" in result.themes
        assert "hangingPiece" in result.themes
        assert "sacrifice" not in result.themes

    def test_sacrifice(self):
        # Queen lands on e8 where both rooks can take it
        fen = "r4rk1/ppp2ppp/8/8/8/8/PPP2PPP/4QRK1 w - - 0 1"
        result = classify_motifs(fen, ["e1e8"], 400, False)
        assert "sacrifice" in result.themes

    def test_no_sacrifice_when_eval_against_mover(self):
        fen = "r4rk1/ppp2ppp/8/8/8/8/PPP2PPP/4QRK1 w - - 0 1"
        result = classify_motifs(fen, ["e1e8"], -400, False)
        assert "sacrifice" not in result.themes

    def test_illegal_first_move_skips_move_tags(self):
        result = classify_motifs(chess.STARTING_FEN, ["e2e5"], 0, False)
        assert result.themes == ["opening"]

    def test_unparsable_first_move(self):
        result = classify_motifs(chess.STARTING_FEN, ["zz"], 0, False)
        assert result.themes == ["opening"]


class TestPrimary:
    def test_themes_unique(self):
        result = classify_motifs(SCHOLARS_FEN, ["h5f7"], 10000, True)
        assert len(result.themes) == len(set(result.themes))

    def test_primary_follows_priority(self):
        result = classify_motifs(SCHOLARS_FEN, ["h5f7"], 10000, True)
        ranked = [t for t in THEME_PRIORITY if t in result.themes]
        assert result.primary_theme == ranked[0]

    def test_deterministic(self):
        first = classify_motifs(SCHOLARS_FEN, ["h5f7"], 10000, True)
        second = classify_motifs(SCHOLARS_FEN, ["h5f7"], 10000, True)
        assert first == second
