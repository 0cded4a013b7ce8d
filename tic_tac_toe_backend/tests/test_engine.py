"""
Unit tests for the game rules engine.
"""

import datetime

import pytest
from pydantic import ValidationError

from tictactoe.engine import (
    MoveError,
    apply_move,
    check_draw,
    check_winner,
    create_game,
    current_turn,
    find_inconsistency,
    replay,
)
from tictactoe.rules import EMPTY, WIN_PATTERNS, filled_count


class TestCreateGame:
    """Fresh games."""

    def test_new_game_is_empty(self, new_game):
        """Board is 9 empty cells, X to move, no outcome."""
        assert new_game.board == [EMPTY] * 9
        assert new_game.current_player == "X"
        assert new_game.winner is None
        assert new_game.is_draw is False
        assert new_game.move_history == []
        assert new_game.status == "in_progress"

    def test_ids_are_unique(self):
        """Generated ids never repeat."""
        ids = {create_game().id for _ in range(100)}
        assert len(ids) == 100

    def test_timestamps_use_supplied_clock(self):
        """created_at and updated_at start equal."""
        now = datetime.datetime(2024, 1, 1, tzinfo=datetime.timezone.utc)
        game = create_game("g", now=now)
        assert game.created_at == game.updated_at == now


class TestApplyMove:
    """Accepted moves."""

    def test_move_writes_mark_and_history(self, new_game):
        result = apply_move(new_game, 4, "X")
        assert result.ok
        assert result.game.board[4] == "X"
        assert [(m.player, m.position) for m in result.game.move_history] == [("X", 4)]
        assert result.game.current_player == "O"

    def test_input_game_is_not_mutated(self, new_game):
        """apply_move returns a new value."""
        apply_move(new_game, 0, "X")
        assert new_game.board == [EMPTY] * 9
        assert new_game.move_history == []
        assert new_game.current_player == "X"

    def test_updated_at_refreshed(self, new_game):
        later = new_game.created_at + datetime.timedelta(seconds=5)
        result = apply_move(new_game, 0, "X", now=later)
        assert result.game.updated_at == later
        assert result.game.created_at == new_game.created_at

    def test_turns_alternate_starting_with_x(self, new_game):
        """Before move N the player is X for odd N and O for even N."""
        game = new_game
        for n, position in enumerate([4, 0, 8, 2, 1, 7, 6, 3, 5], start=1):
            expected = "X" if n % 2 == 1 else "O"
            assert game.current_player == expected
            result = apply_move(game, position, expected)
            assert result.ok
            game = result.game
            assert len(game.move_history) == filled_count(game.board)

    def test_current_player_flips_after_final_move(self, play, x_wins_top_row):
        """The flip happens even on the winning move."""
        game = play(x_wins_top_row)
        assert game.current_player == "O"


class TestWinDetection:
    """Winning lines."""

    @pytest.mark.parametrize("pattern", WIN_PATTERNS)
    def test_every_pattern_wins_for_x(self, play, pattern):
        """X completes ``pattern`` while O plays cells off it."""
        o_cells = [p for p in range(9) if p not in pattern]
        moves = [("X", pattern[0]), ("O", o_cells[0]), ("X", pattern[1]), ("O", o_cells[-1]), ("X", pattern[2])]
        game = play(moves)
        assert game.winner == "X"
        assert game.is_draw is False
        assert game.status == "won"

    def test_o_can_win(self, play):
        game = play([("X", 0), ("O", 2), ("X", 1), ("O", 4), ("X", 8), ("O", 6)])
        assert game.winner == "O"

    def test_scenario_top_row(self, play, x_wins_top_row):
        """X:0, O:3, X:1, O:4, X:2 wins the top row."""
        game = play(x_wins_top_row)
        assert game.winner == "X"
        assert game.is_draw is False

    def test_win_on_full_board_is_not_a_draw(self, play):
        """Filling the last cell with a winning mark is a win."""
        game = play([("X", 0), ("O", 1), ("X", 2), ("O", 4), ("X", 3), ("O", 5), ("X", 7), ("O", 8), ("X", 6)])
        assert filled_count(game.board) == 9
        assert game.winner == "X"
        assert game.is_draw is False

    def test_check_winner_empty_board(self):
        assert check_winner([EMPTY] * 9) is None


class TestDrawDetection:
    """Full boards without a line."""

    def test_full_board_without_line_is_draw(self, play, drawn_game_moves):
        game = play(drawn_game_moves)
        assert game.winner is None
        assert game.is_draw is True
        assert game.status == "draw"

    def test_check_draw_requires_full_board(self):
        assert check_draw(["X", "O", "X", "X", "O", "O", "O", "X", EMPTY]) is False
        assert check_draw(["X", "O", "X", "X", "O", "O", "O", "X", "X"]) is True

    def test_alternating_fill_is_won_before_board_fills(self):
        """X:0, O:1, X:2, O:3, X:4, O:5, X:6 completes the 2-4-6 diagonal, so the rest is rejected."""
        moves = [("X", 0), ("O", 1), ("X", 2), ("O", 3), ("X", 4), ("O", 5), ("X", 6), ("O", 7), ("X", 8)]
        result = replay(moves)
        assert result.error == MoveError.GAME_ALREADY_FINISHED
        assert result.game.winner == "X"
        assert result.game.is_draw is False
        assert len(result.game.move_history) == 7


class TestRejectedMoves:
    """Every rejection leaves the game untouched."""

    def test_position_out_of_range(self, new_game):
        result = apply_move(new_game, 9, "X")
        assert result.error == MoveError.INVALID_POSITION
        assert result.game is new_game
        assert new_game.board == [EMPTY] * 9

    @pytest.mark.parametrize("position", [-1, 100, "4", 1.0, None, True])
    def test_position_must_be_board_int(self, new_game, position):
        assert apply_move(new_game, position, "X").error == MoveError.INVALID_POSITION

    def test_out_of_turn(self, play):
        game = play([("X", 0)])
        result = apply_move(game, 1, "X")
        assert result.error == MoveError.NOT_PLAYERS_TURN
        assert result.game is game
        assert game.board[1] == EMPTY

    def test_unknown_player(self, new_game):
        assert apply_move(new_game, 0, "Z").error == MoveError.NOT_PLAYERS_TURN

    def test_occupied(self, play):
        game = play([("X", 0)])
        result = apply_move(game, 0, "O")
        assert result.error == MoveError.POSITION_OCCUPIED
        assert game.board[0] == "X"
        assert len(game.move_history) == 1

    def test_finished_game(self, play, x_wins_top_row):
        game = play(x_wins_top_row)
        result = apply_move(game, 5, "O")
        assert result.error == MoveError.GAME_ALREADY_FINISHED
        assert result.game is game
        assert result.message == "Game is already finished"

    def test_finished_reported_before_other_errors(self, play, drawn_game_moves):
        """Any move on an ended game gets GameAlreadyFinished, even an invalid one."""
        game = play(drawn_game_moves)
        for position, player in [(42, "O"), (0, "X"), (0, "O")]:
            assert apply_move(game, position, player).error == MoveError.GAME_ALREADY_FINISHED

    def test_failed_result_is_not_finished(self, play, x_wins_top_row):
        """Only an accepted terminal move asks for stats."""
        game = play(x_wins_top_row)
        assert apply_move(game, 5, "O").finished is False


class TestHelpers:

    def test_current_turn_from_board(self):
        assert current_turn([EMPTY] * 9) == "X"
        assert current_turn(["X"] + [EMPTY] * 8) == "O"
        assert current_turn(["X", "O"] + [EMPTY] * 7) == "X"

    def test_replay_stops_at_first_rejection(self):
        result = replay([("X", 0), ("O", 0), ("X", 1)])
        assert result.error == MoveError.POSITION_OCCUPIED
        assert len(result.game.move_history) == 1

    def test_replay_finished_flag(self, x_wins_top_row):
        result = replay(x_wins_top_row)
        assert result.ok
        assert result.finished

    def test_move_result_is_frozen(self, new_game):
        result = apply_move(new_game, 0, "X")
        with pytest.raises(ValidationError):
            result.error = MoveError.POSITION_OCCUPIED


class TestFindInconsistency:
    """Checks applied to games read back from storage."""

    def test_played_games_are_consistent(self, new_game, play, x_wins_top_row, drawn_game_moves):
        assert find_inconsistency(new_game) is None
        assert find_inconsistency(play(x_wins_top_row)) is None
        assert find_inconsistency(play(drawn_game_moves)) is None

    def test_wrong_current_player(self, play):
        game = play([("X", 0)]).model_copy(update={"current_player": "X"})
        assert "current player" in find_inconsistency(game)

    def test_board_without_history(self, new_game):
        game = new_game.model_copy(update={"board": ["X", "O"] + [EMPTY] * 7})
        assert find_inconsistency(game) == "board does not match the move history"

    def test_illegal_history(self, play):
        game = play([("X", 0), ("O", 1)])
        bad_history = [game.move_history[0], game.move_history[0].model_copy(update={"player": "O"})]
        game = game.model_copy(update={"move_history": bad_history})
        assert "PositionOccupied" in find_inconsistency(game)

    def test_outcome_missing(self, play, x_wins_top_row):
        game = play(x_wins_top_row).model_copy(update={"winner": None})
        assert find_inconsistency(game) == "outcome does not match the board"
