"""
Pytest tests for GameState transitions and the Pass/Move action model.
"""

import pytest

from territory_game import (
    PASS, Board, Coord, GameState, InvalidMoveError, Move, Pass, apply,
)


class TestActions:
    """The two-case action variant."""

    @pytest.mark.unit
    def test_actions_are_hashable_values(self):
        assert Pass() == PASS
        assert Move(Coord(1, 2)) == Move((1, 2))
        assert Move(Coord(1, 2)) != PASS
        assert len({PASS, Pass(), Move(Coord(0, 0)), Move((0, 0))}) == 2

    @pytest.mark.unit
    def test_action_names(self):
        assert str(Move(Coord(2, 0))) == "C1"
        assert str(PASS) == "pass"
        assert Coord(0, 4).name == "A5"


class TestGameStateTransitions:
    """apply(), turn order and legality."""

    @pytest.mark.unit
    def test_new_state(self, small_board_size):
        state = GameState.new(small_board_size, 3, starting_player=1)
        assert state.next_player == 1
        assert state.num_players == 3
        assert state.board.width == state.board.height == small_board_size
        assert state.board.is_empty()

    @pytest.mark.unit
    def test_invalid_construction(self):
        with pytest.raises(ValueError):
            GameState.new(5, 1)
        with pytest.raises(ValueError):
            GameState.new(5, 2, starting_player=2)

    @pytest.mark.unit
    def test_move_places_stone_and_advances(self):
        state = GameState.new(5, 2)
        after = apply(state, Move(Coord(2, 2)))
        assert after.board[(2, 2)] == 0
        assert after.next_player == 1
        assert after.board.influence((2, 2)).is_occupied()
        assert after.points() == [1, 0]

    @pytest.mark.unit
    def test_apply_is_pure(self):
        state = GameState.new(5, 2)
        state.apply(Move(Coord(0, 0)))
        assert state.board.is_empty()
        assert state.next_player == 0

    @pytest.mark.unit
    def test_pass_leaves_board_untouched(self, opposed_position):
        state = GameState(opposed_position, 1, 2)
        after = state.apply(PASS)
        assert after.next_player == 0
        assert after.board.to_rows() == opposed_position.to_rows()

    @pytest.mark.unit
    def test_turn_order_is_cyclic(self):
        for num_players in (2, 3, 5):
            state = GameState.new(7, num_players, starting_player=1)
            state = state.apply(Move(Coord(3, 3)))
            for _ in range(num_players - 1):
                state = state.apply(PASS)
            assert state.next_player == 1

    @pytest.mark.unit
    def test_illegal_move_fails_fast(self, corner_pocket_position):
        state = GameState(corner_pocket_position, 1, 2)
        with pytest.raises(InvalidMoveError):
            state.apply(Move(Coord(0, 0)))
        with pytest.raises(InvalidMoveError):
            state.apply(Move(Coord(4, 4)))
        with pytest.raises(InvalidMoveError):
            state.apply(Move(Coord(7, 7)))

    @pytest.mark.unit
    def test_unknown_action_rejected(self):
        with pytest.raises(TypeError):
            GameState.new(5, 2).apply((1, 1))

    @pytest.mark.unit
    def test_play_mutates_in_place(self):
        state = GameState.new(5, 2)
        state.play(Move(Coord(1, 1)))
        assert state.board[(1, 1)] == 0
        assert state.next_player == 1


class TestLegalActions:
    """Enumeration of legal actions."""

    @pytest.mark.unit
    def test_every_empty_cell_on_fresh_board(self):
        state = GameState.new(5, 2)
        actions = state.legal_actions()
        assert len(actions) == 25
        assert actions[0] == Move(Coord(0, 0))
        assert PASS not in actions

    @pytest.mark.unit
    def test_settled_pocket_excluded(self, corner_pocket_position):
        state = GameState(corner_pocket_position, 1, 2)
        actions = state.legal_actions()
        assert Move(Coord(0, 0)) not in actions
        assert len(actions) == 25 - 3 - 1
        assert all(state.is_valid_move(a.coord) for a in actions)

    @pytest.mark.unit
    def test_only_pass_when_over(self, terminal_state):
        assert terminal_state.is_game_over()
        assert terminal_state.legal_actions() == [PASS]
        assert terminal_state.apply(PASS).legal_actions() == [PASS]


class TestRewards:
    """Reward vector derived from the final score."""

    @pytest.mark.unit
    def test_rewards_are_territory_shares(self, terminal_state):
        rewards = terminal_state.rewards()
        assert rewards[0] == pytest.approx(10 / 25)
        assert rewards[1] == pytest.approx(15 / 25)

    @pytest.mark.unit
    def test_rewards_uniform_without_territory(self):
        rewards = GameState.new(5, 4).rewards()
        assert list(rewards) == [0.25] * 4

    @pytest.mark.unit
    def test_rewards_follow_score(self, opposed_position):
        state = GameState(opposed_position, 0, 2)
        assert state.rewards()[0] == pytest.approx(0.5)
        opposed_position[(1, 1)] = 0
        state = GameState(opposed_position, 1, 2)
        assert state.rewards()[0] > 0.5
