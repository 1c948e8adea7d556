"""Shared pytest fixtures and configuration for all tests."""

import pytest
import sys
import os
import random

# Add parent directory to path so we can import modules
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from territory_game import Board, GameState


@pytest.fixture
def empty_board_5x5():
    """Fixture for empty 5x5 board."""
    return Board(5, 5)


@pytest.fixture
def empty_board_9x9():
    """Fixture for empty 9x9 board."""
    return Board(9, 9)


@pytest.fixture
def opposed_position():
    """Two players facing each other across an open 5x5 board."""
    board = Board(5, 5)
    board[(0, 2)] = 0
    board[(4, 2)] = 1
    return board


@pytest.fixture
def walled_position():
    """Player 0 walls off column A, player 1 owns columns D-E; nothing is left to contest."""
    board = Board(5, 5)
    for y in range(5):
        board[(1, y)] = 0
        board[(2, y)] = 1
    return board


@pytest.fixture
def corner_pocket_position():
    """Player 0 encloses the A1 corner; player 1 sits in the opposite corner."""
    board = Board(5, 5)
    board[(1, 0)] = 0
    board[(0, 1)] = 0
    board[(4, 4)] = 1
    return board


@pytest.fixture
def terminal_state(walled_position):
    return GameState(walled_position, next_player=0, num_players=2)


@pytest.fixture
def rng():
    """Fixture for a seeded random source."""
    return random.Random(42)


@pytest.fixture
def small_board_size():
    """Small board size for quick tests."""
    return 5
