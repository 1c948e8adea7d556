"""
Territory game rules: board state, influence, legality, scoring and turn order
"""
import numpy as np
from collections import namedtuple
from dataclasses import dataclass
from typing import Iterator, List, Optional, Union
from numba import njit

# Constants for board representation
EMPTY = -1
UNREACHED = 1 << 30

MIN_PLAYERS = 2
MAX_PLAYER_ID = 127  # Cells are int8


class TerritoryError(Exception):
    """Base class for rule violations"""


class CoordOutOfRange(TerritoryError, IndexError):
    """Lookup of a cell that is not on the board"""


class InvalidMoveError(TerritoryError, ValueError):
    """A stone placement that the rules do not allow"""


class Coord(namedtuple('Coord', 'x y')):
    __slots__ = ()

    @property
    def name(self) -> str:
        """Chess-like name, e.g. C3"""
        return f"{chr(ord('A') + self.x)}{self.y + 1}"


@dataclass(frozen=True)
class Influence:
    """Who claims a cell, and whether a stone sits on it"""
    claimant: Optional[int]
    occupied: bool = False

    def player(self) -> Optional[int]:
        return self.claimant

    def is_occupied(self) -> bool:
        return self.occupied


@njit
def _distance_fields(cells, num_players):
    """Multi-source BFS from every player's stones through empty cells"""
    height, width = cells.shape
    dist = np.full((num_players, height, width), UNREACHED, dtype=np.int32)
    queue = np.empty(height * width, dtype=np.int64)

    for player in range(num_players):
        head = 0
        tail = 0
        for y in range(height):
            for x in range(width):
                if cells[y, x] == player:
                    dist[player, y, x] = 0
                    queue[tail] = y * width + x
                    tail += 1

        while head < tail:
            flat = queue[head]
            head += 1
            y = flat // width
            x = flat - y * width
            step = dist[player, y, x] + 1
            for ny, nx in ((y - 1, x), (y + 1, x), (y, x - 1), (y, x + 1)):
                if 0 <= ny < height and 0 <= nx < width:
                    if cells[ny, nx] == EMPTY and dist[player, ny, nx] == UNREACHED:
                        dist[player, ny, nx] = step
                        queue[tail] = ny * width + nx
                        tail += 1

    return dist


class Board:
    """Grid of cells; each cell is EMPTY or holds one player's stone"""

    def __init__(self, width: int, height: int):
        if width <= 0 or height <= 0:
            raise ValueError(f"Board dimensions must be positive, got {width}x{height}")
        self.width = width
        self.height = height
        self.cells = np.full((height, width), EMPTY, dtype=np.int8)

        # Derived per snapshot, dropped on every write
        self._dist_cache = None
        self._claim_cache = None

    @classmethod
    def from_rows(cls, rows: List[List[Optional[int]]]) -> 'Board':
        """Build a board from rows of cells (None for empty)"""
        if not rows or not rows[0]:
            raise ValueError("Board rows must not be empty")
        board = cls(len(rows[0]), len(rows))
        for y, row in enumerate(rows):
            if len(row) != board.width:
                raise ValueError(f"Row {y} has {len(row)} cells, expected {board.width}")
            for x, cell in enumerate(row):
                if cell is not None:
                    if isinstance(cell, bool) or not isinstance(cell, int) or not 0 <= cell <= MAX_PLAYER_ID:
                        raise ValueError(f"Invalid player {cell!r} at {Coord(x, y).name}")
                    board.cells[y, x] = cell
        return board

    def to_rows(self) -> List[List[Optional[int]]]:
        return [[None if cell == EMPTY else int(cell) for cell in row] for row in self.cells]

    def copy(self) -> 'Board':
        """Fast copy of the grid"""
        new_board = Board(self.width, self.height)
        new_board.cells = self.cells.copy()
        return new_board

    def coords(self) -> Iterator[Coord]:
        """All cells in row-major order"""
        for y in range(self.height):
            for x in range(self.width):
                yield Coord(x, y)

    def coord_at(self, index: int) -> Coord:
        y, x = divmod(index, self.width)
        return Coord(x, y)

    def in_bounds(self, c) -> bool:
        return 0 <= c[0] < self.width and 0 <= c[1] < self.height

    def index(self, c) -> Optional[int]:
        if not self.in_bounds(c):
            return None
        return c[1] * self.width + c[0]

    def get(self, c) -> Optional[int]:
        """Occupant of c, or None for an empty or off-board cell"""
        if not self.in_bounds(c):
            return None
        cell = self.cells[c[1], c[0]]
        return None if cell == EMPTY else int(cell)

    def __getitem__(self, c) -> Optional[int]:
        if not self.in_bounds(c):
            raise CoordOutOfRange(f"{tuple(c)} is outside the {self.width}x{self.height} board")
        return self.get(c)

    def __setitem__(self, c, player: int):
        self.place(c, player)

    def place(self, c, player: int):
        """Put a stone on an empty cell"""
        if not self.in_bounds(c):
            raise CoordOutOfRange(f"{tuple(c)} is outside the {self.width}x{self.height} board")
        if not 0 <= player <= MAX_PLAYER_ID:
            raise InvalidMoveError(f"Invalid player {player}")
        if self.cells[c[1], c[0]] != EMPTY:
            raise InvalidMoveError(f"{Coord(*c).name} is already occupied")
        self.cells[c[1], c[0]] = player
        self._dist_cache = None
        self._claim_cache = None

    def is_empty(self) -> bool:
        return not np.any(self.cells != EMPTY)

    def is_full(self) -> bool:
        return not np.any(self.cells == EMPTY)

    def _players_present(self) -> int:
        return int(self.cells.max()) + 1

    def distances(self) -> np.ndarray:
        """Distance fields, shape (players, height, width), for every player id up to the highest on the board"""
        if self._dist_cache is None:
            self._dist_cache = _distance_fields(self.cells, self._players_present())
        return self._dist_cache

    def _claims(self) -> np.ndarray:
        if self._claim_cache is None:
            claims = self.cells.copy()
            dist = self.distances()
            num_with_stones = len(np.unique(self.cells[self.cells != EMPTY]))
            if num_with_stones >= 2:
                nearest = dist.min(axis=0)
                num_nearest = (dist == nearest).sum(axis=0)
                open_claims = np.where((nearest < UNREACHED) & (num_nearest == 1),
                                       dist.argmin(axis=0), EMPTY)
                claims = np.where(self.cells == EMPTY, open_claims, self.cells).astype(np.int8)
            self._claim_cache = claims
        return self._claim_cache

    def influence(self, c) -> Optional[Influence]:
        """Claimant of c; None when c is off the board"""
        if not self.in_bounds(c):
            return None
        claimant = self._claims()[c[1], c[0]]
        occupied = self.cells[c[1], c[0]] != EMPTY
        return Influence(None if claimant == EMPTY else int(claimant), bool(occupied))

    def volatile_cells(self, num_players: int) -> np.ndarray:
        """
        Flat bool array (same order as index()) of cells whose claim can still change.

        An empty cell is settled once every player has a stone and exactly one
        player can reach it: rivals may not play there and no placement elsewhere
        can open a path to it. Every other empty cell is volatile.
        """
        empty = self.cells == EMPTY
        present = self._players_present()
        all_have_stones = present >= num_players and all(
            np.any(self.cells == player) for player in range(num_players))
        if not all_have_stones:
            return empty.ravel()

        reachers = (self.distances() < UNREACHED).sum(axis=0)
        return (empty & (reachers != 1)).ravel()

    def is_valid_move(self, c, player: int, num_players: int) -> bool:
        """Check if player may place a stone at c"""
        if not 0 <= player < num_players:
            return False
        index = self.index(c)
        if index is None or self.cells[c[1], c[0]] != EMPTY:
            return False
        return bool(self.volatile_cells(num_players)[index])

    def valid_moves(self, num_players: int) -> List[Coord]:
        """All empty volatile cells, in board order"""
        return [self.coord_at(int(i)) for i in np.flatnonzero(self.volatile_cells(num_players))]

    def points(self, num_players: int) -> List[int]:
        """Stones plus claimed open cells, per player"""
        claims = self._claims()
        claimed = claims[claims != EMPTY].astype(np.int64)
        return np.bincount(claimed, minlength=num_players).tolist()

    def is_game_over(self, num_players: int) -> bool:
        return not np.any(self.volatile_cells(num_players))


@dataclass(frozen=True)
class Pass:
    """Skip the turn"""

    def __str__(self):
        return "pass"


@dataclass(frozen=True)
class Move:
    """Place the next player's stone at coord"""
    coord: Coord

    def __str__(self):
        return Coord(*self.coord).name


Action = Union[Pass, Move]
PASS = Pass()


class GameState:
    """A board plus whose turn it is; the unit the search engine simulates"""

    def __init__(self, board: Board, next_player: int, num_players: int):
        if num_players < MIN_PLAYERS:
            raise ValueError(f"Need at least {MIN_PLAYERS} players, got {num_players}")
        if not 0 <= next_player < num_players:
            raise ValueError(f"next_player {next_player} out of range for {num_players} players")
        self.board = board
        self.next_player = next_player
        self.num_players = num_players

    @classmethod
    def new(cls, board_size: int, num_players: int, starting_player: int = 0) -> 'GameState':
        return cls(Board(board_size, board_size), starting_player, num_players)

    def copy(self) -> 'GameState':
        return GameState(self.board.copy(), self.next_player, self.num_players)

    def is_valid_move(self, c) -> bool:
        return self.board.is_valid_move(c, self.next_player, self.num_players)

    def legal_actions(self) -> List[Action]:
        moves = [Move(c) for c in self.board.valid_moves(self.num_players)]
        return moves if moves else [PASS]

    def play(self, action: Action):
        """Apply action in place"""
        if isinstance(action, Move):
            if not self.is_valid_move(action.coord):
                raise InvalidMoveError(
                    f"Player {self.next_player} cannot play at {Coord(*action.coord).name}")
            self.board.place(action.coord, self.next_player)
        elif not isinstance(action, Pass):
            raise TypeError(f"Unknown action {action!r}")
        self.next_player = (self.next_player + 1) % self.num_players

    def apply(self, action: Action) -> 'GameState':
        new_state = self.copy()
        new_state.play(action)
        return new_state

    def is_game_over(self) -> bool:
        return self.board.is_game_over(self.num_players)

    def points(self) -> List[int]:
        return self.board.points(self.num_players)

    def rewards(self) -> np.ndarray:
        """Each player's share of the claimed territory"""
        score = np.asarray(self.points()[:self.num_players], dtype=np.float64)
        total = score.sum()
        if total == 0:
            return np.full(self.num_players, 1.0 / self.num_players)
        return score / total


def apply(state: GameState, action: Action) -> GameState:
    return state.apply(action)
