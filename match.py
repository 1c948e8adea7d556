"""
Match orchestration: settings, human/bot turn alternation, undo and save files
"""
import json
import os
import random
from collections import deque
from dataclasses import asdict, dataclass, replace
from typing import Dict, List, Optional

from mcts_territory import MCTSPlayer
from territory_game import PASS, Action, Board, Coord, GameState, Move

SAVE_FILE_NAME = "territory.json"

MIN_BOARD_SIZE = 5
MAX_BOARD_SIZE = 17
MAX_HUMANS = 4
MAX_BOTS = 4
MIN_THINK_TIME = 0.01
MAX_THINK_TIME = 3.0

PLAYER_NAMES = ['Yellow', 'Pink', 'Green', 'Purple']


def _clamp(value, low, high):
    return max(low, min(high, value))


@dataclass(frozen=True)
class Settings:
    board_size: int = 9
    num_humans: int = 1
    num_bots: int = 1
    humans_first: bool = True
    bot_think_time: float = 1.0

    @property
    def num_players(self) -> int:
        return self.num_humans + self.num_bots

    @property
    def first_player(self) -> int:
        return 0 if self.humans_first else self.num_humans % self.num_players

    def normalized(self) -> 'Settings':
        """Clamp every field to its range and make sure at least two players take part"""
        settings = replace(
            self,
            board_size=_clamp(int(self.board_size), MIN_BOARD_SIZE, MAX_BOARD_SIZE),
            num_humans=_clamp(int(self.num_humans), 0, MAX_HUMANS),
            num_bots=_clamp(int(self.num_bots), 0, MAX_BOTS),
            humans_first=bool(self.humans_first),
            bot_think_time=_clamp(float(self.bot_think_time), MIN_THINK_TIME, MAX_THINK_TIME),
        )
        while settings.num_players < 2:
            settings = replace(settings, num_humans=settings.num_humans + 1)
        return settings

    @classmethod
    def from_dict(cls, data: Dict) -> 'Settings':
        known = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        return cls(**known).normalized()


class Match:
    """The authoritative game between humans and bots"""

    def __init__(self, settings: Optional[Settings] = None, state: Optional[GameState] = None):
        self.settings = (settings or Settings()).normalized()
        self.state = state or self._fresh_state()
        self.undo_stack = deque()
        self.bot = MCTSPlayer(think_time=self.settings.bot_think_time)

    def _fresh_state(self) -> GameState:
        return GameState.new(self.settings.board_size, self.settings.num_players,
                             self.settings.first_player)

    @property
    def num_players(self) -> int:
        return self.state.num_players

    def new_game(self, settings: Optional[Settings] = None):
        """Start over, keeping the abandoned game on the undo stack"""
        if not self.state.board.is_empty():
            self.undo_stack.append((self.settings, self.state.copy()))
        if settings is not None:
            self.settings = settings.normalized()
            self.bot.set_parameters(think_time=self.settings.bot_think_time)
        self.state = self._fresh_state()

    def undo(self) -> bool:
        if not self.undo_stack:
            return False
        self.settings, self.state = self.undo_stack.pop()
        self.bot.set_parameters(think_time=self.settings.bot_think_time)
        return True

    def is_human(self, player: int) -> bool:
        return player < self.settings.num_humans

    def is_game_over(self) -> bool:
        return self.state.is_game_over()

    def next_player_is_human(self) -> bool:
        return self.is_human(self.state.next_player) and not self.is_game_over()

    def next_player_is_bot(self) -> bool:
        return not self.is_human(self.state.next_player) and not self.is_game_over()

    def player_name(self, player: int) -> str:
        name = PLAYER_NAMES[player] if player < len(PLAYER_NAMES) else str(player)
        if not self.is_human(player):
            name += " (bot)"
        return name

    def play_human(self, coord) -> bool:
        """Apply a human's placement; False if it is not a human's turn or not legal"""
        if not self.next_player_is_human() or not self.state.is_valid_move(coord):
            return False
        self.undo_stack.append((self.settings, self.state.copy()))
        self.state = self.state.apply(Move(Coord(*coord)))
        return True

    def choose_bot_action(self, rng: Optional[random.Random] = None) -> Optional[Action]:
        """Run the search on a snapshot; the authoritative state is untouched"""
        return self.bot.get_action(self.state.copy(), rng)

    def apply_bot_action(self, action: Optional[Action]) -> Action:
        """No decision counts as a pass"""
        action = action if action is not None else PASS
        self.state = self.state.apply(action)
        return action

    def play_bot(self, rng: Optional[random.Random] = None) -> Optional[Action]:
        if not self.next_player_is_bot():
            return None
        return self.apply_bot_action(self.choose_bot_action(rng))

    def snapshot(self) -> Dict:
        """Everything a client needs to draw the board"""
        board = self.state.board
        volatile = board.volatile_cells(self.num_players)
        human_to_play = self.next_player_is_human()
        cells = []
        for c in board.coords():
            influence = board.influence(c)
            cells.append({
                'x': c.x,
                'y': c.y,
                'stone': board.get(c),
                'claimant': influence.player(),
                'occupied': influence.is_occupied(),
                'volatile': bool(volatile[board.index(c)]),
                'playable': human_to_play and bool(volatile[board.index(c)]),
            })
        return {
            'settings': asdict(self.settings),
            'width': board.width,
            'height': board.height,
            'cells': cells,
            'nextPlayer': self.state.next_player,
            'nextPlayerIsHuman': human_to_play,
            'players': [{'name': self.player_name(p), 'human': self.is_human(p)}
                        for p in range(self.num_players)],
            'score': self.state.points(),
            'gameOver': self.is_game_over(),
            'canUndo': bool(self.undo_stack),
        }

    def to_dict(self) -> Dict:
        board = self.state.board
        return {
            'settings': asdict(self.settings),
            'board': {'width': board.width, 'height': board.height, 'cells': board.to_rows()},
            'next_player': self.state.next_player,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'Match':
        """Rebuild a match; raises ValueError/KeyError/TypeError on inconsistent data"""
        raw = Settings(**{k: v for k, v in data['settings'].items()
                          if k in Settings.__dataclass_fields__})
        settings = raw.normalized()
        if raw.num_players < 2:
            raise ValueError(f"Saved game has {raw.num_players} players, need at least 2")
        if settings != raw:
            raise ValueError(f"Saved settings are out of range: {raw}")
        board_data = data['board']
        rows: List[List[Optional[int]]] = board_data['cells']
        board = Board.from_rows(rows)
        if (board.width, board.height) != (board_data['width'], board_data['height']):
            raise ValueError("Board dimensions do not match the stored cells")
        if (board.width, board.height) != (settings.board_size, settings.board_size):
            raise ValueError("Board dimensions do not match the saved board size")
        stones = board.cells[board.cells >= 0]
        if stones.size and int(stones.max()) >= settings.num_players:
            raise ValueError("Board holds stones of unknown players")
        state = GameState(board, int(data['next_player']), settings.num_players)
        return cls(settings, state)

    def save(self, path: str = SAVE_FILE_NAME) -> bool:
        try:
            with open(path, 'w') as f:
                json.dump(self.to_dict(), f)
        except OSError as e:
            print(f"Error saving game to {path}: {e}")
            return False
        return True

    @classmethod
    def load(cls, path: str = SAVE_FILE_NAME) -> Optional['Match']:
        if not os.path.exists(path):
            return None
        try:
            with open(path) as f:
                return cls.from_dict(json.load(f))
        except (OSError, ValueError, KeyError, TypeError) as e:
            print(f"Ignoring unreadable save file {path}: {e}")
            return None

    @classmethod
    def restore_or_new(cls, path: str = SAVE_FILE_NAME) -> 'Match':
        return cls.load(path) or cls()
