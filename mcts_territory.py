"""
Monte Carlo Tree Search (MCTS) for the territory game, multiplayer UCT
"""
import math
import random
import time
from dataclasses import dataclass
from typing import Dict, List, Optional

import numpy as np

from territory_game import Action, GameState, Move

DEFAULT_EXPLORATION = math.sqrt(2)


@dataclass
class MCTSStats:
    """Statistics of one decision, for display and debugging"""
    visits: Dict[Action, int]
    mean_rewards: Dict[Action, float]
    best_action: Optional[Action]
    total_iterations: int
    thinking_time: float


class MCTSNode:
    """Node in the search arena; children are arena indices keyed by action"""

    __slots__ = ('player', 'terminal', 'visits', 'rewards', 'untried', 'children')

    def __init__(self, state: GameState):
        self.player = state.next_player  # The player to move at this node
        self.terminal = state.is_game_over()
        self.visits = 0
        self.rewards = np.zeros(state.num_players)
        self.untried: List[Action] = [] if self.terminal else state.legal_actions()
        self.children: Dict[Action, int] = {}

    def mean_reward(self, player: int) -> float:
        if self.visits == 0:
            return 0.0
        return self.rewards[player] / self.visits

    def update(self, rewards: np.ndarray):
        self.visits += 1
        self.rewards += rewards


class MCTSSearch:
    """One decision's search tree over a private copy of the game state"""

    def __init__(self, state: GameState, exploration: float = DEFAULT_EXPLORATION):
        self.root_state = state.copy()
        self.exploration = exploration
        self.nodes: List[MCTSNode] = [MCTSNode(self.root_state)]
        self.iterations = 0

    @property
    def root(self) -> MCTSNode:
        return self.nodes[0]

    def iterate(self, rng: random.Random):
        """Run one selection / expansion / rollout / backpropagation pass"""
        state = self.root_state.copy()
        node = self.root
        path = [0]

        # Selection phase - descend while every action here has been tried
        while not node.terminal and not node.untried:
            action, index = self._select_child(node, rng)
            state.play(action)
            node = self.nodes[index]
            path.append(index)

        # Expansion phase
        if not node.terminal and node.untried:
            action = node.untried.pop(rng.randrange(len(node.untried)))
            state.play(action)
            self.nodes.append(MCTSNode(state))
            node.children[action] = len(self.nodes) - 1
            path.append(len(self.nodes) - 1)

        # Simulation phase
        rewards = self._rollout(state, rng)

        # Backpropagation phase
        for index in path:
            self.nodes[index].update(rewards)
        self.iterations += 1

    def _select_child(self, node: MCTSNode, rng: random.Random):
        """UCB1 from the point of view of the player to move at node"""
        log_visits = math.log(node.visits)
        best_value = -float('inf')
        best = []
        for action, index in node.children.items():
            child = self.nodes[index]
            exploitation = child.rewards[node.player] / child.visits
            exploration = self.exploration * math.sqrt(log_visits / child.visits)
            value = exploitation + exploration
            if value > best_value:
                best_value = value
                best = [(action, index)]
            elif value == best_value:
                best.append((action, index))
        return best[rng.randrange(len(best))]

    def _rollout(self, state: GameState, rng: random.Random) -> np.ndarray:
        """Play uniformly random legal actions until the game is over"""
        while not state.is_game_over():
            actions = state.legal_actions()
            state.play(actions[rng.randrange(len(actions))])
        return state.rewards()

    def best_action(self, rng: Optional[random.Random] = None) -> Optional[Action]:
        """Most visited root action, or None if nothing has been expanded"""
        children = self.root.children
        if not children:
            return None

        most_visits = max(self.nodes[index].visits for index in children.values())
        candidates = [action for action, index in children.items()
                      if self.nodes[index].visits == most_visits]
        if len(candidates) == 1:
            return candidates[0]
        if rng is not None:
            return candidates[rng.randrange(len(candidates))]

        player = self.root.player
        return max(candidates, key=lambda a: self.nodes[children[a]].mean_reward(player))

    def stats(self, thinking_time: float = 0.0, rng: Optional[random.Random] = None) -> MCTSStats:
        player = self.root.player
        children = self.root.children
        return MCTSStats(
            visits={action: self.nodes[index].visits for action, index in children.items()},
            mean_rewards={action: self.nodes[index].mean_reward(player)
                          for action, index in children.items()},
            best_action=self.best_action(rng),
            total_iterations=self.iterations,
            thinking_time=thinking_time,
        )


class MCTSPlayer:
    """MCTS-based bot with a wall-clock thinking budget"""

    def __init__(self, think_time: float = 1.0, exploration: float = DEFAULT_EXPLORATION,
                 max_iterations: Optional[int] = None):
        """
        Initialize MCTS player

        Args:
            think_time: Seconds to search per decision; checked between iterations
            exploration: UCB1 exploration constant
            max_iterations: Optional cap on iterations per decision
        """
        self.think_time = think_time
        self.exploration = exploration
        self.max_iterations = max_iterations
        self.last_stats = None

    def get_action(self, state: GameState, rng: Optional[random.Random] = None) -> Optional[Action]:
        """Search from state and return the chosen action (None: no decision)"""
        if state.is_game_over():
            self.last_stats = None
            return None

        rng = rng or random.Random()
        search = MCTSSearch(state, self.exploration)
        start_time = time.time()

        # Always complete at least one iteration
        while True:
            search.iterate(rng)
            if self.max_iterations is not None and search.iterations >= self.max_iterations:
                break
            if time.time() - start_time >= self.think_time:
                break

        self.last_stats = search.stats(time.time() - start_time, rng)
        return self.last_stats.best_action

    def get_move(self, state: GameState, rng: Optional[random.Random] = None):
        """Chosen coordinate, or None to pass"""
        action = self.get_action(state, rng)
        if isinstance(action, Move):
            return action.coord
        return None

    def set_parameters(self, think_time: float = None, exploration: float = None,
                       max_iterations: int = None):
        """Update MCTS parameters"""
        if think_time is not None:
            self.think_time = think_time
        if exploration is not None:
            self.exploration = exploration
        if max_iterations is not None:
            self.max_iterations = max_iterations
