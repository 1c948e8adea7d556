import argparse
import random
import time
from typing import List, Optional

import numpy as np
from tqdm import tqdm

from match import MAX_BOTS, Match, Settings
from territory_game import Board

STONE_CHARS = 'XOASVWYZ'


def format_board(board: Board) -> str:
    """Text board: stones in capitals, claimed open cells in lowercase, '.' neutral"""
    lines = ['   ' + ' '.join(chr(ord('A') + x) for x in range(board.width))]
    for y in range(board.height):
        row = []
        for x in range(board.width):
            influence = board.influence((x, y))
            claimant = influence.player()
            if claimant is None:
                row.append('.')
            else:
                char = STONE_CHARS[claimant % len(STONE_CHARS)]
                row.append(char if influence.is_occupied() else char.lower())
        lines.append(f"{y + 1:2d} " + ' '.join(row))
    return '\n'.join(lines)


def play_game(match: Match, rng: random.Random, save_path: Optional[str] = None) -> int:
    """Play bots against each other until the game is over; returns the number of turns"""
    turns = 0
    while not match.is_game_over():
        if not match.next_player_is_bot():
            raise ValueError(f"{match.player_name(match.state.next_player)} is not a bot")
        match.play_bot(rng)
        turns += 1
        if save_path:
            match.save(save_path)
    return turns


def run_tournament(settings: Settings, num_games: int, seed: Optional[int] = None,
                   save_path: Optional[str] = None, resume: bool = False, show_boards: bool = True):
    rng = random.Random(seed)
    scores: List[List[int]] = []
    wins = np.zeros(settings.num_players)

    games_pbar = tqdm(range(num_games), desc="Self-play games", leave=True)
    for game_idx in games_pbar:
        match = None
        if resume and save_path and game_idx == 0:
            match = Match.load(save_path)
            if match is not None and match.settings != settings:
                print(f"\nSaved game in {save_path} uses other settings, starting fresh")
                match = None
            elif match is not None:
                print(f"\nResuming saved game from {save_path}")
        if match is None:
            match = Match(settings)

        start_time = time.time()
        turns = play_game(match, rng, save_path)
        score = match.state.points()
        scores.append(score)

        best = max(score)
        winners = [p for p, s in enumerate(score) if s == best]
        for p in winners:
            if p < len(wins):
                wins[p] += 1.0 / len(winners)

        games_pbar.set_description(
            f"Game {game_idx + 1} finished ({turns} turns, {time.time() - start_time:.1f}s)")
        if show_boards:
            print(f"\n{format_board(match.state.board)}\nScore: {score}")

    if not scores:
        return scores
    print(f"\nResults over {num_games} games:")
    averages = np.mean(np.asarray(scores)[:, :settings.num_players], axis=0)
    names = Match(settings)
    for p in range(settings.num_players):
        print(f"  {names.player_name(p):>16}: avg score {averages[p]:6.2f}, wins {wins[p]:5.1f}")
    return scores


def main():
    parser = argparse.ArgumentParser(description='Play the territory game between MCTS bots.')
    parser.add_argument('--board-size', type=int, default=7, help='Side length of the square board (5-17).')
    parser.add_argument('--players', type=int, default=2, help=f'Number of bots (2-{MAX_BOTS}).')
    parser.add_argument('--games', type=int, default=10, help='Number of games to play.')
    parser.add_argument('--think-time', type=float, default=0.2, help='Seconds each bot searches per move.')
    parser.add_argument('--seed', type=int, default=None, help='Random seed for reproducible games.')
    parser.add_argument('--save', type=str, default=None, help='Save the game in progress to this JSON file after every move.')
    parser.add_argument('--resume', action='store_true', help='Continue the game stored in --save first.')
    parser.add_argument('--quiet', action='store_true', help='Do not print the final boards.')
    args = parser.parse_args()
    if not 2 <= args.players <= MAX_BOTS:
        parser.error(f"--players must be between 2 and {MAX_BOTS}")

    settings = Settings(board_size=args.board_size, num_humans=0, num_bots=args.players,
                        bot_think_time=args.think_time).normalized()
    print(f"Self-play on {settings.board_size}x{settings.board_size} with {settings.num_players} bots, "
          f"{settings.bot_think_time:.2f}s per move")
    run_tournament(settings, args.games, seed=args.seed, save_path=args.save,
                   resume=args.resume, show_boards=not args.quiet)


if __name__ == "__main__":
    main()
