# arena.py

import logging

from config import config
from data_structures import GameRecord, MatchStats
from game import TicTacToeGame, PLAYER_X, PLAYER_O, format_board, is_move_valid
from opponents import network_move

logger = logging.getLogger("Arena")

def play_game(x_player, o_player) -> GameRecord:
    """Plays one game; each player is a callable (board, turn) -> move index."""
    game = TicTacToeGame(first_player=PLAYER_X)
    players = {PLAYER_X: x_player, PLAYER_O: o_player}
    while game.get_game_ended() is None:
        turn = game.current_player
        move = players[turn](game.board, turn)
        if move is None or not is_move_valid(game.board, move):
            logger.warning(f"Player {turn} returned invalid move {move} on {game.board}. Ending game as a draw.")
            break
        game.do_move(move)
    result = game.get_game_ended()
    winner = result if result in (PLAYER_X, PLAYER_O) else None
    return GameRecord(moves=list(game.history), winner=winner)

def evaluate_network(network, opponent, num_games=config.EVAL_GAMES, network_mark=PLAYER_O, temperature=0.0, rng=None) -> MatchStats:
    """Plays `num_games` greedy games of the network against `opponent` and tallies the network's results."""
    def network_player(board, turn):
        return network_move(network, board, turn, temperature=temperature, rng=rng)

    stats = MatchStats()
    for _ in range(num_games):
        if network_mark == PLAYER_O:
            record = play_game(opponent, network_player)
        else:
            record = play_game(network_player, opponent)
        stats = stats.merge(tally(record, network_mark))
    logger.info(f"Evaluation ({num_games} games, network as {network_mark}): "
                f"{stats.wins}W / {stats.draws}D / {stats.losses}L, score {stats.score:.1%}")
    return stats

def tally(record: GameRecord, network_mark=PLAYER_O) -> MatchStats:
    """One game's result from the network's side."""
    if record.winner is None:
        return MatchStats(draws=1)
    if record.winner == network_mark:
        return MatchStats(wins=1)
    return MatchStats(losses=1)

def human_player(read=None, write=print):
    """
    A player that asks for moves on the terminal. Re-prompts until it gets an
    empty cell; end of input or 'q' returns None, which ends the game.
    """
    def play(board, turn):
        ask = read or input
        write(format_board(board))
        while True:
            try:
                raw = ask(f"{turn} to move (0-8, q to quit): ").strip()
            except EOFError:
                return None
            if raw.lower() == 'q':
                return None
            if raw.isdigit() and is_move_valid(board, int(raw)):
                return int(raw)
            write(f"'{raw}' is not an empty cell.")
    return play
