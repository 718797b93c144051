# main.py

import argparse
import json
import logging
import os
import sys

from arena import human_player, play_game
from config import config
from dataset import generate_teacher_dataset, to_training_examples
from db_manager import DatabaseManager
from game import EMPTY_BOARD, PLAYER_O, apply_move, format_board
from logger_config import setup_logging, start_queue_logging, stop_queue_logging
from network import NetworkConfig, PolicyValueNet
from opponents import OPPONENT_NAMES, network_move
from trainer import TeacherTrainer, create_summary_writer, load_or_create_network
from utils import _convert_to_json_serializable
from visualize import plot_loss_history, plot_policy_heatmap

logger = logging.getLogger("Main")

# Training runs log through a queue so file writes stay off the training loop.
LONG_RUNNING_COMMANDS = ('train', 'rollouts')

def log_and_display_config(network: PolicyValueNet, name: str):
    """Logs the key configuration parameters at startup."""
    cfg = network.config
    header = "=" * 30
    details = f"\n{header} Key Configuration {header}\n"
    details += f"[Run]\n  - Config: {config.CURRENT_CONFIG}\n\n"
    details += f"[Network '{name}']\n  - Layers: {cfg.input_size} -> {cfg.hidden_layers} -> {cfg.output_size} (+ value head)\n"
    details += f"  - Parameters: {network.num_parameters}\n  - Examples trained: {network.training_count}\n\n"
    details += f"[Optimization]\n  - Learning Rate: {network.get_learning_rate()}\n  - Weight Decay: {cfg.weight_decay}\n"
    details += f"  - Dropout: {cfg.dropout}\n  - Gradient Clip: {cfg.gradient_clip}\n  - Value Loss Weight: {cfg.value_loss_weight}\n\n"
    details += f"[Schedule]\n  - Batches/Game: {config.BATCHES_PER_GAME} x {config.BATCH_SIZE}\n"
    details += f"  - LR drop: x{config.LR_DROP_FACTOR} after {config.LR_DROP_AT_GAMES} games\n"
    details += header + "===================" + header
    logger.info(details)
    print(details)

def _open_network(db_manager, name):
    snapshot = db_manager.load_snapshot(name)
    if snapshot is None:
        raise SystemExit(f"No network named '{name}'. Create it first with: setup {name}")
    return load_or_create_network(name, snapshot.config, db_manager)

def cmd_setup(args, db_manager):
    overrides = {}
    if args.lr is not None: overrides['learning_rate'] = args.lr
    if args.dropout is not None: overrides['dropout'] = args.dropout
    if args.weight_decay is not None: overrides['weight_decay'] = args.weight_decay
    network = PolicyValueNet(NetworkConfig.from_preset(args.preset, **overrides), seed=args.seed)
    db_manager.delete_network(args.name)
    db_manager.save_snapshot(args.name, network.get_snapshot())
    log_and_display_config(network, args.name)

def cmd_train(args, db_manager):
    network = _open_network(db_manager, args.name)
    log_and_display_config(network, args.name)
    trainer = TeacherTrainer(network, args.name, db_manager, writer=create_summary_writer(args.name, args.tensorboard_dir), seed=args.seed)
    dataset = to_training_examples(generate_teacher_dataset(augment_symmetries=not args.no_augment, oracle=trainer.oracle))
    avg_loss = trainer.run_teacher_training(dataset, args.games)
    print(f"Trained on {args.games} games · avg loss {avg_loss:.4f}")

def cmd_rollouts(args, db_manager):
    network = _open_network(db_manager, args.name)
    trainer = TeacherTrainer(network, args.name, db_manager, writer=create_summary_writer(args.name, args.tensorboard_dir), seed=args.seed)
    avg_loss = trainer.train_on_rollouts(args.games)
    print(f"Trained on {args.games} rollout games · avg loss {avg_loss:.4f}")

def cmd_evaluate(args, db_manager):
    network = _open_network(db_manager, args.name)
    trainer = TeacherTrainer(network, args.name, db_manager, seed=args.seed)
    temperature = config.EXPLORATION_TEMPERATURE if args.explore else 0.0
    stats = trainer.evaluate(args.opponent, args.games, temperature=temperature)
    print(f"{stats.wins}W / {stats.draws}D / {stats.losses}L vs {args.opponent} ({stats.score:.1%} score)")
    total = trainer.test_stats[args.opponent]
    print(f"Cumulative vs {args.opponent}: {total.wins}W / {total.draws}D / {total.losses}L")

def cmd_plot(args, db_manager):
    network = _open_network(db_manager, args.name)
    losses = db_manager.load_history(args.name)
    if losses:
        print(plot_loss_history(losses, os.path.join(args.out, f"{args.name}_loss.png")))
    print(plot_policy_heatmap(network, EMPTY_BOARD, config.FIRST_PLAYER, os.path.join(args.out, f"{args.name}_policy.png")))

def cmd_play(args, db_manager):
    network = _open_network(db_manager, args.name)
    trainer = TeacherTrainer(network, args.name, db_manager, writer=create_summary_writer(args.name, args.tensorboard_dir), seed=args.seed)
    print(f"You play X and move first against '{args.name}'.")
    record = play_game(human_player(), lambda board, turn: network_move(network, board, turn))
    if record.moves:
        board, move, turn = record.moves[-1]
        print(format_board(apply_move(board, move, turn)))
    if record.winner is None:
        print("Draw.")
    else:
        print("The network wins." if record.winner == PLAYER_O else "You win.")
    total = trainer.record_human_game(record)
    print(f"Network vs you: {total.wins}W / {total.draws}D / {total.losses}L")
    if args.no_train:
        return
    # One round on the plain teacher corpus after every game, counted toward the schedule.
    dataset = to_training_examples(generate_teacher_dataset(augment_symmetries=False, oracle=trainer.oracle))
    avg_loss = trainer.run_teacher_training(dataset, 1)
    print(f"Trained for 1 game · avg loss {avg_loss:.4f}")

def cmd_export(args, db_manager):
    network = _open_network(db_manager, args.name)
    payload = {
        "name": args.name,
        "snapshot": network.get_snapshot().to_dict(),
        "loss_history": db_manager.load_history(args.name),
        "test_stats": {opponent: s.to_dict() for opponent, s in db_manager.load_test_stats(args.name).items()},
    }
    out_dir = os.path.dirname(args.out)
    if out_dir:
        os.makedirs(out_dir, exist_ok=True)
    with open(args.out, "w") as f:
        json.dump(_convert_to_json_serializable(payload), f)
    print(f"Exported '{args.name}' to {args.out}")

def cmd_dataset(args, db_manager):
    states = generate_teacher_dataset(augment_symmetries=not args.no_augment)
    print(f"{len(states)} teacher states (augment_symmetries={not args.no_augment})")

def build_parser():
    parser = argparse.ArgumentParser(description="Train a small network to play tic-tac-toe by imitating a minimax teacher.")
    parser.add_argument('--db', type=str, default=config.DB_PATH, help='SQLite file holding snapshots and history.')
    parser.add_argument('--log-file', type=str, default=config.LOG_FILE)
    parser.add_argument('--tensorboard-dir', type=str, default=config.TENSORBOARD_DIR)
    parser.add_argument('--seed', type=int, default=None)
    parser.add_argument('--verbose', action='store_true', help='Also log to stderr.')
    sub = parser.add_subparsers(dest='command', required=True)

    p = sub.add_parser('setup', help='Create a fresh named network.')
    p.add_argument('name')
    p.add_argument('--preset', choices=sorted(config.NETWORK_PRESETS), default='medium')
    p.add_argument('--lr', type=float, default=None)
    p.add_argument('--dropout', type=float, default=None)
    p.add_argument('--weight-decay', type=float, default=None)
    p.set_defaults(func=cmd_setup)

    p = sub.add_parser('train', help='Train on the exhaustive teacher dataset.')
    p.add_argument('name')
    p.add_argument('--games', type=int, default=1)
    p.add_argument('--no-augment', action='store_true')
    p.set_defaults(func=cmd_train)

    p = sub.add_parser('rollouts', help='Train on freshly played minimax rollouts.')
    p.add_argument('name')
    p.add_argument('--games', type=int, default=config.ROLLOUT_GAMES)
    p.set_defaults(func=cmd_rollouts)

    p = sub.add_parser('evaluate', help='Play evaluation games against a scripted opponent.')
    p.add_argument('name')
    p.add_argument('--opponent', choices=OPPONENT_NAMES, default='minimax')
    p.add_argument('--games', type=int, default=config.EVAL_GAMES)
    p.add_argument('--explore', action='store_true', help=f'Sample moves at temperature {config.EXPLORATION_TEMPERATURE} instead of playing greedily.')
    p.set_defaults(func=cmd_evaluate)

    p = sub.add_parser('plot', help='Render the loss curve and the opening policy.')
    p.add_argument('name')
    p.add_argument('--out', type=str, default=config.OUTPUTS_DIR)
    p.set_defaults(func=cmd_plot)

    p = sub.add_parser('play', help='Play a game against the network, then train it for one round.')
    p.add_argument('name')
    p.add_argument('--no-train', action='store_true')
    p.set_defaults(func=cmd_play)

    p = sub.add_parser('export', help='Write a snapshot, its loss history and evaluation stats as JSON.')
    p.add_argument('name')
    p.add_argument('--out', type=str, required=True)
    p.set_defaults(func=cmd_export)

    p = sub.add_parser('dataset', help='Report the size of the teacher dataset.')
    p.add_argument('--no-augment', action='store_true')
    p.set_defaults(func=cmd_dataset)
    return parser

def main(argv=None):
    args = build_parser().parse_args(argv)
    listener = None
    if args.command in LONG_RUNNING_COMMANDS:
        listener = start_queue_logging(args.log_file, console=args.verbose)
    else:
        setup_logging(args.log_file, console=args.verbose)
    db_manager = DatabaseManager(args.db)
    try:
        args.func(args, db_manager)
    finally:
        db_manager.close()
        if listener is not None:
            stop_queue_logging(listener)

if __name__ == "__main__":
    sys.exit(main())
