#!/usr/bin/env python3
"""
Paddle Opponent AI - Command Line Interface

Run the paddle AI against the headless arena and inspect its configuration.

Usage:
    python cli.py play --seconds 30
    python cli.py play --seconds 60 --fast --depth 2
    python cli.py benchmark --searches 200 --depth 3
    python cli.py config --save paddle.json
"""

import argparse
import json
import logging
import sys
import time

import numpy as np

from core.state import PhysicalState
from game.arena import Arena, ArenaConfig
from paddle_ai.config import ControllerConfig
from paddle_ai.controller import PaddleController


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='paddle-ai',
        description='Online-learning paddle opponent'
    )
    parser.add_argument('--verbose', '-v', action='store_true',
                       help='Verbose output')
    parser.add_argument('--config', '-c', type=str, default=None,
                       help='Controller configuration file (JSON)')

    subparsers = parser.add_subparsers(dest='command', help='Commands')

    # Play command
    play_parser = subparsers.add_parser('play', help='Play against the scripted arena')
    play_parser.add_argument('--seconds', '-s', type=float, default=30.0,
                            help='Simulated seconds to play')
    play_parser.add_argument('--tick-rate', type=float, default=90.0,
                            help='Simulation ticks per second')
    play_parser.add_argument('--depth', '-d', type=int, default=None,
                            help='Override the search depth')
    play_parser.add_argument('--seed', type=int, default=None,
                            help='Seed for the scripted player')
    play_parser.add_argument('--fast', action='store_true',
                            help='Do not pace the simulation to the wall clock')

    # Benchmark command
    bench_parser = subparsers.add_parser('benchmark', help='Time the minimax search')
    bench_parser.add_argument('--searches', '-n', type=int, default=200,
                             help='Number of searches to run')
    bench_parser.add_argument('--depth', '-d', type=int, default=3,
                             help='Search depth')
    bench_parser.add_argument('--seed', type=int, default=0,
                             help='Seed for random states')

    # Config command
    config_parser = subparsers.add_parser('config', help='Show the configuration')
    config_parser.add_argument('--save', type=str, default=None,
                              help='Write the configuration to this file')

    return parser


def load_config(args) -> ControllerConfig:
    if args.config:
        return ControllerConfig.load(args.config)
    return ControllerConfig.from_env()


def cmd_play(args):
    """Run the controller against the arena"""
    config = load_config(args)
    if args.depth is not None:
        config.search.depth = args.depth
    config.validate()

    controller = PaddleController(config)
    arena = Arena(controller, ArenaConfig(tick_rate=args.tick_rate, seed=args.seed))

    print(f"Playing {args.seconds:.0f}s at {args.tick_rate:.0f} Hz "
          f"(depth {config.search.depth})...")
    controller.start()
    try:
        summary = arena.run(args.seconds, realtime=not args.fast)
    except KeyboardInterrupt:
        print("\nInterrupted")
        summary = {'ticks': arena.ticks, 'interrupted': True}
    finally:
        stats = controller.get_stats()
        controller.stop()

    print(json.dumps({'arena': summary, 'controller': stats}, indent=2))
    return 0


def random_state(rng: np.random.Generator) -> PhysicalState:
    return PhysicalState(
        hand_pos=rng.uniform(-1, 1, 3), hand_vel=rng.uniform(-1, 1, 3),
        paddle_pos=rng.uniform(-1, 1, 3), paddle_vel=rng.uniform(-1, 1, 3),
        target_pos=(0.0, 0.0, 0.0), target_vel=(0.0, 0.0, 0.0),
        delta_time=1.0 / 90.0,
    )


def cmd_benchmark(args):
    """Time searches on random states, with a warm player model"""
    config = load_config(args)
    controller = PaddleController(config)
    rng = np.random.default_rng(args.seed)

    # Give the player model something to predict from
    prev = random_state(rng)
    for _ in range(args.searches):
        curr = random_state(rng)
        controller.player_map.record_action(prev, curr)
        prev = curr

    latencies = []
    for _ in range(args.searches):
        state = random_state(rng)
        controller.session.begin_search()
        start = time.perf_counter()
        controller.search.search(state, args.depth)
        latencies.append(time.perf_counter() - start)
        controller.session.end_search()

    latencies = np.array(latencies) * 1000
    print("=" * 60)
    print("PADDLE AI - Search Benchmark")
    print("=" * 60)
    print(f"Searches: {args.searches}  Depth: {args.depth}")
    print(f"Paddle map: {controller.paddle_map.get_map_size()} states")
    print(f"Player map: {controller.player_map.get_map_size()} states")
    print("-" * 60)
    print(f"Mean latency: {latencies.mean():.2f} ms")
    print(f"p95 latency:  {np.percentile(latencies, 95):.2f} ms")
    print(f"Max latency:  {latencies.max():.2f} ms")
    return 0


def cmd_config(args):
    """Print or save the configuration"""
    config = load_config(args)
    if args.save:
        config.save(args.save)
        print(f"Configuration saved to {args.save}")
    else:
        print(json.dumps(config.to_dict(), indent=2))
    return 0


def main():
    parser = create_parser()
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s %(threadName)s %(name)s %(levelname)s: %(message)s'
    )

    if not args.command:
        parser.print_help()
        return 0

    commands = {
        'play': cmd_play,
        'benchmark': cmd_benchmark,
        'config': cmd_config,
    }

    if args.command in commands:
        return commands[args.command](args)
    else:
        parser.print_help()
        return 1


if __name__ == '__main__':
    sys.exit(main() or 0)
