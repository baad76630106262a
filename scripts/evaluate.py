#!/usr/bin/env python3
"""
评估脚本

Usage:
    python scripts/evaluate.py --games 100
    python scripts/evaluate.py --tournament --rounds 200 --cpu 2 --random 2
"""
import argparse
import logging
import sys
from pathlib import Path
import json

# 添加项目根目录到路径
ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(ROOT))

import numpy as np

from core import GameConfig
from ai import CpuAgent, RandomAgent
from evaluation import Arena

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
)
logger = logging.getLogger(__name__)


def parse_args():
    parser = argparse.ArgumentParser(description="Thirteen Evaluation")

    parser.add_argument("--tournament", action="store_true", help="Random-seat tournament instead of round robin")
    parser.add_argument("--variant", type=str, default="13", choices=["13", "17"])
    parser.add_argument("--cpu", type=int, default=2, help="Number of heuristic agents")
    parser.add_argument("--random", type=int, default=2, help="Number of random agents")
    parser.add_argument("--games", type=int, default=10, help="Games per seating (round robin)")
    parser.add_argument("--rounds", type=int, default=100, help="Tournament rounds")
    parser.add_argument("--seed", type=int, default=0)
    parser.add_argument("--output", type=str, help="Output file for results")

    return parser.parse_args()


def main():
    args = parse_args()

    config = GameConfig(mode=args.variant, show_reactions=False, seed=args.seed)
    rng = np.random.default_rng(args.seed)

    agents = [CpuAgent(f"CPU_{i}", rng=rng) for i in range(args.cpu)]
    agents += [RandomAgent(f"Random_{i}", rng=rng) for i in range(args.random)]

    arena = Arena(config, seed=args.seed)
    if args.tournament:
        logger.info("Running tournament: %d rounds, %d agents", args.rounds, len(agents))
        result = arena.tournament(agents, n_rounds=args.rounds)
    else:
        logger.info("Running round robin: %d games per seating", args.games)
        result = arena.round_robin(agents, games_per_match=args.games)

    print(result)

    if args.output:
        Path(args.output).write_text(json.dumps({
            "total_games": result.total_games,
            "standings": result.standings,
        }, indent=2))
        logger.info("Results saved to %s", args.output)


if __name__ == "__main__":
    main()
