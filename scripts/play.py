#!/usr/bin/env python3
"""
终端对局脚本

Usage:
    python scripts/play.py --mode watch            # 观看电脑对战
    python scripts/play.py --mode play             # 与电脑对战
    python scripts/play.py --mode play --variant 17 --stats stats.json
"""
import argparse
import logging
import sys
from pathlib import Path
import time

# 添加项目根目录到路径
ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(ROOT))

import numpy as np

from core import GameConfig, GameSession, Phase, cards_to_str, str_to_cards
from core.events import (
    Event,
    RoundStarted,
    SwapMade,
    SwapKept,
    PlayPhaseStarted,
    CardsPlayed,
    PlayerPassed,
    Chop,
    TrickWon,
    PlayerFinished,
    RoundFinished,
    ReactionTriggered,
)
from ai import CpuAgent
from evaluation import SessionStats

logger = logging.getLogger(__name__)

HUMAN_SEAT = 0


def parse_args():
    parser = argparse.ArgumentParser(description="Thirteen (Tien Len) Play")

    parser.add_argument(
        "--mode",
        type=str,
        default="play",
        choices=["watch", "play"],
        help="Mode: watch CPUs or play against them",
    )
    parser.add_argument("--variant", type=str, default="13", choices=["13", "17"], help="13 = 4 players, 17 = 3 players with swap")
    parser.add_argument("--speed", type=int, default=3, choices=[1, 2, 3, 4, 5], help="CPU speed")
    parser.add_argument("--games", type=int, default=1, help="Number of rounds")
    parser.add_argument("--seed", type=int, default=None, help="Random seed")
    parser.add_argument("--auto-skip", action="store_true", help="Pass automatically when nothing beats the table")
    parser.add_argument("--no-delay", action="store_true", help="Do not pause between CPU moves")
    parser.add_argument("--stats", type=str, help="JSON file for placement stats")
    parser.add_argument("--verbose", action="store_true", help="Verbose logging")

    return parser.parse_args()


class EventPrinter:
    """把会话事件打印到终端"""

    def __init__(self, session: GameSession, delay: float):
        self.session = session
        self.delay = delay

    def name(self, seat: int) -> str:
        return self.session.state.players[seat].name

    def __call__(self, event: Event):
        if isinstance(event, RoundStarted):
            print(f"\n{'=' * 60}")
            print(f"Round {event.round_number} ({event.mode}-card)")
            print("=" * 60)
        elif isinstance(event, SwapMade):
            print(f"{self.name(event.seat_id)} swapped a card")
        elif isinstance(event, SwapKept):
            print(f"{self.name(event.seat_id)} kept their hand")
        elif isinstance(event, PlayPhaseStarted):
            print(f"{self.name(event.leader_id)} leads")
        elif isinstance(event, CardsPlayed):
            print(f"{self.name(event.seat_id)}: {event.description} [{cards_to_str(event.cards)}]")
            self._pause(event.seat_id)
        elif isinstance(event, PlayerPassed):
            print(f"{self.name(event.seat_id)}: Pass")
            self._pause(event.seat_id)
        elif isinstance(event, Chop):
            print(f"CHOPPED! {self.name(event.seat_id)} chops {self.name(event.victim_id)}")
        elif isinstance(event, TrickWon):
            print(f"-- Round won by {self.name(event.winner_id)} --")
        elif isinstance(event, PlayerFinished):
            print(f"{self.name(event.seat_id)} finished #{event.placement}")
        elif isinstance(event, RoundFinished):
            ranking = ", ".join(self.name(s) for s in event.ranking)
            print(f"\nFinal ranking: {ranking}")
        elif isinstance(event, ReactionTriggered):
            print(f"   {self.name(event.seat_id)} {event.emoji}")

    def _pause(self, seat: int):
        if self.delay > 0 and not self.session.is_human(seat):
            time.sleep(self.delay)


def print_hand(session: GameSession):
    """打印真人手牌和桌面"""
    state = session.state
    table = state.table_for(HUMAN_SEAT)
    print("-" * 60)
    for player in state.players[1:]:
        print(f"  {player.name}: {player.card_count} cards")
    print(f"Table: {table if table is not None else '-'}")
    print(f"Your hand: {cards_to_str(state.players[HUMAN_SEAT].hand)}")


def ask(prompt: str) -> str:
    choice = input(prompt).strip()
    if choice.lower() == "q":
        raise KeyboardInterrupt
    return choice


def human_swap(session: GameSession):
    state = session.state
    print_hand(session)
    print(f"Swap card: {state.swap_card}")
    while True:
        choice = ask("Swap? (y = give lowest / card e.g. '4h' / n): ").lower()
        if choice in ("n", "no", ""):
            result = session.swap_decision(HUMAN_SEAT, False)
        elif choice in ("y", "yes"):
            result = session.swap_decision(HUMAN_SEAT, True)
        else:
            try:
                card = str_to_cards(choice)[0]
            except ValueError as e:
                print(e)
                continue
            result = session.swap_decision(HUMAN_SEAT, True, card)
        if result.accepted:
            return
        print(result.message)


def human_turn(session: GameSession):
    print_hand(session)
    if session.must_pass(HUMAN_SEAT):
        print("Nothing beats the table.")
    while True:
        choice = ask("Play cards (e.g. '3s 3c'), 'p' to pass, 'q' to quit: ")
        if choice.lower() in ("p", "pass"):
            result = session.pass_turn(HUMAN_SEAT)
        else:
            try:
                cards = str_to_cards(choice)
            except ValueError as e:
                print(e)
                continue
            result = session.submit_move(HUMAN_SEAT, cards)
        if result.accepted:
            return
        print(result.message)


def play_round(session: GameSession):
    session.start_round()
    while session.phase in (Phase.SWAPPING, Phase.PLAYING):
        session.run_until_human()
        if session.phase == Phase.SWAPPING:
            human_swap(session)
        elif session.phase == Phase.PLAYING:
            human_turn(session)


def main():
    args = parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    config = GameConfig(
        mode=args.variant,
        speed=args.speed,
        auto_skip=args.auto_skip,
        seed=args.seed,
    )
    rng = np.random.default_rng(config.seed)
    names = config.seat_names()

    agents = None
    if args.mode == "watch":
        agents = {seat: CpuAgent(names[seat], rng=rng) for seat in range(config.num_players)}
    session = GameSession(config, rng=rng, agents=agents)

    delay = 0.0 if args.no_delay else config.base_delay_ms / 1000.0
    session.subscribe(EventPrinter(session, delay))

    stats = SessionStats(human_seat=HUMAN_SEAT)
    if args.stats and Path(args.stats).exists():
        stats.load(args.stats)
    session.subscribe(stats)

    print("=" * 60)
    print("Thirteen (Tien Len)")
    print("=" * 60)

    try:
        for _ in range(args.games):
            play_round(session)
    except (KeyboardInterrupt, EOFError):
        print("\nQuit")
    finally:
        session.end_session()

    print(stats)
    if args.stats:
        stats.save(args.stats)


if __name__ == "__main__":
    main()
