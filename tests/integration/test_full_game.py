"""整局对局测试"""
import pytest
import numpy as np

from core import GameConfig, GameSession, Phase
from core.events import (
    Event,
    RoundStarted,
    CardsPlayed,
    Chop,
    TrickWon,
    RoundFinished,
    SwapMade,
    SwapKept,
)
from ai.agents import CpuAgent, RandomAgent
from evaluation.stats import SessionStats


def make_session(mode: str, seed: int, agent_cls=CpuAgent) -> GameSession:
    config = GameConfig(mode=mode, seed=seed)
    rng = np.random.default_rng(seed)
    agents = {seat: agent_cls(f"seat{seat}", rng=rng) for seat in range(config.num_players)}
    return GameSession(config, rng=rng, agents=agents)


class ConservationCheck:
    """每个事件后检查牌数守恒"""

    def __init__(self, session: GameSession):
        self.session = session
        self.events = []

    def __call__(self, event: Event):
        self.events.append(event)
        if self.session.state is not None:
            self.session.state.check_conservation()


class TestFullRound:
    """完整一局测试"""

    @pytest.mark.parametrize("seed", [0, 1, 2, 3, 4])
    def test_thirteen_card_round(self, seed):
        session = make_session("13", seed)
        check = ConservationCheck(session)
        session.subscribe(check)

        session.start_round()
        session.run_until_human()

        assert session.phase == Phase.FINISHED
        assert isinstance(check.events[0], RoundStarted)
        assert isinstance(check.events[-1], RoundFinished)
        assert sorted(session.ranking()) == [0, 1, 2, 3]
        # 第一手必须带 3♠
        first_play = next(e for e in check.events if isinstance(e, CardsPlayed))
        assert any(c.value == 12 for c in first_play.cards)

    @pytest.mark.parametrize("seed", [0, 1, 2])
    def test_seventeen_card_round(self, seed):
        session = make_session("17", seed)
        check = ConservationCheck(session)
        session.subscribe(check)

        session.start_round()
        session.run_until_human()

        assert session.phase == Phase.FINISHED
        assert sorted(session.ranking()) == [0, 1, 2]
        assert any(isinstance(e, (SwapMade, SwapKept)) for e in check.events)

    @pytest.mark.parametrize("mode,n_seeds", [("13", 300), ("17", 150)])
    def test_many_seeded_rounds(self, mode, n_seeds):
        for seed in range(n_seeds):
            session = make_session(mode, seed)
            session.start_round()
            results = session.run_until_human()
            assert all(r.accepted for r in results), f"seed {seed}"
            assert session.phase == Phase.FINISHED, f"seed {seed}"
            assert sorted(session.ranking()) == list(range(session.config.num_players))

    @pytest.mark.parametrize("mode", ["13", "17"])
    def test_random_agents(self, mode):
        session = make_session(mode, 11, agent_cls=RandomAgent)
        session.start_round()
        results = session.run_until_human(max_steps=5000)
        assert all(r.accepted for r in results)
        assert session.phase == Phase.FINISHED

    def test_tricks_are_won(self):
        session = make_session("13", 21)
        check = ConservationCheck(session)
        session.subscribe(check)
        session.start_round()
        session.run_until_human()

        tricks = [e for e in check.events if isinstance(e, TrickWon)]
        assert tricks
        for event in check.events:
            if isinstance(event, Chop):
                assert event.seat_id != event.victim_id


class TestSessionFlow:
    """多局流程测试"""

    def test_consecutive_rounds(self):
        session = make_session("13", 5)
        stats = SessionStats(human_seat=0)
        session.subscribe(stats)

        winners = []
        for _ in range(4):
            assert session.start_round().accepted
            starter = session.state.deal_starter
            if winners:
                assert starter == winners[-1]
                assert session.state.turn_index == winners[-1]
            session.run_until_human()
            winners.append(session.last_winner)

        assert session.round_number == 4
        assert stats.total_games == 4
        assert sum(stats.wins_by_seat().values()) == 4

    def test_same_seed_same_round(self):
        a = make_session("13", 9)
        b = make_session("13", 9)
        for session in (a, b):
            session.start_round()
            session.run_until_human()
        assert a.ranking() == b.ranking()
        assert a.state.plays_made == b.state.plays_made
