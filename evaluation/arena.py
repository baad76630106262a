"""
对战竞技场

让智能体坐满所有座位, 连续对局并统计名次
"""
from typing import Dict, List, Optional, Sequence, Tuple
from dataclasses import dataclass
from collections import defaultdict
from itertools import permutations
import numpy as np
import logging

from ai.agents import Agent
from core.config import GameConfig
from core.events import Chop, Event
from core.session import GameSession
from core.state import Phase

logger = logging.getLogger(__name__)


@dataclass
class MatchResult:
    """单局结果"""
    agents: Tuple[str, ...]      # 按座位
    ranking: Tuple[str, ...]     # 按名次
    length: int                  # 出牌次数
    chops: int
    round_number: int

    @property
    def winner(self) -> str:
        return self.ranking[0]


@dataclass
class TournamentResult:
    """锦标赛结果"""
    standings: Dict[str, Dict[str, float]]
    total_games: int
    matches: List[MatchResult]

    def get_ranking(self) -> List[Tuple[str, float]]:
        """获取排名 (胜率高者在前, 同胜率比平均名次)"""
        return [
            (name, stats["win_rate"])
            for name, stats in sorted(
                self.standings.items(),
                key=lambda kv: (-kv[1]["win_rate"], kv[1]["avg_placement"]),
            )
        ]

    def __repr__(self) -> str:
        ranking = self.get_ranking()
        lines = [f"Tournament Results ({self.total_games} games):"]
        for i, (name, win_rate) in enumerate(ranking):
            avg = self.standings[name]["avg_placement"]
            lines.append(f"  {i+1}. {name}: {win_rate:.2%} (avg place {avg:.2f})")
        return "\n".join(lines)


class Arena:
    """
    对战竞技场

    每场比赛是一个会话, 局与局之间沿用上一局赢家先发牌
    """

    def __init__(self, config: Optional[GameConfig] = None, seed: Optional[int] = None):
        self.config = config or GameConfig(show_reactions=False)
        self.rng = np.random.default_rng(seed if seed is not None else self.config.seed)

    def play_match(
        self,
        agents: Sequence[Agent],
        n_games: int = 1,
    ) -> List[MatchResult]:
        """
        进行对局

        Args:
            agents: 每个座位一个智能体
            n_games: 对局数

        Returns:
            对局结果列表
        """
        n = self.config.num_players
        if len(agents) != n:
            raise ValueError(f"Mode {self.config.mode} needs {n} agents, got {len(agents)}")

        session = GameSession(
            self.config,
            rng=self.rng,
            agents={seat: agent for seat, agent in enumerate(agents)},
        )
        chops = []

        def on_event(event: Event):
            if isinstance(event, Chop):
                chops.append(event)

        session.subscribe(on_event)
        names = tuple(agent.name for agent in agents)
        results = []

        for _ in range(n_games):
            for agent in agents:
                agent.reset()
            chops.clear()
            session.start_round()
            session.run_until_human(max_steps=10_000)
            if session.phase != Phase.FINISHED:
                raise RuntimeError(f"Round {session.round_number} did not finish")

            state = session.state
            result = MatchResult(
                agents=names,
                ranking=tuple(names[seat] for seat in state.finished),
                length=state.plays_made,
                chops=len(chops),
                round_number=session.round_number,
            )
            logger.debug("Round %d ranking: %s", result.round_number, result.ranking)
            results.append(result)

        session.end_session()
        return results

    def round_robin(
        self,
        agents: List[Agent],
        games_per_match: int = 10,
    ) -> TournamentResult:
        """
        循环赛

        每种座位排列都对战一次

        Args:
            agents: 智能体列表 (名称需互不相同)
            games_per_match: 每场比赛的对局数

        Returns:
            锦标赛结果
        """
        n = self.config.num_players
        if len(agents) < n:
            raise ValueError(f"Need at least {n} agents, got {len(agents)}")

        all_matches = []
        for perm in permutations(range(len(agents)), n):
            match_agents = [agents[i] for i in perm]
            all_matches.extend(self.play_match(match_agents, games_per_match))

        return self._summarize(agents, all_matches)

    def tournament(
        self,
        agents: List[Agent],
        n_rounds: int = 100,
    ) -> TournamentResult:
        """
        锦标赛

        每轮随机选座, 打一局

        Args:
            agents: 智能体列表
            n_rounds: 轮数
        """
        n = self.config.num_players
        if len(agents) < n:
            raise ValueError(f"Need at least {n} agents, got {len(agents)}")

        all_matches = []
        for _ in range(n_rounds):
            selected = self.rng.choice(len(agents), n, replace=False)
            match_agents = [agents[int(i)] for i in selected]
            all_matches.extend(self.play_match(match_agents, n_games=1))

        return self._summarize(agents, all_matches)

    def _summarize(self, agents: Sequence[Agent], matches: List[MatchResult]) -> TournamentResult:
        standings = {agent.name: defaultdict(float) for agent in agents}

        for result in matches:
            for place, name in enumerate(result.ranking, start=1):
                standings[name]["games"] += 1
                standings[name]["placement_sum"] += place
                if place == 1:
                    standings[name]["wins"] += 1

        for name, stats in standings.items():
            games = stats["games"]
            stats["win_rate"] = stats["wins"] / games if games > 0 else 0.0
            stats["avg_placement"] = stats["placement_sum"] / games if games > 0 else 0.0

        return TournamentResult(
            standings={name: dict(stats) for name, stats in standings.items()},
            total_games=len(matches),
            matches=matches,
        )
