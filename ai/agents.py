"""
智能体

为非真人座位提供出牌和换牌决策
"""
from typing import Optional
import logging

import numpy as np

from core.actions import Move
from core.state import RoundState

from .strategy import AIContext, decide, decide_swap

logger = logging.getLogger(__name__)


class Agent:
    """智能体基类"""

    def __init__(self, name: str = "agent"):
        self.name = name

    def act(self, state: RoundState, seat: int) -> Optional[Move]:
        """选择出牌, None 表示过"""
        raise NotImplementedError

    def wants_swap(self, state: RoundState, seat: int) -> bool:
        """换牌阶段是否换"""
        return False

    def reset(self):
        """重置状态"""
        pass


def build_context(state: RoundState, seat: int) -> AIContext:
    """从对局状态构建决策上下文"""
    return AIContext(
        is_leading=state.is_leading(seat),
        twos_seen=state.twos_played,
        opening_lead_required=seat == state.turn_index and state.opening_lead_required,
        has_passed=seat in state.passed,
    )


class CpuAgent(Agent):
    """启发式电脑玩家"""

    def __init__(self, name: str = "cpu", rng: Optional[np.random.Generator] = None):
        super().__init__(name)
        self.rng = rng if rng is not None else np.random.default_rng()

    def act(self, state: RoundState, seat: int) -> Optional[Move]:
        hand = state.players[seat].hand
        move = decide(hand, state.table, build_context(state, seat))
        logger.debug("%s (seat %d) decided %s", self.name, seat, move if move else "pass")
        return move

    def wants_swap(self, state: RoundState, seat: int) -> bool:
        return decide_swap(state.players[seat].hand, state.swap_card, self.rng)


class RandomAgent(Agent):
    """随机智能体"""

    def __init__(self, name: str = "random", rng: Optional[np.random.Generator] = None):
        super().__init__(name)
        self.rng = rng if rng is not None else np.random.default_rng()

    def act(self, state: RoundState, seat: int) -> Optional[Move]:
        legal_moves = state.legal_moves(seat)
        leading = state.is_leading(seat)
        # 跟牌时 "过" 也是一个选项
        n_options = len(legal_moves) + (0 if leading else 1)
        if n_options == 0:
            return None
        idx = int(self.rng.integers(n_options))
        if idx >= len(legal_moves):
            return None
        return legal_moves[idx]

    def wants_swap(self, state: RoundState, seat: int) -> bool:
        return bool(self.rng.random() < 0.5)
