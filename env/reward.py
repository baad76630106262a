"""
奖励函数

支持两种奖励设计:
- 终局名次奖励 (sparse)
- 名次奖励 + 出牌过程奖励 (shaped)
"""
from dataclasses import dataclass
from typing import Dict, Optional
from enum import Enum

from core.state import RoundState


class RewardType(Enum):
    """奖励类型"""
    SPARSE = "sparse"      # 仅终局奖励
    SHAPED = "shaped"      # 过程奖励


@dataclass
class RewardConfig:
    """奖励配置"""
    reward_type: RewardType = RewardType.SPARSE
    first_reward: float = 1.0     # 第一名
    last_reward: float = -1.0     # 最后一名
    card_bonus: float = 0.01      # 每打出一张牌 (shaped)
    chop_bonus: float = 0.0       # 炸掉别人的 2 (shaped)
    illegal_penalty: float = -1.0


class RewardCalculator:
    """
    奖励计算器

    名次奖励在第一名和最后一名之间线性插值
    """

    def __init__(self, config: Optional[RewardConfig] = None):
        self.config = config or RewardConfig()

    def placement_reward(self, placement: int, num_players: int) -> float:
        """
        名次 -> 奖励

        Args:
            placement: 名次 (1..N)
            num_players: 人数
        """
        if num_players <= 1:
            return self.config.first_reward
        frac = (placement - 1) / (num_players - 1)
        return self.config.first_reward + frac * (self.config.last_reward - self.config.first_reward)

    def compute(
        self,
        state: RoundState,
        prev_state: Optional[RoundState] = None,
        seat: int = 0,
        chops: int = 0,
    ) -> float:
        """
        计算奖励

        Args:
            state: 当前状态
            prev_state: 前一状态 (用于 shaped 奖励)
            seat: 计算奖励的座位
            chops: 本步该座位炸掉 2 的次数

        Returns:
            奖励值
        """
        reward = 0.0
        placement = state.placement(seat)
        # 名次只在该座位刚出完或整局结束时给一次
        newly_placed = placement is not None and (
            prev_state is None or prev_state.placement(seat) is None
        )
        if newly_placed:
            reward += self.placement_reward(placement, state.num_players)

        if self.config.reward_type == RewardType.SHAPED and prev_state is not None:
            played = prev_state.players[seat].card_count - state.players[seat].card_count
            if played > 0:
                reward += played * self.config.card_bonus
            reward += chops * self.config.chop_bonus

        return reward


def create_reward_calculator(
    reward_type: str = "sparse",
    **kwargs
) -> RewardCalculator:
    """
    工厂函数：创建奖励计算器

    Args:
        reward_type: 奖励类型 ("sparse", "shaped")
        **kwargs: 其他配置参数

    Returns:
        RewardCalculator 实例
    """
    config = RewardConfig(
        reward_type=RewardType(reward_type),
        **kwargs
    )
    return RewardCalculator(config)


def final_rewards(state: RoundState, calculator: Optional[RewardCalculator] = None) -> Dict[int, float]:
    """结束状态下各座位的名次奖励"""
    calculator = calculator or RewardCalculator()
    return {
        p.id: calculator.placement_reward(state.placement(p.id), state.num_players)
        for p in state.players
        if state.placement(p.id) is not None
    }
