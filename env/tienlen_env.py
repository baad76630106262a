"""
Thirteen Gymnasium 环境

遵循标准 Gymnasium API. 学习者固定坐 0 号座位, 其余座位由智能体接管
"""
from typing import Dict, Any, Tuple, Optional, List, Union
import logging

import numpy as np
import gymnasium as gym
from gymnasium import spaces

from ai.agents import CpuAgent
from core.actions import Move
from core.cards import cards_to_str
from core.config import GameConfig
from core.events import Chop
from core.session import GameSession
from core.state import Phase, RoundState

from .observation import (
    ObservationBuilder,
    Observation,
    LegalAction,
    MAX_SEATS,
    build_legal_mask,
    action_to_cards,
)
from .reward import RewardCalculator, RewardConfig, RewardType

logger = logging.getLogger(__name__)

LEARNER_SEAT = 0

# 动作索引上限 (合法动作列表远小于该值)
MAX_ACTIONS = 512


class TienLenEnv(gym.Env):
    """
    Thirteen Gymnasium 环境

    动作可以是:
    - Move 对象, None 表示过
    - legal_actions 列表中的索引 (跟牌时 0 为过)
    - 52 维 0/1 选择向量, 全零表示过

    17 张模式的换牌阶段由内置电脑策略替学习者决定

    API:
    - reset() -> observation, info
    - step(action) -> observation, reward, terminated, truncated, info
    """

    metadata = {
        "render_modes": ["human", "ansi"],
        "name": "TienLen-v1",
    }

    def __init__(
        self,
        render_mode: Optional[str] = None,
        mode: str = "13",
        reward_type: str = "sparse",
        opponents: Optional[Dict[int, object]] = None,
        seed: Optional[int] = None,
    ):
        """
        Args:
            render_mode: 渲染模式 ("human", "ansi", None)
            mode: "13" 或 "17"
            reward_type: 奖励类型 ("sparse", "shaped")
            opponents: 座位 -> 智能体, 默认为启发式电脑
            seed: 随机种子
        """
        super().__init__()

        self.render_mode = render_mode
        self._seed = seed
        self._mode = mode
        self._opponents = opponents

        self._obs_builder = ObservationBuilder()
        self._reward_calculator = RewardCalculator(
            RewardConfig(reward_type=RewardType(reward_type))
        )

        self._session: Optional[GameSession] = None
        self._prev_state: Optional[RoundState] = None
        self._legal: List[LegalAction] = []
        self._swap_agent: Optional[CpuAgent] = None

        self._define_spaces()

    def _define_spaces(self):
        """定义观测和动作空间"""
        self.action_space = spaces.Discrete(MAX_ACTIONS)

        self.observation_space = spaces.Dict({
            "hand": spaces.Box(0, 1, shape=(52,), dtype=np.float32),
            "table": spaces.Box(0, 1, shape=(52,), dtype=np.float32),
            "played": spaces.Box(0, 1, shape=(52,), dtype=np.float32),
            "cards_left": spaces.Box(0, 1, shape=(MAX_SEATS,), dtype=np.float32),
            "passed": spaces.Box(0, 1, shape=(MAX_SEATS,), dtype=np.float32),
            "leading": spaces.Box(0, 1, shape=(1,), dtype=np.float32),
            "twos_seen": spaces.Box(0, 1, shape=(1,), dtype=np.float32),
        })

    def reset(
        self,
        *,
        seed: Optional[int] = None,
        options: Optional[Dict[str, Any]] = None,
    ) -> Tuple[Dict[str, np.ndarray], Dict[str, Any]]:
        """
        重置环境: 新建会话并开始第一局, 电脑先行直到轮到学习者

        Args:
            seed: 随机种子
            options: 额外选项

        Returns:
            (observation, info) 元组
        """
        super().reset(seed=seed)

        game_seed = seed if seed is not None else self._seed
        config = GameConfig(mode=self._mode, show_reactions=False, seed=game_seed)
        rng = np.random.default_rng(game_seed)
        opponents = dict(self._opponents) if self._opponents is not None else None
        self._session = GameSession(config, rng=rng, agents=opponents)
        # 换牌阶段学习者座位交给电脑策略
        self._swap_agent = CpuAgent(config.human_name, rng=rng)

        self._session.start_round()
        self._advance()
        self._prev_state = None

        obs = self._build_observation()
        info = self._build_info()

        if self.render_mode == "human":
            self.render()

        return obs, info

    def step(
        self,
        action: Union[int, np.integer, np.ndarray, Move, None],
    ) -> Tuple[Dict[str, np.ndarray], float, bool, bool, Dict[str, Any]]:
        """
        执行学习者的动作, 再让电脑行动直到再次轮到学习者或本局结束

        Returns:
            (observation, reward, terminated, truncated, info) 元组
        """
        if self._session is None or self._session.state is None:
            raise RuntimeError("Environment not reset. Call reset() first.")
        if self._session.phase == Phase.FINISHED:
            raise RuntimeError("Episode finished. Call reset() first.")

        self._prev_state = self._session.state

        try:
            move = self._decode_action(action)
        except ValueError as e:
            return self._illegal(str(e))

        if move is None:
            result = self._session.pass_turn(LEARNER_SEAT)
        else:
            result = self._session.submit_move(LEARNER_SEAT, move)
        if not result.accepted:
            # 非法动作: 给予惩罚并保持状态
            return self._illegal(result.message)

        chops = sum(1 for e in result.events if isinstance(e, Chop) and e.seat_id == LEARNER_SEAT)
        self._advance()

        state = self._session.state
        obs = self._build_observation()
        reward = self._reward_calculator.compute(state, self._prev_state, LEARNER_SEAT, chops=chops)
        terminated = state.phase == Phase.FINISHED
        info = self._build_info()

        if self.render_mode == "human":
            self.render()

        return obs, reward, terminated, False, info

    def _advance(self):
        """推进电脑座位 (以及学习者的换牌) 直到学习者需要出牌"""
        session = self._session
        for _ in range(1000):
            if session.phase == Phase.SWAPPING and session.state.turn_index == LEARNER_SEAT:
                wants = self._swap_agent.wants_swap(session.state, LEARNER_SEAT)
                session.swap_decision(LEARNER_SEAT, wants)
                continue
            if not session.run_until_human():
                break

    def _decode_action(self, action) -> Optional[List]:
        """动作 -> 牌列表, None 表示过"""
        if action is None:
            return None
        if isinstance(action, Move):
            return action_to_cards(action)
        if isinstance(action, (int, np.integer)):
            idx = int(action)
            if not 0 <= idx < len(self._legal):
                raise ValueError(
                    f"Invalid action index: {idx}. Valid range: 0-{len(self._legal) - 1}"
                )
            chosen = self._legal[idx]
            return None if chosen is None else list(chosen.cards)
        if isinstance(action, np.ndarray):
            cards = action_to_cards(action)
            return cards if cards else None
        raise ValueError(f"Invalid action type: {type(action)}")

    def _illegal(self, message: str):
        logger.debug("Learner action rejected: %s", message)
        obs = self._build_observation()
        info = self._build_info()
        info["error"] = message
        return obs, self._reward_calculator.config.illegal_penalty, False, False, info

    def _build_observation(self) -> Dict[str, np.ndarray]:
        obs: Observation = self._obs_builder.build(self._session.state, LEARNER_SEAT)
        self._legal = obs.legal_actions
        return obs.to_dict()

    def _build_info(self) -> Dict[str, Any]:
        """构建 info 字典"""
        state = self._session.state
        info = {
            "current_player": state.turn_index,
            "phase": state.phase.value,
            "legal_actions": list(self._legal),
            "legal_card_mask": build_legal_mask(self._legal),
            "plays_made": state.plays_made,
        }
        if state.phase == Phase.FINISHED:
            info["ranking"] = list(state.finished)
            info["placement"] = state.placement(LEARNER_SEAT)
        return info

    def render(self) -> Optional[str]:
        """渲染环境"""
        if self.render_mode == "ansi" or self.render_mode == "human":
            return self._render_text()
        return None

    def _render_text(self) -> str:
        state = self._session.state
        lines = []
        lines.append("=" * 50)
        lines.append(f"Phase: {state.phase.value}")
        lines.append(f"Current Player: {state.players[state.turn_index].name}")
        for player in state.players:
            mark = " (passed)" if player.id in state.passed else ""
            lines.append(f"{player.name}: {cards_to_str(player.hand)} ({player.card_count}){mark}")
        if state.table is not None:
            lines.append(f"Table: {state.table} by {state.players[state.table_owner].name}")
        if state.phase == Phase.FINISHED:
            lines.append(f"Ranking: {[state.players[s].name for s in state.finished]}")
        lines.append("=" * 50)

        output = "\n".join(lines)
        if self.render_mode == "human":
            print(output)
        return output

    def close(self):
        if self._session is not None:
            self._session.end_session()

    @property
    def state(self) -> Optional[RoundState]:
        """获取当前状态 (用于调试)"""
        return self._session.state if self._session is not None else None

    def get_legal_actions(self) -> List[LegalAction]:
        """获取学习者当前的合法动作"""
        return list(self._legal)

    def sample_action(self) -> int:
        """随机采样一个合法动作索引"""
        if not self._legal:
            return 0
        return int(self.np_random.integers(len(self._legal)))


def make_env(
    env_id: str = "TienLen-v1",
    **kwargs
) -> TienLenEnv:
    """
    工厂函数：创建环境

    Args:
        env_id: 环境 ID
        **kwargs: 环境参数

    Returns:
        TienLenEnv 实例
    """
    return TienLenEnv(**kwargs)
