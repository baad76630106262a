"""
观察空间编码

将单局状态转换为固定形状的 numpy 特征
"""
from dataclasses import dataclass
from typing import Dict, List, Optional, Union
import numpy as np

from core.state import Phase, RoundState
from core.actions import Move
from core.cards import Card, cards_to_array, array_to_cards, DECK_SIZE

# 座位数上限 (三人局补零)
MAX_SEATS = 4

# 手牌张数归一化上限 (17 张模式)
MAX_HAND = 17

TOTAL_TWOS = 4

LegalAction = Optional[Move]


@dataclass
class Observation:
    """
    结构化观测 (均以视角座位为准)

    Attributes:
        hand: 自己的手牌 (52,)
        table: 需要压的桌面牌, 主动出牌时全零 (52,)
        played: 本局已打出的牌, 含本墩 (52,)
        cards_left: 从自己开始按座位顺序的剩余张数 / 17 (4,)
        passed: 本墩各座位是否已过 (4,)
        leading: 是否主动出牌 (1,)
        twos_seen: 已打出的 2 / 4 (1,)
        legal_actions: 合法动作列表, 跟牌时第 0 项为过 (None)
    """
    hand: np.ndarray
    table: np.ndarray
    played: np.ndarray
    cards_left: np.ndarray
    passed: np.ndarray
    leading: np.ndarray
    twos_seen: np.ndarray
    legal_actions: List[LegalAction]

    def to_dict(self) -> Dict[str, np.ndarray]:
        return {
            "hand": self.hand,
            "table": self.table,
            "played": self.played,
            "cards_left": self.cards_left,
            "passed": self.passed,
            "leading": self.leading,
            "twos_seen": self.twos_seen,
        }

    def to_flat_array(self) -> np.ndarray:
        """
        展平为单一向量

        特征维度: 52 * 3 + 4 + 4 + 1 + 1 = 166
        """
        return np.concatenate([
            self.hand,
            self.table,
            self.played,
            self.cards_left,
            self.passed,
            self.leading,
            self.twos_seen,
        ])


class ObservationBuilder:
    """
    观测构建器

    负责将 RoundState 转换为 Observation
    """

    def build(self, state: RoundState, seat: int = 0) -> Observation:
        """
        从单局状态构建观测

        Args:
            state: 单局状态
            seat: 视角座位

        Returns:
            Observation 对象
        """
        n = state.num_players
        order = [(seat + i) % n for i in range(n)]

        cards_left = np.zeros(MAX_SEATS, dtype=np.float32)
        passed = np.zeros(MAX_SEATS, dtype=np.float32)
        for i, s in enumerate(order):
            cards_left[i] = state.players[s].card_count / MAX_HAND
            passed[i] = 1.0 if s in state.passed else 0.0

        table = state.table_for(seat)
        played = list(state.discard) + [c for entry in state.trick_pile for c in entry.move.cards]

        return Observation(
            hand=cards_to_array(state.players[seat].hand),
            table=cards_to_array(table.cards) if table is not None else np.zeros(DECK_SIZE, dtype=np.float32),
            played=cards_to_array(played),
            cards_left=cards_left,
            passed=passed,
            leading=np.array([1.0 if state.is_leading(seat) else 0.0], dtype=np.float32),
            twos_seen=np.array([state.twos_played / TOTAL_TWOS], dtype=np.float32),
            legal_actions=legal_actions(state, seat),
        )


def legal_actions(state: RoundState, seat: int) -> List[LegalAction]:
    """
    座位的动作列表; 跟牌时第 0 项为过

    不是该座位的出牌回合时为空
    """
    if state.phase != Phase.PLAYING or state.turn_index != seat or not state.players[seat].hand:
        return []
    moves: List[LegalAction] = list(state.legal_moves(seat))
    if not state.is_leading(seat):
        moves.insert(0, None)
    return moves


def build_legal_mask(actions: List[LegalAction]) -> np.ndarray:
    """
    按牌编码的合法掩码: 出现在任一合法出牌中的牌为 1

    Args:
        actions: legal_actions() 的结果

    Returns:
        52 维数组
    """
    cards = [c for move in actions if move is not None for c in move.cards]
    return cards_to_array(cards)


def action_to_cards(action: Union[Move, np.ndarray]) -> List[Card]:
    """出牌或 52 维选择向量 -> 牌列表"""
    if isinstance(action, Move):
        return list(action.cards)
    return array_to_cards(action)
