"""
电脑玩家出牌策略

纯函数: (手牌, 桌面, 上下文) -> 出牌或过. 选出的牌仍需经过与真人相同的合法性校验
"""
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Set
from collections import defaultdict
import logging

import numpy as np

from core.cards import Card, Rank, sort_cards, count_twos
from core.actions import HandType, Move, MoveGenerator, BOMB_TYPES

logger = logging.getLogger(__name__)

# 桌面牌力达到该值即为 2 (2♠ = 15 * 4)
TWO_VALUE_THRESHOLD = Rank.TWO * 4

# 跟牌时优先同牌型的桌面牌型
MATCH_TYPES = (HandType.PAIR, HandType.TRIPLE, HandType.STRAIGHT)

TOTAL_TWOS = 4


@dataclass(frozen=True)
class AIContext:
    """
    决策上下文

    Attributes:
        is_leading: 是否主动出牌 (桌面为空, 或桌面是自己的牌)
        twos_seen: 本局已打出的 2 的张数
        opening_lead_required: 是否必须带 3♠ 首出
        has_passed: 本墩是否已经过牌
    """
    is_leading: bool
    twos_seen: int = 0
    opening_lead_required: bool = False
    has_passed: bool = False


def analyze_hand_structure(hand: Iterable[Card]) -> Set[Card]:
    """
    找出属于结构的牌: 对子/三张/四张中的牌, 以及 3 个以上连续点数里的牌

    Returns:
        结构牌集合
    """
    rank_map = defaultdict(list)
    for card in sort_cards(hand):
        rank_map[card.rank].append(card)

    structural: Set[Card] = set()
    for group in rank_map.values():
        if len(group) >= 2:
            structural.update(group)

    seq: List[int] = []
    for rank in sorted(rank_map):
        if rank == Rank.TWO:
            seq = []
            continue
        if seq and rank != seq[-1] + 1:
            seq = []
        seq.append(rank)
        if len(seq) >= 3:
            for r in seq:
                structural.update(rank_map[r])

    return structural


def twos_out_there(hand: Sequence[Card], twos_seen: int) -> int:
    """其他人手里可能还有的 2"""
    return TOTAL_TWOS - twos_seen - count_twos(hand)


def decide(
    hand: Sequence[Card],
    table: Optional[Move],
    context: AIContext,
) -> Optional[Move]:
    """
    选择出牌

    Args:
        hand: 自己的手牌
        table: 桌面上的牌
        context: 决策上下文

    Returns:
        选中的出牌, None 表示过
    """
    if context.has_passed:
        return None

    hand = sort_cards(hand)
    current_table = None if context.is_leading else table

    candidates = MoveGenerator(hand).legal_moves(current_table)
    if context.opening_lead_required:
        candidates = [m for m in candidates if m.has_three_of_spades]

    # 桌面是 2 时, 能用更大的单 2 就直接压
    if current_table is not None and current_table.value >= TWO_VALUE_THRESHOLD:
        for move in candidates:
            if (
                move.hand_type == HandType.SINGLE
                and move.cards[0].rank == Rank.TWO
                and move.value > current_table.value
            ):
                logger.debug("Countering a Two with %s", move)
                return move

    # 外面还有 2 时留着炸弹, 除非一把出完
    if context.is_leading and twos_out_there(hand, context.twos_seen) > 0:
        candidates = [
            m for m in candidates
            if m.hand_type not in BOMB_TYPES or len(m) == len(hand)
        ]

    if not context.is_leading and current_table is not None:
        table_type = current_table.hand_type
        if table_type in MATCH_TYPES:
            matching = [m for m in candidates if m.hand_type == table_type]
            if matching:
                return min(matching, key=lambda m: m.value)

    if not context.is_leading and len(candidates) > 1:
        if current_table is not None and current_table.hand_type == HandType.SINGLE:
            structure = analyze_hand_structure(hand)
            candidates.sort(key=lambda m: (1 if m.cards[0] in structure else 0, m.value))
        else:
            candidates.sort(key=lambda m: m.value)
    elif context.is_leading:
        # 先出长牌, 同长度先出组合, 再出小的
        candidates.sort(key=lambda m: (
            -len(m),
            1 if m.hand_type == HandType.SINGLE else 0,
            m.value,
        ))

    if candidates:
        return candidates[0]
    if context.is_leading and hand:
        return Move.from_cards([hand[0]])
    return None


def decide_swap(hand: Sequence[Card], swap_card: Card, rng: np.random.Generator) -> bool:
    """
    换牌阶段是否用最小的牌换公共牌

    Args:
        hand: 手牌
        swap_card: 公共换牌
        rng: 随机数生成器

    Returns:
        True 表示换
    """
    lowest = sort_cards(hand)[0]
    should_swap = False
    if swap_card.rank == Rank.TWO and lowest.rank != Rank.TWO:
        should_swap = True
    if swap_card.rank == Rank.ACE and lowest.rank < Rank.TEN:
        should_swap = True
    if any(c.rank == swap_card.rank for c in hand):
        should_swap = True
    if rng.random() > 0.7:
        should_swap = True

    if swap_card.rank < Rank.SIX:
        should_swap = False
    return should_swap
