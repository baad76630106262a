"""
牌型定义与出牌生成器

Thirteen 共 6 种合法牌型 (另有 INVALID 表示非法组合)
"""
from enum import IntEnum
from dataclasses import dataclass
from typing import List, Tuple, Optional, Iterable, Dict
from collections import defaultdict

from .cards import Card, Rank, sort_cards, THREE_OF_SPADES


class HandType(IntEnum):
    """牌型"""
    INVALID = 0     # 非法组合
    SINGLE = 1      # 单张
    PAIR = 2        # 对子
    TRIPLE = 3      # 三张
    QUAD = 4        # 四张 (炸弹)
    STRAIGHT = 5    # 顺子 (至少3张, 不含2)
    SEQ_PAIRS = 6   # 连对 (至少3对, 不含2)


# 顺子/连对的最小长度
MIN_STRAIGHT_LEN = 3      # 顺子至少 3 张
MIN_SEQ_PAIRS_LEN = 3     # 连对至少 3 对

# 可以压 2 的牌型
BOMB_TYPES = (HandType.QUAD, HandType.SEQ_PAIRS)


@dataclass(frozen=True, slots=True)
class HandIdentity:
    """
    牌型识别结果

    Attributes:
        hand_type: 牌型
        value: 最大一张牌的牌力 (非法时为 0)
        length: 张数
    """
    hand_type: HandType
    value: int = 0
    length: int = 0

    @property
    def is_valid(self) -> bool:
        return self.hand_type != HandType.INVALID


@dataclass(frozen=True, slots=True)
class Move:
    """
    不可变的出牌

    Attributes:
        cards: 按牌力升序的牌元组
        hand_type: 牌型
    """
    cards: Tuple[Card, ...]
    hand_type: HandType

    @classmethod
    def from_cards(cls, cards: Iterable[Card], hand_type: Optional[HandType] = None) -> 'Move':
        """从牌列表创建出牌, 未给出牌型时自动识别"""
        sorted_cards = tuple(sort_cards(cards))
        if hand_type is None:
            from .rules import RuleEngine
            hand_type = RuleEngine.identify(sorted_cards).hand_type
        return cls(cards=sorted_cards, hand_type=hand_type)

    @property
    def value(self) -> int:
        """最大一张牌的牌力 (用于大小比较)"""
        if not self.cards:
            return 0
        return self.cards[-1].value

    @property
    def identity(self) -> HandIdentity:
        if self.hand_type == HandType.INVALID:
            return HandIdentity(HandType.INVALID, 0, len(self.cards))
        return HandIdentity(self.hand_type, self.value, len(self.cards))

    @property
    def is_bomb(self) -> bool:
        return self.hand_type in BOMB_TYPES

    @property
    def is_two(self) -> bool:
        """是否为单 2 或对 2"""
        return (
            self.hand_type in (HandType.SINGLE, HandType.PAIR)
            and self.cards[0].rank == Rank.TWO
        )

    @property
    def has_three_of_spades(self) -> bool:
        return THREE_OF_SPADES in self.cards

    def __len__(self) -> int:
        return len(self.cards)

    def __str__(self) -> str:
        return ' '.join(str(c) for c in self.cards)


class MoveGenerator:
    """
    合法出牌生成器

    根据手牌枚举所有能压过桌面的组合. 顺子和连对只生成代表组合
    (每个点数取最低或最高花色), 而不是全部花色组合
    """

    def __init__(self, hand_cards: Iterable[Card]):
        """
        Args:
            hand_cards: 手牌
        """
        self.hand: List[Card] = sort_cards(hand_cards)
        self.rank_map: Dict[int, List[Card]] = defaultdict(list)
        for card in self.hand:
            self.rank_map[card.rank].append(card)
        self.unique_ranks: List[int] = sorted(self.rank_map.keys())

    def gen_singles(self) -> List[List[Card]]:
        """生成所有单张"""
        return [[card] for card in self.hand]

    def gen_pairs(self) -> List[List[Card]]:
        """生成所有相邻同点数对子"""
        h = self.hand
        return [
            [h[i], h[i + 1]]
            for i in range(len(h) - 1)
            if h[i].rank == h[i + 1].rank
        ]

    def gen_triples(self) -> List[List[Card]]:
        """生成所有相邻三张"""
        h = self.hand
        return [
            h[i:i + 3]
            for i in range(len(h) - 2)
            if h[i].rank == h[i + 1].rank == h[i + 2].rank
        ]

    def gen_quads(self) -> List[List[Card]]:
        """生成所有四张"""
        h = self.hand
        return [h[i:i + 4] for i in range(len(h) - 3) if h[i].rank == h[i + 3].rank]

    def gen_straights(self) -> List[List[Card]]:
        """
        生成顺子

        从每个起始点数向后延伸, 长度达到 3 起每个前缀产出两个代表:
        先取每个点数的最高花色, 再取最低花色
        """
        result = []
        ranks = self.unique_ranks

        for i, start in enumerate(ranks):
            if start == Rank.TWO:
                continue
            seq = [start]
            for j in range(i + 1, len(ranks)):
                if ranks[j] == Rank.TWO or ranks[j] != ranks[j - 1] + 1:
                    break
                seq.append(ranks[j])
                if len(seq) >= MIN_STRAIGHT_LEN:
                    high = [self.rank_map[r][-1] for r in seq]
                    low = [self.rank_map[r][0] for r in seq]
                    result.append(high)
                    if low != high:
                        result.append(low)

        return result

    def gen_seq_pairs(self) -> List[List[Card]]:
        """生成连对 (每个点数取最低的两张)"""
        result = []
        ranks = self.unique_ranks

        for i, start in enumerate(ranks):
            if start == Rank.TWO or len(self.rank_map[start]) < 2:
                continue
            seq = [start]
            for j in range(i + 1, len(ranks)):
                r = ranks[j]
                if r == Rank.TWO or r != ranks[j - 1] + 1 or len(self.rank_map[r]) < 2:
                    break
                seq.append(r)
                if len(seq) >= MIN_SEQ_PAIRS_LEN:
                    cards = []
                    for rank in seq:
                        cards.extend(self.rank_map[rank][:2])
                    result.append(cards)

        return result

    def legal_moves(self, table: Optional[Move]) -> List[Move]:
        """
        生成所有能压过桌面的出牌

        顺序: 单张, 对子, 三张, 四张, 顺子, 连对

        Args:
            table: 桌面上的牌, None 表示主动出牌

        Returns:
            合法出牌列表
        """
        from .rules import RuleEngine

        moves = []
        candidates = (
            self.gen_singles()
            + self.gen_pairs()
            + self.gen_triples()
            + self.gen_quads()
            + self.gen_straights()
            + self.gen_seq_pairs()
        )
        for cards in candidates:
            move = Move.from_cards(cards)
            if RuleEngine.beats(move, table):
                moves.append(move)
        return moves
