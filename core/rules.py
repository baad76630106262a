"""
规则引擎 - 牌型识别、压牌判定、牌型描述

所有方法都是纯函数，无状态
"""
from typing import List, Optional, Sequence, Union

from .cards import Card, Rank, RANK_NAMES, sort_cards
from .actions import HandType, HandIdentity, Move

CardsLike = Union[Move, Sequence[Card]]


def _as_cards(cards: CardsLike) -> List[Card]:
    if isinstance(cards, Move):
        return list(cards.cards)
    return sort_cards(cards)


def _as_move(cards: CardsLike) -> Move:
    if isinstance(cards, Move):
        return cards
    return Move.from_cards(cards)


class RuleEngine:
    """
    Thirteen 规则引擎

    提供牌型识别、压牌判定等功能
    所有方法都是静态方法，无状态
    """

    @staticmethod
    def is_consecutive(ranks: List[int]) -> bool:
        """
        检查点数列表是否逐一递增

        Args:
            ranks: 已排序的点数列表

        Returns:
            是否连续
        """
        for i in range(len(ranks) - 1):
            if ranks[i + 1] - ranks[i] != 1:
                return False
        return True

    @staticmethod
    def identify(cards: CardsLike) -> HandIdentity:
        """
        识别牌型

        输入视为集合, 先按牌力排序再判定, 结果与输入顺序无关

        Args:
            cards: 牌列表或出牌

        Returns:
            牌型识别结果
        """
        cards = _as_cards(cards)
        n = len(cards)
        if n == 0:
            return HandIdentity(HandType.INVALID)

        ranks = [c.rank for c in cards]
        value = cards[-1].value

        if n == 1:
            return HandIdentity(HandType.SINGLE, value, 1)
        if n == 2 and ranks[0] == ranks[1]:
            return HandIdentity(HandType.PAIR, value, 2)
        if n == 3 and ranks[0] == ranks[2]:
            return HandIdentity(HandType.TRIPLE, value, 3)
        if n == 4 and ranks[0] == ranks[3]:
            return HandIdentity(HandType.QUAD, value, 4)

        has_two = Rank.TWO in ranks

        # 顺子: 点数逐一递增, 2 不能参与
        if n >= 3 and not has_two and RuleEngine.is_consecutive(ranks):
            return HandIdentity(HandType.STRAIGHT, value, n)

        # 连对: 两两同点数, 各对点数连续
        if n >= 6 and n % 2 == 0 and not has_two:
            pair_ranks = ranks[::2]
            paired = all(ranks[i] == ranks[i + 1] for i in range(0, n, 2))
            if paired and RuleEngine.is_consecutive(pair_ranks):
                return HandIdentity(HandType.SEQ_PAIRS, value, n)

        return HandIdentity(HandType.INVALID, 0, n)

    @staticmethod
    def beats(play: CardsLike, table: Optional[CardsLike]) -> bool:
        """
        判断出牌能否压过桌面

        同牌型同张数比较最大牌力; 另外单 2 可被四张或 3 连对压,
        对 2 可被四张或 4 连对压

        Args:
            play: 出牌
            table: 桌面上的牌, None 或空表示主动出牌

        Returns:
            是否能压
        """
        play = _as_move(play)
        play_id = play.identity
        if not play_id.is_valid:
            return False
        if table is None or len(table) == 0:
            return True

        table = _as_move(table)
        table_id = table.identity

        if play_id.hand_type == table_id.hand_type and play_id.length == table_id.length:
            return play_id.value > table_id.value

        if table.is_two and play.is_bomb:
            if play.hand_type == HandType.QUAD:
                return True
            return play_id.length >= (6 if table_id.hand_type == HandType.SINGLE else 8)

        return False

    @staticmethod
    def is_chop(play: CardsLike, table: Optional[CardsLike]) -> bool:
        """炸弹压 2 ("砍")"""
        if table is None or len(table) == 0:
            return False
        play, table = _as_move(play), _as_move(table)
        return table.is_two and play.is_bomb and RuleEngine.beats(play, table)

    @staticmethod
    def describe(cards: CardsLike) -> str:
        """
        牌型描述 (用于提示和日志)

        Returns:
            如 "Pair of Ks", "3 Consecutive Pairs"; 非法组合返回空字符串
        """
        ident = RuleEngine.identify(cards)
        if not ident.is_valid:
            return ''
        highest = _as_cards(cards)[-1]
        name = RANK_NAMES[highest.rank]

        if ident.hand_type == HandType.SINGLE:
            return f"Single {name}{highest.symbol}"
        if ident.hand_type == HandType.PAIR:
            return f"Pair of {name}s"
        if ident.hand_type == HandType.TRIPLE:
            return f"Triple {name}s"
        if ident.hand_type == HandType.QUAD:
            return f"Four of a Kind {name}s"
        if ident.hand_type == HandType.STRAIGHT:
            return f"Straight {name}{highest.symbol} High"
        return f"{ident.length // 2} Consecutive Pairs"
