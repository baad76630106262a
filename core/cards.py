"""
牌的定义与编码

Thirteen (Tiến Lên) 使用标准 52 张牌:
- 点数 3-10, J, Q, K, A, 2 (2 最大, 记为 15)
- 花色 黑桃 < 梅花 < 方块 < 红桃
- 牌力 value = rank * 4 + suit, 点数优先, 花色次之
"""
from enum import IntEnum
from dataclasses import dataclass
from typing import Iterable, List, Tuple, Dict
import numpy as np


class Suit(IntEnum):
    """花色 (数值越大越强)"""
    SPADE = 0
    CLUB = 1
    DIAMOND = 2
    HEART = 3


class Rank(IntEnum):
    """点数定义"""
    THREE = 3
    FOUR = 4
    FIVE = 5
    SIX = 6
    SEVEN = 7
    EIGHT = 8
    NINE = 9
    TEN = 10
    JACK = 11
    QUEEN = 12
    KING = 13
    ACE = 14
    TWO = 15


RANKS: Tuple[int, ...] = tuple(int(r) for r in Rank)
SUITS: Tuple[int, ...] = tuple(int(s) for s in Suit)

SUIT_SYMBOLS: Tuple[str, ...] = ('♠', '♣', '♦', '♥')
SUIT_LETTERS: Tuple[str, ...] = ('s', 'c', 'd', 'h')

# 点数到显示字符的映射
RANK_NAMES: Dict[int, str] = {
    3: '3', 4: '4', 5: '5', 6: '6', 7: '7', 8: '8', 9: '9',
    10: '10', 11: 'J', 12: 'Q', 13: 'K', 14: 'A', 15: '2',
}

# 显示字符到点数的映射
STR_TO_RANK: Dict[str, int] = {v: k for k, v in RANK_NAMES.items()}

# 最小牌力 (3♠) 与数组编码偏移
MIN_VALUE = Rank.THREE * 4 + Suit.SPADE
DECK_SIZE = 52


def card_value(rank: int, suit: int) -> int:
    """牌力: 点数优先, 花色决定同点数大小"""
    return rank * 4 + suit


@dataclass(frozen=True, slots=True)
class Card:
    """
    不可变的单张牌

    Attributes:
        rank: 点数 3..15
        suit: 花色 0..3
    """
    rank: int
    suit: int

    def __post_init__(self):
        if self.rank not in RANKS:
            raise ValueError(f"Invalid rank: {self.rank}")
        if self.suit not in SUITS:
            raise ValueError(f"Invalid suit: {self.suit}")

    @property
    def value(self) -> int:
        return card_value(self.rank, self.suit)

    @property
    def id(self) -> str:
        return f"{self.rank}-{self.suit}"

    @property
    def is_two(self) -> bool:
        return self.rank == Rank.TWO

    @property
    def symbol(self) -> str:
        return SUIT_SYMBOLS[self.suit]

    def __str__(self) -> str:
        return f"{RANK_NAMES[self.rank]}{SUIT_SYMBOLS[self.suit]}"

    def __repr__(self) -> str:
        return f"Card({self})"


THREE_OF_SPADES = Card(Rank.THREE, Suit.SPADE)

# 完整牌组 (52 张, 按牌力升序)
FULL_DECK: Tuple[Card, ...] = tuple(
    Card(rank, suit) for rank in RANKS for suit in SUITS
)


def create_deck() -> List[Card]:
    """返回一副完整的 52 张牌 (按牌力升序)"""
    return list(FULL_DECK)


def shuffle_deck(deck: Iterable[Card], rng: np.random.Generator) -> List[Card]:
    """
    Fisher-Yates 洗牌

    不修改输入, 随机源由调用方注入以保证可复现

    Args:
        deck: 待洗的牌
        rng: numpy 随机数生成器

    Returns:
        新的随机排列
    """
    shuffled = list(deck)
    for i in range(len(shuffled) - 1, 0, -1):
        j = int(rng.integers(0, i + 1))
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled


def sort_cards(cards: Iterable[Card]) -> List[Card]:
    """按牌力升序排列"""
    return sorted(cards, key=lambda c: c.value)


def count_twos(cards: Iterable[Card]) -> int:
    return sum(1 for c in cards if c.rank == Rank.TWO)


def cards_to_array(cards: Iterable[Card]) -> np.ndarray:
    """
    将牌转换为 52 维 0/1 向量

    第 i 维对应牌力为 i + 12 的牌 (3♠ 在第 0 维, 2♥ 在第 51 维)

    Args:
        cards: 牌集合

    Returns:
        52 维 numpy 数组
    """
    array = np.zeros(DECK_SIZE, dtype=np.float32)
    for card in cards:
        array[card.value - MIN_VALUE] = 1
    return array


def array_to_cards(array: np.ndarray) -> List[Card]:
    """
    将 52 维数组转换回牌列表

    Args:
        array: 52 维 numpy 数组

    Returns:
        按牌力升序的牌列表
    """
    indices = np.flatnonzero(np.asarray(array)[:DECK_SIZE] > 0)
    return [FULL_DECK[int(i)] for i in indices]


def cards_to_str(cards: Iterable[Card]) -> str:
    """
    将牌列表转换为可读字符串

    Returns:
        如 "3♠ 4♣ 5♦"
    """
    return ' '.join(str(c) for c in sort_cards(cards))


def parse_card(token: str) -> Card:
    """
    解析单张牌

    支持 "3s", "10h", "Qd", "2♥" 等写法, 花色字母大小写均可
    """
    token = token.strip()
    if len(token) < 2:
        raise ValueError(f"Invalid card: {token!r}")
    rank_part, suit_part = token[:-1].upper(), token[-1]
    if suit_part in SUIT_SYMBOLS:
        suit = SUIT_SYMBOLS.index(suit_part)
    elif suit_part.lower() in SUIT_LETTERS:
        suit = SUIT_LETTERS.index(suit_part.lower())
    else:
        raise ValueError(f"Invalid suit in card: {token!r}")
    if rank_part not in STR_TO_RANK:
        raise ValueError(f"Invalid rank in card: {token!r}")
    return Card(STR_TO_RANK[rank_part], suit)


def str_to_cards(s: str) -> List[Card]:
    """
    将空格分隔的字符串转换为牌列表

    Args:
        s: 如 "3s 4c 5d" 或 "3♠ 4♣"

    Returns:
        牌列表 (保持输入顺序)
    """
    return [parse_card(token) for token in s.split()]
