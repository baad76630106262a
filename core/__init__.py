"""
Core Layer - 纯游戏逻辑 (无界面依赖)

Modules:
    cards: 牌定义与编码
    actions: 牌型与出牌生成
    rules: 规则引擎
    errors: 拒绝原因与异常
    events: 领域事件
    config: 对局配置
    state: 单局状态与轮转
    scheduler: 电脑回合调度
    session: 跨局会话
"""
from .cards import (
    Suit,
    Rank,
    Card,
    FULL_DECK,
    THREE_OF_SPADES,
    create_deck,
    shuffle_deck,
    sort_cards,
    cards_to_array,
    array_to_cards,
    cards_to_str,
    parse_card,
    str_to_cards,
)

from .actions import (
    HandType,
    HandIdentity,
    Move,
    MoveGenerator,
    MIN_STRAIGHT_LEN,
    MIN_SEQ_PAIRS_LEN,
)

from .rules import RuleEngine

from .errors import (
    Rejection,
    RuleViolation,
    InvariantViolation,
)

from .events import Event, Result

from .config import GameConfig, CpuSeat

from .state import (
    Phase,
    Player,
    RoundState,
    PHASE_TRANSITIONS,
)

from .scheduler import TurnScheduler, TurnToken

from .session import GameSession

__all__ = [
    # cards
    "Suit",
    "Rank",
    "Card",
    "FULL_DECK",
    "THREE_OF_SPADES",
    "create_deck",
    "shuffle_deck",
    "sort_cards",
    "cards_to_array",
    "array_to_cards",
    "cards_to_str",
    "parse_card",
    "str_to_cards",
    # actions
    "HandType",
    "HandIdentity",
    "Move",
    "MoveGenerator",
    "MIN_STRAIGHT_LEN",
    "MIN_SEQ_PAIRS_LEN",
    # rules
    "RuleEngine",
    # errors
    "Rejection",
    "RuleViolation",
    "InvariantViolation",
    # events
    "Event",
    "Result",
    # config
    "GameConfig",
    "CpuSeat",
    # state
    "Phase",
    "Player",
    "RoundState",
    "PHASE_TRANSITIONS",
    # session
    "TurnScheduler",
    "TurnToken",
    "GameSession",
]
