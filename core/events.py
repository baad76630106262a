"""
事件与命令结果

事件由状态转换产生, 供渲染、统计、提示等外部协作者消费
"""
from dataclasses import dataclass, field
from typing import Tuple, Optional

from .cards import Card
from .errors import Rejection, REJECTION_MESSAGES


@dataclass(frozen=True)
class Event:
    """事件基类"""


@dataclass(frozen=True)
class RoundStarted(Event):
    round_number: int
    deal_starter: int
    mode: str


@dataclass(frozen=True)
class SwapMade(Event):
    seat_id: int
    given: Card
    taken: Card


@dataclass(frozen=True)
class SwapKept(Event):
    seat_id: int
    passes: int


@dataclass(frozen=True)
class PlayPhaseStarted(Event):
    leader_id: int


@dataclass(frozen=True)
class CardsPlayed(Event):
    seat_id: int
    cards: Tuple[Card, ...]
    description: str


@dataclass(frozen=True)
class PlayerPassed(Event):
    seat_id: int


@dataclass(frozen=True)
class Chop(Event):
    """炸弹压 2"""
    seat_id: int
    victim_id: int


@dataclass(frozen=True)
class TrickWon(Event):
    winner_id: int
    description: str
    next_leader: int


@dataclass(frozen=True)
class PlayerFinished(Event):
    seat_id: int
    placement: int


@dataclass(frozen=True)
class RoundFinished(Event):
    ranking: Tuple[int, ...]


@dataclass(frozen=True)
class InvalidMoveAttempted(Event):
    seat_id: int
    reason: Rejection


@dataclass(frozen=True)
class ReactionTriggered(Event):
    seat_id: int
    kind: str
    emoji: str


@dataclass(frozen=True)
class Result:
    """
    公开命令的返回值

    Attributes:
        accepted: 是否被接受
        reason: 拒绝原因 (接受时为 None)
        events: 本次命令产生的事件
    """
    accepted: bool
    reason: Optional[Rejection] = None
    events: Tuple[Event, ...] = field(default_factory=tuple)

    @classmethod
    def ok(cls, events=()) -> 'Result':
        return cls(accepted=True, events=tuple(events))

    @classmethod
    def rejected(cls, reason: Rejection, events=()) -> 'Result':
        return cls(accepted=False, reason=reason, events=tuple(events))

    @property
    def message(self) -> str:
        return REJECTION_MESSAGES[self.reason] if self.reason else ""

    def __bool__(self) -> bool:
        return self.accepted
