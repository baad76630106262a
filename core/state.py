"""
对局状态与轮转引擎

使用不可变数据结构, 每次转换返回 (新状态, 事件列表):
- 便于回放和测试
- 拒绝的命令不会留下半更新的状态
"""
from dataclasses import dataclass, replace
from typing import Dict, Tuple, Optional, List, FrozenSet, Iterable, Sequence
from collections import Counter
from enum import Enum
import logging

from .cards import Card, FULL_DECK, THREE_OF_SPADES, sort_cards, count_twos
from .actions import Move, MoveGenerator, HandType
from .rules import RuleEngine
from .errors import Rejection, RuleViolation, InvariantViolation
from .events import (
    Event,
    SwapMade,
    SwapKept,
    PlayPhaseStarted,
    CardsPlayed,
    PlayerPassed,
    Chop,
    TrickWon,
    PlayerFinished,
    RoundFinished,
)

logger = logging.getLogger(__name__)


class Phase(Enum):
    """对局阶段"""
    MENU = "menu"
    DEALING = "dealing"
    SWAPPING = "swapping"    # 仅 17 张模式
    PLAYING = "playing"
    FINISHED = "finished"


# 合法的阶段转换
PHASE_TRANSITIONS: Dict[Phase, FrozenSet[Phase]] = {
    Phase.MENU: frozenset({Phase.DEALING}),
    Phase.DEALING: frozenset({Phase.SWAPPING, Phase.PLAYING, Phase.MENU}),
    Phase.SWAPPING: frozenset({Phase.PLAYING, Phase.MENU}),
    Phase.PLAYING: frozenset({Phase.FINISHED, Phase.MENU}),
    Phase.FINISHED: frozenset({Phase.DEALING, Phase.MENU}),
}


def check_transition(current: Phase, target: Phase) -> None:
    if target not in PHASE_TRANSITIONS[current]:
        raise RuleViolation(Rejection.WRONG_PHASE, f"{current.value} -> {target.value}")


Transition = Tuple['RoundState', List[Event]]


@dataclass(frozen=True)
class Player:
    """
    座位上的玩家

    Attributes:
        id: 座位号 (0 为真人)
        name: 名称
        hand: 手牌 (按牌力升序)
        is_human: 是否为真人
        finished: 是否已出完
    """
    id: int
    name: str
    hand: Tuple[Card, ...] = ()
    is_human: bool = False
    finished: bool = False

    @property
    def card_count(self) -> int:
        return len(self.hand)

    @property
    def lowest(self) -> Optional[Card]:
        return self.hand[0] if self.hand else None

    def holds(self, cards: Iterable[Card]) -> bool:
        hand = set(self.hand)
        return all(c in hand for c in cards)

    def without(self, cards: Iterable[Card]) -> 'Player':
        removed = set(cards)
        return replace(self, hand=tuple(c for c in self.hand if c not in removed))

    def with_card(self, card: Card) -> 'Player':
        return replace(self, hand=tuple(sort_cards(self.hand + (card,))))


@dataclass(frozen=True)
class TrickEntry:
    """一墩中的一次出牌"""
    player_id: int
    move: Move


@dataclass(frozen=True)
class RoundState:
    """
    一局的不可变状态

    Attributes:
        players: 各座位玩家
        phase: 当前阶段
        turn_index: 当前行动座位
        deal_starter: 发牌起始座位 (上一局的赢家, 首局为 0)
        first_round: 是否为本会话第一局 (决定首出需含 3♠)
        table: 桌面上领先的出牌
        trick_pile: 本墩出牌记录, 最后一项为桌面牌的主人
        discard: 已结束的墩里打出的牌
        passed: 本墩已过牌的座位
        finished: 出完牌的座位 (即名次顺序)
        swap_card: 17 张模式的公共换牌
        swap_passes: 换牌阶段连续不换的次数
        swappers: 换牌阶段换过牌的座位
        plays_made: 本局出牌次数
        twos_played: 本局已打出的 2 的张数
        round_winner: 本局第一个出完的座位
    """
    players: Tuple[Player, ...]
    phase: Phase
    turn_index: int
    deal_starter: int = 0
    first_round: bool = True
    table: Optional[Move] = None
    trick_pile: Tuple[TrickEntry, ...] = ()
    discard: Tuple[Card, ...] = ()
    passed: FrozenSet[int] = frozenset()
    finished: Tuple[int, ...] = ()
    swap_card: Optional[Card] = None
    swap_passes: int = 0
    swappers: FrozenSet[int] = frozenset()
    plays_made: int = 0
    twos_played: int = 0
    round_winner: Optional[int] = None

    # ------------------------------------------------------------------
    # 发牌
    # ------------------------------------------------------------------

    @classmethod
    def deal(
        cls,
        deck: Sequence[Card],
        names: Sequence[str],
        hand_size: int,
        deal_starter: int = 0,
        first_round: bool = True,
        swap_mode: bool = False,
    ) -> 'RoundState':
        """
        从起始座位开始轮流发牌

        Args:
            deck: 洗好的牌
            names: 各座位名称 (座位 0 为真人)
            hand_size: 每人张数
            deal_starter: 发牌起始座位
            first_round: 是否为会话第一局
            swap_mode: 17 张模式, 额外保留一张公共换牌

        Returns:
            DEALING 阶段的状态
        """
        n = len(names)
        if n not in (3, 4):
            raise ValueError(f"Thirteen needs 3 or 4 seats, got {n}")
        needed = hand_size * n + (1 if swap_mode else 0)
        if len(deck) < needed:
            raise ValueError(f"Deck has {len(deck)} cards, need {needed}")
        if not 0 <= deal_starter < n:
            deal_starter = 0

        hands: List[List[Card]] = [[] for _ in range(n)]
        for i in range(hand_size * n):
            hands[(deal_starter + i) % n].append(deck[i])

        players = tuple(
            Player(id=i, name=names[i], hand=tuple(sort_cards(hands[i])), is_human=(i == 0))
            for i in range(n)
        )
        swap_card = deck[hand_size * n] if swap_mode else None

        return cls(
            players=players,
            phase=Phase.DEALING,
            turn_index=deal_starter,
            deal_starter=deal_starter,
            first_round=first_round,
            swap_card=swap_card,
        )

    def with_deal_complete(self) -> Transition:
        """发牌结束: 17 张模式进入换牌, 否则直接开始出牌"""
        if self.phase != Phase.DEALING:
            raise RuleViolation(Rejection.WRONG_PHASE, "dealing is over")
        if self.swap_card is not None:
            check_transition(self.phase, Phase.SWAPPING)
            logger.info("Swap phase started, swap card %s", self.swap_card)
            return replace(self, phase=Phase.SWAPPING, turn_index=self.deal_starter), []
        return self._start_playing()

    def opening_leader(self) -> int:
        """首出座位: 会话第一局由持 3♠ 者先出, 之后由上一局赢家先出"""
        if self.first_round:
            for player in self.players:
                if THREE_OF_SPADES in player.hand:
                    return player.id
            return 0
        return self.deal_starter

    def _start_playing(self) -> Transition:
        check_transition(self.phase, Phase.PLAYING)
        leader = self.opening_leader()
        logger.info("Play phase started, seat %d leads", leader)
        state = replace(self, phase=Phase.PLAYING, turn_index=leader, swap_passes=0)
        return state, [PlayPhaseStarted(leader_id=leader)]

    # ------------------------------------------------------------------
    # 换牌 (17 张模式)
    # ------------------------------------------------------------------

    def _check_swap_turn(self, seat: int) -> None:
        if self.phase != Phase.SWAPPING:
            raise RuleViolation(Rejection.WRONG_PHASE, "not swapping")
        if seat != self.turn_index:
            raise RuleViolation(Rejection.NOT_YOUR_TURN, f"seat {seat}")

    def with_swap(self, seat: int, card: Optional[Card] = None) -> Transition:
        """
        用一张手牌换走公共换牌

        Args:
            seat: 座位
            card: 交出的牌, 默认为最小的一张
        """
        self._check_swap_turn(seat)
        player = self.players[seat]
        give = card if card is not None else player.lowest
        if give is None or give not in player.hand:
            raise RuleViolation(Rejection.CARDS_NOT_IN_HAND, str(give))

        taken = self.swap_card
        players = list(self.players)
        players[seat] = player.without([give]).with_card(taken)
        swappers = self.swappers | {seat}
        events: List[Event] = [SwapMade(seat_id=seat, given=give, taken=taken)]
        logger.debug("Seat %d swapped %s for %s", seat, give, taken)

        state = replace(
            self,
            players=tuple(players),
            swap_card=give,
            swap_passes=0,
            swappers=swappers,
        )
        if len(swappers) >= len(self.players):
            state, started = state._start_playing()
            return state, events + started
        return replace(state, turn_index=(seat + 1) % len(self.players)), events

    def with_swap_keep(self, seat: int) -> Transition:
        """不换牌; 公共换牌无人要地转满一圈后开始出牌"""
        self._check_swap_turn(seat)
        passes = self.swap_passes + 1
        events: List[Event] = [SwapKept(seat_id=seat, passes=passes)]
        logger.debug("Seat %d kept its hand (%d passes)", seat, passes)

        state = replace(self, swap_passes=passes)
        if passes >= len(self.players):
            state, started = state._start_playing()
            return state, events + started
        return replace(state, turn_index=(seat + 1) % len(self.players)), events

    # ------------------------------------------------------------------
    # 出牌
    # ------------------------------------------------------------------

    @property
    def num_players(self) -> int:
        return len(self.players)

    @property
    def current_player(self) -> Player:
        return self.players[self.turn_index]

    @property
    def table_owner(self) -> Optional[int]:
        return self.trick_pile[-1].player_id if self.trick_pile else None

    @property
    def active_players(self) -> List[Player]:
        """手上还有牌的玩家"""
        return [p for p in self.players if p.hand]

    @property
    def opening_lead_required(self) -> bool:
        """会话第一局的第一手必须包含 3♠"""
        return (
            self.first_round
            and self.phase == Phase.PLAYING
            and self.plays_made == 0
            and self.table is None
            and THREE_OF_SPADES in self.current_player.hand
        )

    def is_leading(self, seat: int) -> bool:
        return self.table is None or self.table_owner == seat

    def table_for(self, seat: int) -> Optional[Move]:
        """该座位需要压的牌 (自己的牌不用压)"""
        return None if self.is_leading(seat) else self.table

    def legal_moves(self, seat: Optional[int] = None) -> List[Move]:
        """
        获取座位的合法出牌 (含首出 3♠ 约束)

        Args:
            seat: 座位, 默认为当前行动座位
        """
        seat = self.turn_index if seat is None else seat
        moves = MoveGenerator(self.players[seat].hand).legal_moves(self.table_for(seat))
        if seat == self.turn_index and self.opening_lead_required:
            moves = [m for m in moves if m.has_three_of_spades]
        return moves

    def validate_play(self, seat: int, cards: Sequence[Card]) -> Move:
        """
        校验出牌, 不合法时抛出 RuleViolation

        Returns:
            识别后的出牌
        """
        if self.phase != Phase.PLAYING:
            raise RuleViolation(Rejection.WRONG_PHASE, f"phase is {self.phase.value}")
        if seat != self.turn_index:
            raise RuleViolation(Rejection.NOT_YOUR_TURN, f"seat {seat}")
        if not cards or len(set(cards)) != len(cards):
            raise RuleViolation(Rejection.INVALID_COMBINATION, "empty or duplicated cards")
        if not self.players[seat].holds(cards):
            raise RuleViolation(Rejection.CARDS_NOT_IN_HAND)

        move = Move.from_cards(cards)
        if move.hand_type == HandType.INVALID:
            raise RuleViolation(Rejection.INVALID_COMBINATION, str(move))
        if not RuleEngine.beats(move, self.table_for(seat)):
            raise RuleViolation(Rejection.DOES_NOT_BEAT_TABLE, str(move))
        if self.opening_lead_required and not move.has_three_of_spades:
            raise RuleViolation(Rejection.OPENING_LEAD_VIOLATION)
        return move

    def with_play(self, seat: int, cards: Sequence[Card]) -> Transition:
        """
        出牌后的新状态

        Args:
            seat: 出牌座位
            cards: 打出的牌

        Returns:
            (新状态, 事件)
        """
        move = self.validate_play(seat, cards)
        table = self.table_for(seat)
        prev_owner = self.table_owner

        players = list(self.players)
        players[seat] = self.players[seat].without(move.cards)

        events: List[Event] = [
            CardsPlayed(seat_id=seat, cards=move.cards, description=RuleEngine.describe(move))
        ]
        if prev_owner is not None and prev_owner != seat and RuleEngine.is_chop(move, table):
            events.append(Chop(seat_id=seat, victim_id=prev_owner))
            logger.info("Seat %d chopped seat %d's Two with %s", seat, prev_owner, move)
        logger.debug("Seat %d played %s", seat, RuleEngine.describe(move))

        finished = self.finished
        round_winner = self.round_winner
        if not players[seat].hand:
            players[seat] = replace(players[seat], finished=True)
            finished = finished + (seat,)
            if round_winner is None:
                round_winner = seat
            events.append(PlayerFinished(seat_id=seat, placement=len(finished)))
            logger.info("Seat %d finished in place %d", seat, len(finished))

        state = replace(
            self,
            players=tuple(players),
            table=move,
            trick_pile=self.trick_pile + (TrickEntry(seat, move),),
            finished=finished,
            plays_made=self.plays_made + 1,
            twos_played=self.twos_played + count_twos(move.cards),
            round_winner=round_winner,
        )

        remaining = state.active_players
        if len(remaining) <= 1:
            return state._finish_round(remaining, events)

        # 有人出完后所需过牌数减少, 已有的过牌可能已经够了
        if len(state.passed) >= max(1, len(remaining) - 1):
            return state._clear_trick(events)

        state = replace(state, turn_index=state._next_seat(seat))
        return state, events

    def with_pass(self, seat: int) -> Transition:
        """
        过牌后的新状态; 过牌数达到 (在场人数 - 1) 时本墩结束
        """
        if self.phase != Phase.PLAYING:
            raise RuleViolation(Rejection.WRONG_PHASE, f"phase is {self.phase.value}")
        if seat != self.turn_index:
            raise RuleViolation(Rejection.NOT_YOUR_TURN, f"seat {seat}")
        if self.is_leading(seat):
            raise RuleViolation(Rejection.CANNOT_PASS_WHEN_LEADING)

        passed = self.passed | {seat}
        events: List[Event] = [PlayerPassed(seat_id=seat)]
        logger.debug("Seat %d passed", seat)
        state = replace(self, passed=passed)

        needed = max(1, len(state.active_players) - 1)
        if len(passed) >= needed and state.table is not None:
            return state._clear_trick(events)

        return replace(state, turn_index=state._next_seat(seat)), events

    # ------------------------------------------------------------------
    # 内部
    # ------------------------------------------------------------------

    def _next_seat(self, seat: int, skip_passed: bool = True) -> int:
        """
        从 seat 之后找下一个未出完 (且本墩未过) 的座位

        超过循环上限说明记账出错
        """
        n = self.num_players
        skip = set(self.finished)
        if skip_passed:
            skip |= self.passed
        idx = (seat + 1) % n
        for _ in range(n * 2):
            if idx not in skip and self.players[idx].hand:
                return idx
            idx = (idx + 1) % n
        logger.error(
            "No eligible seat after %d (finished=%s, passed=%s)",
            seat, self.finished, sorted(self.passed),
        )
        raise InvariantViolation(f"turn rotation found no eligible seat after {seat}")

    def _clear_trick(self, events: List[Event]) -> Transition:
        winner = self.table_owner
        description = RuleEngine.describe(self.table)
        if self.players[winner].hand:
            leader = winner
        else:
            leader = self._next_seat(winner, skip_passed=False)

        discard = self.discard + tuple(c for entry in self.trick_pile for c in entry.move.cards)
        events = events + [TrickWon(winner_id=winner, description=description, next_leader=leader)]
        logger.info("Trick won by seat %d (%s), seat %d leads", winner, description, leader)

        state = replace(
            self,
            table=None,
            trick_pile=(),
            discard=discard,
            passed=frozenset(),
            turn_index=leader,
        )
        return state, events

    def _finish_round(self, remaining: List[Player], events: List[Event]) -> Transition:
        check_transition(self.phase, Phase.FINISHED)
        finished = self.finished
        players = list(self.players)
        for loser in remaining:
            finished = finished + (loser.id,)
            players[loser.id] = replace(loser, finished=True)
            events = events + [PlayerFinished(seat_id=loser.id, placement=len(finished))]

        events = events + [RoundFinished(ranking=finished)]
        logger.info("Round finished, ranking %s", list(finished))
        state = replace(self, players=tuple(players), finished=finished, phase=Phase.FINISHED)
        return state, events

    # ------------------------------------------------------------------
    # 查询
    # ------------------------------------------------------------------

    def placement(self, seat: int) -> Optional[int]:
        """名次 (1..N), 未出完为 None"""
        if seat in self.finished:
            return self.finished.index(seat) + 1
        return None

    def all_cards(self) -> List[Card]:
        """手牌 + 本墩 + 弃牌 + 换牌"""
        cards: List[Card] = []
        for player in self.players:
            cards.extend(player.hand)
        for entry in self.trick_pile:
            cards.extend(entry.move.cards)
        cards.extend(self.discard)
        if self.swap_card is not None:
            cards.append(self.swap_card)
        return cards

    def check_conservation(self) -> None:
        """每张牌恰好出现一次"""
        counts = Counter(self.all_cards())
        if counts != Counter(FULL_DECK):
            duplicated = sorted(str(c) for c, n in counts.items() if n > 1)
            missing = sorted(str(c) for c in FULL_DECK if c not in counts)
            logger.error("Card conservation broken: duplicated=%s missing=%s", duplicated, missing)
            raise InvariantViolation(
                f"card conservation broken (duplicated={duplicated}, missing={missing})"
            )

    @property
    def is_finished(self) -> bool:
        return self.phase == Phase.FINISHED
