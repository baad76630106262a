"""
对局会话

跨局的聚合根: 持有座位、配置、随机源和当前局状态,
接收外部命令 (出牌、过、换牌、开局) 并向观察者发布事件
"""
from typing import Callable, Dict, List, Optional, Sequence, Set
import itertools
import threading
import logging

import numpy as np

from .cards import Card, create_deck, shuffle_deck
from .actions import Move
from .config import GameConfig
from .errors import Rejection, RuleViolation
from .events import (
    Event,
    Result,
    RoundStarted,
    CardsPlayed,
    SwapMade,
    Chop,
    PlayerFinished,
    InvalidMoveAttempted,
    ReactionTriggered,
)
from .state import Phase, RoundState, Transition, check_transition
from .scheduler import TurnScheduler, TurnToken, thinking_delay, swap_delay

logger = logging.getLogger(__name__)

# 表情反应
REACTIONS: Dict[str, Sequence[str]] = {
    "win": ('😎', '😆', '🔥', '🥳'),
    "beat": ('😕', '😣', '😬', '😐', '🫠'),
    "chop": ('🤬', '😭', '💀', '😤', '💔'),
    "swap": ('🤔', '😏', '👀', '♻️'),
}

# 被压的牌太小时不做反应
BEAT_REACTION_MIN_VALUE = 40

# 自动过牌比普通回合多等 1 秒
AUTO_SKIP_EXTRA_DELAY = 1.0

Observer = Callable[[Event], None]

_session_ids = itertools.count(1)


class GameSession:
    """
    Thirteen 对局会话

    所有公开命令都返回 Result, 规则违例不会以异常形式穿出会话.
    没有智能体的座位视为真人座位, 只能通过公开命令行动.
    """

    def __init__(
        self,
        config: Optional[GameConfig] = None,
        rng: Optional[np.random.Generator] = None,
        agents: Optional[Dict[int, object]] = None,
        scheduler: Optional[TurnScheduler] = None,
    ):
        """
        Args:
            config: 对局配置
            rng: 随机源 (洗牌、换牌抛硬币、表情), 默认按 config.seed 创建
            agents: 座位 -> 智能体, 默认座位 1.. 为电脑
            scheduler: 电脑回合调度器, None 表示由调用方驱动 (step_cpu / run_until_human)
        """
        self.config = config or GameConfig()
        self.rng = rng if rng is not None else np.random.default_rng(self.config.seed)
        self.session_id = next(_session_ids)
        self.agents: Dict[int, object] = agents if agents is not None else self._default_agents()
        self.scheduler = scheduler

        self.state: Optional[RoundState] = None
        self.last_winner: Optional[int] = None
        self.first_round = True
        self.round_number = 0

        self._epoch = 0
        self._step = 0
        self._observers: List[Observer] = []
        self._lock = threading.RLock()

    def _default_agents(self) -> Dict[int, object]:
        from ai.agents import CpuAgent

        names = self.config.seat_names()
        return {
            seat: CpuAgent(names[seat], rng=self.rng)
            for seat in range(1, self.config.num_players)
        }

    # ------------------------------------------------------------------
    # 观察者
    # ------------------------------------------------------------------

    def subscribe(self, observer: Observer) -> None:
        self._observers.append(observer)

    def unsubscribe(self, observer: Observer) -> None:
        if observer in self._observers:
            self._observers.remove(observer)

    def _publish(self, events: Sequence[Event]) -> None:
        for event in events:
            for observer in list(self._observers):
                observer(event)

    # ------------------------------------------------------------------
    # 查询
    # ------------------------------------------------------------------

    @property
    def phase(self) -> Phase:
        return self.state.phase if self.state is not None else Phase.MENU

    @property
    def human_seats(self) -> Set[int]:
        return {seat for seat in range(self.config.num_players) if seat not in self.agents}

    def is_human(self, seat: int) -> bool:
        return seat not in self.agents

    def legal_moves(self, seat: int) -> List[Move]:
        if self.phase != Phase.PLAYING:
            return []
        return self.state.legal_moves(seat)

    def playable_cards(self, seat: int) -> Set[Card]:
        """
        可点选的牌: 换牌阶段和非自己回合时是整手牌,
        自己出牌时只有出现在某个合法出牌里的牌
        """
        if self.state is None:
            return set()
        hand = set(self.state.players[seat].hand)
        if self.phase == Phase.SWAPPING or seat != self.state.turn_index:
            return hand
        if self.phase != Phase.PLAYING:
            return hand
        return {c for move in self.state.legal_moves(seat) for c in move.cards}

    def must_pass(self, seat: int) -> bool:
        """轮到该座位跟牌但没有任何能压的牌"""
        if self.phase != Phase.PLAYING or seat != self.state.turn_index:
            return False
        if self.state.table_for(seat) is None:
            return False
        return not self.state.legal_moves(seat)

    def ranking(self) -> List[int]:
        return list(self.state.finished) if self.state is not None else []

    def token(self) -> TurnToken:
        """当前状态的调度令牌"""
        state = self.state
        return TurnToken(
            session_id=self.session_id,
            epoch=self._epoch,
            step=self._step,
            phase=self.phase.value,
            turn_index=state.turn_index if state is not None else -1,
        )

    def is_current(self, token: TurnToken) -> bool:
        return token == self.token()

    # ------------------------------------------------------------------
    # 命令
    # ------------------------------------------------------------------

    def start_round(self) -> Result:
        """洗牌、发牌并进入换牌或出牌阶段"""
        with self._lock:
            try:
                check_transition(self.phase, Phase.DEALING)
            except RuleViolation as e:
                logger.warning("start_round rejected: %s", e)
                return Result.rejected(e.reason)

            self._invalidate()
            self.round_number += 1
            n = self.config.num_players
            deal_starter = self.last_winner if self.last_winner is not None and self.last_winner < n else 0

            deck = shuffle_deck(create_deck(), self.rng)
            state = RoundState.deal(
                deck,
                names=self.config.seat_names(),
                hand_size=self.config.hand_size,
                deal_starter=deal_starter,
                first_round=self.first_round,
                swap_mode=self.config.is_swap_mode,
            )
            events: List[Event] = [
                RoundStarted(round_number=self.round_number, deal_starter=deal_starter, mode=self.config.mode)
            ]
            logger.info(
                "Round %d started (mode %s, dealer seat %d)",
                self.round_number, self.config.mode, deal_starter,
            )
            state, started = state.with_deal_complete()
            events.extend(started)
            self._commit(state, events)
            return Result.ok(events)

    def submit_move(self, seat: int, cards: Sequence[Card]) -> Result:
        """出牌 (仅限真人座位)"""
        if not self.is_human(seat):
            return self._reject(seat, Rejection.NOT_YOUR_TURN)
        return self._play(seat, cards)

    def pass_turn(self, seat: int) -> Result:
        """过牌 (仅限真人座位)"""
        if not self.is_human(seat):
            return self._reject(seat, Rejection.NOT_YOUR_TURN)
        return self._pass(seat)

    def swap_decision(self, seat: int, swap: bool, card: Optional[Card] = None) -> Result:
        """
        换牌阶段的决定 (仅限真人座位)

        Args:
            seat: 座位
            swap: True 为换, False 为保留手牌
            card: 交出的牌, 默认为最小的一张
        """
        if not self.is_human(seat):
            return self._reject(seat, Rejection.NOT_YOUR_TURN)
        return self._swap(seat, swap, card)

    def end_session(self) -> Result:
        """回到菜单, 丢弃当前局并取消所有待执行回合"""
        with self._lock:
            self._invalidate()
            self.state = None
            logger.info("Session %d ended after %d round(s)", self.session_id, self.round_number)
            return Result.ok()

    # ------------------------------------------------------------------
    # 电脑回合
    # ------------------------------------------------------------------

    def cpu_to_act(self) -> bool:
        if self.phase not in (Phase.PLAYING, Phase.SWAPPING):
            return False
        return self.state.turn_index in self.agents

    def step_cpu(self) -> Optional[Result]:
        """
        让当前座位的电脑行动一次

        Returns:
            命令结果; 当前不是电脑回合时为 None
        """
        with self._lock:
            if not self.cpu_to_act():
                return None
            seat = self.state.turn_index
            agent = self.agents[seat]

            if self.phase == Phase.SWAPPING:
                return self._swap(seat, agent.wants_swap(self.state, seat))

            if seat in self.state.passed:
                # 已过的座位不再决策
                return None
            move = agent.act(self.state, seat)
            if move is None:
                result = self._pass(seat)
            else:
                result = self._play(seat, move.cards)
            if not result.accepted:
                logger.error("Agent %s produced a rejected action: %s", agent.name, result.reason)
            return result

    def run_until_human(self, max_steps: int = 1000) -> List[Result]:
        """
        连续执行电脑回合 (以及开启 auto_skip 时真人的强制过牌),
        直到轮到真人、对局结束或达到步数上限
        """
        results = []
        for _ in range(max_steps):
            if self.cpu_to_act():
                result = self.step_cpu()
            elif self.config.auto_skip and self._human_stuck():
                result = self.pass_turn(self.state.turn_index)
            else:
                break
            if result is None or not result.accepted:
                break
            results.append(result)
        return results

    def _human_stuck(self) -> bool:
        return (
            self.phase == Phase.PLAYING
            and self.is_human(self.state.turn_index)
            and self.must_pass(self.state.turn_index)
        )

    def _on_timer(self, token: TurnToken) -> None:
        with self._lock:
            if not self.is_current(token):
                logger.debug("Dropping stale scheduled turn %s", token)
                return
            if self.cpu_to_act():
                self.step_cpu()
            elif self._human_stuck():
                self.pass_turn(self.state.turn_index)

    def _schedule_next(self) -> None:
        if self.scheduler is None or self.state is None:
            return
        if self.cpu_to_act():
            if self.phase == Phase.SWAPPING:
                delay = swap_delay(self.config)
            else:
                delay = thinking_delay(self.config, self.state.table, self.rng)
        elif self.config.auto_skip and self._human_stuck():
            delay = self.config.base_delay_ms / 1000.0 + AUTO_SKIP_EXTRA_DELAY
        else:
            return
        self.scheduler.schedule(self.token(), delay, self._on_timer)

    # ------------------------------------------------------------------
    # 内部
    # ------------------------------------------------------------------

    def _invalidate(self) -> None:
        self._epoch += 1
        if self.scheduler is not None:
            self.scheduler.cancel_all()

    def _reject(self, seat: int, reason: Rejection) -> Result:
        event = InvalidMoveAttempted(seat_id=seat, reason=reason)
        self._publish([event])
        return Result.rejected(reason, [event])

    def _play(self, seat: int, cards: Sequence[Card]) -> Result:
        return self._apply(seat, lambda state: state.with_play(seat, list(cards)))

    def _pass(self, seat: int) -> Result:
        return self._apply(seat, lambda state: state.with_pass(seat))

    def _swap(self, seat: int, swap: bool, card: Optional[Card] = None) -> Result:
        if not self.config.is_swap_mode:
            return self._reject(seat, Rejection.NOT_SWAP_MODE)
        if swap:
            return self._apply(seat, lambda state: state.with_swap(seat, card))
        return self._apply(seat, lambda state: state.with_swap_keep(seat))

    def _apply(self, seat: int, transition: Callable[[RoundState], Transition]) -> Result:
        with self._lock:
            if self.state is None:
                return self._reject(seat, Rejection.WRONG_PHASE)
            try:
                state, events = transition(self.state)
            except RuleViolation as e:
                logger.warning("Seat %d command rejected: %s", seat, e)
                return self._reject(seat, e.reason)

            events = events + self._reactions(self.state, events)
            self._commit(state, events)
            return Result.ok(events)

    def _commit(self, state: RoundState, events: List[Event]) -> None:
        state.check_conservation()
        self.state = state
        self._step += 1

        for event in events:
            if isinstance(event, PlayerFinished) and event.placement == 1:
                self.last_winner = event.seat_id
                self.first_round = False

        self._publish(events)
        self._schedule_next()

    def _reactions(self, before: RoundState, events: Sequence[Event]) -> List[Event]:
        """根据事件生成电脑座位的表情反应"""
        if not self.config.show_reactions:
            return []

        reactions = []
        chopped = {e.victim_id for e in events if isinstance(e, Chop)}
        for event in events:
            if isinstance(event, CardsPlayed):
                owner = before.table_owner
                if owner is None or owner == event.seat_id:
                    continue
                if owner in chopped:
                    reactions.append(self._react(owner, "chop"))
                elif before.table.value >= BEAT_REACTION_MIN_VALUE:
                    reactions.append(self._react(owner, "beat"))
            elif isinstance(event, PlayerFinished):
                if before.players[event.seat_id].hand and event.placement < before.num_players:
                    reactions.append(self._react(event.seat_id, "win"))
            elif isinstance(event, SwapMade):
                reactions.append(self._react(event.seat_id, "swap"))

        return [r for r in reactions if r is not None]

    def _react(self, seat: int, kind: str) -> Optional[ReactionTriggered]:
        if self.is_human(seat):
            return None
        options = REACTIONS[kind]
        emoji = options[int(self.rng.integers(len(options)))]
        return ReactionTriggered(seat_id=seat, kind=kind, emoji=emoji)
