"""单局状态测试"""
import pytest
from dataclasses import replace

from core.cards import THREE_OF_SPADES, create_deck, sort_cards, str_to_cards
from core.actions import Move
from core.errors import Rejection, RuleViolation, InvariantViolation
from core.events import (
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
from core.state import (
    Phase,
    Player,
    RoundState,
    TrickEntry,
    PHASE_TRANSITIONS,
    check_transition,
)

NAMES4 = ("YOU", "Aaron", "Swan", "Bella")
NAMES3 = ("YOU", "Aaron", "Bella")


def make_state(*hands, turn=0, first_round=False, table=None, owner=None, passed=()):
    """按字符串手牌构造出牌阶段的状态"""
    players = tuple(
        Player(id=i, name=f"P{i}", hand=tuple(sort_cards(str_to_cards(h))), is_human=(i == 0))
        for i, h in enumerate(hands)
    )
    table_move = Move.from_cards(str_to_cards(table)) if table else None
    trick_pile = (TrickEntry(owner, table_move),) if table_move else ()
    return RoundState(
        players=players,
        phase=Phase.PLAYING,
        turn_index=turn,
        first_round=first_round,
        table=table_move,
        trick_pile=trick_pile,
        passed=frozenset(passed),
    )


def cards(s: str):
    return str_to_cards(s)


def reason_of(excinfo) -> Rejection:
    return excinfo.value.reason


class TestPhase:
    """阶段转换表测试"""

    def test_values(self):
        assert Phase.MENU.value == "menu"
        assert Phase.SWAPPING.value == "swapping"

    def test_table(self):
        assert Phase.DEALING in PHASE_TRANSITIONS[Phase.MENU]
        assert Phase.DEALING in PHASE_TRANSITIONS[Phase.FINISHED]
        assert Phase.PLAYING not in PHASE_TRANSITIONS[Phase.MENU]

    def test_check_transition(self):
        check_transition(Phase.DEALING, Phase.SWAPPING)
        with pytest.raises(RuleViolation) as excinfo:
            check_transition(Phase.MENU, Phase.PLAYING)
        assert reason_of(excinfo) == Rejection.WRONG_PHASE


class TestDeal:
    """发牌测试"""

    def test_round_robin(self):
        deck = create_deck()
        state = RoundState.deal(deck, NAMES4, hand_size=13, deal_starter=0)
        assert state.phase == Phase.DEALING
        assert [p.card_count for p in state.players] == [13] * 4
        # 0 号座位拿到第 0, 4, 8... 张
        assert state.players[0].hand == tuple(deck[0::4])
        state.check_conservation()

    def test_deal_starter_gets_first_card(self):
        deck = create_deck()
        state = RoundState.deal(deck, NAMES4, hand_size=13, deal_starter=2)
        assert THREE_OF_SPADES in state.players[2].hand
        assert state.turn_index == 2

    def test_hands_sorted(self):
        state = RoundState.deal(list(reversed(create_deck())), NAMES4, hand_size=13)
        for player in state.players:
            assert list(player.hand) == sort_cards(player.hand)

    def test_swap_mode_reserves_card(self):
        deck = create_deck()
        state = RoundState.deal(deck, NAMES3, hand_size=17, swap_mode=True)
        assert [p.card_count for p in state.players] == [17] * 3
        assert state.swap_card == deck[51]
        state.check_conservation()

    def test_bad_seat_count(self):
        with pytest.raises(ValueError):
            RoundState.deal(create_deck(), ("a", "b"), hand_size=13)

    def test_deck_too_small(self):
        with pytest.raises(ValueError):
            RoundState.deal(create_deck()[:40], NAMES4, hand_size=13)


class TestDealComplete:
    """发牌结束与首出测试"""

    def test_first_round_three_of_spades_leads(self):
        state = RoundState.deal(create_deck(), NAMES4, hand_size=13, deal_starter=3)
        state, events = state.with_deal_complete()
        assert state.phase == Phase.PLAYING
        assert state.turn_index == 3
        assert events == [PlayPhaseStarted(leader_id=3)]

    def test_later_round_dealer_leads(self):
        deck = create_deck()
        state = RoundState.deal(deck, NAMES4, hand_size=13, deal_starter=1, first_round=False)
        state, _ = state.with_deal_complete()
        assert state.turn_index == 1
        assert not state.opening_lead_required

    def test_swap_mode_enters_swapping(self):
        state = RoundState.deal(create_deck(), NAMES3, hand_size=17, deal_starter=1, swap_mode=True)
        state, events = state.with_deal_complete()
        assert state.phase == Phase.SWAPPING
        assert state.turn_index == 1
        assert events == []

    def test_only_once(self):
        state = RoundState.deal(create_deck(), NAMES4, hand_size=13)
        state, _ = state.with_deal_complete()
        with pytest.raises(RuleViolation):
            state.with_deal_complete()


class TestSwap:
    """换牌阶段测试"""

    @pytest.fixture
    def swapping(self):
        state = RoundState.deal(create_deck(), NAMES3, hand_size=17, swap_mode=True)
        state, _ = state.with_deal_complete()
        return state

    def test_swap_lowest(self, swapping):
        lowest = swapping.players[0].lowest
        old_swap = swapping.swap_card
        state, events = swapping.with_swap(0)
        assert old_swap in state.players[0].hand
        assert lowest not in state.players[0].hand
        assert state.swap_card == lowest
        assert state.turn_index == 1
        assert events == [SwapMade(seat_id=0, given=lowest, taken=old_swap)]
        state.check_conservation()

    def test_swap_chosen_card(self, swapping):
        give = swapping.players[0].hand[5]
        state, _ = swapping.with_swap(0, give)
        assert state.swap_card == give
        assert give not in state.players[0].hand

    def test_swap_card_not_in_hand(self, swapping):
        with pytest.raises(RuleViolation) as excinfo:
            swapping.with_swap(0, swapping.players[1].hand[0])
        assert reason_of(excinfo) == Rejection.CARDS_NOT_IN_HAND

    def test_swap_wrong_seat(self, swapping):
        with pytest.raises(RuleViolation) as excinfo:
            swapping.with_swap(2)
        assert reason_of(excinfo) == Rejection.NOT_YOUR_TURN

    def test_all_keep_starts_play(self, swapping):
        state = swapping
        for seat in range(3):
            state, events = state.with_swap_keep(seat)
        assert isinstance(events[0], SwapKept)
        assert events[0].passes == 3
        assert isinstance(events[-1], PlayPhaseStarted)
        assert state.phase == Phase.PLAYING

    def test_swap_resets_passes(self, swapping):
        state, _ = swapping.with_swap_keep(0)
        state, _ = state.with_swap(1)
        assert state.swap_passes == 0
        assert state.phase == Phase.SWAPPING

    def test_everyone_swapped_starts_play(self, swapping):
        state = swapping
        for seat in range(3):
            state, events = state.with_swap(seat)
        assert state.phase == Phase.PLAYING
        assert isinstance(events[-1], PlayPhaseStarted)
        state.check_conservation()

    def test_swap_outside_phase(self):
        state = make_state("3s", "4s", "5s")
        with pytest.raises(RuleViolation) as excinfo:
            state.with_swap(0)
        assert reason_of(excinfo) == Rejection.WRONG_PHASE


class TestOpeningLead:
    """首出 3♠ 测试"""

    def test_required(self):
        state = make_state("3s 4s 9h", "5c", "6c", "7c", first_round=True)
        assert state.opening_lead_required

    def test_rejects_without_three_of_spades(self):
        state = make_state("3s 4s 9h", "5c", "6c", "7c", first_round=True)
        with pytest.raises(RuleViolation) as excinfo:
            state.with_play(0, cards("9h"))
        assert reason_of(excinfo) == Rejection.OPENING_LEAD_VIOLATION

    def test_accepts_with_three_of_spades(self):
        state = make_state("3s 4s 9h", "5c", "6c", "7c", first_round=True)
        state, events = state.with_play(0, cards("3s"))
        assert isinstance(events[0], CardsPlayed)
        assert not state.opening_lead_required

    def test_legal_moves_filtered(self):
        state = make_state("3s 4c 5d 9h", "5c", "6c", "7c", first_round=True)
        moves = state.legal_moves(0)
        assert moves
        assert all(m.has_three_of_spades for m in moves)

    def test_not_required_in_later_rounds(self):
        state = make_state("3s 4s 9h", "5c", "6c", "7c", first_round=False)
        assert not state.opening_lead_required
        state.with_play(0, cards("9h"))

    def test_not_required_when_leader_lacks_card(self):
        # 17 张模式下 3♠ 可能是公共换牌
        state = make_state("4s 9h", "5c", "6c", first_round=True)
        assert not state.opening_lead_required


class TestValidatePlay:
    """出牌校验测试"""

    @pytest.fixture
    def following(self):
        return make_state("3s 8c 10d 10h Ks", "9s", "6c", "7c", turn=0, table="9h", owner=1)

    def test_not_your_turn(self, following):
        with pytest.raises(RuleViolation) as excinfo:
            following.with_play(2, cards("6c"))
        assert reason_of(excinfo) == Rejection.NOT_YOUR_TURN

    def test_does_not_beat(self, following):
        with pytest.raises(RuleViolation) as excinfo:
            following.with_play(0, cards("8c"))
        assert reason_of(excinfo) == Rejection.DOES_NOT_BEAT_TABLE

    def test_invalid_combination(self, following):
        with pytest.raises(RuleViolation) as excinfo:
            following.with_play(0, cards("3s Ks"))
        assert reason_of(excinfo) == Rejection.INVALID_COMBINATION

    def test_empty(self, following):
        with pytest.raises(RuleViolation) as excinfo:
            following.with_play(0, [])
        assert reason_of(excinfo) == Rejection.INVALID_COMBINATION

    def test_not_in_hand(self, following):
        with pytest.raises(RuleViolation) as excinfo:
            following.with_play(0, cards("As"))
        assert reason_of(excinfo) == Rejection.CARDS_NOT_IN_HAND

    def test_wrong_phase(self):
        state = RoundState.deal(create_deck(), NAMES4, hand_size=13)
        with pytest.raises(RuleViolation) as excinfo:
            state.with_play(0, [state.players[0].hand[0]])
        assert reason_of(excinfo) == Rejection.WRONG_PHASE

    def test_valid(self, following):
        state, events = following.with_play(0, cards("10d"))
        assert state.table == Move.from_cards(cards("10d"))
        assert state.table_owner == 0
        assert state.turn_index == 1
        assert events[0].description == "Single 10♦"

    def test_own_table_counts_as_leading(self):
        state = make_state("3s 8c", "9s", "6c", "7c", turn=0, table="Kh", owner=0)
        assert state.is_leading(0)
        assert state.table_for(0) is None
        state.with_play(0, cards("3s"))


class TestPass:
    """过牌与墩结束测试"""

    def test_cannot_pass_when_leading(self):
        state = make_state("3s", "4s", "5s", "6s")
        with pytest.raises(RuleViolation) as excinfo:
            state.with_pass(0)
        assert reason_of(excinfo) == Rejection.CANNOT_PASS_WHEN_LEADING

    def test_pass_not_your_turn(self):
        state = make_state("3s", "4s", "5s", "6s", turn=1, table="9h", owner=0)
        with pytest.raises(RuleViolation) as excinfo:
            state.with_pass(2)
        assert reason_of(excinfo) == Rejection.NOT_YOUR_TURN

    def test_trick_clears_after_others_pass(self):
        state = make_state("3s 9s", "4s 4c", "5s 5c", "6s 6c")
        state, _ = state.with_play(0, cards("9s"))
        state, events = state.with_pass(1)
        assert events == [PlayerPassed(seat_id=1)]
        assert state.turn_index == 2
        state, _ = state.with_pass(2)
        state, events = state.with_pass(3)

        assert isinstance(events[-1], TrickWon)
        assert events[-1].winner_id == 0
        assert events[-1].next_leader == 0
        assert state.table is None
        assert state.trick_pile == ()
        assert state.passed == frozenset()
        assert state.turn_index == 0
        assert cards("9s")[0] in state.discard

    def test_passed_seat_is_skipped(self):
        state = make_state("3s 9s Js", "4s 10c", "5s Qc", "6s 6c")
        state, _ = state.with_play(0, cards("9s"))
        state, _ = state.with_pass(1)
        state, _ = state.with_play(2, cards("Qc"))
        assert state.turn_index == 3
        state, _ = state.with_pass(3)
        # 1 号已过, 轮到 0 号
        assert state.turn_index == 0


class TestChop:
    """砍 2 测试"""

    def test_quad_chops_two(self):
        state = make_state("3s", "5s 5c 5d 5h 8h", "6c", "7c", turn=1, table="2h", owner=0)
        state, events = state.with_play(1, cards("5s 5c 5d 5h"))
        assert Chop(seat_id=1, victim_id=0) in events
        assert state.turn_index == 2

    def test_higher_single_is_not_chop(self):
        state = make_state("3s", "2h 8h", "6c", "7c", turn=1, table="2s", owner=0)
        _, events = state.with_play(1, cards("2h"))
        assert not any(isinstance(e, Chop) for e in events)

    def test_twos_counted(self):
        state = make_state("3s 2h 2d", "4c", "6c", "7c")
        state, _ = state.with_play(0, cards("2d 2h"))
        assert state.twos_played == 2


class TestFinishing:
    """出完牌测试"""

    def test_finished_seat_is_skipped(self):
        state = make_state("9s", "3c 4c", "5c 6c", "7c 8c")
        state, events = state.with_play(0, cards("9s"))
        assert PlayerFinished(seat_id=0, placement=1) in events
        assert state.finished == (0,)
        assert state.round_winner == 0
        assert state.turn_index == 1

        state, _ = state.with_pass(1)
        state, events = state.with_pass(2)
        trick = events[-1]
        assert isinstance(trick, TrickWon)
        assert trick.winner_id == 0
        # 赢家已出完, 由下一个有牌的座位领出
        assert trick.next_leader == 1
        assert state.turn_index == 1

    def test_finish_lowers_pass_threshold(self):
        state = make_state("5s 8c 9d Ad", "3c 4c", "3d 4d", "Ks")
        state, _ = state.with_play(0, cards("5s"))
        state, _ = state.with_pass(1)
        state, _ = state.with_pass(2)
        assert state.turn_index == 3

        # 3 号出完后只剩 3 人在场, 已有的两次过牌足以结束本墩
        state, events = state.with_play(3, cards("Ks"))
        assert PlayerFinished(seat_id=3, placement=1) in events
        trick = events[-1]
        assert isinstance(trick, TrickWon)
        assert trick.winner_id == 3
        assert trick.next_leader == 0
        assert state.table is None
        assert state.passed == frozenset()
        assert state.turn_index == 0

        # 之前过牌的座位重新参与下一墩
        state, _ = state.with_play(0, cards("Ad"))
        assert state.turn_index == 1
        state, _ = state.with_pass(1)
        state, events = state.with_pass(2)
        assert isinstance(events[-1], TrickWon)
        assert state.turn_index == 0
        state, _ = state.with_play(0, cards("8c"))
        state, _ = state.with_pass(1)
        assert state.turn_index == 2

    def test_round_finishes_with_one_seat_left(self):
        state = make_state("9s", "3c", "5c 6c")
        state, _ = state.with_play(0, cards("9s"))
        state, _ = state.with_pass(1)
        assert state.turn_index == 1
        state, events = state.with_play(1, cards("3c"))

        assert state.phase == Phase.FINISHED
        assert state.is_finished
        assert state.finished == (0, 1, 2)
        assert events[-1] == RoundFinished(ranking=(0, 1, 2))
        assert PlayerFinished(seat_id=2, placement=3) in events
        assert state.placement(2) == 3
        assert state.placement(0) == 1

    def test_placement_unfinished(self):
        state = make_state("9s", "3c", "5c")
        assert state.placement(0) is None


class TestInvariants:
    """不变量测试"""

    def test_conservation_detects_duplicate(self):
        state = RoundState.deal(create_deck(), NAMES4, hand_size=13)
        bad = list(state.players)
        bad[0] = replace(bad[0], hand=bad[0].hand + (bad[1].hand[0],))
        with pytest.raises(InvariantViolation):
            replace(state, players=tuple(bad)).check_conservation()

    def test_conservation_detects_missing(self):
        state = RoundState.deal(create_deck(), NAMES4, hand_size=13)
        bad = list(state.players)
        bad[0] = replace(bad[0], hand=bad[0].hand[1:])
        with pytest.raises(InvariantViolation):
            replace(state, players=tuple(bad)).check_conservation()

    def test_rotation_guard(self):
        state = make_state("", "", "", "")
        with pytest.raises(InvariantViolation):
            state._next_seat(0)
