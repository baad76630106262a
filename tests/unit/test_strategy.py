"""电脑策略测试"""
import pytest
import numpy as np

from core.cards import Card, Rank, Suit, str_to_cards
from core.actions import HandType, Move
from ai.strategy import (
    AIContext,
    analyze_hand_structure,
    decide,
    decide_swap,
    twos_out_there,
)


def move(s: str) -> Move:
    return Move.from_cards(str_to_cards(s))


def played(result) -> str:
    return " ".join(str(c) for c in result.cards) if result is not None else "pass"


LEAD = AIContext(is_leading=True)
FOLLOW = AIContext(is_leading=False)


class TestHandStructure:
    """手牌结构分析测试"""

    def test_groups(self):
        structure = analyze_hand_structure(str_to_cards("5s 5h 9c Kd"))
        assert structure == set(str_to_cards("5s 5h"))

    def test_runs(self):
        structure = analyze_hand_structure(str_to_cards("3s 4c 5d 9h"))
        assert structure == set(str_to_cards("3s 4c 5d"))

    def test_two_breaks_run(self):
        structure = analyze_hand_structure(str_to_cards("Ks As 2s"))
        assert structure == set()

    def test_twos_out_there(self):
        assert twos_out_there(str_to_cards("2s 3c"), twos_seen=1) == 2


class TestDecideFollowing:
    """跟牌决策测试"""

    def test_already_passed(self):
        ctx = AIContext(is_leading=False, has_passed=True)
        assert decide(str_to_cards("2h"), move("3s"), ctx) is None

    def test_pass_when_nothing_beats(self):
        assert decide(str_to_cards("3c 4c"), move("Ah"), FOLLOW) is None

    def test_counter_two_with_higher_two(self):
        hand = str_to_cards("3s 3c 3d 3h 2h")
        assert played(decide(hand, move("2s"), FOLLOW)) == "2♥"

    def test_pair_matches_lowest(self):
        hand = str_to_cards("9s 9c Js Jh 2s")
        assert played(decide(hand, move("8s 8h"), FOLLOW)) == "9♠ 9♣"

    def test_straight_matches_lowest(self):
        hand = str_to_cards("5s 6c 7d 8h")
        result = decide(hand, move("3s 4c 5d"), FOLLOW)
        assert result.hand_type == HandType.STRAIGHT
        assert played(result) == "5♠ 6♣ 7♦"

    def test_single_prefers_non_structural(self):
        # 9 是对子的一部分, K 是孤张
        hand = str_to_cards("9s 9c Kd")
        assert played(decide(hand, move("8h"), FOLLOW)) == "K♦"

    def test_single_lowest_otherwise(self):
        hand = str_to_cards("10s Kd Ac")
        assert played(decide(hand, move("8h"), FOLLOW)) == "10♠"

    def test_bomb_on_two(self):
        hand = str_to_cards("6s 6c 6d 6h 8s")
        result = decide(hand, move("2h"), FOLLOW)
        assert result.hand_type == HandType.QUAD


class TestDecideLeading:
    """主动出牌决策测试"""

    def test_prefers_longer(self):
        hand = str_to_cards("3s 4c 5d 9h 9s")
        assert played(decide(hand, None, LEAD)) == "3♠ 4♣ 5♦"

    def test_prefers_combo_over_single(self):
        hand = str_to_cards("9s 9h Kd")
        assert played(decide(hand, None, LEAD)) == "9♠ 9♥"

    def test_lowest_single(self):
        hand = str_to_cards("Ks 7h 4d")
        assert played(decide(hand, None, LEAD)) == "4♦"

    def test_opening_lead(self):
        hand = str_to_cards("3s 9h 9d Ac")
        ctx = AIContext(is_leading=True, opening_lead_required=True)
        result = decide(hand, None, ctx)
        assert result.has_three_of_spades

    def test_hoards_bomb_while_twos_unseen(self):
        hand = str_to_cards("7s 7c 7d 7h Qs")
        result = decide(hand, None, AIContext(is_leading=True, twos_seen=0))
        assert result.hand_type != HandType.QUAD

    def test_plays_bomb_when_twos_gone(self):
        hand = str_to_cards("7s 7c 7d 7h Qs")
        result = decide(hand, None, AIContext(is_leading=True, twos_seen=4))
        assert result.hand_type == HandType.QUAD

    def test_bomb_that_empties_hand(self):
        hand = str_to_cards("7s 7c 7d 7h")
        result = decide(hand, None, AIContext(is_leading=True, twos_seen=0))
        assert len(result) == 4

    def test_own_table_is_leading(self):
        hand = str_to_cards("4c 5d")
        result = decide(hand, move("Kh"), AIContext(is_leading=True))
        assert played(result) == "4♣"

    def test_always_plays_when_leading(self):
        for hand in ("3s", "2h", "9s 9h", "3s 4c 5d 6h"):
            assert decide(str_to_cards(hand), None, LEAD) is not None


class TestDecideSwap:
    """换牌决策测试"""

    @pytest.fixture
    def rng(self):
        class FixedRng:
            def __init__(self, value):
                self.value = value

            def random(self):
                return self.value

        return FixedRng

    def test_swap_for_two(self, rng):
        hand = str_to_cards("4s 9c Kd")
        assert decide_swap(hand, Card(Rank.TWO, Suit.HEART), rng(0.0))

    def test_swap_for_ace_with_low_card(self, rng):
        hand = str_to_cards("4s 9c Kd")
        assert decide_swap(hand, Card(Rank.ACE, Suit.HEART), rng(0.0))

    def test_no_swap_for_ace_with_high_lowest(self, rng):
        hand = str_to_cards("10s Jc Kd")
        assert not decide_swap(hand, Card(Rank.ACE, Suit.HEART), rng(0.0))

    def test_swap_for_matching_rank(self, rng):
        hand = str_to_cards("4s 9c Kd")
        assert decide_swap(hand, Card(Rank.NINE, Suit.HEART), rng(0.0))

    def test_coin_flip(self, rng):
        hand = str_to_cards("4s 9c Kd")
        assert decide_swap(hand, Card(Rank.EIGHT, Suit.HEART), rng(0.9))
        assert not decide_swap(hand, Card(Rank.EIGHT, Suit.HEART), rng(0.1))

    def test_never_for_low_card(self, rng):
        hand = str_to_cards("4s 4c Kd")
        assert not decide_swap(hand, Card(Rank.FOUR, Suit.HEART), rng(0.99))

    def test_with_numpy_rng(self):
        hand = str_to_cards("4s 9c Kd")
        result = decide_swap(hand, Card(Rank.SEVEN, Suit.HEART), np.random.default_rng(0))
        assert isinstance(result, bool)
