"""
错误定义

规则违例 (RuleViolation) 在会话边界被转换为带原因的拒绝结果;
不变量违例 (InvariantViolation) 表示记账错误, 直接抛出
"""
from enum import Enum


class Rejection(Enum):
    """命令被拒绝的原因"""
    NOT_YOUR_TURN = "not_your_turn"
    WRONG_PHASE = "wrong_phase"
    INVALID_COMBINATION = "invalid_combination"
    DOES_NOT_BEAT_TABLE = "does_not_beat_table"
    OPENING_LEAD_VIOLATION = "opening_lead_violation"
    CARDS_NOT_IN_HAND = "cards_not_in_hand"
    CANNOT_PASS_WHEN_LEADING = "cannot_pass_when_leading"
    NOT_SWAP_MODE = "not_swap_mode"


# 给玩家看的提示
REJECTION_MESSAGES = {
    Rejection.NOT_YOUR_TURN: "Not your turn",
    Rejection.WRONG_PHASE: "Not allowed right now",
    Rejection.INVALID_COMBINATION: "Invalid Combination",
    Rejection.DOES_NOT_BEAT_TABLE: "Invalid Move: Cannot beat table",
    Rejection.OPENING_LEAD_VIOLATION: "Must play 3♠ to start",
    Rejection.CARDS_NOT_IN_HAND: "Selected cards are not in your hand",
    Rejection.CANNOT_PASS_WHEN_LEADING: "You lead this trick, you cannot pass",
    Rejection.NOT_SWAP_MODE: "Swapping is only available in 17-card mode",
}


class RuleViolation(ValueError):
    """违反规则的命令, 状态保持不变"""

    def __init__(self, reason: Rejection, detail: str = ""):
        self.reason = reason
        self.detail = detail
        message = REJECTION_MESSAGES[reason]
        super().__init__(f"{message}: {detail}" if detail else message)


class InvariantViolation(RuntimeError):
    """内部记账错误 (例如轮转找不到可行动的座位)"""
