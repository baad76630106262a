"""
AI Layer - 电脑玩家

Modules:
    strategy: 启发式出牌与换牌决策
    agents: 座位智能体
"""
from .strategy import (
    AIContext,
    analyze_hand_structure,
    decide,
    decide_swap,
)

from .agents import (
    Agent,
    CpuAgent,
    RandomAgent,
    build_context,
)

__all__ = [
    # strategy
    "AIContext",
    "analyze_hand_structure",
    "decide",
    "decide_swap",
    # agents
    "Agent",
    "CpuAgent",
    "RandomAgent",
    "build_context",
]
