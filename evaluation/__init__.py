"""
Evaluation Layer - 评估框架

Modules:
    arena: 对战竞技场
    stats: 会话名次统计
"""
from .arena import (
    MatchResult,
    TournamentResult,
    Arena,
)
from .stats import (
    SeatRecord,
    SessionStats,
)

__all__ = [
    # arena
    "MatchResult",
    "TournamentResult",
    "Arena",
    # stats
    "SeatRecord",
    "SessionStats",
]
