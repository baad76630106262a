"""
会话统计

订阅 RoundFinished 事件, 记录名次分布
"""
from typing import Dict, List
from dataclasses import dataclass, field
import json
from pathlib import Path

from core.events import Event, RoundFinished


@dataclass
class SeatRecord:
    """单个座位的累计成绩"""
    seat: int
    games: int = 0
    wins: int = 0
    placements: Dict[int, int] = field(default_factory=lambda: {1: 0, 2: 0, 3: 0, 4: 0})

    @property
    def win_rate(self) -> float:
        if self.games == 0:
            return 0.0
        return self.wins / self.games

    @property
    def average_placement(self) -> float:
        if self.games == 0:
            return 0.0
        return sum(place * count for place, count in self.placements.items()) / self.games

    def record(self, placement: int):
        self.games += 1
        self.placements[placement] = self.placements.get(placement, 0) + 1
        if placement == 1:
            self.wins += 1

    def to_dict(self) -> Dict:
        return {
            "seat": self.seat,
            "games": self.games,
            "wins": self.wins,
            "placements": {str(k): v for k, v in self.placements.items()},
        }

    @classmethod
    def from_dict(cls, d: Dict) -> "SeatRecord":
        return cls(
            seat=int(d["seat"]),
            games=int(d.get("games", 0)),
            wins=int(d.get("wins", 0)),
            placements={int(k): int(v) for k, v in d.get("placements", {}).items()},
        )


class SessionStats:
    """
    名次统计

    用作会话的观察者: session.subscribe(stats)
    """

    def __init__(self, human_seat: int = 0):
        self.human_seat = human_seat
        self.seats: Dict[int, SeatRecord] = {}
        self.rankings: List[List[int]] = []

    def __call__(self, event: Event):
        if isinstance(event, RoundFinished):
            self.record_round(event.ranking)

    def record_round(self, ranking):
        """记录一局的名次顺序"""
        ranking = list(ranking)
        self.rankings.append(ranking)
        for place, seat in enumerate(ranking, start=1):
            self.get_seat(seat).record(place)

    def get_seat(self, seat: int) -> SeatRecord:
        if seat not in self.seats:
            self.seats[seat] = SeatRecord(seat=seat)
        return self.seats[seat]

    @property
    def total_games(self) -> int:
        return len(self.rankings)

    @property
    def placement_stats(self) -> Dict[int, int]:
        """真人座位的名次分布"""
        return dict(self.get_seat(self.human_seat).placements)

    @property
    def average_placement(self) -> float:
        """真人座位的平均名次"""
        return self.get_seat(self.human_seat).average_placement

    def wins_by_seat(self) -> Dict[int, int]:
        return {seat: record.wins for seat, record in sorted(self.seats.items())}

    def reset(self):
        self.seats = {}
        self.rankings = []

    def save(self, path: str):
        """保存统计"""
        data = {
            "human_seat": self.human_seat,
            "rankings": self.rankings,
            "seats": {
                str(seat): record.to_dict()
                for seat, record in self.seats.items()
            },
        }
        Path(path).write_text(json.dumps(data, indent=2))

    def load(self, path: str):
        """加载统计"""
        data = json.loads(Path(path).read_text())
        self.human_seat = data.get("human_seat", self.human_seat)
        self.rankings = [list(r) for r in data.get("rankings", [])]
        self.seats = {
            int(seat): SeatRecord.from_dict(r)
            for seat, r in data.get("seats", {}).items()
        }

    def __repr__(self) -> str:
        lines = [f"Session Stats ({self.total_games} games):"]
        for place, count in sorted(self.placement_stats.items()):
            lines.append(f"  {place}: {count}")
        lines.append(f"  avg: {self.average_placement:.2f}")
        return "\n".join(lines)
