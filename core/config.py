"""
游戏配置

定义对局模式、节奏和电脑玩家设置
"""
from dataclasses import dataclass, field
from typing import Dict, Literal, Optional, Any, Tuple

# 速度档位 -> 电脑出牌基础延迟 (毫秒)
SPEED_DELAYS_MS: Dict[int, int] = {1: 2000, 2: 1500, 3: 1000, 4: 500, 5: 200}

# 两种模式的座位数和每人手牌数
MODE_LAYOUT: Dict[str, Tuple[int, int]] = {
    "13": (4, 13),
    "17": (3, 17),
}


@dataclass
class CpuSeat:
    """电脑玩家设置"""
    name: str
    emoji: str = "🤖"


def _default_cpus() -> Dict[int, CpuSeat]:
    return {
        1: CpuSeat("Aaron", "🧔"),
        2: CpuSeat("Swan", "🦢"),
        3: CpuSeat("Bella", "👩"),
    }


@dataclass
class GameConfig:
    """
    对局配置

    Attributes:
        mode: "13" 为四人标准局, "17" 为三人换牌局
        speed: 1-5, 越大电脑出牌越快
        use_fake_thinking: 桌面牌越大电脑"思考"越久
        auto_skip: 玩家无牌可出时自动过
        show_reactions: 是否产生表情反应事件
        human_name: 0 号座位名称
        cpus: 电脑座位设置 (1..3)
        seed: 随机种子, None 表示不固定
    """
    mode: Literal["13", "17"] = "13"
    speed: int = 3
    use_fake_thinking: bool = True
    auto_skip: bool = False
    show_reactions: bool = True
    human_name: str = "YOU"
    cpus: Dict[int, CpuSeat] = field(default_factory=_default_cpus)
    seed: Optional[int] = None

    def __post_init__(self):
        if self.mode not in MODE_LAYOUT:
            raise ValueError(f"Unknown mode: {self.mode!r} (expected '13' or '17')")
        if self.speed not in SPEED_DELAYS_MS:
            raise ValueError(f"speed must be 1-5, got {self.speed}")
        for seat in (1, 2, 3):
            if seat not in self.cpus:
                raise ValueError(f"Missing CPU config for seat {seat}")

    @property
    def num_players(self) -> int:
        return MODE_LAYOUT[self.mode][0]

    @property
    def hand_size(self) -> int:
        return MODE_LAYOUT[self.mode][1]

    @property
    def is_swap_mode(self) -> bool:
        return self.mode == "17"

    @property
    def base_delay_ms(self) -> int:
        return SPEED_DELAYS_MS[self.speed]

    def seat_names(self) -> Tuple[str, ...]:
        """
        各座位名称

        三人局使用电脑设置 1 和 3
        """
        if self.num_players == 4:
            cpu_ids = (1, 2, 3)
        else:
            cpu_ids = (1, 3)
        return (self.human_name,) + tuple(self.cpus[i].name for i in cpu_ids)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> 'GameConfig':
        """从字典创建配置, 忽略未知字段"""
        valid_keys = cls.__dataclass_fields__.keys()
        filtered = {k: v for k, v in d.items() if k in valid_keys}
        if "mode" in filtered:
            filtered["mode"] = str(filtered["mode"])
        if "cpus" in filtered:
            filtered["cpus"] = {
                int(k): v if isinstance(v, CpuSeat) else CpuSeat(**v)
                for k, v in filtered["cpus"].items()
            }
        return cls(**filtered)
