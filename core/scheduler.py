"""
电脑"思考"延迟调度

每个待执行的回合带一个令牌 (会话, 局次, 阶段, 步数).
会话状态变化后旧令牌失效, 到点的回调不会作用到过期的对局上
"""
from dataclasses import dataclass
from typing import Callable, List, Optional
import threading
import logging

import numpy as np

from .actions import Move
from .config import GameConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TurnToken:
    """调度令牌"""
    session_id: int
    epoch: int
    step: int
    phase: str
    turn_index: int


def thinking_delay(config: GameConfig, table: Optional[Move], rng: np.random.Generator) -> float:
    """
    出牌阶段的延迟 (秒)

    桌面牌越大, 开启假思考时等得越久; 再加上最多一半的随机抖动
    """
    delay = config.base_delay_ms
    if config.use_fake_thinking and table is not None:
        if table.value > 50:
            delay += 1500
        elif table.value > 40:
            delay += 800
    return (delay + rng.random() * (delay / 2)) / 1000.0


def swap_delay(config: GameConfig) -> float:
    """换牌阶段的延迟 (秒)"""
    return 0.5 if config.speed == 5 else 1.5


class ScheduledTurn:
    """一个可取消的待执行回合"""

    def __init__(self, token: TurnToken, delay: float, callback: Callable[[TurnToken], None]):
        self.token = token
        self.delay = delay
        self._callback = callback
        self._cancelled = False
        self._fired = False
        self._timer: Optional[threading.Timer] = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def done(self) -> bool:
        return self._cancelled or self._fired

    def cancel(self):
        self._cancelled = True
        if self._timer is not None:
            self._timer.cancel()

    def fire(self) -> bool:
        """执行回调; 已取消或已执行则什么也不做"""
        if self.done:
            return False
        self._fired = True
        self._callback(self.token)
        return True


class TurnScheduler:
    """
    回合调度器

    realtime=True 时用 threading.Timer 在后台触发;
    否则只排队, 由 run_pending() 手动触发 (测试和无界面对局使用)
    """

    def __init__(self, realtime: bool = True):
        self.realtime = realtime
        self._pending: List[ScheduledTurn] = []
        self._lock = threading.Lock()

    def schedule(
        self,
        token: TurnToken,
        delay: float,
        callback: Callable[[TurnToken], None],
    ) -> ScheduledTurn:
        task = ScheduledTurn(token, delay, callback)
        with self._lock:
            self._pending = [t for t in self._pending if not t.done]
            self._pending.append(task)
        if self.realtime:
            task._timer = threading.Timer(delay, task.fire)
            task._timer.daemon = True
            task._timer.start()
        logger.debug("Scheduled turn %s in %.2fs", token, delay)
        return task

    def cancel_all(self) -> int:
        """取消全部待执行回合, 返回取消数量"""
        with self._lock:
            pending = [t for t in self._pending if not t.done]
            self._pending = []
        for task in pending:
            task.cancel()
        if pending:
            logger.debug("Cancelled %d pending turn(s)", len(pending))
        return len(pending)

    def run_pending(self) -> int:
        """
        手动触发已排队的回合 (回调中新排的回合留到下一次)

        Returns:
            实际执行的数量
        """
        with self._lock:
            batch = [t for t in self._pending if not t.done]
            self._pending = []
        fired = 0
        for task in batch:
            if task.fire():
                fired += 1
        return fired

    @property
    def pending(self) -> int:
        with self._lock:
            return sum(1 for t in self._pending if not t.done)
