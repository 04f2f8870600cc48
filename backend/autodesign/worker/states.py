"""
工作进程状态定义

状态机（每次轮询）：
    IDLE → CLAIMING → DISPATCHED → AWAITING_RESULT → REPORTING → IDLE
    ... → FAILED → REPORTING → IDLE

状态由每个工作进程实例持有，同一进程内多个实例互不干扰。
"""

from __future__ import annotations

from enum import Enum

from ..models import WorkerStatus


class WorkerState(str, Enum):
    """工作进程状态枚举"""
    IDLE = "IDLE"
    CLAIMING = "CLAIMING"
    DISPATCHED = "DISPATCHED"
    AWAITING_RESULT = "AWAITING_RESULT"
    FAILED = "FAILED"
    REPORTING = "REPORTING"

    @property
    def in_flight(self) -> bool:
        """是否有任务在处理中（此时新的轮询只发存活信号）"""
        return self is not WorkerState.IDLE

    @property
    def worker_status(self) -> WorkerStatus:
        return WorkerStatus.BUSY if self.in_flight else WorkerStatus.IDLE


ALLOWED_TRANSITIONS: dict[WorkerState, set[WorkerState]] = {
    WorkerState.IDLE: {WorkerState.CLAIMING},
    WorkerState.CLAIMING: {WorkerState.IDLE, WorkerState.DISPATCHED, WorkerState.FAILED},
    WorkerState.DISPATCHED: {WorkerState.AWAITING_RESULT, WorkerState.FAILED},
    WorkerState.AWAITING_RESULT: {WorkerState.REPORTING, WorkerState.FAILED},
    WorkerState.FAILED: {WorkerState.REPORTING},
    WorkerState.REPORTING: {WorkerState.IDLE},
}
