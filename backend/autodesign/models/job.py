"""
任务模型 - 定义任务状态与生命周期

状态流转（单调，不可回退）：
    PENDING → PROCESSING → DONE | ERROR
"""

from __future__ import annotations

import logging
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

logger = logging.getLogger(__name__)


class JobStatus(str, Enum):
    """任务状态枚举"""
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    DONE = "DONE"
    ERROR = "ERROR"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.DONE, JobStatus.ERROR)


class JobType(str, Enum):
    """任务类型"""
    MERGE_SHEET = "MERGE_SHEET"   # 合版出图：字段替换 + 导出
    LOAD_LAYERS = "LOAD_LAYERS"   # 读取模板图层树


_ALLOWED_TRANSITIONS: dict[JobStatus, set[JobStatus]] = {
    JobStatus.PENDING: {JobStatus.PROCESSING, JobStatus.ERROR},
    JobStatus.PROCESSING: {JobStatus.DONE, JobStatus.ERROR},
    JobStatus.DONE: set(),
    JobStatus.ERROR: set(),
}


class Job(BaseModel):
    """任务实体（由看板创建，工作进程认领）

    type 保留看板原值：未知类型的任务照常认领，由负载构建器回报 ERROR。
    """
    id: str
    type: str
    status: JobStatus = JobStatus.PENDING

    payload: dict[str, Any] = Field(default_factory=dict)
    result: dict[str, Any] | None = None

    created_at: datetime = Field(default_factory=datetime.now, alias="createdAt")
    updated_at: datetime | None = Field(None, alias="updatedAt")

    model_config = {"populate_by_name": True}

    @field_validator("type", mode="before")
    @classmethod
    def _type_value(cls, value: Any) -> Any:
        return value.value if isinstance(value, JobType) else value

    @property
    def job_type(self) -> JobType | None:
        """已知任务类型，未知时为None"""
        try:
            return JobType(self.type)
        except ValueError:
            return None

    @model_validator(mode="before")
    @classmethod
    def _legacy_data_field(cls, values: Any) -> Any:
        """兼容旧字段 data（已废弃，以 payload 为准）"""
        if isinstance(values, dict) and "data" in values:
            values = dict(values)
            legacy = values.pop("data")
            if not values.get("payload"):
                logger.warning(f"任务 {values.get('id')} 使用了已废弃的 data 字段，请改用 payload")
                values["payload"] = legacy or {}
        return values

    def _transition(self, status: JobStatus) -> None:
        if status not in _ALLOWED_TRANSITIONS[self.status]:
            raise ValueError(f"非法状态流转: {self.status.value} -> {status.value}")
        self.status = status
        self.updated_at = datetime.now()

    def mark_processing(self) -> None:
        """标记为处理中"""
        self._transition(JobStatus.PROCESSING)

    def mark_done(self, result: dict[str, Any]) -> None:
        """标记为完成"""
        self._transition(JobStatus.DONE)
        self.result = result

    def mark_error(self, message: str) -> None:
        """标记为失败"""
        self._transition(JobStatus.ERROR)
        self.result = {"message": message}


class WorkerStatus(str, Enum):
    """工作进程忙闲状态"""
    IDLE = "IDLE"
    BUSY = "BUSY"


class WorkerInfo(BaseModel):
    """存活信号内容"""
    worker_id: str
    version: str
    os: str
    status: WorkerStatus = WorkerStatus.IDLE
