"""
进程间消息文件 - 工作进程与文档引擎之间的文件协议

同一任务的所有文件以任务ID命名，互不冲突：
- job_<id>.json     负载（工作进程写）
- launch_<id>.py    启动脚本（工作进程写）
- result_<id>.json  成功结果（引擎写）
- error_<id>.json   失败信息（引擎写）
结果与错误文件二者有且仅有一个。
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Literal, Union

from pydantic import BaseModel, Field

from .layer import LayerNode

PAYLOAD_PREFIX = "job_"
RESULT_PREFIX = "result_"
ERROR_PREFIX = "error_"
LAUNCHER_PREFIX = "launch_"
PARTIAL_SUFFIX = ".partial"


class MessagePaths(BaseModel):
    """单个任务的消息文件路径"""
    job_id: str
    payload: Path
    launcher: Path
    result: Path
    error: Path

    @classmethod
    def for_job(cls, temp_dir: Path, job_id: str) -> MessagePaths:
        temp_dir = Path(temp_dir).absolute()
        return cls(
            job_id=job_id,
            payload=temp_dir / f"{PAYLOAD_PREFIX}{job_id}.json",
            launcher=temp_dir / f"{LAUNCHER_PREFIX}{job_id}.py",
            result=temp_dir / f"{RESULT_PREFIX}{job_id}.json",
            error=temp_dir / f"{ERROR_PREFIX}{job_id}.json",
        )

    @classmethod
    def from_payload(cls, payload_path: str | Path) -> MessagePaths:
        """由负载文件路径推导同任务的其他文件"""
        path = Path(payload_path).absolute()
        name = path.stem
        if not name.startswith(PAYLOAD_PREFIX):
            raise ValueError(f"负载文件名不符合约定(job_<id>.json): {path.name}")
        return cls.for_job(path.parent, name[len(PAYLOAD_PREFIX):])

    def all_files(self) -> list[Path]:
        """全部临时文件（含未写完的中间文件）"""
        files = [self.payload, self.launcher, self.result, self.error]
        return files + [p.with_name(p.name + PARTIAL_SUFFIX) for p in (self.result, self.error)]


class ResultMessage(BaseModel):
    """成功结果"""
    status: Literal["SUCCESS"] = "SUCCESS"
    files: list[str] = Field(default_factory=list)
    layers: list[LayerNode] | None = None


class ErrorMessage(BaseModel):
    """失败信息"""
    status: Literal["ERROR"] = "ERROR"
    message: str


EngineMessage = Union[ResultMessage, ErrorMessage]


def write_message(path: Path, message: BaseModel) -> Path:
    """原子写入：先写中间文件再改名，读方不会看到半个文件"""
    path.parent.mkdir(parents=True, exist_ok=True)
    partial = path.with_name(path.name + PARTIAL_SUFFIX)
    with open(partial, "w", encoding="utf-8") as f:
        json.dump(message.model_dump(mode="json"), f, ensure_ascii=False, indent=2)
    os.replace(partial, path)
    return path
