"""
文件消息通道 - 工作进程与文档引擎之间的进程间通信

dispatch: 写 job_<id>.json → 生成 launch_<id>.py → 启动引擎
poll:     result_<id>.json / error_<id>.json 任一出现即返回
cleanup:  删除该任务的全部临时文件（幂等）

测试要点：
- test_dispatch_writes_payload_and_script: 负载与启动脚本
- test_poll_result / test_poll_error: 解析消息文件
- test_cleanup_idempotent: 重复清理不报错
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from pydantic import ValidationError

from ..interfaces import IEngineChannel, IHostLauncher
from ..models import EngineMessage, ErrorMessage, JobPayload, MessagePaths, ResultMessage

logger = logging.getLogger(__name__)


class FileChannel(IEngineChannel):
    """基于文件的引擎通道"""

    def __init__(self, temp_dir: Path, launcher: IHostLauncher):
        self.temp_dir = Path(temp_dir).absolute()
        self.launcher = launcher

    def paths(self, job_id: str) -> MessagePaths:
        return MessagePaths.for_job(self.temp_dir, job_id)

    def dispatch(self, payload: JobPayload) -> None:
        paths = self.paths(payload.job_id)
        self.temp_dir.mkdir(parents=True, exist_ok=True)

        # 上次清理失败可能残留旧结果，派发前先清掉
        for stale in (paths.result, paths.error):
            stale.unlink(missing_ok=True)

        with open(paths.payload, "w", encoding="utf-8") as f:
            json.dump(payload.model_dump(mode="json"), f, ensure_ascii=False, indent=2)

        self.launcher.write_script(paths.launcher, paths.payload)
        self.launcher.launch(paths.launcher)
        logger.info(
            f"[{payload.job_id}] 已派发 {len(payload.items)} 个成品",
            extra={"job_id": payload.job_id, "event": "dispatch"},
        )

    def poll(self, job_id: str) -> EngineMessage | None:
        paths = self.paths(job_id)
        if paths.result.exists():
            return self._read(paths.result, ResultMessage)
        if paths.error.exists():
            return self._read(paths.error, ErrorMessage)
        return None

    @staticmethod
    def _read(path: Path, model: type[ResultMessage] | type[ErrorMessage]) -> EngineMessage:
        try:
            return model.model_validate_json(path.read_text(encoding="utf-8"))
        except (OSError, ValidationError) as e:
            # 文件存在但无法解析，视为引擎错误
            return ErrorMessage(message=f"无法解析引擎消息 {path.name}: {e}")

    def cleanup(self, job_id: str) -> None:
        for path in self.paths(job_id).all_files():
            try:
                path.unlink(missing_ok=True)
            except OSError as e:
                logger.warning(f"[{job_id}] 临时文件清理失败 {path}: {e}")
