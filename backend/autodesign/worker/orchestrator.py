"""
任务编排器 - 轮询认领任务，驱动文档引擎，回报结果

职责：
1. 每次轮询：有任务在处理中则只发存活信号；否则认领最早的待处理任务
2. 认领后立即标记 PROCESSING（至少一次语义，崩溃后需人工恢复）
3. 构建负载 → 经消息通道派发 → 有界等待结果/错误文件
4. 回报 DONE / ERROR；任何出口都清理临时文件
5. 队列服务调用失败只记日志，不中断轮询

单线程协作式：同一实例同一时间最多一个任务在途。
等待期间按心跳间隔重入 tick()，此时只发存活信号。

测试要点：
- test_tick_no_job: 无任务只发存活信号
- test_tick_while_in_flight: 在途时不认领
- test_success_reports_done: 成功回报
- test_engine_error_reports_error: 引擎错误回报
- test_timeout_reports_error: 超时回报并清理
- test_metal_incomplete_is_error: 专色产物不全判失败
- test_report_failure_does_not_crash: 回报失败不影响下一轮
"""

from __future__ import annotations

import logging
import platform
import threading
import time
from pathlib import Path
from typing import Any, Callable

from .. import __version__
from ..automation.exporter import artifact_stem
from ..config import RuntimeConfig, get_config
from ..interfaces import AutoDesignError, IEngineChannel, IQueueService
from ..models import (
    EngineMessage,
    ErrorMessage,
    Job,
    JobPayload,
    JobStatus,
    JobType,
    ResultMessage,
    WorkerInfo,
)
from .channel import FileChannel
from .launcher import HostLauncher
from .payload_builder import PayloadBuilder
from .queue_client import HttpQueueService
from .states import ALLOWED_TRANSITIONS, WorkerState

logger = logging.getLogger(__name__)


class JobOrchestrator:
    """任务编排器"""

    def __init__(
        self,
        queue: IQueueService,
        channel: IEngineChannel,
        builder: PayloadBuilder,
        config: RuntimeConfig | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        config = config or get_config()
        self.queue = queue
        self.channel = channel
        self.builder = builder
        self.worker_id = config.worker.worker_id
        self.poll_interval = config.worker.poll_interval_sec
        self.result_poll_interval = config.worker.result_poll_interval_sec
        self.job_timeout = config.worker.job_timeout_sec
        self.heartbeat_interval = config.worker.heartbeat_interval_sec
        self.clock = clock
        self.sleep = sleep

        self._state = WorkerState.IDLE
        self._current_job_id: str | None = None
        self._last_heartbeat: float | None = None
        self._stop = threading.Event()

    @classmethod
    def from_config(cls, config: RuntimeConfig | None = None) -> JobOrchestrator:
        """按运行期配置组装默认实现"""
        config = config or get_config()
        config.ensure_dirs()
        return cls(
            queue=HttpQueueService(
                api_url=config.queue.api_url,
                agent_token=config.queue.agent_token,
                timeout=config.queue.request_timeout_sec,
            ),
            channel=FileChannel(config.paths.temp_dir, HostLauncher(config.engine.python_exe or None)),
            builder=PayloadBuilder.from_config(config),
            config=config,
        )

    @property
    def state(self) -> WorkerState:
        return self._state

    @property
    def current_job_id(self) -> str | None:
        return self._current_job_id

    def _set_state(self, state: WorkerState) -> None:
        if state not in ALLOWED_TRANSITIONS[self._state]:
            raise RuntimeError(f"非法状态流转: {self._state.value} -> {state.value}")
        logger.debug(f"状态 {self._state.value} -> {state.value}")
        self._state = state

    # ------------------------------------------------------------------
    # 轮询
    # ------------------------------------------------------------------

    def tick(self) -> None:
        """单次轮询"""
        if self._state.in_flight:
            self.send_heartbeat()
            return

        self._set_state(WorkerState.CLAIMING)
        try:
            job = self.queue.claim_next_pending()
        except Exception as e:
            logger.warning(f"获取待处理任务失败: {e}")
            job = None

        if job is None:
            self._set_state(WorkerState.IDLE)
            self.send_heartbeat()
            return

        try:
            self.queue.update_status(job.id, JobStatus.PROCESSING)
        except Exception as e:
            # 未能认领则不派发，避免多个工作进程重复处理
            logger.error(f"[{job.id}] 标记 PROCESSING 失败，放弃本次认领: {e}")
            self._set_state(WorkerState.IDLE)
            return

        logger.info(f"[{job.id}] 已认领任务 {job.type}", extra={"job_id": job.id, "event": "claim"})
        self.process(job)

    def run_forever(self) -> None:
        """按轮询间隔循环执行，直到 stop()"""
        logger.info(f"工作进程 {self.worker_id} 启动，轮询间隔 {self.poll_interval}s")
        self._stop.clear()
        while not self._stop.is_set():
            try:
                self.tick()
            except Exception:
                logger.exception("轮询异常")
            self._stop.wait(self.poll_interval)
        logger.info(f"工作进程 {self.worker_id} 已停止")

    def stop(self) -> None:
        self._stop.set()

    # ------------------------------------------------------------------
    # 任务处理
    # ------------------------------------------------------------------

    def process(self, job: Job) -> tuple[JobStatus, dict[str, Any]]:
        """处理已认领的任务，返回回报的 (状态, 结果)"""
        self._current_job_id = job.id
        started = self.clock()
        status, result = JobStatus.ERROR, {"message": "未知错误"}
        try:
            try:
                payload = self.builder.build(job)
                self._set_state(WorkerState.DISPATCHED)
                self.channel.dispatch(payload)
                self._set_state(WorkerState.AWAITING_RESULT)
                message = self._await_result(job.id)
                status, result = self._interpret(payload, message)
            except AutoDesignError as e:
                logger.error(f"[{job.id}] 任务失败: {e}")
                status, result = JobStatus.ERROR, {"message": str(e)}
            except Exception as e:
                logger.exception(f"[{job.id}] 任务处理异常")
                status, result = JobStatus.ERROR, {"message": f"{type(e).__name__}: {e}"}

            if status == JobStatus.ERROR and self._state is not WorkerState.FAILED:
                self._set_state(WorkerState.FAILED)
            self._set_state(WorkerState.REPORTING)
            self._report(job.id, status, result)
        finally:
            try:
                self.channel.cleanup(job.id)
            except Exception as e:
                logger.warning(f"[{job.id}] 清理失败: {e}")
            self._current_job_id = None
            self._state = WorkerState.IDLE

        elapsed_ms = int((self.clock() - started) * 1000)
        logger.info(
            f"[{job.id}] 结束: {status.value}",
            extra={"job_id": job.id, "status": status.value, "duration_ms": elapsed_ms},
        )
        return status, result

    def _await_result(self, job_id: str) -> EngineMessage | None:
        """有界等待结果/错误文件，超时返回None"""
        deadline = self.clock() + self.job_timeout
        while True:
            message = self.channel.poll(job_id)
            if message is not None:
                return message

            now = self.clock()
            if now >= deadline:
                return None

            self._maybe_heartbeat()
            self.sleep(min(self.result_poll_interval, deadline - now))

    def _interpret(
        self, payload: JobPayload, message: EngineMessage | None
    ) -> tuple[JobStatus, dict[str, Any]]:
        if message is None:
            logger.error(f"[{payload.job_id}] 文档引擎超时")
            return JobStatus.ERROR, {
                "message": f"文档引擎超时：{self.job_timeout:g} 秒内未返回结果（timeout）"
            }

        if isinstance(message, ErrorMessage):
            return JobStatus.ERROR, {"message": message.message}

        if not isinstance(message, ResultMessage):
            return JobStatus.ERROR, {"message": f"无法识别的引擎消息: {type(message).__name__}"}

        if payload.job_type == JobType.LOAD_LAYERS:
            if message.layers is None:
                return JobStatus.ERROR, {"message": "引擎未返回图层树"}
            return JobStatus.DONE, {"layers": [n.model_dump(mode="json") for n in message.layers]}

        missing = self._missing_specialty(payload, message.files)
        if missing:
            return JobStatus.ERROR, {"message": f"专色分版产物不完整，缺少: {', '.join(missing)}"}

        return JobStatus.DONE, {"files": message.files, "output_dir": str(payload.output_dir)}

    @staticmethod
    def _missing_specialty(payload: JobPayload, files: list[str]) -> list[str]:
        """专色成品必须同时有底色版和遮罩版"""
        present = {Path(f).name for f in files}
        keyword = payload.options.specialty_keyword.upper()
        missing: list[str] = []
        for item in payload.items:
            if not item.config.metal:
                continue
            stem = artifact_stem(item.item_id)
            for name in (f"{stem}_CMYK.pdf", f"{stem}_{keyword}.pdf"):
                if name not in present:
                    missing.append(name)
        return missing

    def _report(self, job_id: str, status: JobStatus, result: dict[str, Any]) -> None:
        try:
            self.queue.update_status(job_id, status, result)
        except Exception as e:
            logger.error(f"[{job_id}] 回报状态 {status.value} 失败: {e}")

    # ------------------------------------------------------------------
    # 存活信号
    # ------------------------------------------------------------------

    def worker_info(self) -> WorkerInfo:
        return WorkerInfo(
            worker_id=self.worker_id,
            version=__version__,
            os=platform.platform(),
            status=self._state.worker_status,
        )

    def send_heartbeat(self) -> None:
        """上报存活信号（失败只记日志）"""
        self._last_heartbeat = self.clock()
        try:
            self.queue.heartbeat(self.worker_info())
        except Exception as e:
            logger.warning(f"存活信号上报失败: {e}")

    def _maybe_heartbeat(self) -> None:
        if self._last_heartbeat is None or self.clock() - self._last_heartbeat >= self.heartbeat_interval:
            # 在途状态下 tick 只发存活信号
            self.tick()
