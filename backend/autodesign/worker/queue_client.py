"""
队列服务客户端 - 看板 agent API 的 HTTP 封装

接口：
- GET   {api_url}/agent/jobs       待处理任务列表
- PATCH {api_url}/agent/jobs       回报任务状态 {id, status, result}
- POST  {api_url}/agent/heartbeat  存活信号

所有调用失败统一抛 QueueServiceError，由调用方记录日志，不在本轮重试。

测试要点：
- test_claim_oldest_pending: 取最早的待处理任务
- test_claim_none: 无任务返回None
- test_update_status_body: 回报请求体
- test_network_error_wrapped: 网络错误包装
"""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import ValidationError

from ..config import get_config
from ..interfaces import IQueueService, QueueServiceError
from ..models import Job, JobStatus, WorkerInfo

logger = logging.getLogger(__name__)


class HttpQueueService(IQueueService):
    """队列服务 HTTP 客户端"""

    def __init__(
        self,
        api_url: str | None = None,
        agent_token: str | None = None,
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        config = get_config()
        self.api_url = (api_url or config.queue.api_url).rstrip("/")
        self.agent_token = agent_token if agent_token is not None else config.queue.agent_token
        self.timeout = timeout or config.queue.request_timeout_sec
        self._client = httpx.Client(
            base_url=self.api_url,
            timeout=self.timeout,
            headers=self._headers(),
            transport=transport,
        )

    def _headers(self) -> dict[str, str]:
        headers = {"User-Agent": "autodesign-worker"}
        if self.agent_token:
            headers["Authorization"] = f"Bearer {self.agent_token}"
        return headers

    def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        try:
            resp = self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise QueueServiceError(f"队列服务不可用: {method} {path}: {e}") from e

        if resp.status_code == 401:
            raise QueueServiceError("队列服务认证失败（检查 agent_token）")
        if resp.status_code >= 400:
            raise QueueServiceError(f"队列服务返回错误: {method} {path} -> {resp.status_code}")

        try:
            body = resp.json()
        except ValueError as e:
            raise QueueServiceError(f"队列服务响应不是JSON: {method} {path}") from e

        if not isinstance(body, dict):
            raise QueueServiceError(f"队列服务响应格式异常: {method} {path}")
        if body.get("success") is False:
            raise QueueServiceError(f"队列服务拒绝请求: {body.get('error', '未知错误')}")
        return body

    def claim_next_pending(self) -> Job | None:
        """获取最早创建的待处理任务"""
        body = self._request("GET", "/agent/jobs")

        jobs: list[Job] = []
        for raw in body.get("jobs", []):
            try:
                job = Job.model_validate(raw)
            except ValidationError as e:
                logger.warning(f"跳过无法解析的任务 {raw.get('id') if isinstance(raw, dict) else raw}: {e}")
                continue
            if job.status == JobStatus.PENDING:
                jobs.append(job)

        if not jobs:
            return None
        return min(jobs, key=lambda j: j.created_at)

    def update_status(
        self,
        job_id: str,
        status: JobStatus,
        result: dict[str, Any] | None = None,
    ) -> None:
        """回报任务状态"""
        self._request(
            "PATCH",
            "/agent/jobs",
            json={"id": job_id, "status": status.value, "result": result or {}},
        )

    def heartbeat(self, info: WorkerInfo) -> None:
        """上报存活信号"""
        self._request("POST", "/agent/heartbeat", json=info.model_dump(mode="json"))

    def close(self) -> None:
        self._client.close()
