"""
工作进程模块 - 任务编排（Job Orchestrator）

子模块：
- queue_client: 看板 agent API 客户端
- payload_builder: 任务请求 → 引擎负载
- launcher: 启动脚本生成与分离进程启动
- channel: 基于文件的引擎消息通道
- states: 工作进程状态机
- orchestrator: 轮询/派发/等待/回报/清理
"""

from .channel import FileChannel
from .launcher import HostLauncher
from .orchestrator import JobOrchestrator
from .payload_builder import PayloadBuilder
from .queue_client import HttpQueueService
from .states import WorkerState

__all__ = [
    "FileChannel",
    "HostLauncher",
    "JobOrchestrator",
    "PayloadBuilder",
    "HttpQueueService",
    "WorkerState",
]
