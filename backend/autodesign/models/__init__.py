"""
数据模型层 - 定义系统核心数据结构

所有模块通过这些模型交互，实现解耦：
- Job: 任务状态与生命周期
- SheetLayout: 拼版结果
- ProductionItem / JobPayload: 成品与引擎负载
- LayerNode: 模板图层树
- MessagePaths / ResultMessage / ErrorMessage: 进程间文件协议
"""

from .job import Job, JobStatus, JobType, WorkerInfo, WorkerStatus
from .layer import KNOCKOUT_BLACK, CMYKColor, LayerKind, LayerNode, LayerPath, TextKind
from .layout import Dimensions, Rect, SheetLayout
from .messages import (
    EngineMessage,
    ErrorMessage,
    MessagePaths,
    ResultMessage,
    write_message,
)
from .production import (
    AutomationOptions,
    ItemExportConfig,
    JobPayload,
    LoadLayersRequest,
    MergeSheetRequest,
    PayloadItem,
    PdfExportOptions,
    ProductionItem,
    normalize_field_key,
)

__all__ = [
    "Job",
    "JobStatus",
    "JobType",
    "WorkerInfo",
    "WorkerStatus",
    "Dimensions",
    "Rect",
    "SheetLayout",
    "LayerNode",
    "LayerKind",
    "LayerPath",
    "TextKind",
    "CMYKColor",
    "KNOCKOUT_BLACK",
    "ProductionItem",
    "ItemExportConfig",
    "MergeSheetRequest",
    "LoadLayersRequest",
    "PayloadItem",
    "JobPayload",
    "AutomationOptions",
    "PdfExportOptions",
    "normalize_field_key",
    "MessagePaths",
    "ResultMessage",
    "ErrorMessage",
    "EngineMessage",
    "write_message",
]
