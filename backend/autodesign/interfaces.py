"""
模块接口契约 - 定义各模块的抽象接口

设计原则：
1. 模块间通过接口通信，不直接依赖具体实现
2. 文档引擎位于消息边界之后（写请求 → 轮询响应），可替换为进程内渲染器
3. 便于单元测试和mock替换

使用方式：
    from autodesign.interfaces import IQueueService

    class MyQueue(IQueueService):
        def claim_next_pending(self) -> Job | None:
            ...
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .models import (
        CMYKColor,
        Dimensions,
        EngineMessage,
        Job,
        JobPayload,
        JobStatus,
        LayerNode,
        LayerPath,
        PdfExportOptions,
        SheetLayout,
        WorkerInfo,
    )


# ============================================================================
# 拼版模块接口
# ============================================================================

class IImpositionPlanner(ABC):
    """拼版计算接口 - 纯函数，无副作用"""

    @abstractmethod
    def plan(
        self,
        canvas: Dimensions,
        item: Dimensions,
        total_items: int,
        gap: float = 0.0,
    ) -> SheetLayout:
        """
        计算单张纸上的 N-up 排版

        Args:
            canvas: 纸张尺寸（mm）
            item: 成品尺寸（mm）
            total_items: 成品总数
            gap: 成品间距（mm）

        Returns:
            排版结果（含一张纸的全部落位矩形）

        Raises:
            ItemTooLargeError: 两个方向都放不下
        """
        ...


# ============================================================================
# 任务队列与进程间通信接口
# ============================================================================

class IQueueService(ABC):
    """任务队列服务接口（远端，调用可能失败）"""

    @abstractmethod
    def claim_next_pending(self) -> Job | None:
        """获取最早的待处理任务，无任务返回None"""
        ...

    @abstractmethod
    def update_status(
        self,
        job_id: str,
        status: JobStatus,
        result: dict[str, Any] | None = None,
    ) -> None:
        """回报任务状态"""
        ...

    @abstractmethod
    def heartbeat(self, info: WorkerInfo) -> None:
        """上报存活信号（仅观测用途）"""
        ...


class IEngineChannel(ABC):
    """文档引擎消息通道 - 写请求、轮询响应"""

    @abstractmethod
    def dispatch(self, payload: JobPayload) -> None:
        """
        派发任务到文档引擎

        Raises:
            EngineLaunchError: 引擎启动失败
        """
        ...

    @abstractmethod
    def poll(self, job_id: str) -> EngineMessage | None:
        """检查引擎是否已返回结果/错误，未返回时为None"""
        ...

    @abstractmethod
    def cleanup(self, job_id: str) -> None:
        """清理该任务的全部临时文件（幂等，不抛异常）"""
        ...


class IHostLauncher(ABC):
    """宿主进程启动器接口"""

    @abstractmethod
    def write_script(self, script_path: Path, payload_path: Path) -> Path:
        """生成启动脚本：加载自动化流程，并以payload绝对路径为唯一参数调用"""
        ...

    @abstractmethod
    def launch(self, script_path: Path) -> None:
        """以分离进程方式启动文档引擎"""
        ...


# ============================================================================
# 文档引擎接口（在引擎进程内使用）
# ============================================================================

class IDocument(ABC):
    """已打开的模板文档（工作副本，不回存）"""

    @abstractmethod
    def layer_tree(self) -> list[LayerNode]:
        """读取图层树快照"""
        ...

    @abstractmethod
    def set_text(self, path: LayerPath, text: str) -> None:
        """替换文字图层内容"""
        ...

    @abstractmethod
    def get_font_size(self, path: LayerPath) -> float:
        """读取字号（pt）"""
        ...

    @abstractmethod
    def set_font_size(self, path: LayerPath, size: float) -> None:
        """设置字号（pt）"""
        ...

    @abstractmethod
    def text_overflows(self, path: LayerPath) -> bool:
        """段落文本是否溢出文本框"""
        ...

    @abstractmethod
    def apply_visibility(self, visibility: dict[LayerPath, bool]) -> None:
        """一次性应用可见性映射"""
        ...

    @abstractmethod
    def set_text_color(self, path: LayerPath, color: CMYKColor) -> None:
        """覆盖文字填充色"""
        ...

    @abstractmethod
    def export_pdf(self, output_path: Path, options: PdfExportOptions) -> Path:
        """导出印刷PDF（CMYK）"""
        ...

    @abstractmethod
    def export_jpeg(self, output_path: Path, quality: int) -> Path:
        """导出预览JPG"""
        ...

    @abstractmethod
    def close(self) -> None:
        """关闭文档，不保存修改"""
        ...


class IDocumentEngine(ABC):
    """文档引擎接口"""

    @abstractmethod
    def open(self, template_path: Path) -> IDocument:
        """
        打开模板

        Raises:
            TemplateNotFoundError: 模板不存在
            EngineError: 引擎打开失败
        """
        ...


# ============================================================================
# 异常定义
# ============================================================================

class AutoDesignError(Exception):
    """基础异常"""
    pass


class JobValidationError(AutoDesignError):
    """校验错误（单任务致命，不自动重试）"""
    pass


class ImpositionError(JobValidationError):
    """拼版参数错误"""
    pass


class ItemTooLargeError(ImpositionError):
    """成品尺寸超出纸张（两个方向都放不下）"""
    pass


class TemplateNotFoundError(JobValidationError):
    """模板不存在"""
    pass


class PayloadError(JobValidationError):
    """任务负载无效"""
    pass


class QueueServiceError(AutoDesignError):
    """队列服务调用失败（瞬时I/O，下一轮自然重试）"""
    pass


class EngineError(AutoDesignError):
    """文档引擎错误"""
    pass


class EngineLaunchError(EngineError):
    """引擎进程启动失败"""
    pass


class UnknownLayerKindError(EngineError):
    """无法识别的图层类型"""
    pass


class ExportError(EngineError):
    """导出错误"""
    pass
