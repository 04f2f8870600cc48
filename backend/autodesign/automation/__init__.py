"""
自动化模块 - 在文档引擎进程内执行

子模块：
- layers: 图层树遍历与可见性映射
- text_fit: 段落文字自适应缩小
- exporter: 普通/专色导出
- generator: 任务流程（负载 → 结果/错误文件）
- photoshop: Photoshop COM 引擎
"""

from .exporter import SheetExporter
from .generator import DocumentGenerator
from .photoshop import PhotoshopEngine
from .text_fit import shrink_to_fit

__all__ = [
    "DocumentGenerator",
    "SheetExporter",
    "PhotoshopEngine",
    "shrink_to_fit",
]
