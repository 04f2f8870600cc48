"""
拼版模块 - N-up 排版计算

子模块：
- planner: 相同矩形网格排版（含旋转择优）
- formats: 标准纸张格式
"""

from .formats import plan_for_format, resolve_format
from .planner import ImpositionPlanner, plan

__all__ = [
    "ImpositionPlanner",
    "plan",
    "plan_for_format",
    "resolve_format",
]
