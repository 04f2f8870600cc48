"""
标准纸张格式 - 按格式名计算拼版

格式表来自运行期配置 imposition.sheet_formats（默认 SRA3/A3/A4）。
"""

from __future__ import annotations

from ..config import RuntimeConfig, get_config
from ..interfaces import ImpositionError
from ..models import Dimensions, SheetLayout
from .planner import plan


def resolve_format(name: str, config: RuntimeConfig | None = None) -> Dimensions:
    """格式名 → 纸张尺寸"""
    config = config or get_config()
    sheet = config.get_sheet_format(name)
    if sheet is None:
        known = ", ".join(sorted(config.imposition.sheet_formats))
        raise ImpositionError(f"未知纸张格式: {name}（可选: {known}）")
    return Dimensions(width=sheet.width, height=sheet.height)


def plan_for_format(
    format_name: str,
    item: Dimensions,
    total_items: int,
    gap: float | None = None,
    config: RuntimeConfig | None = None,
) -> SheetLayout:
    """按标准纸张格式计算拼版，gap 缺省取配置值"""
    config = config or get_config()
    canvas = resolve_format(format_name, config)
    if gap is None:
        gap = config.imposition.default_gap
    return plan(canvas, item, total_items, gap)
