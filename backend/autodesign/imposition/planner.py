"""
拼版计算器 - 相同矩形在固定纸张上的 N-up 排版

计算策略：
1. 原方向：cols = floor((W + gap) / (w + gap))，rows = floor((H + gap) / (h + gap))
2. 旋转90°后同样计算
3. 仅当旋转后数量严格更多时采用旋转（相等时保持原方向）
4. 网格整体居中，余量两侧均分

不做混排（同一张纸内不混合方向），不做异形排版。

测试要点：
- test_rotation_selected: 旋转更优时选择旋转
- test_tie_keeps_upright: 数量相等保持原方向
- test_item_too_large: 两个方向都放不下
- test_total_sheets: 总张数向上取整
"""

from __future__ import annotations

import math

from ..interfaces import IImpositionPlanner, ImpositionError, ItemTooLargeError
from ..models import Dimensions, Rect, SheetLayout

# 浮点误差容限（mm），避免 0.3/0.1 之类的除法少算一格
_EPS = 1e-9
_PRECISION = 6


class ImpositionPlanner(IImpositionPlanner):
    """拼版计算器实现（纯函数，无状态）"""

    def __init__(self, allow_rotation: bool = True) -> None:
        self.allow_rotation = allow_rotation

    def plan(
        self,
        canvas: Dimensions,
        item: Dimensions,
        total_items: int,
        gap: float = 0.0,
    ) -> SheetLayout:
        """计算排版"""
        self._validate(canvas, item, total_items, gap)

        rows, cols = self.grid(canvas, item, gap)
        rotated = False
        placed = item

        if self.allow_rotation:
            r_rows, r_cols = self.grid(canvas, item.rotated(), gap)
            if r_rows * r_cols > rows * cols:
                rows, cols = r_rows, r_cols
                rotated = True
                placed = item.rotated()

        items_per_sheet = rows * cols
        if items_per_sheet == 0:
            raise ItemTooLargeError(
                f"成品 {item.width}x{item.height}mm 超出纸张 "
                f"{canvas.width}x{canvas.height}mm（两个方向均无法放置）"
            )

        total_sheets = math.ceil(total_items / items_per_sheet)
        waste = 1.0 - (items_per_sheet * placed.area) / canvas.area

        return SheetLayout(
            sheet_width=canvas.width,
            sheet_height=canvas.height,
            rows=rows,
            cols=cols,
            items_per_sheet=items_per_sheet,
            total_sheets=total_sheets,
            rotated=rotated,
            items=self._placements(canvas, placed, rows, cols, gap),
            waste=round(max(0.0, waste), _PRECISION),
        )

    @staticmethod
    def grid(canvas: Dimensions, item: Dimensions, gap: float) -> tuple[int, int]:
        """单一方向下可放置的 (rows, cols)"""
        cols = math.floor((canvas.width + gap) / (item.width + gap) + _EPS)
        rows = math.floor((canvas.height + gap) / (item.height + gap) + _EPS)
        return max(rows, 0), max(cols, 0)

    @staticmethod
    def _placements(
        canvas: Dimensions, item: Dimensions, rows: int, cols: int, gap: float
    ) -> list[Rect]:
        used_w = cols * item.width + (cols - 1) * gap
        used_h = rows * item.height + (rows - 1) * gap
        start_x = max(0.0, (canvas.width - used_w) / 2)
        start_y = max(0.0, (canvas.height - used_h) / 2)

        rects: list[Rect] = []
        for r in range(rows):
            for c in range(cols):
                rects.append(
                    Rect(
                        x=_clamp(round(start_x + c * (item.width + gap), _PRECISION), item.width, canvas.width),
                        y=_clamp(round(start_y + r * (item.height + gap), _PRECISION), item.height, canvas.height),
                        width=item.width,
                        height=item.height,
                    )
                )
        return rects

    @staticmethod
    def _validate(canvas: Dimensions, item: Dimensions, total_items: int, gap: float) -> None:
        if canvas.width <= 0 or canvas.height <= 0:
            raise ImpositionError(f"纸张尺寸无效: {canvas.width}x{canvas.height}")
        if item.width <= 0 or item.height <= 0:
            raise ImpositionError(f"成品尺寸无效: {item.width}x{item.height}")
        if gap < 0:
            raise ImpositionError(f"间距不能为负: {gap}")
        if total_items < 0:
            raise ImpositionError(f"成品数量不能为负: {total_items}")


_default_planner = ImpositionPlanner()


def plan(
    canvas: Dimensions,
    item: Dimensions,
    total_items: int,
    gap: float = 0.0,
) -> SheetLayout:
    """计算排版（便捷函数）"""
    return _default_planner.plan(canvas, item, total_items, gap)


def _clamp(pos: float, size: float, limit: float) -> float:
    """起点收进画布内，保证 pos + size <= limit"""
    pos = min(pos, limit - size)
    while pos > 0.0 and pos + size > limit:
        pos = math.nextafter(pos, 0.0)
    return max(pos, 0.0)
