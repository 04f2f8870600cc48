"""
拼版模型 - 尺寸/落位矩形/排版结果

单位统一为 mm。
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class Dimensions(BaseModel):
    """宽高尺寸"""
    width: float
    height: float

    def rotated(self) -> Dimensions:
        """旋转90°后的尺寸"""
        return Dimensions(width=self.height, height=self.width)

    @property
    def area(self) -> float:
        return self.width * self.height


class Rect(BaseModel):
    """落位矩形（左上角原点）"""
    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height


class SheetLayout(BaseModel):
    """单张纸的排版结果"""
    sheet_width: float
    sheet_height: float
    rows: int
    cols: int
    items_per_sheet: int
    total_sheets: int
    rotated: bool = False
    items: list[Rect] = Field(default_factory=list, description="一张纸上的落位，行优先")
    waste: float = Field(0.0, description="废料面积占比(0-1)")

    def fill_of_sheet(self, sheet_index: int, total_items: int) -> int:
        """第 sheet_index 张（从0开始）实际放置的成品数"""
        if sheet_index < 0 or sheet_index >= self.total_sheets:
            return 0
        remaining = total_items - sheet_index * self.items_per_sheet
        return min(self.items_per_sheet, remaining)
