"""
图层模型 - 模板图层树节点

path 为节点在树中的下标路径（从0开始），文档引擎据此定位图层。
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field

LayerPath = tuple[int, ...]


class LayerKind(str, Enum):
    """图层类型"""
    TEXT = "TEXT"
    IMAGE = "IMAGE"
    GROUP = "GROUP"


class TextKind(str, Enum):
    """文字类型：点文字 / 段落文字（固定文本框）"""
    POINT = "POINT"
    PARAGRAPH = "PARAGRAPH"


class CMYKColor(BaseModel):
    """CMYK 颜色（0-100）"""
    cyan: float = 0.0
    magenta: float = 0.0
    yellow: float = 0.0
    black: float = 0.0


# 专色遮罩层使用的实地黑
KNOCKOUT_BLACK = CMYKColor(black=100.0)


class LayerNode(BaseModel):
    """图层树节点"""
    name: str
    kind: LayerKind
    visible: bool = True
    path: LayerPath = ()
    text_kind: TextKind | None = None
    children: list[LayerNode] = Field(default_factory=list)

    @property
    def is_group(self) -> bool:
        return self.kind == LayerKind.GROUP


LayerNode.model_rebuild()
