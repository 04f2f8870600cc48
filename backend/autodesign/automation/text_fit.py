"""
文字自适应 - 段落文本溢出时逐步缩小字号

规则：
- 仅对段落文字（固定文本框）生效，点文字不处理
- 每次缩小 step，直到不溢出或达到下限 min_size
- 单向：只缩小，不放大；结果不低于下限
"""

from __future__ import annotations

import logging

from ..interfaces import IDocument
from ..models import LayerNode, TextKind

logger = logging.getLogger(__name__)


def shrink_to_fit(
    doc: IDocument,
    node: LayerNode,
    min_size: float = 6.0,
    step: float = 0.5,
) -> float:
    """
    缩小字号直到文本不溢出

    Returns:
        最终字号（pt）
    """
    if step <= 0:
        raise ValueError(f"step 必须为正: {step}")

    size = doc.get_font_size(node.path)
    if node.text_kind != TextKind.PARAGRAPH:
        return size

    start = size
    while size > min_size and doc.text_overflows(node.path):
        size = max(min_size, size - step)
        doc.set_font_size(node.path, size)

    if size != start:
        logger.debug(f"图层 {node.name!r} 字号 {start} -> {size}")
    return size
