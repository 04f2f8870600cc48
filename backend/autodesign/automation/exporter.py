"""
导出器 - 普通纸与专色纸的导出流程

普通纸：
- <item>_Print.pdf   印刷PDF（CMYK，内嵌色彩配置，JPEG压缩）
- <item>_Preview.jpg 预览图

专色/烫金纸（两遍分色）：
- <item>_CMYK.pdf    pass 1：隐藏专色层后导出
- <item>_METAL.pdf   pass 2：排他显示专色层，可见文字改为实地黑后导出
两个产物缺一即整单失败，不接受部分成功。

测试要点：
- test_standard_export: 普通纸两个产物
- test_metal_export_two_passes: 专色两遍可见性与文字颜色
- test_metal_without_marked_layers: 模板无专色层时报错
- test_missing_artifact_fails: 引擎未产出文件时报错
"""

from __future__ import annotations

import logging
import re
from pathlib import Path

from ..interfaces import ExportError, IDocument
from ..models import KNOCKOUT_BLACK, AutomationOptions, LayerNode, PayloadItem
from .layers import base_visibility, has_marked, mask_visibility, visible_text_nodes

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r'[\\/:*?"<>|\s]+')


def artifact_stem(item_id: str) -> str:
    """成品ID → 文件名前缀"""
    return _UNSAFE_CHARS.sub("_", item_id.strip()) or "item"


class SheetExporter:
    """导出器实现"""

    def __init__(self, options: AutomationOptions | None = None):
        self.options = options or AutomationOptions()

    def export(
        self,
        doc: IDocument,
        tree: list[LayerNode],
        item: PayloadItem,
        output_dir: Path,
    ) -> list[Path]:
        """按成品导出配置选择导出流程"""
        output_dir.mkdir(parents=True, exist_ok=True)
        stem = artifact_stem(item.item_id)
        if item.config.metal:
            return self.export_specialty(doc, tree, output_dir, stem)
        return self.export_standard(doc, output_dir, stem)

    def export_standard(self, doc: IDocument, output_dir: Path, stem: str) -> list[Path]:
        """普通纸：印刷PDF + 预览JPG"""
        pdf_path = doc.export_pdf(output_dir / f"{stem}_Print.pdf", self.options.pdf)
        self._check_artifact(pdf_path)

        jpg_path = doc.export_jpeg(output_dir / f"{stem}_Preview.jpg", self.options.preview_quality)
        self._check_artifact(jpg_path)

        return [pdf_path, jpg_path]

    def export_specialty(
        self,
        doc: IDocument,
        tree: list[LayerNode],
        output_dir: Path,
        stem: str,
    ) -> list[Path]:
        """专色纸：底色版 + 专色遮罩版"""
        keyword = self.options.specialty_keyword
        if not has_marked(tree, keyword):
            raise ExportError(f"模板中没有包含关键字 {keyword!r} 的专色层，无法分色导出")

        # pass 1: 底色版
        doc.apply_visibility(base_visibility(tree, keyword))
        base_path = doc.export_pdf(output_dir / f"{stem}_CMYK.pdf", self.options.pdf)
        self._check_artifact(base_path)

        # pass 2: 专色遮罩版
        mask = mask_visibility(tree, keyword)
        doc.apply_visibility(mask)
        for node in visible_text_nodes(tree, mask):
            doc.set_text_color(node.path, KNOCKOUT_BLACK)
        mask_path = doc.export_pdf(output_dir / f"{stem}_{keyword.upper()}.pdf", self.options.pdf)
        self._check_artifact(mask_path)

        logger.info(f"专色分版完成: {base_path.name}, {mask_path.name}")
        return [base_path, mask_path]

    @staticmethod
    def _check_artifact(path: Path) -> None:
        if not Path(path).exists():
            raise ExportError(f"导出文件未生成: {path}")
