"""
文档生成器 - 在文档引擎进程内执行的自动化流程

流程（每个任务执行一次）：
1. 读取负载 job_<id>.json
2. 逐个成品：打开模板（工作副本）→ 字段替换 → 导出 → 不保存关闭
3. 全部完成写 result_<id>.json；任何异常写 error_<id>.json（二者只写一个）

成品之间严格顺序执行（保持裁切对位顺序）；
单个成品失败即整单失败，不跳过。

测试要点：
- test_run_writes_result: 成功写结果文件
- test_run_writes_error_on_failure: 失败写错误文件
- test_substitute_fields: 字段替换与键归一化
- test_template_never_saved: 模板只读
- test_load_layers: 读取图层树
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

from ..interfaces import IDocument, IDocumentEngine, TemplateNotFoundError, UnknownLayerKindError
from ..models import (
    ErrorMessage,
    JobPayload,
    JobType,
    LayerKind,
    LayerNode,
    MessagePaths,
    PayloadItem,
    ResultMessage,
    normalize_field_key,
    write_message,
)
from .exporter import SheetExporter
from .layers import leaves
from .text_fit import shrink_to_fit

logger = logging.getLogger(__name__)


class DocumentGenerator:
    """文档自动化流程"""

    def __init__(self, engine: IDocumentEngine):
        self.engine = engine

    def run(self, payload_path: str | Path) -> int:
        """
        执行整个任务并写入结果/错误文件

        Returns:
            进程退出码（0成功，1失败）
        """
        paths = MessagePaths.from_payload(payload_path)
        try:
            payload = JobPayload.model_validate_json(paths.payload.read_text(encoding="utf-8"))
            result = self.process(payload)
        except Exception as e:
            logger.exception(f"[{paths.job_id}] 自动化流程失败")
            write_message(paths.error, ErrorMessage(message=str(e) or type(e).__name__))
            return 1

        write_message(paths.result, result)
        logger.info(f"[{paths.job_id}] 完成，产物 {len(result.files)} 个")
        return 0

    def process(self, payload: JobPayload) -> ResultMessage:
        """按任务类型处理"""
        if payload.job_type == JobType.LOAD_LAYERS:
            return self.load_layers(payload)

        result = ResultMessage()
        for index, item in enumerate(payload.items, start=1):
            logger.info(f"[{payload.job_id}] 处理成品 {index}/{len(payload.items)}: {item.item_id}")
            files = self.process_item(item, payload)
            result.files.extend(str(f) for f in files)
        return result

    def process_item(self, item: PayloadItem, payload: JobPayload) -> list[Path]:
        """处理单个成品：打开 → 替换 → 导出 → 关闭(不保存)"""
        doc = self._open(item.template_path)
        try:
            tree = doc.layer_tree()
            self.substitute(doc, tree, item.lookup(), payload)
            # 替换后字号等可能变化，导出前重新取快照
            tree = doc.layer_tree()
            exporter = SheetExporter(payload.options)
            return exporter.export(doc, tree, item, payload.output_dir)
        finally:
            doc.close()

    def substitute(
        self,
        doc: IDocument,
        tree: list[LayerNode],
        values: dict[str, str],
        payload: JobPayload,
    ) -> int:
        """
        递归替换字段

        Returns:
            替换的图层数
        """
        count = 0
        for node in leaves(tree):
            key = normalize_field_key(node.name)
            if key not in values:
                continue

            if node.kind == LayerKind.TEXT:
                doc.set_text(node.path, values[key])
                shrink_to_fit(
                    doc,
                    node,
                    min_size=payload.options.text_min_size,
                    step=payload.options.text_step,
                )
                count += 1
            elif node.kind == LayerKind.IMAGE:
                # TODO: 图像/智能对象替换（需看板上传图片后提供本地路径）
                logger.debug(f"图像图层 {node.name!r} 暂不支持替换，跳过")
            else:
                raise UnknownLayerKindError(f"无法识别的图层类型: {node.name!r} ({node.kind})")
        return count

    def load_layers(self, payload: JobPayload) -> ResultMessage:
        """读取模板图层树（LOAD_LAYERS）"""
        if not payload.items:
            raise TemplateNotFoundError("LOAD_LAYERS 任务未指定模板")
        doc = self._open(payload.items[0].template_path)
        try:
            return ResultMessage(layers=doc.layer_tree())
        finally:
            doc.close()

    def _open(self, template_path: Path) -> IDocument:
        if not Path(template_path).exists():
            raise TemplateNotFoundError(f"模板不存在: {template_path}")
        return self.engine.open(Path(template_path))


def main(argv: list[str] | None = None) -> int:
    """引擎进程入口：唯一参数为负载文件绝对路径"""
    args = sys.argv[1:] if argv is None else argv
    if len(args) != 1:
        print("用法: python -m autodesign.automation <job_<id>.json>", file=sys.stderr)
        return 2

    from ..config import get_config
    from ..logging_config import setup_logging
    from .photoshop import PhotoshopEngine

    try:
        config = get_config()
        setup_logging(config.logging, log_name="engine")
    except Exception as e:
        # 初始化失败同样走错误文件，工作进程才能结束等待
        write_message(
            MessagePaths.from_payload(args[0]).error,
            ErrorMessage(message=f"引擎进程初始化失败: {e}"),
        )
        return 1

    engine = PhotoshopEngine(progid=config.engine.app_progid)
    try:
        return DocumentGenerator(engine).run(args[0])
    finally:
        engine.release()
