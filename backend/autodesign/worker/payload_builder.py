"""
负载构建器 - Job.payload → 引擎负载（绝对路径）

职责：
1. 校验任务请求（MERGE_SHEET / LOAD_LAYERS）
2. 模板 key 解析为模板根目录下的绝对路径
3. 输出目录：<output_root>/<YYYY-MM-DD>/<订单目录>
   - 当天目录下已有名称包含订单号或CRM号的文件夹则复用（按名称排序取第一个）
   - 否则合成 ORDER_<订单号>（无订单号时 JOB_<任务ID>）

测试要点：
- test_resolve_template: 模板解析与后缀补全
- test_missing_template: 模板不存在
- test_output_dir_fuzzy_match: 订单目录模糊匹配
- test_output_dir_fallback: 合成目录名
- test_invalid_payload: 请求校验失败
"""

from __future__ import annotations

import re
from datetime import date
from pathlib import Path
from typing import Callable

from pydantic import ValidationError

from ..config import RuntimeConfig
from ..interfaces import PayloadError, TemplateNotFoundError
from ..models import (
    AutomationOptions,
    Job,
    JobPayload,
    JobType,
    LoadLayersRequest,
    MergeSheetRequest,
    PayloadItem,
    PdfExportOptions,
)

_UNSAFE_CHARS = re.compile(r'[\\/:*?"<>|\s]+')


def _safe_name(value: str) -> str:
    return _UNSAFE_CHARS.sub("_", value.strip())


class PayloadBuilder:
    """负载构建器"""

    def __init__(
        self,
        template_root: Path,
        output_root: Path,
        options: AutomationOptions | None = None,
        template_suffix: str = ".psd",
        today: Callable[[], date] = date.today,
    ):
        self.template_root = Path(template_root).absolute()
        self.output_root = Path(output_root).absolute()
        self.options = options or AutomationOptions()
        self.template_suffix = template_suffix
        self.today = today

    @classmethod
    def from_config(cls, config: RuntimeConfig) -> PayloadBuilder:
        options = AutomationOptions(
            specialty_keyword=config.engine.specialty_keyword,
            text_min_size=config.text_fit.min_size,
            text_step=config.text_fit.step,
            pdf=PdfExportOptions(
                preset=config.export.pdf_preset,
                jpeg_quality=config.export.pdf_jpeg_quality,
                embed_color_profile=config.export.embed_color_profile,
            ),
            preview_quality=config.export.preview_quality,
        )
        return cls(
            template_root=config.paths.template_root,
            output_root=config.paths.output_root,
            options=options,
            template_suffix=config.engine.template_suffix,
        )

    def build(self, job: Job) -> JobPayload:
        """
        构建引擎负载

        Raises:
            PayloadError: 请求无效
            TemplateNotFoundError: 模板不存在
        """
        if job.job_type == JobType.LOAD_LAYERS:
            return self._build_load_layers(job)
        if job.job_type == JobType.MERGE_SHEET:
            return self._build_merge_sheet(job)
        raise PayloadError(f"不支持的任务类型: {job.type}")

    def _build_merge_sheet(self, job: Job) -> JobPayload:
        try:
            request = MergeSheetRequest.model_validate(job.payload)
        except ValidationError as e:
            raise PayloadError(f"任务负载无效: {e}") from e

        items: list[PayloadItem] = []
        seen: set[str] = set()
        for index, item in enumerate(request.items, start=1):
            item_id = item.item_id or f"{item.order_id}_{index}"
            if item_id in seen:
                raise PayloadError(f"成品ID重复: {item_id}")
            seen.add(item_id)
            items.append(
                PayloadItem(
                    item_id=item_id,
                    order_id=item.order_id,
                    template_path=self.resolve_template(item.template_key),
                    fields=item.fields,
                    config=item.export_config,
                )
            )

        order_id = request.order_id
        if order_id is None and len({i.order_id for i in request.items}) == 1:
            order_id = request.items[0].order_id

        return JobPayload(
            job_id=job.id,
            job_type=JobType.MERGE_SHEET,
            output_dir=self.resolve_output_dir(job.id, order_id, request.crm_id),
            items=items,
            options=self.options,
        )

    def _build_load_layers(self, job: Job) -> JobPayload:
        try:
            request = LoadLayersRequest.model_validate(job.payload)
        except ValidationError as e:
            raise PayloadError(f"任务负载无效: {e}") from e

        return JobPayload(
            job_id=job.id,
            job_type=JobType.LOAD_LAYERS,
            output_dir=self.output_root,
            items=[
                PayloadItem(
                    item_id=_safe_name(request.template_key),
                    template_path=self.resolve_template(request.template_key),
                )
            ],
            options=self.options,
        )

    def resolve_template(self, template_key: str) -> Path:
        """模板 key → 绝对路径（无后缀时补默认后缀）"""
        relative = Path(template_key.strip())
        if not relative.suffix:
            relative = relative.with_name(relative.name + self.template_suffix)

        path = (self.template_root / relative).resolve()
        try:
            path.relative_to(self.template_root.resolve())
        except ValueError:
            raise PayloadError(f"模板路径越界: {template_key}")

        if not path.is_file():
            raise TemplateNotFoundError(f"模板不存在: {template_key} ({path})")
        return path

    def resolve_output_dir(self, job_id: str, order_id: str | None, crm_id: str | None) -> Path:
        """当天目录下模糊匹配订单目录，匹配不到时合成目录名"""
        date_dir = self.output_root / self.today().isoformat()

        keys = [k.strip() for k in (order_id, crm_id) if k and k.strip()]
        if keys and date_dir.is_dir():
            for folder in sorted(p for p in date_dir.iterdir() if p.is_dir()):
                if any(key in folder.name for key in keys):
                    return folder

        if order_id:
            return date_dir / f"ORDER_{_safe_name(order_id)}"
        return date_dir / f"JOB_{_safe_name(job_id)}"
