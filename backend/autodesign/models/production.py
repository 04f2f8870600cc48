"""
生产数据模型 - 成品项/任务请求/引擎负载

两层结构：
- MergeSheetRequest / LoadLayersRequest: 看板写入 Job.payload 的原始请求（模板为 key）
- JobPayload: 工作进程解析后写入 job_<id>.json 的负载（模板为绝对路径）
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator

from .job import JobType
from .layout import SheetLayout

_WHITESPACE = re.compile(r"\s+")


def normalize_field_key(name: str) -> str:
    """图层名/字段名 → 查找键（去首尾空白，内部空白转下划线，大写）"""
    return _WHITESPACE.sub("_", name.strip()).upper()


class ItemExportConfig(BaseModel):
    """成品导出配置"""
    metal: bool = Field(False, description="专色/烫金纸，需两遍分色导出")


class ProductionItem(BaseModel):
    """单个待渲染成品（来自订单行）"""
    order_id: str
    template_key: str
    item_id: str | None = None
    fields: dict[str, str] = Field(default_factory=dict)
    export_config: ItemExportConfig = Field(default_factory=ItemExportConfig)
    quantity: int = Field(1, ge=1)

    @field_validator("fields", mode="before")
    @classmethod
    def _stringify_fields(cls, value: Any) -> Any:
        if isinstance(value, dict):
            return {str(k): "" if v is None else str(v) for k, v in value.items()}
        return value

    @field_validator("template_key")
    @classmethod
    def _check_template_key(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("template_key 不能为空")
        return value


class MergeSheetRequest(BaseModel):
    """MERGE_SHEET 任务请求"""
    order_id: str | None = None
    crm_id: str | None = None
    sheet_format: str | None = None
    layout: SheetLayout | None = None
    items: list[ProductionItem] = Field(..., min_length=1)


class LoadLayersRequest(BaseModel):
    """LOAD_LAYERS 任务请求"""
    template_key: str


class PdfExportOptions(BaseModel):
    """印刷PDF导出参数"""
    preset: str = "PDF/X-1a:2001"
    jpeg_quality: int = 12
    embed_color_profile: bool = True


class AutomationOptions(BaseModel):
    """引擎内自动化参数（随负载下发，引擎进程不读本地配置）"""
    specialty_keyword: str = "METAL"
    text_min_size: float = 6.0
    text_step: float = 0.5
    pdf: PdfExportOptions = Field(default_factory=PdfExportOptions)
    preview_quality: int = 10


class PayloadItem(BaseModel):
    """负载中的单个成品（模板已解析为绝对路径）"""
    item_id: str
    order_id: str | None = None
    template_path: Path
    fields: dict[str, str] = Field(default_factory=dict)
    config: ItemExportConfig = Field(default_factory=ItemExportConfig)

    def lookup(self) -> dict[str, str]:
        """按归一化键索引的字段值"""
        return {normalize_field_key(k): v for k, v in self.fields.items()}


class JobPayload(BaseModel):
    """job_<id>.json 内容"""
    job_id: str
    job_type: JobType = JobType.MERGE_SHEET
    output_dir: Path
    items: list[PayloadItem] = Field(default_factory=list)
    options: AutomationOptions = Field(default_factory=AutomationOptions)
