"""
运行期配置 - 读取 config/runtime.yaml

职责：
- 加载队列地址/轮询间隔/超时/路径等运行参数
- 提供环境变量覆盖机制（AUTODESIGN_ 前缀）
- 类型安全的配置访问
"""

from __future__ import annotations

import tempfile
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings


class QueueConfig(BaseModel):
    """任务队列服务配置（看板 agent API）"""

    api_url: str = "http://localhost:3000/api"
    agent_token: str = ""
    request_timeout_sec: float = 10.0


class WorkerConfig(BaseModel):
    """轮询工作进程配置"""

    worker_id: str = "default-agent"
    poll_interval_sec: float = 5.0
    result_poll_interval_sec: float = 1.0
    job_timeout_sec: float = 120.0
    heartbeat_interval_sec: float = 10.0


class PathsConfig(BaseModel):
    """路径配置"""

    temp_dir: Path = Field(default_factory=lambda: Path(tempfile.gettempdir()) / "autodesign")
    template_root: Path = Path("templates")
    output_root: Path = Path("output")


class EngineConfig(BaseModel):
    """文档引擎配置"""

    python_exe: str = ""
    app_progid: str = "Photoshop.Application"
    specialty_keyword: str = "METAL"
    template_suffix: str = ".psd"


class TextFitConfig(BaseModel):
    """文字自适应缩小配置（单位：pt）"""

    min_size: float = 6.0
    step: float = 0.5


class ExportConfig(BaseModel):
    """导出配置"""

    pdf_preset: str = "PDF/X-1a:2001"
    pdf_jpeg_quality: int = 12
    preview_quality: int = 10
    embed_color_profile: bool = True


class SheetFormat(BaseModel):
    """标准纸张尺寸（mm）"""

    width: float
    height: float


def _default_sheet_formats() -> dict[str, SheetFormat]:
    return {
        "SRA3": SheetFormat(width=320, height=450),
        "A3": SheetFormat(width=297, height=420),
        "A4": SheetFormat(width=210, height=297),
    }


class ImpositionConfig(BaseModel):
    """拼版配置"""

    default_gap: float = 0.0
    sheet_formats: dict[str, SheetFormat] = Field(default_factory=_default_sheet_formats)


class LoggingConfig(BaseModel):
    """日志配置"""

    log_level: str = "INFO"
    log_format: str = "text"
    log_to_file: bool = False
    log_dir: Path = Path("logs")


class RuntimeConfig(BaseSettings):
    """运行期配置（支持环境变量覆盖）"""

    config_path: Path | None = None

    queue: QueueConfig = Field(default_factory=QueueConfig)
    worker: WorkerConfig = Field(default_factory=WorkerConfig)
    paths: PathsConfig = Field(default_factory=PathsConfig)
    engine: EngineConfig = Field(default_factory=EngineConfig)
    text_fit: TextFitConfig = Field(default_factory=TextFitConfig)
    export: ExportConfig = Field(default_factory=ExportConfig)
    imposition: ImpositionConfig = Field(default_factory=ImpositionConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {
        "env_prefix": "AUTODESIGN_",
        "env_nested_delimiter": "__",
        "arbitrary_types_allowed": True,
    }

    @classmethod
    def from_yaml(cls, yaml_path: str | Path) -> RuntimeConfig:
        """从YAML文件加载配置"""
        path = Path(yaml_path)
        if not path.exists():
            return cls()

        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        runtime_opts = data.get("runtime_options", {})

        imposition = cls._extract(runtime_opts, "imposition")
        if "sheet_formats" in runtime_opts.get("imposition", {}):
            imposition["sheet_formats"] = runtime_opts["imposition"]["sheet_formats"]

        config = cls(
            config_path=path,
            queue=QueueConfig(**cls._extract(runtime_opts, "queue")),
            worker=WorkerConfig(**cls._extract(runtime_opts, "worker")),
            paths=PathsConfig(**cls._extract(runtime_opts, "paths")),
            engine=EngineConfig(**cls._extract(runtime_opts, "engine")),
            text_fit=TextFitConfig(**cls._extract(runtime_opts, "text_fit")),
            export=ExportConfig(**cls._extract(runtime_opts, "export")),
            imposition=ImpositionConfig(**imposition),
            logging=LoggingConfig(**cls._extract(runtime_opts, "logging")),
        )

        config._resolve_paths(base_dir=path.parent)
        return config

    @staticmethod
    def _extract(data: dict[str, Any], key: str) -> dict[str, Any]:
        """提取并展平配置"""
        section = data.get(key, {}) or {}
        result = {}
        for k, v in section.items():
            if isinstance(v, dict) and "default" in v:
                result[k] = v["default"]
            elif not isinstance(v, dict):
                result[k] = v
        return result

    def _resolve_paths(self, base_dir: Path) -> None:
        """解析相对路径配置为绝对路径（基于配置文件所在目录）"""
        for name in ("temp_dir", "template_root", "output_root"):
            value = getattr(self.paths, name)
            if not value.is_absolute():
                setattr(self.paths, name, (base_dir / value).resolve())
        if not self.logging.log_dir.is_absolute():
            self.logging.log_dir = (base_dir / self.logging.log_dir).resolve()
        if self.engine.python_exe:
            exe_path = Path(self.engine.python_exe)
            if not exe_path.is_absolute() and len(exe_path.parts) > 1:
                self.engine.python_exe = str((base_dir / exe_path).resolve())

    def get_sheet_format(self, name: str) -> SheetFormat | None:
        """按名称获取纸张尺寸（不区分大小写）"""
        formats = {k.upper(): v for k, v in self.imposition.sheet_formats.items()}
        return formats.get(name.strip().upper())

    def ensure_dirs(self) -> None:
        """确保必要目录存在"""
        self.paths.temp_dir.mkdir(parents=True, exist_ok=True)
        self.paths.output_root.mkdir(parents=True, exist_ok=True)


# 全局配置实例
_config: RuntimeConfig | None = None

DEFAULT_CONFIG_PATH = Path("config/runtime.yaml")


def get_config() -> RuntimeConfig:
    """获取全局配置（惰性加载）"""
    global _config
    if _config is None:
        _config = RuntimeConfig.from_yaml(DEFAULT_CONFIG_PATH)
    return _config


def reload_config(yaml_path: str | Path | None = None) -> RuntimeConfig:
    """重新加载配置"""
    global _config
    path = yaml_path or DEFAULT_CONFIG_PATH
    _config = RuntimeConfig.from_yaml(path)
    return _config
