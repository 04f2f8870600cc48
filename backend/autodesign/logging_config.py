"""
日志配置 - 工作进程与引擎进程共用

使用方式：
    from autodesign.logging_config import setup_logging

    # 入口处调用一次
    setup_logging(get_config().logging)

    # 各模块
    logger = logging.getLogger(__name__)
    logger.info("派发任务", extra={"job_id": job.id, "event": "dispatch"})
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from .config.runtime_config import LoggingConfig


class JSONFormatter(logging.Formatter):
    """JSON 格式（便于集中采集）"""

    EXTRA_FIELDS = frozenset({"job_id", "event", "status", "worker_state", "duration_ms"})

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for field in self.EXTRA_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                log_data[field] = value
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_data, ensure_ascii=False, default=str)


class HumanReadableFormatter(logging.Formatter):
    """文本格式（本地运行）"""

    FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"

    def __init__(self) -> None:
        super().__init__(self.FORMAT, datefmt="%Y-%m-%d %H:%M:%S")


def setup_logging(config: LoggingConfig | None = None, log_name: str = "worker") -> None:
    """配置根日志器（重复调用会替换已有handler）"""
    config = config or LoggingConfig()
    level = getattr(logging, config.log_level.upper(), logging.INFO)

    if config.log_format.lower() == "json":
        formatter: logging.Formatter = JSONFormatter()
    else:
        formatter = HumanReadableFormatter()

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if config.log_to_file:
        config.log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(config.log_dir / f"{log_name}.log", encoding="utf-8")
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
