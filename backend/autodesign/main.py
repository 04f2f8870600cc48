"""
命令行入口

    autodesign worker [--config runtime.yaml] [--once]
    autodesign plan --format SRA3 --item 90 54 --count 100 [--gap 2]
    autodesign plan --canvas 320 450 --item 90 54 --count 100
"""

from __future__ import annotations

import argparse
import json
import logging
import signal
import sys

from .config import RuntimeConfig, get_config, reload_config
from .interfaces import AutoDesignError
from .logging_config import setup_logging
from .models import Dimensions

logger = logging.getLogger(__name__)


def _load_config(path: str | None) -> RuntimeConfig:
    return reload_config(path) if path else get_config()


def _cmd_worker(args: argparse.Namespace) -> int:
    config = _load_config(args.config)
    setup_logging(config.logging, log_name="worker")

    from .worker import JobOrchestrator

    orchestrator = JobOrchestrator.from_config(config)
    if args.once:
        orchestrator.tick()
        return 0

    def _handle_signal(signum, frame):  # noqa: ARG001
        logger.info(f"收到信号 {signum}，当前任务结束后退出")
        orchestrator.stop()

    signal.signal(signal.SIGINT, _handle_signal)
    signal.signal(signal.SIGTERM, _handle_signal)

    try:
        orchestrator.run_forever()
    finally:
        orchestrator.queue.close()
    return 0


def _cmd_plan(args: argparse.Namespace) -> int:
    from .imposition import plan, plan_for_format

    config = _load_config(args.config)
    item = Dimensions(width=args.item[0], height=args.item[1])
    try:
        if args.canvas:
            canvas = Dimensions(width=args.canvas[0], height=args.canvas[1])
            gap = config.imposition.default_gap if args.gap is None else args.gap
            layout = plan(canvas, item, args.count, gap)
        else:
            layout = plan_for_format(args.format, item, args.count, args.gap, config)
    except AutoDesignError as e:
        print(f"拼版失败: {e}", file=sys.stderr)
        return 1

    print(json.dumps(layout.model_dump(mode="json"), ensure_ascii=False, indent=2))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="autodesign", description="印刷生产自动化工具")
    sub = parser.add_subparsers(dest="command", required=True)

    worker = sub.add_parser("worker", help="启动任务轮询工作进程")
    worker.add_argument("--config", default=None, help="运行期配置（默认：config/runtime.yaml）")
    worker.add_argument("--once", action="store_true", help="只执行一轮轮询后退出")
    worker.set_defaults(func=_cmd_worker)

    plan_cmd = sub.add_parser("plan", help="计算拼版并输出JSON")
    target = plan_cmd.add_mutually_exclusive_group(required=True)
    target.add_argument("--format", help="标准纸张格式（如 SRA3/A3/A4）")
    target.add_argument("--canvas", nargs=2, type=float, metavar=("W", "H"), help="纸张尺寸（mm）")
    plan_cmd.add_argument("--item", nargs=2, type=float, metavar=("W", "H"), required=True, help="成品尺寸（mm）")
    plan_cmd.add_argument("--count", type=int, required=True, help="成品总数")
    plan_cmd.add_argument("--gap", type=float, default=None, help="成品间距（mm，默认取配置）")
    plan_cmd.add_argument("--config", default=None, help="运行期配置")
    plan_cmd.set_defaults(func=_cmd_plan)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    raise SystemExit(main())
