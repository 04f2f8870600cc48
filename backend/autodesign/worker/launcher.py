"""
宿主进程启动器 - 生成启动脚本并以分离进程启动文档引擎

启动脚本约定（唯一契约）：
    加载自动化流程 → 以负载文件绝对路径为唯一参数调用

进程以分离方式启动，工作进程不等待其退出、超时也不强制结束，
结束信号只有结果/错误文件。

测试要点：
- test_render_script: 脚本内容引用负载绝对路径
- test_launch_failure: 解释器不存在时报错
"""

from __future__ import annotations

import logging
import subprocess
import sys
from pathlib import Path

from ..config import get_config
from ..interfaces import EngineLaunchError, IHostLauncher

logger = logging.getLogger(__name__)

# 自动化包所在目录（backend/）
_PACKAGE_ROOT = Path(__file__).resolve().parents[2]

_SCRIPT_TEMPLATE = '''\
# autodesign 引擎启动脚本（自动生成，任务结束后删除）
import sys

sys.path.insert(0, {package_root!r})

from autodesign.automation.generator import main

sys.exit(main([{payload_path!r}]))
'''


class HostLauncher(IHostLauncher):
    """宿主进程启动器实现"""

    def __init__(self, python_exe: str | None = None, work_dir: Path | None = None):
        config = get_config()
        self.python_exe = python_exe or config.engine.python_exe or sys.executable
        self.work_dir = work_dir

    def render_script(self, payload_path: Path) -> str:
        return _SCRIPT_TEMPLATE.format(
            package_root=str(_PACKAGE_ROOT),
            payload_path=str(Path(payload_path).absolute()),
        )

    def write_script(self, script_path: Path, payload_path: Path) -> Path:
        script_path.parent.mkdir(parents=True, exist_ok=True)
        script_path.write_text(self.render_script(payload_path), encoding="utf-8")
        return script_path

    def launch(self, script_path: Path) -> None:
        if not script_path.exists():
            raise EngineLaunchError(f"启动脚本不存在: {script_path}")

        cmd = [self.python_exe, str(script_path)]
        kwargs: dict = {
            "stdin": subprocess.DEVNULL,
            "stdout": subprocess.DEVNULL,
            "stderr": subprocess.DEVNULL,
            "cwd": str(self.work_dir) if self.work_dir else None,
        }
        if sys.platform == "win32":
            kwargs["creationflags"] = (
                subprocess.DETACHED_PROCESS | subprocess.CREATE_NEW_PROCESS_GROUP
            )
        else:
            kwargs["start_new_session"] = True

        try:
            process = subprocess.Popen(cmd, **kwargs)
        except OSError as e:
            raise EngineLaunchError(f"启动文档引擎失败: {e}") from e

        logger.info(f"文档引擎已启动 pid={process.pid}: {script_path.name}")
