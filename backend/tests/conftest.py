"""
pytest 配置与公共 fixtures

内存实现（不依赖 Photoshop / 看板服务）：
- FakeDocument / FakeEngine: 图层树 + 文字溢出模拟 + 导出写空文件
- FakeQueue: 内存任务队列，记录状态回报与存活信号
- FakeClock: 可控时钟，sleep 只推进时间

使用方式：
    def test_something(engine, layers, payload_factory):
        tree = layers.tree(layers.text("NAME"))
        ...
"""

from __future__ import annotations

import tempfile
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Generator

import pytest

from autodesign.automation.generator import DocumentGenerator
from autodesign.automation.layers import original_visibility
from autodesign.config import RuntimeConfig
from autodesign.config.runtime_config import PathsConfig, WorkerConfig
from autodesign.interfaces import (
    EngineError,
    IDocument,
    IDocumentEngine,
    IHostLauncher,
    IQueueService,
    QueueServiceError,
)
from autodesign.models import (
    AutomationOptions,
    CMYKColor,
    ItemExportConfig,
    Job,
    JobPayload,
    JobStatus,
    JobType,
    LayerKind,
    LayerNode,
    LayerPath,
    PayloadItem,
    PdfExportOptions,
    TextKind,
    WorkerInfo,
)


# ============================================================================
# 图层树构造
# ============================================================================

class LayerFactory:
    """图层树构造器（路径按位置自动编号）"""

    @staticmethod
    def text(name: str, visible: bool = True, paragraph: bool = True) -> LayerNode:
        return LayerNode(
            name=name,
            kind=LayerKind.TEXT,
            visible=visible,
            text_kind=TextKind.PARAGRAPH if paragraph else TextKind.POINT,
        )

    @staticmethod
    def image(name: str, visible: bool = True) -> LayerNode:
        return LayerNode(name=name, kind=LayerKind.IMAGE, visible=visible)

    @staticmethod
    def group(name: str, *children: LayerNode, visible: bool = True) -> LayerNode:
        return LayerNode(name=name, kind=LayerKind.GROUP, visible=visible, children=list(children))

    @classmethod
    def tree(cls, *nodes: LayerNode) -> list[LayerNode]:
        return cls._assign_paths(list(nodes), ())

    @classmethod
    def _assign_paths(cls, nodes: list[LayerNode], prefix: LayerPath) -> list[LayerNode]:
        result = []
        for i, node in enumerate(nodes):
            path = prefix + (i,)
            result.append(
                node.model_copy(
                    update={"path": path, "children": cls._assign_paths(node.children, path)}
                )
            )
        return result

    @staticmethod
    def find(nodes: list[LayerNode], name: str) -> LayerNode:
        from autodesign.automation.layers import walk

        for node in walk(nodes):
            if node.name == name:
                return node
        raise KeyError(name)


@pytest.fixture
def layers() -> type[LayerFactory]:
    return LayerFactory


@pytest.fixture
def card_tree() -> list[LayerNode]:
    """普通名片模板：姓名/职位/公司/Logo"""
    f = LayerFactory
    return f.tree(
        f.image("Background"),
        f.group(
            "Info",
            f.text("Name"),
            f.text("Job Title"),
            f.text("company", paragraph=False),
        ),
        f.image("LOGO"),
    )


@pytest.fixture
def metal_tree() -> list[LayerNode]:
    """烫金名片模板：专色组 + 专色文字 + 普通文字"""
    f = LayerFactory
    return f.tree(
        f.image("Background"),
        f.group(
            "Front",
            f.text("Name"),
            f.text("Slogan METAL"),
            f.image("Hidden Shape", visible=False),
        ),
        f.group(
            "Gold Metal",
            f.image("Foil Border"),
            f.text("Company"),
            f.image("Guide", visible=False),
        ),
    )


# ============================================================================
# 内存文档引擎
# ============================================================================

class FakeDocument(IDocument):
    """内存文档：文字长度 × 字号 超过容量即视为溢出"""

    def __init__(
        self,
        tree: list[LayerNode],
        font_size: float = 12.0,
        capacity: dict[LayerPath, float] | None = None,
        source: Path | None = None,
    ):
        self._tree = tree
        self.source = source
        self.visibility = original_visibility(tree)
        self.font_size = font_size
        self.capacity = capacity or {}
        self.texts: dict[LayerPath, str] = {}
        self.sizes: dict[LayerPath, float] = {}
        self.colors: dict[LayerPath, CMYKColor] = {}
        self.exports: list[dict[str, Any]] = []
        self.skip_exports: set[str] = set()
        self.closed = False
        # 写回模板文件即视为保存
        self.saved = False

    def layer_tree(self) -> list[LayerNode]:
        def snapshot(node: LayerNode) -> LayerNode:
            return node.model_copy(
                update={
                    "visible": self.visibility[node.path],
                    "children": [snapshot(c) for c in node.children],
                }
            )

        return [snapshot(n) for n in self._tree]

    def set_text(self, path: LayerPath, text: str) -> None:
        self.texts[path] = text

    def get_font_size(self, path: LayerPath) -> float:
        return self.sizes.get(path, self.font_size)

    def set_font_size(self, path: LayerPath, size: float) -> None:
        self.sizes[path] = size

    def text_overflows(self, path: LayerPath) -> bool:
        limit = self.capacity.get(path)
        if limit is None:
            return False
        return len(self.texts.get(path, "")) * self.get_font_size(path) > limit

    def apply_visibility(self, visibility: dict[LayerPath, bool]) -> None:
        self.visibility.update(visibility)

    def set_text_color(self, path: LayerPath, color: CMYKColor) -> None:
        self.colors[path] = color

    def _export(self, output_path: Path, kind: str) -> Path:
        if self.source is not None and Path(output_path).resolve() == self.source.resolve():
            self.saved = True
        self.exports.append(
            {
                "path": output_path,
                "kind": kind,
                "visibility": dict(self.visibility),
                "colors": dict(self.colors),
            }
        )
        if output_path.name not in self.skip_exports:
            output_path.parent.mkdir(parents=True, exist_ok=True)
            output_path.write_bytes(b"fake")
        return output_path

    def export_pdf(self, output_path: Path, options: PdfExportOptions) -> Path:
        return self._export(output_path, "pdf")

    def export_jpeg(self, output_path: Path, quality: int) -> Path:
        return self._export(output_path, "jpeg")

    def close(self) -> None:
        self.closed = True


class FakeEngine(IDocumentEngine):
    """内存文档引擎：按模板文件名取图层树"""

    def __init__(
        self,
        trees: dict[str, list[LayerNode]] | None = None,
        default_tree: list[LayerNode] | None = None,
        capacity: dict[LayerPath, float] | None = None,
        fail_on_open: bool = False,
    ):
        self.trees = trees or {}
        self.default_tree = default_tree or []
        self.capacity = capacity or {}
        self.fail_on_open = fail_on_open
        self.opened: list[Path] = []
        self.documents: list[FakeDocument] = []

    def open(self, template_path: Path) -> FakeDocument:
        if self.fail_on_open:
            raise EngineError(f"打开模板失败 {template_path}")
        self.opened.append(Path(template_path))
        tree = self.trees.get(Path(template_path).name, self.default_tree)
        doc = FakeDocument(tree, capacity=dict(self.capacity), source=Path(template_path))
        self.documents.append(doc)
        return doc


@pytest.fixture
def engine(card_tree: list[LayerNode], metal_tree: list[LayerNode]) -> FakeEngine:
    return FakeEngine(trees={"card.psd": card_tree, "metal_card.psd": metal_tree})


# ============================================================================
# 内存队列 / 时钟 / 启动器
# ============================================================================

class FakeQueue(IQueueService):
    """内存任务队列"""

    def __init__(self, jobs: list[Job] | None = None):
        self.jobs = list(jobs or [])
        self.updates: list[tuple[str, JobStatus, dict[str, Any] | None]] = []
        self.heartbeats: list[WorkerInfo] = []
        self.fail_claim = False
        self.fail_statuses: set[JobStatus] = set()
        self.fail_heartbeat = False

    def claim_next_pending(self) -> Job | None:
        if self.fail_claim:
            raise QueueServiceError("队列服务不可用")
        pending = [j for j in self.jobs if j.status == JobStatus.PENDING]
        return min(pending, key=lambda j: j.created_at) if pending else None

    def update_status(
        self,
        job_id: str,
        status: JobStatus,
        result: dict[str, Any] | None = None,
    ) -> None:
        if status in self.fail_statuses:
            raise QueueServiceError(f"回报 {status.value} 失败")
        self.updates.append((job_id, status, result))
        for job in self.jobs:
            if job.id == job_id:
                job.status = status
                job.result = result

    def heartbeat(self, info: WorkerInfo) -> None:
        if self.fail_heartbeat:
            raise QueueServiceError("心跳失败")
        self.heartbeats.append(info)

    def statuses(self, job_id: str) -> list[JobStatus]:
        return [s for j, s, _ in self.updates if j == job_id]

    def close(self) -> None:
        pass


class FakeClock:
    """可控时钟：sleep 只推进时间"""

    def __init__(self, start: float = 1000.0):
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class InProcessLauncher(IHostLauncher):
    """进程内启动器：launch 时直接在当前进程运行文档生成器"""

    def __init__(self, engine: IDocumentEngine):
        self.engine = engine
        self.scripts: dict[Path, Path] = {}
        self.launched: list[Path] = []

    def write_script(self, script_path: Path, payload_path: Path) -> Path:
        script_path.write_text(f"# payload: {payload_path}\n", encoding="utf-8")
        self.scripts[script_path] = payload_path
        return script_path

    def launch(self, script_path: Path) -> None:
        self.launched.append(script_path)
        DocumentGenerator(self.engine).run(self.scripts[script_path])


@pytest.fixture
def engine_factory() -> type[FakeEngine]:
    return FakeEngine


@pytest.fixture
def in_process_launcher(engine: FakeEngine) -> InProcessLauncher:
    return InProcessLauncher(engine)


@pytest.fixture
def queue() -> FakeQueue:
    return FakeQueue()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


# ============================================================================
# 文件 / 配置 Fixtures
# ============================================================================

@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """临时目录"""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def template_root(temp_dir: Path) -> Path:
    """模板目录（空模板文件，内容由 FakeEngine 提供）"""
    root = temp_dir / "templates"
    (root / "cards").mkdir(parents=True)
    for name in ("card.psd", "metal_card.psd", "cards/flyer.psd"):
        (root / name).write_bytes(b"")
    return root


@pytest.fixture
def runtime_config(temp_dir: Path, template_root: Path) -> RuntimeConfig:
    """运行期配置（路径指向临时目录）"""
    return RuntimeConfig(
        paths=PathsConfig(
            temp_dir=temp_dir / "ipc",
            template_root=template_root,
            output_root=temp_dir / "output",
        ),
        worker=WorkerConfig(
            worker_id="test-agent",
            poll_interval_sec=0.01,
            result_poll_interval_sec=1.0,
            job_timeout_sec=10.0,
            heartbeat_interval_sec=3.0,
        ),
    )


# ============================================================================
# 任务 / 负载 Fixtures
# ============================================================================

def make_job(
    job_id: str = "job-1",
    job_type: JobType | str = JobType.MERGE_SHEET,
    payload: dict[str, Any] | None = None,
    age_sec: int = 0,
) -> Job:
    return Job(
        id=job_id,
        type=job_type,
        payload=payload or {},
        created_at=datetime(2026, 1, 1, 9, 0, 0) - timedelta(seconds=age_sec),
    )


@pytest.fixture
def job_factory():
    return make_job


@pytest.fixture
def merge_request() -> dict[str, Any]:
    """MERGE_SHEET 请求：一张普通名片 + 一张烫金名片"""
    return {
        "order_id": "A1001",
        "crm_id": "CRM-77",
        "sheet_format": "SRA3",
        "items": [
            {
                "order_id": "A1001",
                "template_key": "card",
                "item_id": "A1001_1",
                "fields": {"NAME": "张三", "JOB_TITLE": "工程师", "COMPANY": "示例科技"},
            },
            {
                "order_id": "A1001",
                "template_key": "metal_card.psd",
                "item_id": "A1001_2",
                "fields": {"name": "李四", "company": "示例科技"},
                "export_config": {"metal": True},
            },
        ],
    }


@pytest.fixture
def payload_factory(temp_dir: Path, template_root: Path):
    """构造引擎负载"""

    def factory(
        *items: tuple[str, dict[str, str], bool],
        job_id: str = "job-1",
        job_type: JobType = JobType.MERGE_SHEET,
        options: AutomationOptions | None = None,
    ) -> JobPayload:
        payload_items = [
            PayloadItem(
                item_id=f"item_{i}",
                order_id="A1001",
                template_path=template_root / template,
                fields=fields,
                config=ItemExportConfig(metal=metal),
            )
            for i, (template, fields, metal) in enumerate(items, start=1)
        ]
        return JobPayload(
            job_id=job_id,
            job_type=job_type,
            output_dir=temp_dir / "output" / "A1001",
            items=payload_items,
            options=options or AutomationOptions(),
        )

    return factory
