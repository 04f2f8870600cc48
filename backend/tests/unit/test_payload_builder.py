"""
负载构建器单元测试
"""

from datetime import date

import pytest

from autodesign.interfaces import PayloadError, TemplateNotFoundError
from autodesign.models import JobType
from autodesign.worker.payload_builder import PayloadBuilder

TODAY = date(2026, 3, 1)


@pytest.fixture
def builder(runtime_config) -> PayloadBuilder:
    return PayloadBuilder(
        template_root=runtime_config.paths.template_root,
        output_root=runtime_config.paths.output_root,
        today=lambda: TODAY,
    )


@pytest.fixture
def date_dir(runtime_config):
    path = runtime_config.paths.output_root / TODAY.isoformat()
    path.mkdir(parents=True)
    return path


class TestBuildMergeSheet:
    """MERGE_SHEET 负载测试"""

    def test_build(self, builder, job_factory, merge_request, template_root):
        payload = builder.build(job_factory(payload=merge_request))

        assert payload.job_id == "job-1"
        assert payload.job_type == JobType.MERGE_SHEET
        assert [i.item_id for i in payload.items] == ["A1001_1", "A1001_2"]
        assert payload.items[0].template_path == (template_root / "card.psd").resolve()
        assert payload.items[0].template_path.is_absolute()
        assert payload.items[1].config.metal is True
        assert payload.items[1].fields == {"name": "李四", "company": "示例科技"}

    def test_default_item_id(self, builder, job_factory, merge_request):
        for item in merge_request["items"]:
            del item["item_id"]
        payload = builder.build(job_factory(payload=merge_request))
        assert [i.item_id for i in payload.items] == ["A1001_1", "A1001_2"]

    def test_duplicate_item_id(self, builder, job_factory, merge_request):
        merge_request["items"][1]["item_id"] = "A1001_1"
        with pytest.raises(PayloadError, match="A1001_1"):
            builder.build(job_factory(payload=merge_request))

    def test_invalid_payload(self, builder, job_factory):
        with pytest.raises(PayloadError):
            builder.build(job_factory(payload={"items": []}))

    def test_missing_template(self, builder, job_factory, merge_request):
        merge_request["items"][0]["template_key"] = "nope"
        with pytest.raises(TemplateNotFoundError):
            builder.build(job_factory(payload=merge_request))

    def test_options_from_config(self, runtime_config, job_factory, merge_request):
        runtime_config.engine.specialty_keyword = "GOLD"
        runtime_config.text_fit.min_size = 7.0
        payload = PayloadBuilder.from_config(runtime_config).build(job_factory(payload=merge_request))
        assert payload.options.specialty_keyword == "GOLD"
        assert payload.options.text_min_size == 7.0


class TestResolveTemplate:
    """模板解析测试"""

    def test_resolve_template(self, builder, template_root):
        assert builder.resolve_template("cards/flyer") == (template_root / "cards" / "flyer.psd").resolve()
        assert builder.resolve_template("card.psd") == (template_root / "card.psd").resolve()

    def test_path_traversal_rejected(self, builder):
        with pytest.raises(PayloadError):
            builder.resolve_template("../secret")


class TestResolveOutputDir:
    """输出目录测试"""

    def test_output_dir_fallback(self, builder, runtime_config):
        path = builder.resolve_output_dir("job-1", "A1001", None)
        assert path == runtime_config.paths.output_root / "2026-03-01" / "ORDER_A1001"

    def test_output_dir_without_order(self, builder, runtime_config):
        path = builder.resolve_output_dir("job 9", None, None)
        assert path.name == "JOB_job_9"

    def test_output_dir_fuzzy_match(self, builder, date_dir):
        (date_dir / "客户_A1001_加急").mkdir()
        (date_dir / "B2002").mkdir()
        assert builder.resolve_output_dir("job-1", "A1001", None) == date_dir / "客户_A1001_加急"

    def test_first_sorted_match_wins(self, builder, date_dir):
        (date_dir / "b_A1001").mkdir()
        (date_dir / "a_CRM-77").mkdir()
        assert builder.resolve_output_dir("job-1", "A1001", "CRM-77") == date_dir / "a_CRM-77"

    def test_files_are_not_matched(self, builder, date_dir):
        (date_dir / "A1001.txt").write_text("x")
        assert builder.resolve_output_dir("job-1", "A1001", None).name == "ORDER_A1001"

    def test_order_inferred_from_items(self, builder, job_factory, merge_request):
        del merge_request["order_id"]
        payload = builder.build(job_factory(payload=merge_request))
        assert payload.output_dir.name == "ORDER_A1001"

    def test_mixed_orders_fall_back_to_job(self, builder, job_factory, merge_request):
        del merge_request["order_id"]
        merge_request["items"][1]["order_id"] = "B2002"
        payload = builder.build(job_factory(job_id="job-7", payload=merge_request))
        assert payload.output_dir.name == "JOB_job-7"


class TestBuildLoadLayers:
    """LOAD_LAYERS 负载测试"""

    def test_build_load_layers(self, builder, job_factory, template_root, runtime_config):
        job = job_factory(job_type=JobType.LOAD_LAYERS, payload={"template_key": "card"})
        payload = builder.build(job)
        assert payload.job_type == JobType.LOAD_LAYERS
        assert len(payload.items) == 1
        assert payload.items[0].template_path == (template_root / "card.psd").resolve()
        assert payload.output_dir == runtime_config.paths.output_root.absolute()

    def test_load_layers_missing_key(self, builder, job_factory):
        with pytest.raises(PayloadError):
            builder.build(job_factory(job_type=JobType.LOAD_LAYERS, payload={}))
