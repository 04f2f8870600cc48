"""
导出器单元测试
"""

from pathlib import Path

import pytest

from autodesign.automation.exporter import SheetExporter, artifact_stem
from autodesign.automation.layers import base_visibility
from autodesign.interfaces import ExportError
from autodesign.models import KNOCKOUT_BLACK, AutomationOptions, ItemExportConfig, PayloadItem


def _item(metal: bool, item_id: str = "A1001 1") -> PayloadItem:
    return PayloadItem(
        item_id=item_id,
        template_path=Path("template.psd"),
        config=ItemExportConfig(metal=metal),
    )


class TestArtifactStem:
    def test_sanitized(self):
        assert artifact_stem("A1001 / 1") == "A1001_1"
        assert artifact_stem("  ") == "item"


class TestStandardExport:
    """普通纸导出测试"""

    def test_standard_export(self, engine, temp_dir):
        doc = engine.open(Path("card.psd"))
        files = SheetExporter().export(doc, doc.layer_tree(), _item(False), temp_dir / "out")

        assert [f.name for f in files] == ["A1001_1_Print.pdf", "A1001_1_Preview.jpg"]
        assert all(f.exists() for f in files)
        assert [e["kind"] for e in doc.exports] == ["pdf", "jpeg"]
        assert doc.colors == {}

    def test_missing_artifact_fails(self, engine, temp_dir):
        doc = engine.open(Path("card.psd"))
        doc.skip_exports = {"A1001_1_Preview.jpg"}
        with pytest.raises(ExportError):
            SheetExporter().export(doc, doc.layer_tree(), _item(False), temp_dir / "out")


class TestSpecialtyExport:
    """专色两遍导出测试"""

    def test_metal_export_two_passes(self, engine, temp_dir):
        doc = engine.open(Path("metal_card.psd"))
        tree = doc.layer_tree()
        files = SheetExporter().export(doc, tree, _item(True), temp_dir / "out")

        assert [f.name for f in files] == ["A1001_1_CMYK.pdf", "A1001_1_METAL.pdf"]
        assert all(f.exists() for f in files)

        base, mask = doc.exports
        assert base["visibility"] == base_visibility(tree, "METAL")
        assert base["colors"] == {}

        assert mask["visibility"][(1, 1)] is True
        assert mask["visibility"][(1, 0)] is False
        assert mask["visibility"][(0,)] is False
        assert mask["colors"] == {(1, 1): KNOCKOUT_BLACK, (2, 1): KNOCKOUT_BLACK}

    def test_hidden_text_not_recolored(self, engine, temp_dir):
        """不可见的文字不改色"""
        doc = engine.open(Path("metal_card.psd"))
        SheetExporter().export(doc, doc.layer_tree(), _item(True), temp_dir / "out")
        assert (1, 0) not in doc.colors

    def test_custom_keyword(self, engine, temp_dir):
        options = AutomationOptions(specialty_keyword="gold")
        doc = engine.open(Path("metal_card.psd"))
        files = SheetExporter(options).export(doc, doc.layer_tree(), _item(True), temp_dir / "out")

        assert files[1].name == "A1001_1_GOLD.pdf"
        # "Slogan METAL" 不含 gold，遮罩版隐藏
        assert doc.exports[1]["visibility"][(1, 1)] is False
        assert doc.exports[1]["colors"] == {(2, 1): KNOCKOUT_BLACK}

    def test_metal_without_marked_layers(self, engine, temp_dir):
        doc = engine.open(Path("card.psd"))
        with pytest.raises(ExportError, match="METAL"):
            SheetExporter().export(doc, doc.layer_tree(), _item(True), temp_dir / "out")
        assert doc.exports == []

    def test_missing_mask_artifact_fails(self, engine, temp_dir):
        doc = engine.open(Path("metal_card.psd"))
        doc.skip_exports = {"A1001_1_METAL.pdf"}
        with pytest.raises(ExportError):
            SheetExporter().export(doc, doc.layer_tree(), _item(True), temp_dir / "out")
