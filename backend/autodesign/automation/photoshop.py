"""
Photoshop 引擎 - 通过 COM 自动化驱动 Photoshop

职责：
1. 打开模板（工作副本），读取图层树
2. 文字替换/字号调整/溢出检测/颜色覆盖
3. 可见性批量应用
4. 导出印刷PDF与预览JPG，关闭时不保存

依赖：
- pywin32: Windows COM自动化（仅Windows）

图层路径为从0开始的下标路径，COM 集合下标从1开始。
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from ..interfaces import EngineError, ExportError, IDocument, IDocumentEngine, UnknownLayerKindError
from ..models import CMYKColor, LayerKind, LayerNode, LayerPath, PdfExportOptions, TextKind

logger = logging.getLogger(__name__)

# Photoshop 类型库常量
_DIALOGS_NONE = 3            # psDisplayNoDialogs
_DO_NOT_SAVE = 2             # psDoNotSaveChanges
_LAYER_KIND_TEXT = 2         # psTextLayer
_TEXT_PARAGRAPH = 2          # psParagraphText
_EXTENSION_LOWERCASE = 2     # psLowercase
_UNITS_PIXELS = 1            # psPixels
_MODE_CMYK = 3               # psCMYKMode
_CONVERT_TO_CMYK = 3         # psConvertToCMYK
_PDF_ENCODING_JPEG = 2       # psPDFJPEG

# 溢出检测：临时把文本框拉高的倍数
_MEASURE_HEIGHT_FACTOR = 20
_MEASURE_TOLERANCE_PX = 0.5


def _dispatch(progid: str) -> Any:
    try:
        import win32com.client
    except ImportError:
        raise EngineError("pywin32未安装，无法使用Photoshop COM")
    try:
        return win32com.client.Dispatch(progid)
    except Exception as e:
        raise EngineError(f"无法连接 {progid}: {e}") from e


class PhotoshopDocument(IDocument):
    """Photoshop 文档封装"""

    def __init__(self, app: Any, doc: Any):
        self._app = app
        self._doc = doc

    def layer_tree(self) -> list[LayerNode]:
        return self._read_layers(self._doc, ())

    def _read_layers(self, parent: Any, prefix: LayerPath) -> list[LayerNode]:
        nodes = []
        for i in range(parent.Layers.Count):
            layer = parent.Layers.Item(i + 1)
            path = prefix + (i,)
            typename = layer.typename
            if typename == "LayerSet":
                nodes.append(
                    LayerNode(
                        name=layer.Name,
                        kind=LayerKind.GROUP,
                        visible=bool(layer.Visible),
                        path=path,
                        children=self._read_layers(layer, path),
                    )
                )
            elif typename == "ArtLayer":
                if layer.Kind == _LAYER_KIND_TEXT:
                    text_kind = (
                        TextKind.PARAGRAPH
                        if layer.TextItem.Kind == _TEXT_PARAGRAPH
                        else TextKind.POINT
                    )
                    nodes.append(
                        LayerNode(
                            name=layer.Name,
                            kind=LayerKind.TEXT,
                            visible=bool(layer.Visible),
                            path=path,
                            text_kind=text_kind,
                        )
                    )
                else:
                    nodes.append(
                        LayerNode(
                            name=layer.Name,
                            kind=LayerKind.IMAGE,
                            visible=bool(layer.Visible),
                            path=path,
                        )
                    )
            else:
                raise UnknownLayerKindError(f"无法识别的图层类型: {layer.Name!r} ({typename})")
        return nodes

    def _layer(self, path: LayerPath) -> Any:
        target = self._doc
        for index in path:
            target = target.Layers.Item(index + 1)
        return target

    def set_text(self, path: LayerPath, text: str) -> None:
        self._layer(path).TextItem.Contents = text

    def get_font_size(self, path: LayerPath) -> float:
        return float(self._layer(path).TextItem.Size)

    def set_font_size(self, path: LayerPath, size: float) -> None:
        self._layer(path).TextItem.Size = size

    def text_overflows(self, path: LayerPath) -> bool:
        """复制图层并拉高文本框，比较排版后的实际底边与原框底边"""
        layer = self._layer(path)
        prefs = self._app.Preferences
        saved_units = prefs.RulerUnits
        prefs.RulerUnits = _UNITS_PIXELS
        measure = None
        try:
            box_top = float(layer.TextItem.Position[1])
            box_height = float(layer.TextItem.Height)
            measure = layer.Duplicate()
            measure.TextItem.Height = box_height * _MEASURE_HEIGHT_FACTOR
            measured_bottom = float(measure.Bounds[3])
            return measured_bottom > box_top + box_height + _MEASURE_TOLERANCE_PX
        finally:
            if measure is not None:
                measure.Delete()
            prefs.RulerUnits = saved_units

    def apply_visibility(self, visibility: dict[LayerPath, bool]) -> None:
        # 先父后子，保证组的可见性先生效
        for path in sorted(visibility, key=len):
            layer = self._layer(path)
            if bool(layer.Visible) != visibility[path]:
                layer.Visible = visibility[path]

    def set_text_color(self, path: LayerPath, color: CMYKColor) -> None:
        solid = _dispatch("Photoshop.SolidColor")
        solid.CMYK.Cyan = color.cyan
        solid.CMYK.Magenta = color.magenta
        solid.CMYK.Yellow = color.yellow
        solid.CMYK.Black = color.black
        self._layer(path).TextItem.Color = solid

    def export_pdf(self, output_path: Path, options: PdfExportOptions) -> Path:
        if self._doc.Mode != _MODE_CMYK:
            self._doc.ChangeMode(_CONVERT_TO_CMYK)

        opts = _dispatch("Photoshop.PDFSaveOptions")
        try:
            opts.PresetFile = options.preset
        except Exception:
            logger.warning(f"PDF预设不可用，使用手动参数: {options.preset}")
        opts.Encoding = _PDF_ENCODING_JPEG
        opts.JPEGQuality = options.jpeg_quality
        opts.Layers = False
        opts.EmbedColorProfile = options.embed_color_profile
        return self._save_as(output_path, opts)

    def export_jpeg(self, output_path: Path, quality: int) -> Path:
        opts = _dispatch("Photoshop.JPEGSaveOptions")
        opts.Quality = quality
        return self._save_as(output_path, opts)

    def _save_as(self, output_path: Path, opts: Any) -> Path:
        output_path = Path(output_path).absolute()
        output_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            # asCopy=True：导出副本，工作文档保持打开
            self._doc.SaveAs(str(output_path), opts, True, _EXTENSION_LOWERCASE)
        except Exception as e:
            raise ExportError(f"导出失败 {output_path.name}: {e}") from e
        return output_path

    def close(self) -> None:
        self._doc.Close(_DO_NOT_SAVE)


class PhotoshopEngine(IDocumentEngine):
    """Photoshop 引擎（首次打开文档时才连接 COM）"""

    def __init__(self, progid: str = "Photoshop.Application"):
        self.progid = progid
        self._app: Any = None

    @property
    def app(self) -> Any:
        if self._app is None:
            self._app = _dispatch(self.progid)
            self._app.DisplayDialogs = _DIALOGS_NONE
        return self._app

    def open(self, template_path: Path) -> PhotoshopDocument:
        try:
            doc = self.app.Open(str(Path(template_path).absolute()))
        except EngineError:
            raise
        except Exception as e:
            raise EngineError(f"打开模板失败 {template_path}: {e}") from e
        return PhotoshopDocument(self.app, doc)

    def release(self) -> None:
        """释放 COM 引用（不退出 Photoshop）"""
        self._app = None
