"""
模板体检脚本：打印图层树、字段查找键和专色层标记

用法（PowerShell，需本机 Photoshop + pywin32）：
  python tools/inspect_template.py templates/business_card.psd
  python tools/inspect_template.py templates/business_card.psd --json
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path


def _add_backend_to_path() -> None:
    repo_root = Path(__file__).resolve().parents[1]
    backend_root = repo_root / "backend"
    if str(backend_root) not in sys.path:
        sys.path.insert(0, str(backend_root))


def main() -> int:
    parser = argparse.ArgumentParser(description="Inspect PSD template layers.")
    parser.add_argument("template", help="模板文件路径")
    parser.add_argument("--keyword", default="", help="专色关键字（默认取配置 engine.specialty_keyword）")
    parser.add_argument("--json", action="store_true", help="以JSON输出图层树")
    args = parser.parse_args()

    _add_backend_to_path()
    from autodesign.automation.layers import is_marked, walk  # type: ignore
    from autodesign.automation.photoshop import PhotoshopEngine  # type: ignore
    from autodesign.config import get_config  # type: ignore
    from autodesign.models import normalize_field_key  # type: ignore

    template = Path(args.template).resolve()
    if not template.exists():
        print(f"模板不存在: {template}")
        return 1

    config = get_config()
    keyword = args.keyword or config.engine.specialty_keyword

    engine = PhotoshopEngine(progid=config.engine.app_progid)
    try:
        doc = engine.open(template)
        try:
            tree = doc.layer_tree()
        finally:
            doc.close()
    except Exception as exc:  # noqa: BLE001
        print(f"{template.name}: ERROR {exc}")
        return 1
    finally:
        engine.release()

    if args.json:
        print(json.dumps([n.model_dump(mode="json") for n in tree], ensure_ascii=False, indent=2))
        return 0

    marked = 0
    for node in walk(tree):
        indent = "  " * (len(node.path) - 1)
        flags = []
        if not node.visible:
            flags.append("hidden")
        if is_marked(node, keyword):
            flags.append(keyword.upper())
            marked += 1
        if node.text_kind:
            flags.append(node.text_kind.value.lower())
        key = "" if node.is_group else f" -> {normalize_field_key(node.name)}"
        suffix = f" [{', '.join(flags)}]" if flags else ""
        print(f"{indent}{node.kind.value:<5} {node.name}{key}{suffix}")

    print(f"专色层: {marked} 个")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
