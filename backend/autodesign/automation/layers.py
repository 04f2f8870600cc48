"""
图层树遍历 - 可见性映射计算

所有函数只读图层树快照，返回新的映射，不修改文档；
由调用方在导出前一次性 apply_visibility。

专色分版两遍：
- base（CMYK）：专色层隐藏（专色组连同子树），其余保持模板原有可见性
- mask（专色）：仅显示专色层；专色层的祖先组保持可见以便渲染，
  专色组的子孙保持模板原有可见性，其余全部隐藏

测试要点：
- test_walk_visits_each_node_once: 每个节点遍历一次
- test_base_visibility_hides_marked_group: 专色组整体隐藏
- test_mask_visibility_exclusive: 仅专色层可见
- test_effective_visibility_group_gating: 隐藏的组压制可见子层
"""

from __future__ import annotations

from collections.abc import Iterator

from ..models import LayerKind, LayerNode, LayerPath


def walk(nodes: list[LayerNode]) -> Iterator[LayerNode]:
    """先序遍历，每个节点恰好一次"""
    for node in nodes:
        yield node
        if node.is_group:
            yield from walk(node.children)


def leaves(nodes: list[LayerNode]) -> Iterator[LayerNode]:
    """全部非组节点"""
    return (n for n in walk(nodes) if not n.is_group)


def is_marked(node: LayerNode, keyword: str) -> bool:
    """图层名包含专色关键字（不区分大小写）"""
    return bool(keyword) and keyword.upper() in node.name.upper()


def has_marked(nodes: list[LayerNode], keyword: str) -> bool:
    return any(is_marked(n, keyword) for n in walk(nodes))


def original_visibility(nodes: list[LayerNode]) -> dict[LayerPath, bool]:
    """模板原有可见性"""
    return {n.path: n.visible for n in walk(nodes)}


def base_visibility(nodes: list[LayerNode], keyword: str) -> dict[LayerPath, bool]:
    """CMYK 底色版：隐藏专色层"""
    visibility: dict[LayerPath, bool] = {}

    def visit(node: LayerNode, inside_marked: bool) -> None:
        marked = inside_marked or is_marked(node, keyword)
        visibility[node.path] = False if marked else node.visible
        for child in node.children:
            visit(child, marked)

    for node in nodes:
        visit(node, False)
    return visibility


def mask_visibility(nodes: list[LayerNode], keyword: str) -> dict[LayerPath, bool]:
    """专色遮罩版：排他显示专色层"""
    visibility: dict[LayerPath, bool] = {}

    def visit(node: LayerNode, inside_marked: bool) -> bool:
        """返回子树内是否含专色层"""
        marked = is_marked(node, keyword)
        contains = False
        for child in node.children:
            contains = visit(child, inside_marked or marked) or contains

        if marked:
            visibility[node.path] = True
        elif inside_marked:
            visibility[node.path] = node.visible
        else:
            # 祖先组需可见，否则压制子层
            visibility[node.path] = contains
        return marked or contains

    for node in nodes:
        visit(node, False)
    return visibility


def effective_visibility(
    nodes: list[LayerNode], visibility: dict[LayerPath, bool]
) -> dict[LayerPath, bool]:
    """叠加组可见性后的实际渲染可见性"""
    effective: dict[LayerPath, bool] = {}

    def visit(node: LayerNode, parent_visible: bool) -> None:
        own = visibility.get(node.path, node.visible)
        effective[node.path] = parent_visible and own
        for child in node.children:
            visit(child, effective[node.path])

    for node in nodes:
        visit(node, True)
    return effective


def visible_text_nodes(
    nodes: list[LayerNode], visibility: dict[LayerPath, bool]
) -> list[LayerNode]:
    """应用映射后实际可见的文字层"""
    effective = effective_visibility(nodes, visibility)
    return [n for n in walk(nodes) if n.kind == LayerKind.TEXT and effective[n.path]]
