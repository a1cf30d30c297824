"""
Pure flattener that turns filtered content trees into category field maps.

Each top-level category section becomes one flat ``{field: raw_value}`` map.
Nested subsections (named or unnamed wrappers) are merged into their
category depth-first, left-to-right, so a later field with the same name
overwrites an earlier one.

``Energiemonitor`` is the exception: each of its named subsections
(``Wärmemenge``, ``Leistungsaufnahme``) becomes its own map, giving
``{"Energiemonitor": {"Wärmemenge": {...}, "Leistungsaufnahme": {...}}}``.

Recursion is capped at :data:`MAX_DEPTH`; anything deeper is skipped with a
warning instead of overflowing the stack.

CHANGELOG:
- 2026-10-12: Recurse through unnamed wrapper sections
- 2026-10-11: Initial creation (STORY-007)

TODO:
- None
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from heatpump.src.models import CategorySnapshot, FieldMap, Leaf, Node, Section
from heatpump.src.registry import MULTI_SUBCATEGORY_CATEGORY

logger = logging.getLogger(__name__)

MAX_DEPTH: int = 32
"""Deepest section level merged into a category map."""


def _collect(nodes: Sequence[Node], out: FieldMap, depth: int) -> None:
    if depth > MAX_DEPTH:
        logger.warning("Section nesting exceeds %d levels, skipping subtree", MAX_DEPTH)
        return
    for node in nodes:
        if isinstance(node, Leaf):
            if node.name is not None and node.values:
                out[node.name] = node.values[0]
        elif isinstance(node, Section):
            _collect(node.children, out, depth + 1)


def flatten_section(nodes: Sequence[Node]) -> FieldMap:
    """Flatten the children of one category into a field map.

    Args:
        nodes: Child nodes of a category section.

    Returns:
        ``{field_name: first_value}`` with last-write-wins on duplicates.
    """
    fields: FieldMap = {}
    _collect(nodes, fields, 0)
    return fields


def flatten_subcategories(nodes: Sequence[Node]) -> dict[str, FieldMap]:
    """Flatten each named child section into its own field map."""
    return {
        node.name: flatten_section(node.children)
        for node in nodes
        if isinstance(node, Section) and node.name is not None
    }


def flatten_category_tree(nodes: Sequence[Node]) -> CategorySnapshot:
    """Flatten top-level category sections into a snapshot mapping.

    Only named top-level sections contribute; leaves and labels at the top
    level are ignored.

    Args:
        nodes: Filtered top-level content nodes.

    Returns:
        Category name -> field map (subcategory maps for Energiemonitor).
    """
    snapshot: CategorySnapshot = {}
    for node in nodes:
        if not isinstance(node, Section) or node.name is None:
            continue
        if node.name == MULTI_SUBCATEGORY_CATEGORY:
            snapshot[node.name] = flatten_subcategories(node.children)
        else:
            snapshot[node.name] = flatten_section(node.children)
    return snapshot
