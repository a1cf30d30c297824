"""
Filter engine that prunes decoded content trees by the configured rules.

The ``import_values`` setting maps each wanted top-level category to a
:class:`~heatpump.src.config.FilterRule`:

- empty rule (``{}``): keep every child (pass-through).
- ``include``: keep only the named children.
- ``exclude``: keep every child except the named ones.
- ``nested``: per-subsection rules applied one level further down.

``include`` wins when both lists are set.  Unnamed nodes never match a name
list, so an active include/exclude rule drops them.

CHANGELOG:
- 2026-10-19: Exclude rules drop unnamed nodes like include rules
- 2026-10-12: Apply nested rules through unnamed wrapper sections
- 2026-10-11: Initial creation (STORY-006)

TODO:
- None
"""

from __future__ import annotations

from collections.abc import Collection, Mapping, Sequence
from typing import TYPE_CHECKING

from heatpump.src.models import Section

if TYPE_CHECKING:
    from heatpump.src.config import FilterRule
    from heatpump.src.models import Node


def filter_top_level(
    nodes: Sequence[Node],
    known_categories: Collection[str],
) -> list[Node]:
    """Keep only nodes whose name is a known top-level category.

    Order-preserving, one level only.
    """
    return [node for node in nodes if node.name is not None and node.name in known_categories]


def filter_children(nodes: Sequence[Node], rule: FilterRule | None) -> list[Node]:
    """Apply one rule to a single level of nodes.

    Args:
        nodes: Sibling nodes to filter.
        rule: The rule for their parent, or ``None`` for pass-through.

    Returns:
        The kept nodes in original order.
    """
    if rule is None:
        return list(nodes)

    if rule.include is not None:
        include = set(rule.include)
        return [node for node in nodes if node.name is not None and node.name in include]

    if rule.exclude is not None:
        exclude = set(rule.exclude)
        return [node for node in nodes if node.name is not None and node.name not in exclude]

    return list(nodes)


def _prune(nodes: Sequence[Node], parent_rule: FilterRule | None) -> list[Node]:
    """Recurse into child sections, applying nested rules where defined.

    Sections without a nested rule of their own are kept whole but still
    look up deeper sections in *parent_rule*'s nested map.
    """
    pruned: list[Node] = []
    for node in nodes:
        if not isinstance(node, Section):
            pruned.append(node)
            continue

        own_rule = None
        if parent_rule is not None and node.name is not None:
            own_rule = parent_rule.nested.get(node.name)

        if own_rule is not None:
            children = _prune(filter_children(node.children, own_rule), own_rule)
        else:
            children = _prune(node.children, parent_rule)
        pruned.append(Section(name=node.name, children=tuple(children), node_id=node.node_id))
    return pruned


def apply_filters(
    nodes: Sequence[Node],
    import_values: Mapping[str, FilterRule],
) -> list[Node]:
    """Prune a content tree with the full rule hierarchy.

    Keeps only configured top-level categories, filters each category's
    children with its rule, then applies nested rules to named subsections.

    Args:
        nodes: Top-level content nodes.
        import_values: Category name -> rule.

    Returns:
        The pruned top-level nodes.
    """
    result: list[Node] = []
    for node in filter_top_level(nodes, import_values.keys()):
        if not isinstance(node, Section):
            result.append(node)
            continue
        rule = import_values[node.name]
        children = _prune(filter_children(node.children, rule), rule)
        result.append(Section(name=node.name, children=tuple(children), node_id=node.node_id))
    return result
