"""
Unit tests for the tree flattener.

Tests verify:
- flatten_section records name -> first value for named leaves.
- Nested named and unnamed sections merge into the category map.
- Duplicate field names resolve last-write-wins, depth-first left-to-right.
- Energiemonitor subsections flatten into separate maps.
- Pathological depth is cut off instead of overflowing.

CHANGELOG:
- 2026-10-12: Cover unnamed wrapper sections and depth cap
- 2026-10-11: Initial creation (STORY-007)

TODO:
- None
"""

from __future__ import annotations

from heatpump.src.flattener import MAX_DEPTH, flatten_category_tree, flatten_section
from heatpump.src.models import Label, Leaf, Section


def _leaf(name: str | None, *values: str) -> Leaf:
    return Leaf(name=name, values=values)


class TestFlattenSection:
    def test_named_leaves_use_first_value(self) -> None:
        nodes = [_leaf("Vorlauf", "45.3", "46.0"), _leaf("Rücklauf", "38,0")]

        assert flatten_section(nodes) == {"Vorlauf": "45.3", "Rücklauf": "38,0"}

    def test_unnamed_leaves_and_labels_are_ignored(self) -> None:
        nodes = [_leaf(None, "x"), Label(name="Überschrift"), _leaf("A", "1")]

        assert flatten_section(nodes) == {"A": "1"}

    def test_nested_sections_merge(self) -> None:
        nodes = [
            _leaf("A", "1"),
            Section(name="Gruppe", children=(_leaf("B", "2"),)),
            Section(name=None, children=(_leaf("C", "3"),)),
        ]

        assert flatten_section(nodes) == {"A": "1", "B": "2", "C": "3"}

    def test_last_write_wins(self) -> None:
        """Child A (x=1) then child B (x=2) flattens to x=2."""
        nodes = [
            Section(name="A", children=(_leaf("x", "1"),)),
            Section(name="B", children=(_leaf("x", "2"),)),
        ]

        assert flatten_section(nodes) == {"x": "2"}

    def test_depth_first_order(self) -> None:
        nodes = [
            Section(name="A", children=(_leaf("x", "deep"),)),
            _leaf("x", "shallow"),
        ]

        assert flatten_section(nodes) == {"x": "shallow"}

    def test_deterministic(self) -> None:
        nodes = [_leaf("a", "1"), Section(name="S", children=(_leaf("a", "2"), _leaf("b", "3")))]

        assert flatten_section(nodes) == flatten_section(nodes)

    def test_pathological_depth_fails_closed(self) -> None:
        node: Leaf | Section = _leaf("deep", "1")
        for _ in range(MAX_DEPTH + 10):
            node = Section(name="n", children=(node,))

        assert flatten_section([_leaf("top", "0"), node]) == {"top": "0"}


class TestFlattenCategoryTree:
    def test_regular_categories(self) -> None:
        nodes = [
            Section(name="Temperaturen", children=(_leaf("Vorlauf", "45.3"),)),
            Section(name="Eingänge", children=(_leaf("ASD", "Aus"),)),
        ]

        assert flatten_category_tree(nodes) == {
            "Temperaturen": {"Vorlauf": "45.3"},
            "Eingänge": {"ASD": "Aus"},
        }

    def test_energiemonitor_subcategories(self) -> None:
        nodes = [
            Section(
                name="Energiemonitor",
                children=(
                    Section(name="Wärmemenge", children=(_leaf("Heizung", "1234.5"),)),
                    Section(name="Leistungsaufnahme", children=(_leaf("Heizung", "300.1"),)),
                    _leaf("Stray", "x"),
                ),
            )
        ]

        assert flatten_category_tree(nodes) == {
            "Energiemonitor": {
                "Wärmemenge": {"Heizung": "1234.5"},
                "Leistungsaufnahme": {"Heizung": "300.1"},
            }
        }

    def test_top_level_leaves_labels_and_unnamed_ignored(self) -> None:
        nodes = [
            _leaf("Vorlauf", "1"),
            Label(name="Temperaturen"),
            Section(name=None, children=(_leaf("A", "1"),)),
        ]

        assert flatten_category_tree(nodes) == {}

    def test_empty_category_gives_empty_map(self) -> None:
        assert flatten_category_tree([Section(name="Abschaltungen", children=())]) == {
            "Abschaltungen": {}
        }
