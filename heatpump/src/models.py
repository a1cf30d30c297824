"""
Data models for decoded heat-pump payloads and snapshot results.

Incoming XML is decoded once into a tagged node variant:

- :class:`Leaf`: a named field carrying one or more text values.
- :class:`Section`: a (possibly unnamed) node with child nodes.
- :class:`Label`: a name only, no values and no children.

Downstream code (filters, flattener) dispatches on the node type instead of
probing for ``value``/``item`` keys.

CHANGELOG:
- 2026-10-11: Add node_id so navigation entries carry their request id
- 2026-10-10: Initial creation (STORY-002)

TODO:
- None
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, TypeAlias


@dataclass(frozen=True, slots=True)
class Leaf:
    """A named field with its raw text values.

    Attributes:
        name: Field name (e.g. ``"Vorlauf"``), ``None`` for anonymous values.
        values: Raw text values in document order (conventionally one).
        node_id: Opaque ``id`` attribute of the XML element, if present.
    """

    name: str | None
    values: tuple[str, ...]
    node_id: str | None = None


@dataclass(frozen=True, slots=True)
class Section:
    """A node holding child nodes.

    Attributes:
        name: Section name (e.g. ``"Temperaturen"``), ``None`` for wrappers.
        children: Child nodes in document order.
        node_id: Opaque ``id`` attribute of the XML element, if present.
    """

    name: str | None
    children: tuple[Node, ...]
    node_id: str | None = None


@dataclass(frozen=True, slots=True)
class Label:
    """A bare name without values or children."""

    name: str | None = None
    node_id: str | None = None


Node: TypeAlias = Leaf | Section | Label

FieldMap: TypeAlias = dict[str, str]
"""Flat mapping of field name to raw value within one category."""

CategorySnapshot: TypeAlias = dict[str, dict[str, Any]]
"""Category name -> field map (or subcategory -> field map for Energiemonitor)."""


@dataclass(frozen=True, slots=True)
class Message:
    """One decoded websocket message.

    Either part may be ``None`` when the message does not carry it.

    Attributes:
        navigation: Top-level navigation entries (handshake only).
        content: Top-level content category nodes.
    """

    navigation: tuple[Node, ...] | None = None
    content: tuple[Node, ...] | None = None


@dataclass(frozen=True, slots=True)
class SaveResult:
    """Outcome of saving one tick.

    Attributes:
        snapshots: ``1`` if at least one category row was written, else ``0``.
        categories: Number of category rows written in the tick.
    """

    snapshots: int
    categories: int
