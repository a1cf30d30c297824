"""
Decoder for the heat-pump websocket XML payloads.

The controller answers on the ``Lux_WS`` websocket with XML documents of two
shapes::

    <Navigation id="0x...">
      <item id="0x4a7c8"><name>Informationen</name> ... </item>
    </Navigation>

    <Content>
      <item id="0x..."><name>Temperaturen</name>
        <item id="0x..."><name>Vorlauf</name><value>45.3°C</value></item>
      </item>
    </Content>

:func:`parse_message` turns one raw payload into a :class:`Message` holding
decoded :class:`Leaf` / :class:`Section` / :class:`Label` trees.  Malformed
XML is logged and reported as ``None`` so the caller can drop the message.

CHANGELOG:
- 2026-10-19: Take the first of repeated <name> tags instead of dropping the name
- 2026-10-12: Cap decoding depth; deeper subtrees degrade to Label
- 2026-10-11: Treat a Content root without items as a single node
- 2026-10-10: Initial creation (STORY-005)

TODO:
- None
"""

from __future__ import annotations

import logging
from typing import Any
from xml.parsers.expat import ExpatError

import xmltodict

from heatpump.src.models import Label, Leaf, Message, Node, Section

logger = logging.getLogger(__name__)

MAX_DEPTH: int = 32
"""Maximum decoded nesting depth; the real protocol nests 2-3 levels."""

_FORCE_LIST = ("item", "value", "name")


# ---------------------------------------------------------------------------
# Node decoding
# ---------------------------------------------------------------------------


def _text(raw: Any) -> str | None:
    """Return the text of an xmltodict element (plain or with attributes)."""
    if raw is None:
        return None
    if isinstance(raw, str):
        return raw
    if isinstance(raw, dict):
        text = raw.get("#text")
        return text if isinstance(text, str) else None
    return None


def _name(raw: Any) -> str | None:
    """Return the first ``<name>`` of an element; extra names are ignored."""
    if isinstance(raw, list):
        if len(raw) > 1:
            logger.warning("Element with %d <name> tags, using the first", len(raw))
        raw = raw[0] if raw else None
    return _text(raw)


def decode_node(raw: Any, *, depth: int = 0) -> Node:
    """Decode one xmltodict element into a tagged node.

    Values take precedence over children when an element carries both.

    Args:
        raw: xmltodict element (dict, str, or ``None``).
        depth: Current nesting depth.

    Returns:
        A :class:`Leaf`, :class:`Section`, or :class:`Label`.
    """
    if not isinstance(raw, dict):
        # <item/> or <item>text</item>
        text = _text(raw)
        return Leaf(name=None, values=(text,)) if text else Label()

    name = _name(raw.get("name"))
    node_id = raw.get("@id")

    values = tuple(_text(v) or "" for v in raw.get("value") or ())
    if values:
        return Leaf(name=name, values=values, node_id=node_id)

    children_raw = raw.get("item") or ()
    if children_raw:
        if depth >= MAX_DEPTH:
            logger.warning(
                "Node '%s': nesting deeper than %d levels, children dropped",
                name,
                MAX_DEPTH,
            )
            return Label(name=name, node_id=node_id)
        children = tuple(decode_node(child, depth=depth + 1) for child in children_raw)
        return Section(name=name, children=children, node_id=node_id)

    return Label(name=name, node_id=node_id)


def decode_children(raw: Any) -> tuple[Node, ...]:
    """Decode the ``item`` children of a root element."""
    if not isinstance(raw, dict):
        return ()
    return tuple(decode_node(child, depth=1) for child in raw.get("item") or ())


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def parse_message(payload: str | bytes) -> Message | None:
    """Parse one raw websocket payload.

    Args:
        payload: XML text (``bytes`` are decoded as UTF-8).

    Returns:
        A :class:`Message` (parts absent from the payload are ``None``), or
        ``None`` if the payload is not well-formed XML.
    """
    if isinstance(payload, bytes):
        payload = payload.decode("utf-8", errors="replace")

    try:
        document = xmltodict.parse(payload, force_list=_FORCE_LIST)
    except ExpatError:
        logger.warning("Dropping malformed payload (%d chars)", len(payload), exc_info=True)
        return None

    if not isinstance(document, dict):
        return Message()

    navigation: tuple[Node, ...] | None = None
    nav_root = document.get("Navigation")
    if isinstance(nav_root, dict) and nav_root.get("item"):
        navigation = decode_children(nav_root)

    content: tuple[Node, ...] | None = None
    content_root = document.get("Content")
    if isinstance(content_root, dict):
        if content_root.get("item"):
            content = decode_children(content_root)
        else:
            content = (decode_node(content_root),)

    return Message(navigation=navigation, content=content)
