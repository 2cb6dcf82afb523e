"""Markup repair, parsing into attributed trees, and serialization.

Parsed trees are plain dicts: attributes are stored under ``attr_prefix +
name``, text content under ``text_key``, child elements under their local
name. A child that occurs more than once becomes a list; an element with
neither attributes nor children collapses to its text.

Trees handed to build_markup() use the same conventions with prefixed tag
names (``bpmn:task``). Namespace declarations are read from the root's
``xmlns:*`` attributes. Lists always mean repeated children.
"""

from __future__ import annotations

import re
from typing import Any

from lxml import etree

from .errors import MalformedInputError

ATTR_PREFIX = '@_'
TEXT_KEY = '#text'
XML_PROLOG = '<?xml version="1.0" encoding="UTF-8"?>'

_NULL_ESCAPE = re.compile(r'&#(?:[xX]0*0|0+);')
_CONTROL_CHARS = re.compile(r'[\x00-\x08\x0b\x0c\x0e-\x1f]')
_BARE_AMPERSAND = re.compile(r'&(?!(?:amp|lt|gt|quot|apos|#\d+|#[xX][0-9a-fA-F]+);)')


def normalize_markup(text: str) -> str:
    """Best-effort repair of common encoding artifacts. Never fails."""
    text = _NULL_ESCAPE.sub('', text)
    text = _CONTROL_CHARS.sub('', text)
    text = _BARE_AMPERSAND.sub('&amp;', text)
    text = text.lstrip('\ufeff \t\r\n')
    if not text.startswith('<?xml'):
        text = XML_PROLOG + text
    return text


# ── Parsing ───────────────────────────────────────────────


def _local_name(tag: str) -> str:
    return tag.rsplit('}', 1)[-1]


def _element_to_value(
    element: etree._Element, attr_prefix: str, text_key: str,
) -> Any:
    node: dict[str, Any] = {}
    for name, value in element.attrib.items():
        node[attr_prefix + _local_name(name)] = value

    pieces = [element.text]
    for child in element:
        pieces.append(child.tail)
        if not isinstance(child.tag, str):
            continue
        key = _local_name(child.tag)
        value = _element_to_value(child, attr_prefix, text_key)
        if key not in node:
            node[key] = value
        elif isinstance(node[key], list):
            node[key].append(value)
        else:
            node[key] = [node[key], value]

    text = ' '.join(p.strip() for p in pieces if p and p.strip())
    if not node:
        return text
    if text:
        node[text_key] = text
    return node


def parse_markup(
    text: str, attr_prefix: str = ATTR_PREFIX, text_key: str = TEXT_KEY,
) -> dict[str, Any]:
    """Parse markup text into an attributed tree keyed by the root's local name."""
    parser = etree.XMLParser(
        encoding='utf-8',
        resolve_entities=False,
        no_network=True,
        remove_comments=True,
        remove_pis=True,
    )
    try:
        root = etree.fromstring(text.encode('utf-8'), parser)
    except etree.XMLSyntaxError as exc:
        raise MalformedInputError(f'Invalid XML: {exc}') from exc
    if root is None:
        raise MalformedInputError('Invalid XML: document is empty')
    return {_local_name(root.tag): _element_to_value(root, attr_prefix, text_key)}


# ── Serialization ─────────────────────────────────────────


def _qualify(name: str, nsmap: dict[str, str]) -> str:
    prefix, sep, local = name.partition(':')
    if sep and prefix in nsmap:
        return f'{{{nsmap[prefix]}}}{local}'
    return name


def _fill_element(
    element: etree._Element,
    node: Any,
    nsmap: dict[str, str],
    attr_prefix: str,
    text_key: str,
) -> None:
    if not isinstance(node, dict):
        element.text = str(node)
        return
    for key, value in node.items():
        if key.startswith(attr_prefix):
            name = key[len(attr_prefix):]
            if name.startswith('xmlns'):
                continue
            element.set(_qualify(name, nsmap), str(value))
        elif key == text_key:
            element.text = str(value)
        else:
            children = value if isinstance(value, list) else [value]
            for child in children:
                sub = etree.SubElement(element, _qualify(key, nsmap))
                _fill_element(sub, child, nsmap, attr_prefix, text_key)


def build_markup(
    tree: dict[str, Any], attr_prefix: str = ATTR_PREFIX, text_key: str = TEXT_KEY,
) -> str:
    """Serialize an attributed tree with a single root into pretty-printed XML."""
    if len(tree) != 1:
        raise ValueError(f'Expected a single root element, got {len(tree)}')
    (root_name, root_node), = tree.items()

    nsmap: dict[str, str] = {}
    for key, value in root_node.items():
        if key.startswith(attr_prefix + 'xmlns:'):
            nsmap[key[len(attr_prefix + 'xmlns:'):]] = value

    root = etree.Element(_qualify(root_name, nsmap), nsmap=nsmap)
    _fill_element(root, root_node, nsmap, attr_prefix, text_key)
    return etree.tostring(
        root, pretty_print=True, xml_declaration=True, encoding='UTF-8',
    ).decode('utf-8')
