"""Shape extraction from parsed Visio pages and BPMN kind classification."""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional

from .markup import ATTR_PREFIX, TEXT_KEY

# Known routes from the document root to the shape list.
SHAPE_PATHS = (
    ('PageContents', 'Shapes', 'Shape'),
    ('VisioDocument', 'Pages', 'Page', 'Shapes', 'Shape'),
)

# Geometry containers of the 2003 XML drawing format.
XFORM_SECTIONS = ('XForm', 'XForm1D')


def as_list(value: Any) -> list:
    """Repeated children come back as a single node or a list; always return a list."""
    if value is None or value == '':
        return []
    if isinstance(value, list):
        return value
    return [value]


def _to_float(value: Any) -> Optional[float]:
    if isinstance(value, dict):
        value = value.get(ATTR_PREFIX + 'V', value.get(TEXT_KEY))
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


@dataclass(frozen=True)
class RawShape:
    """Read-only view over one parsed ``Shape`` node."""

    node: dict[str, Any]

    @property
    def shape_id(self) -> str:
        return str(self.node.get(ATTR_PREFIX + 'ID', ''))

    @property
    def text(self) -> str:
        """Display text of the shape, or an empty string."""
        text = self.node.get('Text')
        if isinstance(text, str):
            return text
        if not isinstance(text, dict):
            return ''
        runs = text.get('Cp', text.get('cp'))
        if isinstance(runs, str) and runs:
            return runs
        if isinstance(runs, list):
            parts = [_run_text(run) for run in runs]
            joined = ' '.join(p for p in parts if p)
            if joined:
                return joined
        inner = text.get(TEXT_KEY)
        if isinstance(inner, str):
            return inner
        return ''

    @property
    def cells(self) -> dict[str, Any]:
        """Cell values by name (``N`` attribute to ``V`` attribute)."""
        result: dict[str, Any] = {}
        for cell in as_list(self.node.get('Cell')):
            if isinstance(cell, dict) and ATTR_PREFIX + 'N' in cell:
                result[cell[ATTR_PREFIX + 'N']] = cell.get(ATTR_PREFIX + 'V')
        return result

    @property
    def connects(self) -> list[dict[str, Any]]:
        """Connection records declared on this shape."""
        connects = self.node.get('Connects')
        if not isinstance(connects, dict):
            return []
        return [c for c in as_list(connects.get('Connect')) if isinstance(c, dict)]

    def cell_float(self, name: str) -> Optional[float]:
        """Numeric value of a cell, or None when absent or not a number.

        Falls back to the ``XForm``/``XForm1D`` elements that flat .vdx
        documents use instead of ``Cell`` records.
        """
        value = _to_float(self.cells.get(name))
        if value is not None:
            return value
        for section in XFORM_SECTIONS:
            xform = self.node.get(section)
            if isinstance(xform, dict) and name in xform:
                value = _to_float(xform[name])
                if value is not None:
                    return value
        return None

    def number(self, name: str) -> Optional[float]:
        """Numeric value from a cell, falling back to a plain field of the shape."""
        value = self.cell_float(name)
        if value is not None:
            return value
        raw = self.node.get(name, self.node.get(ATTR_PREFIX + name))
        return _to_float(raw)


def _run_text(run: Any) -> str:
    if isinstance(run, str):
        return run
    if isinstance(run, dict) and isinstance(run.get(TEXT_KEY), str):
        return run[TEXT_KEY]
    return ''


def find_shapes(document: dict[str, Any]) -> list[RawShape]:
    """Return the page's shapes in document order; empty if the page has none."""
    for path in SHAPE_PATHS:
        node: Any = document
        for step in path:
            if isinstance(node, list):
                # Several pages: only the first one is converted.
                node = node[0] if node else None
            if not isinstance(node, dict) or step not in node:
                node = None
                break
            node = node[step]
        if node is not None:
            return [RawShape(s) for s in as_list(node) if isinstance(s, dict)]
    return []


# ── Classification ────────────────────────────────────────


class ElementKind(str, Enum):
    """BPMN element kinds a shape can turn into. Values are BPMN tag names."""

    START_EVENT = 'startEvent'
    END_EVENT = 'endEvent'
    EXCLUSIVE_GATEWAY = 'exclusiveGateway'
    TASK = 'task'
    SUB_PROCESS = 'subProcess'
    LANE = 'lane'
    PARTICIPANT = 'participant'

    @property
    def tag(self) -> str:
        return f'bpmn:{self.value}'


def _contains(*keywords: str) -> Callable[[str], bool]:
    return lambda text: any(keyword in text for keyword in keywords)


# Evaluated top to bottom, first match wins. Text is lower-cased first.
CLASSIFICATION_RULES: tuple[tuple[Callable[[str], bool], ElementKind], ...] = (
    (_contains('start'), ElementKind.START_EVENT),
    (_contains('end'), ElementKind.END_EVENT),
    (_contains('gateway'), ElementKind.EXCLUSIVE_GATEWAY),
    (_contains('task', 'activity'), ElementKind.TASK),
    (_contains('subprocess'), ElementKind.SUB_PROCESS),
    (_contains('lane'), ElementKind.LANE),
    (_contains('pool'), ElementKind.PARTICIPANT),
)
DEFAULT_KIND = ElementKind.TASK


def classify_text(text: str) -> ElementKind:
    lowered = text.lower()
    for matches, kind in CLASSIFICATION_RULES:
        if matches(lowered):
            return kind
    return DEFAULT_KIND


def classify(shape: RawShape) -> ElementKind:
    """Decide the BPMN kind of a shape from its display text."""
    return classify_text(shape.text)
