"""Sequence flows and their diagram edges from shape connection records."""

from __future__ import annotations

import logging

from .context import ConversionContext, DiagramEdge, SequenceFlow
from .geometry import connector_waypoints
from .markup import ATTR_PREFIX
from .shapes import RawShape

logger = logging.getLogger(__name__)


def _reference(context: ConversionContext, value: object) -> str:
    ref = '' if value is None else str(value)
    if context.config.translate_connector_refs:
        return context.element_ids_by_shape.get(ref, ref)
    return ref


def resolve_connectors(context: ConversionContext, shapes: list[RawShape]) -> list[SequenceFlow]:
    """Append one sequence flow and one edge per connection record.

    ``FromSheet``/``ToSheet`` are copied into sourceRef/targetRef as they are,
    unless translate_connector_refs maps them to generated element ids. Edge
    waypoints come from the begin/end points of the shape carrying the records.
    """
    created: list[SequenceFlow] = []
    for shape in shapes:
        records = shape.connects
        if not records:
            continue
        begin, end = connector_waypoints(shape, context.config.scale_factor)
        for record in records:
            flow = SequenceFlow(
                id=context.ids.allocate('SequenceFlow'),
                source_ref=_reference(context, record.get(ATTR_PREFIX + 'FromSheet')),
                target_ref=_reference(context, record.get(ATTR_PREFIX + 'ToSheet')),
            )
            edge = DiagramEdge(
                id=context.ids.allocate('SequenceFlowEdge'),
                flow_ref=flow.id,
                waypoints=(begin, end),
            )
            context.flows.append(flow)
            context.edges.append(edge)
            created.append(flow)
            logger.debug('Sequence flow %s: %s -> %s', flow.id, flow.source_ref, flow.target_ref)

    if context.config.translate_connector_refs:
        known = {e.id for e in context.elements}
        dangling = [f.id for f in created if f.source_ref not in known or f.target_ref not in known]
        if dangling:
            logger.warning('%d sequence flow(s) reference unknown shapes', len(dangling))
    return created
