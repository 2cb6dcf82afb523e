"""BPMN document assembly.

A ConversionContext holds everything produced by one conversion: generated
ids, the participant, process elements, diagram shapes, sequence flows and
edges. The assembler functions only append to it. build_tree() turns the
finished context into the attributed tree that markup.build_markup()
serializes.
"""

from __future__ import annotations

import logging
from typing import Any

from .connectors import resolve_connectors
from .context import ConversionContext, Participant, ProcessElement, SequenceFlow
from .geometry import Bounds, shape_bounds
from .markup import ATTR_PREFIX
from .shapes import ElementKind, RawShape, classify

logger = logging.getLogger(__name__)

BPMN_NS = 'http://www.omg.org/spec/BPMN/20100524/MODEL'
BPMNDI_NS = 'http://www.omg.org/spec/BPMN/20100524/DI'
DC_NS = 'http://www.omg.org/spec/DD/20100524/DC'
DI_NS = 'http://www.omg.org/spec/DD/20100524/DI'
XSI_NS = 'http://www.w3.org/2001/XMLSchema-instance'

TARGET_NAMESPACE = 'http://bpmn.io/schema/bpmn'
EXPORTER = 'bpmn-js (https://demo.bpmn.io)'
EXPORTER_VERSION = '9.0.3'

DEFAULT_POOL_BOUNDS = Bounds(x=0, y=0, width=600, height=400)


# ── Assembly ──────────────────────────────────────────────


def classify_shapes(shapes: list[RawShape]) -> list[tuple[RawShape, ElementKind]]:
    """Pair every shape with its BPMN kind, in page order."""
    classified = []
    for index, shape in enumerate(shapes):
        kind = classify(shape)
        logger.debug('Shape %d (%r) classified as %s', index, shape.text, kind.value)
        classified.append((shape, kind))
    return classified


def ensure_participant(
    context: ConversionContext, classified: list[tuple[RawShape, ElementKind]],
) -> Participant:
    """Create the single participant, from the first pool shape or a default."""
    if context.participant is not None:
        return context.participant

    pool = next((s for s, kind in classified if kind is ElementKind.PARTICIPANT), None)
    if pool is None:
        logger.warning('No pool/participant found. Creating a default one.')
        name = context.config.default_pool_name
        bounds = DEFAULT_POOL_BOUNDS
    else:
        name = pool.text
        bounds = shape_bounds(pool, context.config.scale_factor)

    context.participant = Participant(
        id=context.participant_id, name=name, process_ref=context.process_id,
    )
    context.add_shape(context.participant_id, bounds)
    return context.participant


def add_element(context: ConversionContext, kind: ElementKind, shape: RawShape) -> ProcessElement:
    """Append a process element and its diagram shape for a non-participant shape."""
    if kind is ElementKind.PARTICIPANT:
        raise ValueError('Participants are created by ensure_participant()')
    if context.participant is None:
        raise ValueError('ensure_participant() must run before elements are added')

    element = ProcessElement(
        id=context.ids.allocate(kind.value), name=shape.text, kind=kind,
    )
    if kind is ElementKind.LANE and context.lane_set_id is None:
        context.lane_set_id = context.ids.allocate('LaneSet')

    context.elements.append(element)
    context.add_shape(element.id, shape_bounds(shape, context.config.scale_factor))
    if shape.shape_id:
        context.element_ids_by_shape.setdefault(shape.shape_id, element.id)
    return element


def add_sequence_flows(context: ConversionContext, shapes: list[RawShape]) -> list[SequenceFlow]:
    """Derive sequence flows from the connection records, after all elements exist."""
    return resolve_connectors(context, shapes)


def assemble(context: ConversionContext, shapes: list[RawShape]) -> ConversionContext:
    """Run participant, element and flow assembly over the page's shapes."""
    context.classified = classify_shapes(shapes)
    ensure_participant(context, context.classified)
    for shape, kind in context.classified:
        if kind is not ElementKind.PARTICIPANT:
            add_element(context, kind, shape)
    add_sequence_flows(context, shapes)
    return context


# ── Tree rendering ────────────────────────────────────────


def _attrs(**values: Any) -> dict[str, str]:
    return {ATTR_PREFIX + name: str(value) for name, value in values.items()}


def _bounds_node(bounds: Bounds) -> dict[str, str]:
    return _attrs(x=bounds.x, y=bounds.y, width=bounds.width, height=bounds.height)


def _process_node(context: ConversionContext) -> dict[str, Any]:
    process: dict[str, Any] = _attrs(id=context.process_id, isExecutable='false')

    lanes = context.lanes
    if context.lane_set_id is not None:
        process['bpmn:laneSet'] = {
            **_attrs(id=context.lane_set_id),
            'bpmn:lane': [_attrs(id=lane.id, name=lane.name) for lane in lanes],
        }

    for element in context.elements:
        if element.kind is ElementKind.LANE:
            continue
        process.setdefault(element.kind.tag, []).append(
            _attrs(id=element.id, name=element.name)
        )

    if context.flows:
        process['bpmn:sequenceFlow'] = [
            _attrs(id=flow.id, sourceRef=flow.source_ref, targetRef=flow.target_ref)
            for flow in context.flows
        ]
    return process


def _plane_node(context: ConversionContext) -> dict[str, Any]:
    plane: dict[str, Any] = _attrs(id=context.plane_id, bpmnElement=context.collaboration_id)
    plane['bpmndi:BPMNShape'] = [
        {**_attrs(id=shape.id, bpmnElement=shape.element_ref), 'dc:Bounds': _bounds_node(shape.bounds)}
        for shape in context.shapes
    ]
    if context.edges:
        plane['bpmndi:BPMNEdge'] = [
            {
                **_attrs(id=edge.id, bpmnElement=edge.flow_ref),
                'di:waypoint': [_attrs(x=p.x, y=p.y) for p in edge.waypoints],
            }
            for edge in context.edges
        ]
    return plane


def build_tree(context: ConversionContext) -> dict[str, Any]:
    """Render the context as a ``bpmn:definitions`` attributed tree."""
    if context.participant is None:
        raise ValueError('Cannot build a document without a participant')
    participant = context.participant

    definitions: dict[str, Any] = {
        **_attrs(**{
            'xmlns:xsi': XSI_NS,
            'xmlns:bpmn': BPMN_NS,
            'xmlns:bpmndi': BPMNDI_NS,
            'xmlns:dc': DC_NS,
            'xmlns:di': DI_NS,
        }),
        **_attrs(
            id=context.definitions_id,
            targetNamespace=TARGET_NAMESPACE,
            exporter=EXPORTER,
            exporterVersion=EXPORTER_VERSION,
        ),
        'bpmn:collaboration': {
            **_attrs(id=context.collaboration_id),
            'bpmn:participant': [
                _attrs(id=participant.id, name=participant.name, processRef=participant.process_ref),
            ],
        },
        'bpmn:process': _process_node(context),
        'bpmndi:BPMNDiagram': {
            **_attrs(id=context.diagram_id),
            'bpmndi:BPMNPlane': _plane_node(context),
        },
    }
    return {'bpmn:definitions': definitions}
