"""Tests for visio2bpmn.document — participant, elements and the output tree."""

from __future__ import annotations

from unittest.mock import patch

import pytest

from visio2bpmn.config import ConverterConfig
from visio2bpmn.context import ConversionContext
from visio2bpmn.document import (
    DEFAULT_POOL_BOUNDS,
    EXPORTER,
    EXPORTER_VERSION,
    TARGET_NAMESPACE,
    add_element,
    assemble,
    build_tree,
    classify_shapes,
    ensure_participant,
)
from visio2bpmn.geometry import Bounds
from visio2bpmn.shapes import ElementKind, RawShape, classify


def _shape(shape_id: str, text: str, **cells: str) -> RawShape:
    return RawShape({
        "@_ID": shape_id,
        "Text": text,
        "Cell": [{"@_N": name, "@_V": value} for name, value in cells.items()],
    })


@pytest.fixture
def context() -> ConversionContext:
    return ConversionContext(config=ConverterConfig())


# ── ConversionContext ─────────────────────────────────────


def test_context_allocates_document_ids_once(context: ConversionContext) -> None:
    assert context.collaboration_id.startswith("Collaboration_")
    assert context.participant_id.startswith("Participant_")
    assert context.process_id.startswith("Process_")
    assert context.definitions_id.startswith("Definitions_")
    assert len(context.ids.issued) == 6


def test_contexts_do_not_share_state() -> None:
    first = ConversionContext(config=ConverterConfig())
    second = ConversionContext(config=ConverterConfig())
    assert first.ids is not second.ids
    assert first.elements is not second.elements
    assert first.process_id != second.process_id


# ── ensure_participant ────────────────────────────────────


def test_default_participant(context: ConversionContext) -> None:
    participant = ensure_participant(context, classify_shapes([_shape("1", "Start")]))
    assert participant.name == "Default Pool"
    assert participant.id == context.participant_id
    assert participant.process_ref == context.process_id
    assert len(context.shapes) == 1
    assert context.shapes[0].element_ref == context.participant_id
    assert context.shapes[0].bounds == DEFAULT_POOL_BOUNDS == Bounds(0, 0, 600, 400)


def test_first_pool_becomes_participant(context: ConversionContext) -> None:
    shapes = [
        _shape("1", "Task"),
        _shape("2", "Sales Pool", PinX="1", PinY="2", Width="800", Height="300"),
        _shape("3", "Backup Pool"),
    ]
    participant = ensure_participant(context, classify_shapes(shapes))
    assert participant.name == "Sales Pool"
    assert context.shapes[0].bounds == Bounds(100, 200, 800, 300)


def test_participant_created_once(context: ConversionContext) -> None:
    first = ensure_participant(context, [])
    second = ensure_participant(context, classify_shapes([_shape("1", "Pool")]))
    assert first is second
    assert len(context.shapes) == 1


def test_custom_default_pool_name() -> None:
    context = ConversionContext(config=ConverterConfig(default_pool_name="Company"))
    assert ensure_participant(context, []).name == "Company"


# ── add_element ───────────────────────────────────────────


def test_add_element_appends_element_and_shape(context: ConversionContext) -> None:
    ensure_participant(context, [])
    element = add_element(context, ElementKind.TASK, _shape("5", "Review", PinX="2", PinY="3"))
    assert element.id.startswith("task_")
    assert element.name == "Review"
    assert context.elements == [element]
    assert context.shapes[-1].element_ref == element.id
    assert context.shapes[-1].bounds == Bounds(200, 300, 100, 80)
    assert context.element_ids_by_shape == {"5": element.id}


def test_lanes_share_one_lane_set(context: ConversionContext) -> None:
    ensure_participant(context, [])
    assert context.lane_set_id is None
    add_element(context, ElementKind.LANE, _shape("1", "Lane A"))
    lane_set_id = context.lane_set_id
    add_element(context, ElementKind.LANE, _shape("2", "Lane B"))
    assert lane_set_id is not None
    assert lane_set_id.startswith("LaneSet_")
    assert context.lane_set_id == lane_set_id
    assert [lane.name for lane in context.lanes] == ["Lane A", "Lane B"]


def test_add_element_rejects_participant(context: ConversionContext) -> None:
    ensure_participant(context, [])
    with pytest.raises(ValueError, match="ensure_participant"):
        add_element(context, ElementKind.PARTICIPANT, _shape("1", "Pool"))


def test_add_element_requires_participant_first(context: ConversionContext) -> None:
    with pytest.raises(ValueError, match="must run before"):
        add_element(context, ElementKind.TASK, _shape("1", "Task"))


# ── assemble + build_tree ─────────────────────────────────


def test_assemble_skips_pool_shapes(context: ConversionContext) -> None:
    shapes = [_shape("1", "Start"), _shape("2", "Pool"), _shape("3", "Work"), _shape("4", "End")]
    assemble(context, shapes)
    assert [e.kind for e in context.elements] == [
        ElementKind.START_EVENT, ElementKind.TASK, ElementKind.END_EVENT,
    ]
    assert context.participant is not None
    assert context.participant.name == "Pool"
    # participant + one shape per element
    assert len(context.shapes) == 4


def test_assemble_classifies_each_shape_once(context: ConversionContext) -> None:
    shapes = [_shape("1", "Start"), _shape("2", "Pool"), _shape("3", "Lane"), _shape("4", "End")]
    with patch("visio2bpmn.document.classify", wraps=classify) as spy:
        assemble(context, shapes)

    assert spy.call_count == len(shapes)
    assert [kind for _, kind in context.classified] == [
        ElementKind.START_EVENT, ElementKind.PARTICIPANT, ElementKind.LANE, ElementKind.END_EVENT,
    ]
    assert [shape for shape, _ in context.classified] == shapes


def test_tree_structure(context: ConversionContext) -> None:
    shapes = [
        _shape("1", "Start"),
        _shape("2", "Review task"),
        _shape("3", "Lane 1"),
        _shape("4", "Check gateway"),
        _shape("5", "Approve task"),
        _shape("6", "End"),
    ]
    tree = build_tree(assemble(context, shapes))
    definitions = tree["bpmn:definitions"]

    assert definitions["@_id"] == context.definitions_id
    assert definitions["@_targetNamespace"] == TARGET_NAMESPACE
    assert definitions["@_exporter"] == EXPORTER
    assert definitions["@_exporterVersion"] == EXPORTER_VERSION
    assert definitions["@_xmlns:bpmn"] == "http://www.omg.org/spec/BPMN/20100524/MODEL"

    collaboration = definitions["bpmn:collaboration"]
    assert collaboration["@_id"] == context.collaboration_id
    assert collaboration["bpmn:participant"] == [{
        "@_id": context.participant_id,
        "@_name": "Default Pool",
        "@_processRef": context.process_id,
    }]

    process = definitions["bpmn:process"]
    assert process["@_isExecutable"] == "false"
    keys = [k for k in process if not k.startswith("@_")]
    assert keys == ["bpmn:laneSet", "bpmn:startEvent", "bpmn:task", "bpmn:exclusiveGateway", "bpmn:endEvent"]
    assert [lane["@_name"] for lane in process["bpmn:laneSet"]["bpmn:lane"]] == ["Lane 1"]
    assert [t["@_name"] for t in process["bpmn:task"]] == ["Review task", "Approve task"]
    assert "bpmn:sequenceFlow" not in process

    plane = definitions["bpmndi:BPMNDiagram"]["bpmndi:BPMNPlane"]
    assert plane["@_bpmnElement"] == context.collaboration_id
    refs = [s["@_bpmnElement"] for s in plane["bpmndi:BPMNShape"]]
    assert refs[0] == context.participant_id
    assert refs[1:] == [e.id for e in context.elements]
    assert plane["bpmndi:BPMNShape"][1]["dc:Bounds"] == {
        "@_x": "0", "@_y": "0", "@_width": "100", "@_height": "80",
    }
    assert "bpmndi:BPMNEdge" not in plane


def test_build_tree_requires_participant(context: ConversionContext) -> None:
    with pytest.raises(ValueError, match="participant"):
        build_tree(context)
