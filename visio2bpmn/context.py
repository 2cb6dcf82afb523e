"""Per-conversion state and the records it collects."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from .config import ConverterConfig
from .geometry import Bounds, Point
from .ids import IdAllocator
from .shapes import ElementKind, RawShape


@dataclass(frozen=True)
class ProcessElement:
    id: str
    name: str
    kind: ElementKind


@dataclass(frozen=True)
class Participant:
    id: str
    name: str
    process_ref: str


@dataclass(frozen=True)
class DiagramShape:
    id: str
    element_ref: str
    bounds: Bounds


@dataclass(frozen=True)
class SequenceFlow:
    id: str
    source_ref: str
    target_ref: str


@dataclass(frozen=True)
class DiagramEdge:
    id: str
    flow_ref: str
    waypoints: tuple[Point, Point]


@dataclass
class ConversionContext:
    """State of a single conversion. Never shared between conversions."""

    config: ConverterConfig
    ids: IdAllocator = field(default_factory=IdAllocator)
    definitions_id: str = field(init=False)
    collaboration_id: str = field(init=False)
    participant_id: str = field(init=False)
    process_id: str = field(init=False)
    diagram_id: str = field(init=False)
    plane_id: str = field(init=False)
    lane_set_id: Optional[str] = None
    participant: Optional[Participant] = None
    elements: list[ProcessElement] = field(default_factory=list)
    shapes: list[DiagramShape] = field(default_factory=list)
    flows: list[SequenceFlow] = field(default_factory=list)
    edges: list[DiagramEdge] = field(default_factory=list)
    element_ids_by_shape: dict[str, str] = field(default_factory=dict)
    classified: list[tuple[RawShape, ElementKind]] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.definitions_id = self.ids.allocate('Definitions')
        self.collaboration_id = self.ids.allocate('Collaboration')
        self.participant_id = self.ids.allocate('Participant')
        self.process_id = self.ids.allocate('Process')
        self.diagram_id = self.ids.allocate('BPMNDiagram')
        self.plane_id = self.ids.allocate('BPMNPlane')

    @property
    def lanes(self) -> list[ProcessElement]:
        return [e for e in self.elements if e.kind is ElementKind.LANE]

    def add_shape(self, element_ref: str, bounds: Bounds) -> DiagramShape:
        shape = DiagramShape(
            id=self.ids.allocate('BPMNShape'), element_ref=element_ref, bounds=bounds,
        )
        self.shapes.append(shape)
        return shape
