"""Visio to BPMN conversion engine.

Pipeline:
    bytes -> extract_payload -> normalize_markup -> parse_markup
          -> find_shapes -> assemble (ids, kinds, geometry, flows)
          -> build_tree -> build_markup -> BPMN XML text

The engine keeps configuration only. Every convert() call builds its own
ConversionContext, so one engine can serve concurrent conversions.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from .archive import extract_payload
from .config import ConverterConfig
from .context import ConversionContext
from .document import assemble, build_tree
from .errors import ConversionError, MissingPayloadError
from .markup import build_markup, normalize_markup, parse_markup
from .shapes import RawShape, find_shapes

logger = logging.getLogger(__name__)


@dataclass
class ConversionResult:
    """Output document together with the context that produced it."""

    xml: str
    context: ConversionContext
    shapes: list[RawShape]


class VisioToBpmnConverter:
    """Converts Visio diagrams into BPMN 2.0 XML with diagram interchange."""

    def __init__(self, config: ConverterConfig | None = None) -> None:
        self._config = config or ConverterConfig()

    @property
    def config(self) -> ConverterConfig:
        return self._config

    async def load_document(self, data: bytes) -> dict[str, Any]:
        """Extract, repair and parse the diagram page of a Visio file."""
        payload = await extract_payload(data, self._config)
        if payload is None:
            raise MissingPayloadError('Could not find valid XML content in the Visio file')
        return parse_markup(normalize_markup(payload))

    async def convert_detailed(self, data: bytes) -> ConversionResult:
        """Convert and also return the context, for callers that inspect the result."""
        try:
            document = await self.load_document(data)
            shapes = find_shapes(document)
            logger.debug('Found %d shapes', len(shapes))
            context = assemble(ConversionContext(config=self._config), shapes)
            xml = build_markup(build_tree(context))
        except ConversionError:
            raise
        except Exception as exc:
            raise ConversionError(f'Failed to convert Visio file: {exc}') from exc

        logger.info(
            'Converted %d shapes into %d elements and %d sequence flows',
            len(shapes), len(context.elements), len(context.flows),
        )
        return ConversionResult(xml=xml, context=context, shapes=shapes)

    async def convert(self, data: bytes) -> str:
        """Convert raw Visio file bytes into BPMN XML text.

        Raises:
            MissingPayloadError: The archive has no diagram page.
            MalformedInputError: The input or its page markup cannot be parsed.
            ConversionError: Any other failure while building the document.
        """
        result = await self.convert_detailed(data)
        return result.xml

