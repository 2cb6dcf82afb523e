"""Command line entry point.

Usage:
    visio2bpmn diagram.vsdx                     # writes diagram.bpmn
    visio2bpmn diagram.vsdx out.bpmn --scale 96 -v
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from lxml import etree

from .config import AppConfig
from .converter import VisioToBpmnConverter
from .errors import ConversionError


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='visio2bpmn',
        description='Convert a Visio diagram (.vsdx, .vdx, .xml) to BPMN 2.0 XML',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog='Example: visio2bpmn process.vsdx process.bpmn --scale 100',
    )
    parser.add_argument('input', help='Input Visio file path')
    parser.add_argument('output', nargs='?', help='Output .bpmn file path (default: input with .bpmn)')
    parser.add_argument('--scale', '-s', type=float, default=None,
                        help='Scale factor applied to shape positions (default: 100)')
    parser.add_argument('--translate-refs', action='store_true',
                        help='Map connector FromSheet/ToSheet to generated element ids')
    parser.add_argument('--verbose', '-v', action='store_true', help='Show shapes and their BPMN kinds')
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    config = AppConfig.from_env()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else config.log_level,
        format='%(asctime)s %(levelname)-8s [%(name)s] %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S',
    )

    overrides: dict = {}
    if args.scale is not None:
        overrides['scale_factor'] = args.scale
    if args.translate_refs:
        overrides['translate_connector_refs'] = True
    if overrides:
        config = config.with_converter(**overrides)

    input_path = Path(args.input)
    output_path = Path(args.output) if args.output else input_path.with_suffix('.bpmn')

    try:
        data = input_path.read_bytes()
    except OSError as exc:
        print(f'Error: cannot read {input_path}: {exc}', file=sys.stderr)
        return 1

    converter = VisioToBpmnConverter(config.converter)
    try:
        result = asyncio.run(converter.convert_detailed(data))
    except ConversionError as exc:
        print(f'Error: {exc}', file=sys.stderr)
        return 1

    context = result.context
    print(f'Extracted: {len(result.shapes)} shapes')
    print(f'Generated: {len(context.elements)} elements, {len(context.flows)} sequence flows')

    if args.verbose:
        print('\n--- Shapes ---')
        for shape, kind in context.classified:
            print(f'  [{kind.value:16s}] id={shape.shape_id or "-":>4s}  text="{shape.text}"')
        print('\n--- Sequence flows ---')
        for flow in context.flows:
            print(f'  {flow.source_ref} -> {flow.target_ref}  ({flow.id})')

    try:
        output_path.write_text(result.xml, encoding='utf-8')
    except OSError as exc:
        print(f'Error: cannot write {output_path}: {exc}', file=sys.stderr)
        return 1

    try:
        etree.fromstring(result.xml.encode('utf-8'))
        print(f'\nOutput: {output_path} (valid XML)')
    except etree.XMLSyntaxError as exc:
        print(f'\nWARNING: XML validation failed: {exc}')

    print('Done!')
    return 0


if __name__ == '__main__':
    sys.exit(main())
