"""Shared fixtures for converter tests."""

from __future__ import annotations

import io
import zipfile
from typing import Callable, Optional
from xml.sax.saxutils import escape, quoteattr

import pytest

from visio2bpmn.config import AppConfig, ConverterConfig, ServerConfig
from visio2bpmn.converter import VisioToBpmnConverter

VISIO_NS = "http://schemas.microsoft.com/office/visio/2012/main"
PAGE_PATH = "visio/pages/page1.xml"


def shape_xml(
    shape_id: int,
    text: Optional[str] = None,
    cells: Optional[dict[str, float]] = None,
    connects: Optional[list[tuple[str, str]]] = None,
) -> str:
    """Markup for one Visio ``Shape`` element."""
    parts = [f'<Shape ID="{shape_id}" Type="Shape">']
    for name, value in (cells or {}).items():
        parts.append(f'<Cell N={quoteattr(name)} V="{value}"/>')
    if text is not None:
        parts.append(f'<Text><cp IX="0"/>{escape(text)}</Text>')
    if connects:
        parts.append("<Connects>")
        for source, target in connects:
            parts.append(f"<Connect FromSheet={quoteattr(source)} ToSheet={quoteattr(target)}/>")
        parts.append("</Connects>")
    parts.append("</Shape>")
    return "".join(parts)


def page_xml(*shapes: str, prolog: bool = True) -> str:
    """Markup for a ``PageContents`` document holding the given shapes."""
    head = '<?xml version="1.0" encoding="UTF-8"?>' if prolog else ""
    return f'{head}<PageContents xmlns="{VISIO_NS}"><Shapes>{"".join(shapes)}</Shapes></PageContents>'


def zip_bytes(entries: dict[str, str]) -> bytes:
    """In-memory zip archive with the given text entries, in order."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as zf:
        for name, content in entries.items():
            zf.writestr(name, content)
    return buffer.getvalue()


@pytest.fixture
def make_shape() -> Callable[..., str]:
    return shape_xml


@pytest.fixture
def make_page() -> Callable[..., str]:
    return page_xml


@pytest.fixture
def make_vsdx() -> Callable[..., bytes]:
    def _make(*shapes: str, path: str = PAGE_PATH) -> bytes:
        return zip_bytes({
            "[Content_Types].xml": '<?xml version="1.0"?><Types/>',
            path: page_xml(*shapes),
        })
    return _make


@pytest.fixture
def make_zip() -> Callable[[dict[str, str]], bytes]:
    return zip_bytes


@pytest.fixture
def converter_config() -> ConverterConfig:
    return ConverterConfig(scale_factor=100.0)


@pytest.fixture
def converter(converter_config: ConverterConfig) -> VisioToBpmnConverter:
    return VisioToBpmnConverter(converter_config)


@pytest.fixture
def app_config(converter_config: ConverterConfig) -> AppConfig:
    return AppConfig(
        converter=converter_config,
        server=ServerConfig(host="127.0.0.1", port=9002, max_upload_bytes=1024 * 1024),
        log_level="DEBUG",
    )
