"""Locating the diagram page inside a Visio package."""

from __future__ import annotations

import asyncio
import io
import logging
import zipfile
from typing import Optional

from .config import ConverterConfig
from .errors import MalformedInputError

logger = logging.getLogger(__name__)


def decode_text(data: bytes) -> str:
    """Decode UTF-8 bytes, dropping a byte-order mark and replacing bad sequences."""
    return data.decode('utf-8-sig', errors='replace')


class Archive:
    """Read-only view over an in-memory zip archive."""

    def __init__(self, data: bytes) -> None:
        try:
            self._zip = zipfile.ZipFile(io.BytesIO(data))
        except zipfile.BadZipFile as exc:
            raise MalformedInputError(f'Not a zip archive: {exc}') from exc

    def names(self) -> list[str]:
        """Entry names in archive order, directories excluded."""
        return [info.filename for info in self._zip.infolist() if not info.is_dir()]

    def has(self, name: str) -> bool:
        return name in self._zip.NameToInfo

    async def read_text(self, name: str) -> str:
        """Read one entry and decode it as text."""
        data = await asyncio.to_thread(self._zip.read, name)
        return decode_text(data)

    def close(self) -> None:
        self._zip.close()


async def find_payload(archive: Archive, config: ConverterConfig) -> Optional[str]:
    """Return the text of the diagram page entry, or None if there is none.

    Known page paths are probed first, in order. Failing that, the first
    entry whose name ends in a markup extension is used.
    """
    for name in config.payload_paths:
        if archive.has(name):
            logger.debug('Diagram payload found at %s', name)
            return await archive.read_text(name)

    for name in archive.names():
        if name.lower().endswith(config.markup_extensions):
            logger.debug('Falling back to markup entry %s', name)
            return await archive.read_text(name)

    return None


def _looks_like_markup(data: bytes) -> bool:
    head = data[:512].lstrip(b'\xef\xbb\xbf \t\r\n')
    return head.startswith(b'<')


async def extract_payload(data: bytes, config: ConverterConfig) -> Optional[str]:
    """Extract the diagram markup from raw input bytes.

    Zip packages (.vsdx) are searched with find_payload(). Flat XML diagram
    documents (.vdx, .xml) are returned as they are.
    """
    if not zipfile.is_zipfile(io.BytesIO(data)):
        if _looks_like_markup(data):
            logger.debug('Input is a flat markup document (%d bytes)', len(data))
            return decode_text(data)
        raise MalformedInputError('Input is neither a zip archive nor an XML document')

    archive = Archive(data)
    try:
        return await find_payload(archive, config)
    finally:
        archive.close()
