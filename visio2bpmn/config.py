"""Converter and HTTP service configuration loaded from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from pathlib import Path

from dotenv import load_dotenv

load_dotenv(Path(__file__).resolve().parent.parent / '.env.visio2bpmn')

DEFAULT_PAYLOAD_PATHS = (
    'visio/pages/page1.xml',
    'word/document.xml',
    'content.xml',
)


@dataclass(frozen=True)
class ConverterConfig:
    """Settings of the conversion engine."""

    scale_factor: float = 100.0
    translate_connector_refs: bool = False
    payload_paths: tuple[str, ...] = DEFAULT_PAYLOAD_PATHS
    markup_extensions: tuple[str, ...] = ('.xml',)
    default_pool_name: str = 'Default Pool'


@dataclass(frozen=True)
class ServerConfig:
    """HTTP conversion service settings."""

    host: str = '0.0.0.0'
    port: int = 9002
    max_upload_bytes: int = 20 * 1024 * 1024


@dataclass(frozen=True)
class AppConfig:
    """Root configuration assembled from environment variables."""

    converter: ConverterConfig = field(default_factory=ConverterConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    log_level: str = 'INFO'

    @classmethod
    def from_env(cls) -> AppConfig:
        """Build configuration from environment variables."""
        return cls(
            converter=ConverterConfig(
                scale_factor=float(os.getenv('VISIO2BPMN_SCALE_FACTOR', '100')),
                translate_connector_refs=(
                    os.getenv('VISIO2BPMN_TRANSLATE_REFS', 'false').lower() == 'true'
                ),
            ),
            server=ServerConfig(
                host=os.getenv('VISIO2BPMN_HOST', '0.0.0.0'),
                port=int(os.getenv('VISIO2BPMN_PORT', '9002')),
                max_upload_bytes=int(os.getenv('VISIO2BPMN_MAX_UPLOAD_MB', '20')) * 1024 * 1024,
            ),
            log_level=os.getenv('LOG_LEVEL', 'INFO').upper(),
        )

    def with_converter(self, **changes) -> AppConfig:
        """Return a copy with converter settings overridden."""
        return replace(self, converter=replace(self.converter, **changes))
