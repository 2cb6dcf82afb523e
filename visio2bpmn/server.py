"""HTTP conversion service.

Endpoints:
    POST /convert  — Visio file in the body (raw, or multipart field ``file``);
                     responds with the BPMN XML as an attachment
    GET  /health   — Liveness probe
"""

from __future__ import annotations

import asyncio
import logging
import signal

from aiohttp import web

from .config import AppConfig
from .converter import VisioToBpmnConverter
from .errors import ConversionError, MalformedInputError, MissingPayloadError

logger = logging.getLogger(__name__)

DOWNLOAD_NAME = 'converted_bpmn.xml'


class ConversionServer:
    """HTTP server that converts uploaded Visio files to BPMN."""

    def __init__(self, config: AppConfig) -> None:
        self._config = config
        self._converter = VisioToBpmnConverter(config.converter)
        self._app = web.Application(client_max_size=config.server.max_upload_bytes)
        self._app.router.add_post('/convert', self._handle_convert)
        self._app.router.add_get('/health', self._handle_health)
        self._runner: web.AppRunner | None = None

    # ── Lifecycle ─────────────────────────────────────────

    async def start(self) -> None:
        """Start the HTTP server."""
        self._runner = web.AppRunner(self._app)
        await self._runner.setup()
        site = web.TCPSite(
            self._runner,
            self._config.server.host,
            self._config.server.port,
        )
        await site.start()
        logger.info(
            "Conversion server listening on %s:%d",
            self._config.server.host,
            self._config.server.port,
        )

    async def stop(self) -> None:
        """Gracefully shutdown the server."""
        if self._runner:
            await self._runner.cleanup()
            self._runner = None
            logger.info("Conversion server stopped")

    # ── Health check ──────────────────────────────────────

    async def _handle_health(self, request: web.Request) -> web.Response:
        return web.json_response({"status": "ok"})

    # ── Conversion ────────────────────────────────────────

    async def _read_upload(self, request: web.Request) -> bytes:
        """Return the uploaded file bytes from a multipart form or the raw body."""
        if request.content_type.startswith('multipart/'):
            reader = await request.multipart()
            async for part in reader:
                if getattr(part, 'name', None) == 'file':
                    return bytes(await part.read())
            return b''
        return await request.read()

    async def _handle_convert(self, request: web.Request) -> web.Response:
        """Convert the uploaded Visio file and return it as a BPMN download."""
        data = await self._read_upload(request)
        if not data:
            return web.json_response({"error": "Please upload a Visio file"}, status=400)

        logger.info("Conversion request: %d bytes", len(data))
        try:
            xml = await self._converter.convert(data)
        except MissingPayloadError as exc:
            logger.warning("No diagram page in upload: %s", exc)
            return web.json_response({"error": str(exc)}, status=422)
        except MalformedInputError as exc:
            logger.warning("Malformed upload: %s", exc)
            return web.json_response({"error": str(exc)}, status=400)
        except ConversionError as exc:
            logger.error("Conversion failed: %s", exc)
            return web.json_response({"error": str(exc)}, status=500)

        return web.Response(
            text=xml,
            content_type='application/xml',
            headers={'Content-Disposition': f'attachment; filename="{DOWNLOAD_NAME}"'},
        )


async def serve(config: AppConfig) -> None:
    """Run the server until SIGINT/SIGTERM."""
    loop = asyncio.get_running_loop()
    stop_event = asyncio.Event()

    def _shutdown() -> None:
        logger.info("Shutdown signal received")
        stop_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, _shutdown)

    server = ConversionServer(config)
    await server.start()
    try:
        await stop_event.wait()
    finally:
        await server.stop()


def main() -> None:
    config = AppConfig.from_env()
    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s %(levelname)-8s [%(name)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    asyncio.run(serve(config))


if __name__ == "__main__":
    main()
