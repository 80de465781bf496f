"""Prometheus pull endpoint serving the master state collector."""

from __future__ import annotations

import logging
import threading
from wsgiref.simple_server import WSGIServer

from prometheus_client import CollectorRegistry, generate_latest, start_http_server
from prometheus_client.registry import Collector

from ..config import ServerConfig

logger = logging.getLogger(__name__)


class PrometheusExporter:
    """Serves a collector on its own registry over HTTP.

    Every incoming scrape runs one collection cycle; nothing is cached
    between scrapes.
    """

    def __init__(self, config: ServerConfig, collector: Collector) -> None:
        self._config = config
        self._registry = CollectorRegistry()
        self._registry.register(collector)
        self._server: WSGIServer | None = None
        self._thread: threading.Thread | None = None

    @property
    def registry(self) -> CollectorRegistry:
        return self._registry

    def render(self) -> str:
        """Run one scrape and return the text exposition."""
        return generate_latest(self._registry).decode("utf-8")

    def start(self) -> None:
        """Start serving in a background thread."""
        if self._server is not None:
            return
        self._server, self._thread = start_http_server(
            self._config.port,
            addr=self._config.listen_address,
            registry=self._registry,
        )
        logger.info(
            "PrometheusExporter listening on %s:%d",
            self._config.listen_address,
            self._config.port,
        )

    def shutdown(self) -> None:
        if self._server is not None:
            self._server.shutdown()
            self._server.server_close()
            self._server = None
        if self._thread is not None:
            self._thread.join(timeout=5)
            self._thread = None
        logger.info("PrometheusExporter shut down")
