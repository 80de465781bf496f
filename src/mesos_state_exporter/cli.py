"""CLI interface for mesos_state_exporter."""

from __future__ import annotations

import argparse
import logging
import signal
import sys
import time
from typing import Any

from . import __version__
from .config import ExporterConfig, load_config

logger = logging.getLogger(__name__)


def _cli_overrides(args: argparse.Namespace) -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    if getattr(args, "master", None):
        overrides.setdefault("master", {})["url"] = args.master
    if getattr(args, "port", None) is not None:
        overrides.setdefault("server", {})["port"] = args.port
    if getattr(args, "attribute_labels", None):
        overrides.setdefault("metrics", {})["slave_attribute_labels"] = args.attribute_labels
    if getattr(args, "log_level", None):
        overrides["log_level"] = args.log_level
    return overrides


def _build_collector(cfg: ExporterConfig):
    from .collector.master import MasterStateCollector
    from .collector.registry import build_registry
    from .state.client import MasterClient

    client = MasterClient(cfg.master)
    registry = build_registry(cfg.metrics.slave_attribute_labels, namespace=cfg.metrics.namespace)
    collector = MasterStateCollector(
        client.fetch,
        registry,
        namespace=cfg.metrics.namespace,
        state_path=cfg.master.state_path,
        reset_attributes=cfg.metrics.reset_attributes,
    )
    return client, collector


def _cmd_serve(cfg: ExporterConfig, _args: argparse.Namespace) -> None:
    """Serve metrics until interrupted."""
    from .exporter.prometheus import PrometheusExporter

    client, collector = _build_collector(cfg)
    exporter = PrometheusExporter(cfg.server, collector)

    stop = False

    def _handle_signal(_sig: int, _frame: object) -> None:
        nonlocal stop
        stop = True

    signal.signal(signal.SIGINT, _handle_signal)
    signal.signal(signal.SIGTERM, _handle_signal)

    exporter.start()
    logger.info("Exporting metrics for master %s", cfg.master.url)
    try:
        while not stop:
            time.sleep(0.5)
    finally:
        exporter.shutdown()
        client.close()


def _cmd_scrape(cfg: ExporterConfig, _args: argparse.Namespace) -> None:
    """Run a single collection cycle and print the exposition text."""
    from .exporter.prometheus import PrometheusExporter

    client, collector = _build_collector(cfg)
    try:
        sys.stdout.write(PrometheusExporter(cfg.server, collector).render())
    finally:
        client.close()


def _cmd_version(_cfg: ExporterConfig, _args: argparse.Namespace) -> None:
    print(f"mesos_state_exporter {__version__}")


def main(argv: list[str] | None = None) -> None:
    """Entry point for the mesos-state-exporter CLI."""
    parser = argparse.ArgumentParser(
        prog="mesos-state-exporter",
        description="Export Mesos master state as Prometheus metrics",
    )
    parser.add_argument("--config", "-c", default=None, help="Path to mesos_exporter.yaml")
    parser.add_argument("--log-level", default=None, help="Logging level (DEBUG, INFO, ...)")
    parser.add_argument("--master", "-m", default=None, help="Mesos master URL")
    parser.add_argument(
        "--attribute-label",
        dest="attribute_labels",
        action="append",
        default=None,
        help="Slave attribute to export as a label (repeatable)",
    )
    sub = parser.add_subparsers(dest="command")

    # serve
    serve_p = sub.add_parser("serve", help="Serve metrics over HTTP")
    serve_p.add_argument("--port", "-p", type=int, default=None, help="Listen port")
    serve_p.set_defaults(func=_cmd_serve)

    # scrape
    scrape_p = sub.add_parser("scrape", help="Collect once and print metrics")
    scrape_p.set_defaults(func=_cmd_scrape)

    # version
    ver_p = sub.add_parser("version", help="Print version")
    ver_p.set_defaults(func=_cmd_version)

    args = parser.parse_args(argv)
    if not hasattr(args, "func"):
        parser.print_help()
        sys.exit(1)

    cfg = load_config(args.config, overrides=_cli_overrides(args))
    logging.basicConfig(
        level=getattr(logging, cfg.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    try:
        args.func(cfg, args)
    except ValueError as exc:
        logger.error("%s", exc)
        sys.exit(2)


if __name__ == "__main__":
    main()
