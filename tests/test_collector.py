"""Tests for the collection cycle and the Prometheus exporter."""

import threading

import pytest

from mesos_state_exporter.collector.master import MasterStateCollector
from mesos_state_exporter.collector.registry import build_registry
from mesos_state_exporter.config import ServerConfig
from mesos_state_exporter.exporter.prometheus import PrometheusExporter
from mesos_state_exporter.state.client import FetchError
from mesos_state_exporter.state.models import Snapshot

from conftest import framework_payload, slave_payload


class SequenceFetcher:
    """Returns queued snapshots (or raises queued errors) in order."""

    def __init__(self, *items):
        self.items = list(items)
        self.paths = []

    def __call__(self, path):
        self.paths.append(path)
        item = self.items.pop(0) if len(self.items) > 1 else self.items[0]
        if isinstance(item, Exception):
            raise item
        return item


def _snapshot(*slaves, frameworks=()):
    return Snapshot.from_dict({"slaves": list(slaves), "frameworks": list(frameworks)})


def _labels(result, name):
    return {s.labels for s in result.samples[name]}


# ---------------------------------------------------------------------------
# Collection cycle
# ---------------------------------------------------------------------------

class TestCollectionCycle:

    def test_cycle_populates_every_descriptor(self, snapshot):
        registry = build_registry(["rack-id"])
        collector = MasterStateCollector(SequenceFetcher(snapshot), registry)
        result = collector.run_cycle()
        assert result.snapshot_ok
        assert set(result.samples) == {d.name for d in registry}
        assert len(result.samples["mesos_slave_cpus"]) == 2
        assert len(result.samples["mesos_framework_active"]) == 2
        assert registry.get("mesos_slave_cpus").samples == result.samples["mesos_slave_cpus"]

    def test_fetches_configured_state_path(self, snapshot):
        fetcher = SequenceFetcher(snapshot)
        MasterStateCollector(fetcher, build_registry(), state_path="/master/state").run_cycle()
        assert fetcher.paths == ["/master/state"]

    def test_stale_nodes_disappear_from_gauges(self):
        s1 = _snapshot(
            slave_payload("A", "ha", attributes={"rack": "r1"}),
            slave_payload("B", "hb", attributes={"rack": "r2"}),
            frameworks=[framework_payload("old")],
        )
        s2 = _snapshot(slave_payload("B", "hb", attributes={"rack": "r2"}))
        collector = MasterStateCollector(SequenceFetcher(s1, s2), build_registry(["rack"]))

        collector.run_cycle()
        result = collector.run_cycle()

        for name in ("mesos_slave_cpus", "mesos_slave_mem_bytes", "mesos_slave_ports_used"):
            assert _labels(result, name) == {("B", "hb")}
        assert result.samples["mesos_framework_active"] == ()
        # legacy behaviour: attribute rows accumulate
        assert _labels(result, "mesos_slave_attributes") == {("A", "r1"), ("B", "r2")}

    def test_reset_attributes_clears_retired_nodes(self):
        s1 = _snapshot(slave_payload("A", "ha", attributes={"rack": "r1"}))
        s2 = _snapshot(slave_payload("B", "hb", attributes={"rack": "r2"}))
        collector = MasterStateCollector(
            SequenceFetcher(s1, s2), build_registry(["rack"]), reset_attributes=True,
        )
        collector.run_cycle()
        result = collector.run_cycle()
        assert _labels(result, "mesos_slave_attributes") == {("B", "r2")}

    def test_fetch_failure_serves_empty_gauges(self, snapshot):
        collector = MasterStateCollector(
            SequenceFetcher(snapshot, FetchError("connection refused")),
            build_registry(["rack-id"]),
        )
        collector.run_cycle()
        result = collector.run_cycle()

        assert not result.snapshot_ok
        assert collector.error_count == 1
        assert result.samples["mesos_slave_cpus"] == ()
        assert result.samples["mesos_framework_cpu_used"] == ()
        assert len(result.samples["mesos_slave_attributes"]) == 2

    def test_unexpected_errors_propagate(self):
        collector = MasterStateCollector(SequenceFetcher(RuntimeError("bug")), build_registry())
        with pytest.raises(RuntimeError):
            collector.run_cycle()

    def test_concurrent_cycles_never_publish_torn_sets(self):
        big = _snapshot(*(slave_payload(f"s{i}", f"h{i}") for i in range(50)))
        small = _snapshot(slave_payload("only", "h-only"))
        expected = ({(f"s{i}", f"h{i}") for i in range(50)}, {("only", "h-only")})

        lock = threading.Lock()
        turn = [0]

        def alternate(_path):
            with lock:
                turn[0] += 1
                return big if turn[0] % 2 else small

        registry = build_registry()
        collector = MasterStateCollector(alternate, registry)
        failures = []

        def worker():
            for _ in range(20):
                result = collector.run_cycle()
                for descriptor in registry.descriptors[:12]:
                    if _labels(result, descriptor.name) not in expected:
                        failures.append(descriptor.name)
                    if {s.labels for s in descriptor.samples} not in expected:
                        failures.append(descriptor.name)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert failures == []


# ---------------------------------------------------------------------------
# Prometheus exposition
# ---------------------------------------------------------------------------

class TestPrometheusExporter:

    def _exporter(self, fetcher, labels=()):
        collector = MasterStateCollector(fetcher, build_registry(labels))
        return PrometheusExporter(ServerConfig(port=0), collector)

    def test_end_to_end_scrape(self):
        snapshot = _snapshot(slave_payload(
            "s1", "h1",
            resources={"cpus": 4, "mem": 1024, "disk": 1024, "ports": "31000-32000"},
            attributes={"rack": "r1"},
        ))
        exporter = self._exporter(SequenceFetcher(snapshot), labels=["rack"])
        registry = exporter.registry
        labels = {"slave": "s1", "hostname": "h1"}

        assert registry.get_sample_value("mesos_slave_cpus", labels) == 4.0
        assert registry.get_sample_value("mesos_slave_mem_bytes", labels) == 1048576.0
        assert registry.get_sample_value("mesos_slave_disk_bytes", labels) == 1048576.0
        assert registry.get_sample_value("mesos_slave_ports", labels) == 1001.0
        assert registry.get_sample_value(
            "mesos_slave_attributes", {"slave": "s1", "rack": "r1"}
        ) == 1.0
        assert registry.get_sample_value("mesos_exporter_up") == 1.0

        text = exporter.render()
        cpu_lines = [line for line in text.splitlines() if line.startswith("mesos_slave_cpus{")]
        assert len(cpu_lines) == 1
        assert 'slave="s1"' in cpu_lines[0] and 'hostname="h1"' in cpu_lines[0]
        assert cpu_lines[0].endswith(" 4.0")
        assert "# HELP mesos_slave_ports Total slave ports" in text
        assert "# TYPE mesos_slave_attributes untyped" in text
        assert "mesos_slave_attributes_total" not in text
        assert 'rack="r1"' in text

    def test_failed_fetch_reported(self):
        exporter = self._exporter(SequenceFetcher(FetchError("timeout")))
        registry = exporter.registry
        assert registry.get_sample_value("mesos_exporter_up") == 0.0
        assert registry.get_sample_value("mesos_exporter_scrape_errors_total") == 2.0
        assert "mesos_slave_cpus{" not in exporter.render()

    def test_registration_does_not_fetch(self):
        fetcher = SequenceFetcher(Snapshot.empty())
        self._exporter(fetcher)
        assert fetcher.paths == []

    def test_start_and_shutdown(self):
        exporter = self._exporter(SequenceFetcher(Snapshot.empty()))
        exporter.start()
        try:
            exporter.start()
        finally:
            exporter.shutdown()
