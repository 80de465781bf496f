"""Shared fixtures: realistic master state payloads."""

import pytest

from mesos_state_exporter.state.models import Snapshot


def slave_payload(pid="slave(1)@10.0.0.1:5051", hostname="h1", **overrides):
    data = {
        "pid": pid,
        "hostname": hostname,
        "resources": {"cpus": 4, "mem": 1024, "disk": 1024, "ports": "[31000-32000]"},
        "used_resources": {"cpus": 1.5, "mem": 512, "disk": 256, "ports": "[31000-31004, 31010-31010]"},
        "unreserved_resources": {"cpus": 2.5, "mem": 512, "disk": 768, "ports": "[31005-31009]"},
        "attributes": {},
    }
    data.update(overrides)
    return data


def framework_payload(name="marathon", active=True):
    return {
        "name": name,
        "active": active,
        "used_resources": {"cpus": 1.5, "mem": 512, "disk": 256},
        "offered_resources": {"cpus": 0.5, "mem": 128, "disk": 0},
        "tasks": [],
        "completed_tasks": [],
    }


@pytest.fixture
def state_payload():
    return {
        "slaves": [
            slave_payload("s1", "h1", attributes={"rack-id": "r1", "cores": 8}),
            slave_payload("s2", "h2", attributes={"rack-id": "r2", "ssd": True}),
        ],
        "frameworks": [framework_payload("marathon", True), framework_payload("chronos", False)],
    }


@pytest.fixture
def snapshot(state_payload):
    return Snapshot.from_dict(state_payload)
