import os as _os
import sys

import pytest

# Ensure project root is importable (so `import cli` works without installing)
_project_root = _os.path.dirname(_os.path.dirname(__file__))
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

from crh.errors import FetchError  # noqa: E402
from crh.models import Container, ContainerPort, HTTPGetAction, Probe, WorkloadDescriptor  # noqa: E402


POD_IP = "192.0.2.2"


def make_pod(
    ip: str = POD_IP,
    labels: dict | None = None,
    annotations: dict | None = None,
    containers: tuple = (),
    name: str = "app-1",
    namespace: str = "default",
    **kwargs,
) -> WorkloadDescriptor:
    return WorkloadDescriptor(
        name=name,
        namespace=namespace,
        ip=ip,
        containers=containers,
        labels=labels if labels is not None else {},
        annotations=annotations if annotations is not None else {},
        **kwargs,
    )


def container(name: str = "app", ports: tuple[int, ...] = (), **probes) -> Container:
    return Container(name=name, ports=tuple(ContainerPort(container_port=p) for p in ports), **probes)


def http_probe(port=8080, path="/status/ping", scheme="HTTP", period=5, timeout=2, delay=0) -> Probe:
    return Probe(
        http_get=HTTPGetAction(port=port, path=path, scheme=scheme),
        period_seconds=period,
        timeout_seconds=timeout,
        initial_delay_seconds=delay,
    )


class FakeSource:
    """Descriptor source returning queued answers; the last one repeats."""

    def __init__(self, *answers, domain_tags=None):
        self.answers = list(answers)
        self.domain_tags = domain_tags
        self.fetches = 0
        self.domain_calls = 0

    def fetch(self, namespace, name):
        self.fetches += 1
        answer = self.answers[0] if len(self.answers) == 1 else self.answers.pop(0)
        if isinstance(answer, Exception):
            raise answer
        return answer

    def failure_domain_tags(self, descriptor):
        self.domain_calls += 1
        if self.domain_tags is None:
            raise FetchError("failure domain labels don't exist")
        return list(self.domain_tags)


class FakeRegistry:
    def __init__(self, fail_deregister=False):
        self.calls: list[tuple[str, list[str]]] = []
        self.fail_deregister = fail_deregister

    def register(self, records):
        self.calls.append(("register", [r.id for r in records]))

    def deregister(self, records):
        from crh.errors import PartialDeregisterFailure

        self.calls.append(("deregister", [r.id for r in records]))
        if self.fail_deregister:
            raise PartialDeregisterFailure([RuntimeError("404 Not Found")])


@pytest.fixture
def registry():
    return FakeRegistry()
