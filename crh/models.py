from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

SECURED_SUFFIX = "-secured"

# Kubernetes API defaults for probes that leave these unset.
DEFAULT_PERIOD_S = 10
DEFAULT_TIMEOUT_S = 1


@dataclass(frozen=True)
class HTTPGetAction:
    port: int | str
    path: str = "/"
    scheme: str = "HTTP"
    host: str | None = None


@dataclass(frozen=True)
class TCPSocketAction:
    port: int | str
    host: str | None = None


@dataclass(frozen=True)
class Probe:
    http_get: HTTPGetAction | None = None
    tcp_socket: TCPSocketAction | None = None
    initial_delay_seconds: int = 0
    period_seconds: int | None = None
    timeout_seconds: int | None = None

    @property
    def period_s(self) -> int:
        return self.period_seconds or DEFAULT_PERIOD_S

    @property
    def timeout_s(self) -> int:
        return self.timeout_seconds or DEFAULT_TIMEOUT_S


@dataclass(frozen=True)
class ContainerPort:
    container_port: int
    name: str | None = None
    protocol: str = "TCP"


@dataclass(frozen=True)
class Container:
    name: str
    ports: tuple[ContainerPort, ...] = ()
    liveness_probe: Probe | None = None
    readiness_probe: Probe | None = None
    startup_probe: Probe | None = None

    def resolve_port(self, port: int | str) -> int | None:
        """Resolve an IntOrString probe port against the declared ports."""
        if isinstance(port, int):
            return port
        if port.isdigit():
            return int(port)
        for p in self.ports:
            if p.name == port:
                return p.container_port
        return None


@dataclass(frozen=True)
class WorkloadDescriptor:
    """Read-only snapshot of a pod as returned by the API."""

    name: str
    namespace: str
    ip: str = ""
    containers: tuple[Container, ...] = ()
    labels: dict[str, str] = field(default_factory=dict)
    annotations: dict[str, str] = field(default_factory=dict)
    node_name: str = ""
    deletion_timestamp: datetime | None = None

    @property
    def terminating(self) -> bool:
        return self.deletion_timestamp is not None


class CheckType(str, Enum):
    HTTP_GET = "HTTP_GET"
    TCP = "TCP"


@dataclass(frozen=True)
class CheckDescriptor:
    type: CheckType
    address: str
    interval_s: int
    timeout_s: int


@dataclass(frozen=True)
class ServiceRecord:
    id: str
    name: str = ""
    host: str = ""
    port: int = 0
    tags: tuple[str, ...] = ()
    check: CheckDescriptor | None = None

    @property
    def is_secured(self) -> bool:
        return self.id.endswith(SECURED_SUFFIX)


def service_id(host: str, port: int, secured: bool = False) -> str:
    sid = f"{host}_{int(port)}"
    return f"{sid}{SECURED_SUFFIX}" if secured else sid
