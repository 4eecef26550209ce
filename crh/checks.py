from __future__ import annotations

import logging

from .models import CheckDescriptor, CheckType, Container, Probe

logger = logging.getLogger(__name__)

# Consul agents cannot run TLS checks, so HTTP checks always use plain http.
CHECK_SCHEME = "http"


def join_host_port(host: str, port: int) -> str:
    if ":" in host and not host.startswith("["):
        return f"[{host}]:{port}"
    return f"{host}:{port}"


def check_probe(container: Container) -> Probe | None:
    """Readiness wins over liveness when both are declared."""
    return container.readiness_probe or container.liveness_probe


def probe_to_check(probe: Probe | None, host: str, container: Container | None = None) -> CheckDescriptor | None:
    """Translate a Kubernetes probe into a Consul check.

    Returns None for a missing probe, a probe without an HTTP or TCP handler
    (e.g. exec) and a named port that the container does not declare.
    """
    if probe is None:
        return None

    if probe.http_get is not None:
        handler = probe.http_get
        check_type = CheckType.HTTP_GET
    elif probe.tcp_socket is not None:
        handler = probe.tcp_socket
        check_type = CheckType.TCP
    else:
        return None

    port = container.resolve_port(handler.port) if container is not None else _int_port(handler.port)
    if port is None:
        logger.warning("probe port %r is not declared by the container, skipping check", handler.port)
        return None

    if check_type is CheckType.HTTP_GET:
        path = probe.http_get.path or "/"
        if not path.startswith("/"):
            path = "/" + path
        address = f"{CHECK_SCHEME}://{join_host_port(host, port)}{path}"
    else:
        address = join_host_port(host, port)

    return CheckDescriptor(
        type=check_type,
        address=address,
        interval_s=probe.period_s,
        timeout_s=probe.timeout_s,
    )


def _int_port(port: int | str) -> int | None:
    if isinstance(port, int):
        return port
    return int(port) if port.isdigit() else None
