from __future__ import annotations

import logging
import socket
import time
from threading import Event

import httpx

from .checks import join_host_port
from .errors import LivenessTimeout
from .models import Container, Probe, WorkloadDescriptor
from .poller import Poller

logger = logging.getLogger(__name__)

CONNECT_TIMEOUT_S = 2.0


def check_http(url: str, timeout_s: float = CONNECT_TIMEOUT_S, transport: httpx.BaseTransport | None = None) -> tuple[bool, str, float | None]:
    """GET a probe endpoint the way the kubelet does.

    Any status in 200-399 is a success.
    Returns (is_healthy, message, latency_ms).
    """
    start = time.time()
    try:
        with httpx.Client(timeout=timeout_s, follow_redirects=False, verify=False, transport=transport) as client:
            resp = client.get(url)
        latency_ms = round((time.time() - start) * 1000.0, 2)
        if 200 <= resp.status_code < 400:
            return True, f"HTTP {resp.status_code}", latency_ms
        return False, f"HTTP {resp.status_code}", latency_ms
    except (httpx.ConnectError, httpx.TimeoutException):
        latency_ms = round((time.time() - start) * 1000.0, 2)
        return False, "No response", latency_ms
    except httpx.HTTPError as e:
        latency_ms = round((time.time() - start) * 1000.0, 2)
        return False, f"Error: {type(e).__name__}: {e}", latency_ms


def check_tcp(host: str, port: int, timeout_s: float = CONNECT_TIMEOUT_S) -> tuple[bool, str, float | None]:
    start = time.time()
    try:
        with socket.create_connection((host, port), timeout=timeout_s):
            pass
    except OSError as e:
        latency_ms = round((time.time() - start) * 1000.0, 2)
        return False, f"Error: {type(e).__name__}: {e}", latency_ms
    return True, "Connected", round((time.time() - start) * 1000.0, 2)


class HealthChecker:
    """Runs a probe handler against the pod from inside the hook."""

    def __init__(self, transport: httpx.BaseTransport | None = None, timeout_s: float = CONNECT_TIMEOUT_S):
        self.transport = transport
        self.timeout_s = timeout_s

    def check(self, probe: Probe, host: str, container: Container) -> tuple[bool, str, float | None]:
        if probe.http_get is not None:
            handler = probe.http_get
            port = container.resolve_port(handler.port)
            if port is None:
                return False, f"unknown port {handler.port!r}", None
            scheme = "https" if (handler.scheme or "").upper() == "HTTPS" else "http"
            path = handler.path if handler.path.startswith("/") else "/" + handler.path
            url = f"{scheme}://{join_host_port(handler.host or host, port)}{path}"
            return check_http(url, self.timeout_s, self.transport)
        if probe.tcp_socket is not None:
            handler = probe.tcp_socket
            port = container.resolve_port(handler.port)
            if port is None:
                return False, f"unknown port {handler.port!r}", None
            return check_tcp(handler.host or host, port, self.timeout_s)
        return False, "probe has no http or tcp handler", None


def gate_probe(container: Container) -> Probe | None:
    """Startup probe first, then readiness. Liveness alone does not gate."""
    for probe in (container.startup_probe, container.readiness_probe):
        if probe is not None and (probe.http_get is not None or probe.tcp_socket is not None):
            return probe
    return None


class LivenessGate:
    def __init__(self, checker: HealthChecker, timeout_s: float, cancel: Event | None = None):
        self.checker = checker
        self.timeout_s = timeout_s
        self.cancel = cancel

    def wait(self, descriptor: WorkloadDescriptor, container: Container) -> bool:
        """Block until the pod answers its own probe.

        Returns False when the container declares nothing to poll, True once a
        check succeeded. Raises LivenessTimeout when the budget runs out.
        """
        probe = gate_probe(container)
        if probe is None:
            logger.info("container %s has no startup or readiness probe, not waiting", container.name)
            return False

        def attempt() -> bool | None:
            ok, msg, latency = self.checker.check(probe, descriptor.ip, container)
            if ok:
                logger.info("pod %s answered its probe (%s, %sms)", descriptor.name, msg, latency)
                return True
            logger.info("pod %s not healthy yet: %s", descriptor.name, msg)
            return None

        poller: Poller[bool] = Poller(
            attempt,
            interval_s=probe.period_s,
            timeout_s=self.timeout_s,
            initial_delay_s=probe.initial_delay_seconds,
            timeout_error=LivenessTimeout,
            cancel=self.cancel,
            name=f"health {descriptor.name}",
        )
        return poller.run()
