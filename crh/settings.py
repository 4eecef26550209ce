from __future__ import annotations

import os
from dataclasses import dataclass


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    # Pod identity (downward API)
    pod_name: str = os.getenv("KUBERNETES_POD_NAME", "")
    pod_namespace: str = os.getenv("KUBERNETES_POD_NAMESPACE", "")

    # Service mapping
    port_definitions: str | None = os.getenv("PORT_DEFINITIONS")
    service_port: str | None = os.getenv("SERVICE_PORT")
    lb_tag_prefix: str = os.getenv("HOOK_LB_TAG_PREFIX", "frontend:")

    # Timing
    timeout_s: float = _env_float("HOOK_TIMEOUT_S", 60.0)
    health_check_timeout_s: float = _env_float("HOOK_HEALTH_CHECK_TIMEOUT_S", 0.0)
    poll_interval_s: float = _env_float("HOOK_POLL_INTERVAL_S", 1.0)

    # Consul agent
    consul_address: str = os.getenv("CONSUL_HTTP_ADDR", "http://127.0.0.1:8500")
    consul_token: str | None = os.getenv("CONSUL_HTTP_TOKEN")


settings = Settings()
