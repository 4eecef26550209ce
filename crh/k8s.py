from __future__ import annotations

import logging
from typing import Any

from kubernetes import client as k8s_client
from kubernetes import config as k8s_config

from .errors import FetchError
from .models import Container, ContainerPort, HTTPGetAction, Probe, TCPSocketAction, WorkloadDescriptor

logger = logging.getLogger(__name__)

# Node labels describing the failure domain. The beta prefix is what older
# clusters set; topology.kubernetes.io replaced it.
FAILURE_DOMAIN_PREFIXES = ("failure-domain.beta.kubernetes.io/", "topology.kubernetes.io/")


def load_core_api() -> k8s_client.CoreV1Api:
    try:
        k8s_config.load_incluster_config()
        logger.debug("Loaded in-cluster Kubernetes config")
    except k8s_config.ConfigException:
        try:
            k8s_config.load_kube_config()
            logger.debug("Loaded kubeconfig")
        except k8s_config.ConfigException as e:
            raise FetchError(f"no Kubernetes config available: {e}") from e
    return k8s_client.CoreV1Api()


def _probe(p: Any) -> Probe | None:
    if p is None:
        return None
    http_get = None
    tcp_socket = None
    if p.http_get is not None:
        http_get = HTTPGetAction(
            port=p.http_get.port,
            path=p.http_get.path or "/",
            scheme=p.http_get.scheme or "HTTP",
            host=p.http_get.host,
        )
    elif p.tcp_socket is not None:
        tcp_socket = TCPSocketAction(port=p.tcp_socket.port, host=p.tcp_socket.host)
    return Probe(
        http_get=http_get,
        tcp_socket=tcp_socket,
        initial_delay_seconds=p.initial_delay_seconds or 0,
        period_seconds=p.period_seconds,
        timeout_seconds=p.timeout_seconds,
    )


def _container(c: Any) -> Container:
    ports = tuple(
        ContainerPort(container_port=int(p.container_port), name=p.name, protocol=p.protocol or "TCP")
        for p in (c.ports or [])
    )
    return Container(
        name=c.name or "",
        ports=ports,
        liveness_probe=_probe(c.liveness_probe),
        readiness_probe=_probe(c.readiness_probe),
        startup_probe=_probe(getattr(c, "startup_probe", None)),
    )


def pod_to_descriptor(pod: Any) -> WorkloadDescriptor:
    """Convert a V1Pod into the hook's own immutable descriptor."""
    meta = pod.metadata
    spec = pod.spec
    status = pod.status
    return WorkloadDescriptor(
        name=meta.name or "",
        namespace=meta.namespace or "",
        ip=(status.pod_ip if status is not None else None) or "",
        containers=tuple(_container(c) for c in (spec.containers or [])) if spec is not None else (),
        labels=dict(meta.labels or {}),
        annotations=dict(meta.annotations or {}),
        node_name=(spec.node_name if spec is not None else None) or "",
        deletion_timestamp=meta.deletion_timestamp,
    )


def failure_domain_tags_from_labels(labels: dict[str, str]) -> list[str]:
    tags: list[str] = []
    for key, value in labels.items():
        for prefix in FAILURE_DOMAIN_PREFIXES:
            if key.startswith(prefix):
                tag = f"{key[len(prefix):]}:{value}"
                if tag not in tags:
                    tags.append(tag)
    return tags


class KubernetesClient:
    """Descriptor source backed by the Kubernetes API."""

    def __init__(self, core_api: k8s_client.CoreV1Api | None = None):
        self._core_api = core_api

    @property
    def core_api(self) -> k8s_client.CoreV1Api:
        if self._core_api is None:
            self._core_api = load_core_api()
        return self._core_api

    def fetch(self, namespace: str, name: str) -> WorkloadDescriptor:
        try:
            pod = self.core_api.read_namespaced_pod(name, namespace)
        except FetchError:
            raise
        except Exception as e:
            raise FetchError(f"unable to get pod data from API: {e}") from e
        return pod_to_descriptor(pod)

    def failure_domain_tags(self, descriptor: WorkloadDescriptor) -> list[str]:
        if not descriptor.node_name:
            raise FetchError("pod is not scheduled on a node yet")
        try:
            node = self.core_api.read_node(descriptor.node_name)
        except FetchError:
            raise
        except Exception as e:
            raise FetchError(f"unable to get node data from API: {e}") from e

        tags = failure_domain_tags_from_labels(dict(node.metadata.labels or {}))
        if not tags:
            raise FetchError("failure domain labels don't exist")
        return tags
