from datetime import datetime, timezone

import pytest
from kubernetes.client import (
    V1Container,
    V1ContainerPort,
    V1HTTPGetAction,
    V1Node,
    V1ObjectMeta,
    V1Pod,
    V1PodSpec,
    V1PodStatus,
    V1Probe,
    V1TCPSocketAction,
)
from kubernetes.client.exceptions import ApiException

from crh.errors import FetchError
from crh.k8s import KubernetesClient, failure_domain_tags_from_labels, pod_to_descriptor
from crh.models import HTTPGetAction, TCPSocketAction


def _pod(ip="192.0.2.2", deletion=None):
    return V1Pod(
        metadata=V1ObjectMeta(
            name="app-1",
            namespace="default",
            labels={"consul": "svc"},
            annotations={"CONSUL_TAG_0": "team: core"},
            deletion_timestamp=deletion,
        ),
        spec=V1PodSpec(
            node_name="node-1",
            containers=[
                V1Container(
                    name="app",
                    ports=[V1ContainerPort(container_port=8080, name="http")],
                    liveness_probe=V1Probe(
                        http_get=V1HTTPGetAction(port="http", path="/status/ping", scheme="HTTPS"),
                        period_seconds=5,
                        timeout_seconds=2,
                    ),
                    readiness_probe=V1Probe(tcp_socket=V1TCPSocketAction(port=8080), initial_delay_seconds=3),
                ),
                V1Container(name="sidecar"),
            ],
        ),
        status=V1PodStatus(pod_ip=ip),
    )


class FakeCoreApi:
    def __init__(self, pod=None, node=None, error=None):
        self.pod = pod
        self.node = node
        self.error = error

    def read_namespaced_pod(self, name, namespace):
        if self.error:
            raise self.error
        return self.pod

    def read_node(self, name):
        if self.error:
            raise self.error
        return self.node


def test_pod_to_descriptor():
    d = pod_to_descriptor(_pod())

    assert (d.name, d.namespace, d.ip, d.node_name) == ("app-1", "default", "192.0.2.2", "node-1")
    assert d.labels == {"consul": "svc"}
    assert d.annotations == {"CONSUL_TAG_0": "team: core"}
    assert d.terminating is False

    app, sidecar = d.containers
    assert app.name == "app"
    assert app.ports[0].container_port == 8080
    assert app.liveness_probe.http_get == HTTPGetAction(port="http", path="/status/ping", scheme="HTTPS")
    assert app.liveness_probe.period_s == 5
    assert app.readiness_probe.tcp_socket == TCPSocketAction(port=8080)
    assert app.readiness_probe.initial_delay_seconds == 3
    assert app.startup_probe is None
    assert sidecar.ports == ()


def test_pod_without_ip_and_deleting():
    d = pod_to_descriptor(_pod(ip=None, deletion=datetime.now(timezone.utc)))
    assert d.ip == ""
    assert d.terminating is True


def test_fetch_wraps_api_errors():
    client = KubernetesClient(FakeCoreApi(error=ApiException(status=403, reason="Forbidden")))
    with pytest.raises(FetchError, match="unable to get pod data"):
        client.fetch("default", "app-1")


def test_failure_domain_tags():
    node = V1Node(
        metadata=V1ObjectMeta(
            name="node-1",
            labels={
                "failure-domain.beta.kubernetes.io/region": "region1",
                "failure-domain.beta.kubernetes.io/zone": "zone1",
                "kubernetes.io/hostname": "node-1",
            },
        )
    )
    client = KubernetesClient(FakeCoreApi(pod=_pod(), node=node))
    tags = client.failure_domain_tags(client.fetch("default", "app-1"))
    assert sorted(tags) == ["region:region1", "zone:zone1"]


def test_failure_domain_tags_missing():
    node = V1Node(metadata=V1ObjectMeta(name="node-1", labels={"kubernetes.io/hostname": "node-1"}))
    client = KubernetesClient(FakeCoreApi(pod=_pod(), node=node))
    with pytest.raises(FetchError, match="failure domain labels don't exist"):
        client.failure_domain_tags(client.fetch("default", "app-1"))


def test_topology_labels_are_not_duplicated():
    labels = {
        "failure-domain.beta.kubernetes.io/zone": "zone1",
        "topology.kubernetes.io/zone": "zone1",
        "topology.kubernetes.io/region": "region1",
    }
    assert sorted(failure_domain_tags_from_labels(labels)) == ["region:region1", "zone:zone1"]
