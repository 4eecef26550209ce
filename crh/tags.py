from __future__ import annotations

import logging
from typing import Iterable

from .models import WorkloadDescriptor

logger = logging.getLogger(__name__)

# Annotations are used instead of labels because label values are limited to
# 63 alphanumeric characters.
ANNOTATION_TAG_PREFIX = "CONSUL_TAG_"
POD_NAME_TAG = "k8sPodName: {}"
POD_NAMESPACE_TAG = "k8sPodNamespace: {}"
INSTANCE_TAG = "instance:{}_{}"
SERVICE_PORT_TAG_PREFIX = "service-port:"


def identity_tags(name: str, namespace: str) -> list[str]:
    if not name or not namespace:
        return []
    return [POD_NAME_TAG.format(name), POD_NAMESPACE_TAG.format(namespace)]


def annotation_tags(annotations: dict[str, str]) -> list[str]:
    """Values of CONSUL_TAG_* annotations, in map iteration order."""
    return [value for key, value in annotations.items() if key.startswith(ANNOTATION_TAG_PREFIX) and value]


def instance_tag(pod_name: str, port: int) -> str:
    return INSTANCE_TAG.format(pod_name, port)


def failure_domain_tags(source, descriptor: WorkloadDescriptor) -> list[str] | None:
    """Node topology tags, or None when they cannot be determined."""
    try:
        return list(source.failure_domain_tags(descriptor))
    except Exception as e:
        logger.warning("Won't include failure domain data in registration: %s", e)
        return None


class TagComposer:
    """Builds the ordered tag list of every record.

    Order: pod identity, failure domain, annotations, port tags, instance tag,
    then the service-port override when no service-port tag is present yet.
    Secured records lose every global or port tag carrying the load-balancer
    prefix.
    """

    def __init__(self, service_port: str | None = None, lb_tag_prefix: str = "frontend:"):
        self.service_port = service_port
        self.lb_tag_prefix = lb_tag_prefix

    def global_tags(self, descriptor: WorkloadDescriptor, source) -> list[str]:
        tags = identity_tags(descriptor.name, descriptor.namespace)
        tags.extend(failure_domain_tags(source, descriptor) or [])
        tags.extend(annotation_tags(descriptor.annotations))
        return tags

    def compose(
        self,
        global_tags: Iterable[str],
        port_tags: Iterable[str],
        pod_name: str,
        port: int,
        secured: bool = False,
    ) -> list[str]:
        tags = list(global_tags)
        tags.extend(port_tags)
        if secured and self.lb_tag_prefix:
            # Secured endpoints are never advertised on the load balancer.
            tags = [t for t in tags if not t.startswith(self.lb_tag_prefix)]
        tags.append(instance_tag(pod_name, port))
        if self.service_port and not any(t.startswith(SERVICE_PORT_TAG_PREFIX) for t in tags):
            tags.append(f"{SERVICE_PORT_TAG_PREFIX}{self.service_port}")
        return tags
