from __future__ import annotations

import logging
from dataclasses import dataclass, field
from threading import Event
from typing import Protocol

from .errors import PartialDeregisterFailure
from .health import LivenessGate
from .mapping import select_strategy
from .models import Container, ServiceRecord, WorkloadDescriptor
from .ports import PortDefinition
from .reconciler import orphaned_secured
from .resolver import DescriptorSource, WorkloadResolver
from .tags import TagComposer

logger = logging.getLogger(__name__)

# Pod label holding the Consul service name. Pods without it are not registered.
CONSUL_LABEL = "consul"


class Registry(Protocol):
    def register(self, records: list[ServiceRecord]) -> None: ...

    def deregister(self, records: list[ServiceRecord]) -> None: ...


@dataclass
class Resolution:
    descriptor: WorkloadDescriptor
    container: Container | None = None
    records: list[ServiceRecord] = field(default_factory=list)


class ServiceProvider:
    """Provides the services a pod should be registered as in Consul."""

    def __init__(
        self,
        source: DescriptorSource,
        namespace: str,
        name: str,
        timeout_s: float = 60.0,
        poll_interval_s: float = 1.0,
        port_definitions: list[PortDefinition] | None = None,
        composer: TagComposer | None = None,
        liveness: LivenessGate | None = None,
        cancel: Event | None = None,
    ):
        self.source = source
        self.namespace = namespace
        self.name = name
        self.resolver = WorkloadResolver(source, timeout_s, poll_interval_s, cancel=cancel)
        self.port_definitions = port_definitions
        self.composer = composer or TagComposer()
        self.liveness = liveness

    def resolve(self) -> Resolution:
        descriptor = self.resolver.resolve(self.namespace, self.name)

        service_name = descriptor.labels.get(CONSUL_LABEL)
        if not service_name:
            logger.info("pod %s/%s has no %r label, nothing to register", self.namespace, self.name, CONSUL_LABEL)
            return Resolution(descriptor)

        strategy = select_strategy(self.port_definitions)
        container = strategy.container(descriptor)
        global_tags = self.composer.global_tags(descriptor, self.source)
        records = strategy.records(service_name, descriptor, global_tags, self.composer)
        return Resolution(descriptor, container, records)

    def get(self) -> list[ServiceRecord]:
        return self.resolve().records

    def register(self, registry: Registry) -> list[ServiceRecord]:
        if self.resolver.is_terminating(self.namespace, self.name):
            logger.info("pod %s/%s is terminating, skipping registration", self.namespace, self.name)
            return []

        res = self.resolve()
        if not res.records:
            return []

        if self.liveness is not None and res.container is not None:
            self.liveness.wait(res.descriptor, res.container)

        orphans = orphaned_secured(res.records)
        if orphans:
            try:
                registry.deregister(orphans)
            except PartialDeregisterFailure as e:
                # Most orphans were never registered; the agent answers 404 for them.
                logger.info("secured variants not deregistered: %s", e)

        registry.register(res.records)
        return res.records

    def deregister(self, registry: Registry) -> list[ServiceRecord]:
        records = self.get()
        if records:
            registry.deregister(records)
        return records
