from __future__ import annotations

import logging

from .checks import check_probe, probe_to_check
from .errors import NoRegistrablePort
from .models import SECURED_SUFFIX, Container, ServiceRecord, WorkloadDescriptor, service_id
from .ports import PortDefinition, has_service_port
from .tags import TagComposer

logger = logging.getLogger(__name__)

# Pod label naming the container whose first port is registered.
CONTAINER_LABEL = "consulContainer"


class PortStrategy:
    """Maps a resolved pod to the services it should be registered as."""

    def container(self, descriptor: WorkloadDescriptor) -> Container | None:
        raise NotImplementedError

    def records(
        self,
        service_name: str,
        descriptor: WorkloadDescriptor,
        global_tags: list[str],
        composer: TagComposer,
    ) -> list[ServiceRecord]:
        raise NotImplementedError


class ContainerPortStrategy(PortStrategy):
    """One service on the first port of the selected container."""

    def container(self, descriptor: WorkloadDescriptor) -> Container:
        wanted = descriptor.labels.get(CONTAINER_LABEL)
        for c in descriptor.containers:
            if not c.ports:
                continue
            if wanted is None or c.name == wanted:
                return c
        raise NoRegistrablePort()

    def records(self, service_name, descriptor, global_tags, composer):
        container = self.container(descriptor)
        port = container.ports[0].container_port
        record = ServiceRecord(
            id=service_id(descriptor.ip, port),
            name=service_name,
            host=descriptor.ip,
            port=port,
            tags=tuple(composer.compose(global_tags, [], descriptor.name, port)),
            check=probe_to_check(check_probe(container), descriptor.ip, container),
        )
        return [record]


class PortDefinitionStrategy(PortStrategy):
    """One service per registrable entry of PORT_DEFINITIONS.

    An entry is registrable when it names its own service, carries
    service=true, or is the first entry of a list where no entry carries
    service=true. Probe-only entries are skipped.
    """

    def __init__(self, definitions: list[PortDefinition]):
        self.definitions = definitions

    def container(self, descriptor: WorkloadDescriptor) -> Container | None:
        # Checks come from the first container; it is assumed to serve the probe port.
        return descriptor.containers[0] if descriptor.containers else None

    def registrable(self, index: int, definition: PortDefinition) -> bool:
        if definition.consul_name or definition.is_service:
            return True
        return index == 0 and not has_service_port(self.definitions)

    def records(self, service_name, descriptor, global_tags, composer):
        container = self.container(descriptor)
        check = probe_to_check(check_probe(container), descriptor.ip, container) if container else None

        records: list[ServiceRecord] = []
        for idx, definition in enumerate(self.definitions):
            if not self.registrable(idx, definition):
                if definition.is_probe:
                    logger.debug("port %d is a probe port, not registering", definition.port)
                continue

            name = definition.consul_name or service_name
            secured = SECURED_SUFFIX in name
            records.append(
                ServiceRecord(
                    id=service_id(descriptor.ip, definition.port, secured=secured),
                    name=name,
                    host=descriptor.ip,
                    port=definition.port,
                    tags=tuple(composer.compose(global_tags, definition.tags, descriptor.name, definition.port, secured=secured)),
                    check=check,
                )
            )
        return records


def select_strategy(definitions: list[PortDefinition] | None) -> PortStrategy:
    if definitions is None:
        return ContainerPortStrategy()
    return PortDefinitionStrategy(definitions)
