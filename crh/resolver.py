from __future__ import annotations

import logging
from threading import Event
from typing import Protocol

from .errors import ResolutionTimeout
from .models import WorkloadDescriptor
from .poller import Poller

logger = logging.getLogger(__name__)


class DescriptorSource(Protocol):
    def fetch(self, namespace: str, name: str) -> WorkloadDescriptor: ...

    def failure_domain_tags(self, descriptor: WorkloadDescriptor) -> list[str]: ...


class WorkloadResolver:
    """Fetches the pod until the API reports an IP for it.

    Right after scheduling the pod object exists but has no IP assigned, so the
    first answers from the API are not usable for registration.
    """

    def __init__(
        self,
        source: DescriptorSource,
        timeout_s: float,
        poll_interval_s: float = 1.0,
        cancel: Event | None = None,
    ):
        self.source = source
        self.timeout_s = timeout_s
        self.poll_interval_s = poll_interval_s
        self.cancel = cancel

    def resolve(self, namespace: str, name: str) -> WorkloadDescriptor:
        def attempt() -> WorkloadDescriptor | None:
            descriptor = self.source.fetch(namespace, name)
            if not descriptor.ip:
                logger.debug("pod %s/%s has no IP yet", namespace, name)
                return None
            return descriptor

        poller: Poller[WorkloadDescriptor] = Poller(
            attempt,
            interval_s=self.poll_interval_s,
            timeout_s=self.timeout_s,
            timeout_error=ResolutionTimeout,
            cancel=self.cancel,
            name=f"resolve {namespace}/{name}",
        )
        return poller.run()

    def is_terminating(self, namespace: str, name: str) -> bool:
        """Single lookup. API failures count as terminating."""
        try:
            descriptor = self.source.fetch(namespace, name)
        except Exception as e:
            logger.warning("unable to check pod %s/%s state, assuming terminating: %s", namespace, name, e)
            return True
        return descriptor.terminating
