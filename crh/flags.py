from __future__ import annotations

from .checks import join_host_port
from .models import CheckDescriptor, CheckType, ServiceRecord, service_id
from .provider import Registry

TAGS_SEPARATOR = ","
FLAG_CHECK_INTERVAL_S = 30
FLAG_CHECK_TIMEOUT_S = 30


class FlagServiceProvider:
    """Single service described entirely by command line values.

    Used where the Kubernetes API is not reachable from the hook.
    """

    def __init__(self, service_name: str, host: str, port: int, tags: str = "", check_path: str = "/"):
        self.service_name = service_name
        self.host = host
        self.port = int(port)
        self.tags = [t.strip() for t in tags.split(TAGS_SEPARATOR) if t.strip()]
        self.check_path = check_path if check_path.startswith("/") else "/" + check_path

    def get(self) -> list[ServiceRecord]:
        check = CheckDescriptor(
            type=CheckType.HTTP_GET,
            address=f"http://{join_host_port(self.host, self.port)}{self.check_path}",
            interval_s=FLAG_CHECK_INTERVAL_S,
            timeout_s=FLAG_CHECK_TIMEOUT_S,
        )
        return [
            ServiceRecord(
                id=service_id(self.host, self.port),
                name=self.service_name,
                host=self.host,
                port=self.port,
                tags=tuple(self.tags),
                check=check,
            )
        ]

    def register(self, registry: Registry) -> list[ServiceRecord]:
        records = self.get()
        registry.register(records)
        return records

    def deregister(self, registry: Registry) -> list[ServiceRecord]:
        records = self.get()
        registry.deregister(records)
        return records
