from __future__ import annotations

import logging
from pathlib import Path
from typing import Any
from urllib.parse import urlsplit

import consul
import requests

from .errors import PartialDeregisterFailure, RegistrationError
from .models import CheckDescriptor, CheckType, ServiceRecord

logger = logging.getLogger(__name__)

DEFAULT_AGENT_PORT = 8500

# Transport failures surface from the requests session python-consul runs on.
_AGENT_ERRORS = (consul.ConsulException, requests.RequestException)


def read_token(token_file: str | None, env_token: str | None) -> str | None:
    """ACL token from file, falling back to CONSUL_HTTP_TOKEN.

    Without a token the agent is used anonymously.
    """
    if token_file:
        try:
            return Path(token_file).read_text().strip() or None
        except OSError as e:
            logger.warning("unable to read token from file: %s, %s", token_file, e)
            return None
    return env_token or None


def _seconds(value: int) -> str:
    return f"{int(value)}s"


def consul_check(check: CheckDescriptor | None) -> dict[str, Any] | None:
    if check is None:
        return None
    interval, timeout = _seconds(check.interval_s), _seconds(check.timeout_s)
    if check.type is CheckType.HTTP_GET:
        return consul.Check.http(check.address, interval, timeout=timeout)
    # host keeps its brackets for IPv6 so the agent can split it again
    host, _, port = check.address.rpartition(":")
    return consul.Check.tcp(host, int(port), interval, timeout=timeout)


def agent_client(address: str, token: str | None = None) -> consul.Consul:
    if "://" not in address:
        address = f"http://{address}"
    url = urlsplit(address)
    return consul.Consul(
        host=url.hostname or "127.0.0.1",
        port=url.port or DEFAULT_AGENT_PORT,
        token=token,
        scheme=url.scheme,
    )


class ConsulAgent:
    """Registers and deregisters services in the local Consul agent."""

    def __init__(
        self,
        address: str = "http://127.0.0.1:8500",
        token: str | None = None,
        client: consul.Consul | None = None,
    ):
        self.address = address
        self.client = client or agent_client(address, token)

    def register(self, records: list[ServiceRecord]) -> None:
        """Register records in order, stopping at the first failure."""
        for record in records:
            try:
                ok = self.client.agent.service.register(
                    record.name,
                    service_id=record.id,
                    address=record.host,
                    port=record.port,
                    tags=list(record.tags),
                    check=consul_check(record.check),
                )
            except _AGENT_ERRORS as e:
                raise RegistrationError(f"unable to register {record.id}: {e}") from e
            if not ok:
                raise RegistrationError(f"unable to register {record.id}: rejected by agent")
            logger.info("Registered %s (%s) at %s:%d", record.id, record.name, record.host, record.port)

    def deregister(self, records: list[ServiceRecord]) -> None:
        """Deregister every record, then report all failures together."""
        errors: list[Exception] = []
        for record in records:
            try:
                ok = self.client.agent.service.deregister(record.id)
            except _AGENT_ERRORS as e:
                errors.append(RegistrationError(f"unable to deregister {record.id}: {e}"))
                continue
            if not ok:
                errors.append(RegistrationError(f"unable to deregister {record.id}: rejected by agent"))
                continue
            logger.info("Deregistered %s", record.id)
        if errors:
            raise PartialDeregisterFailure(errors)
