from __future__ import annotations

import logging

from pydantic import BaseModel, Field, TypeAdapter, ValidationError, field_validator

from .errors import PortDefinitionsError

logger = logging.getLogger(__name__)

SERVICE_LABEL = "service"
PROBE_LABEL = "probe"
CONSUL_LABEL = "consul"
TAG_VALUE = "tag"


class PortDefinition(BaseModel):
    port: int = Field(..., ge=1, le=65535, description="Published port number")
    labels: dict[str, str] = Field(default_factory=dict)

    @field_validator("labels", mode="before")
    @classmethod
    def _stringify_values(cls, v):
        # JSON producers write both {"service": true} and {"service": "true"}.
        if isinstance(v, dict):
            return {str(k): (str(val).lower() if isinstance(val, bool) else str(val)) for k, val in v.items()}
        return v

    @property
    def is_service(self) -> bool:
        return self.labels.get(SERVICE_LABEL) == "true"

    @property
    def is_probe(self) -> bool:
        return self.labels.get(PROBE_LABEL) == "true"

    @property
    def consul_name(self) -> str:
        return self.labels.get(CONSUL_LABEL, "")

    @property
    def tags(self) -> list[str]:
        return [key for key, value in self.labels.items() if value == TAG_VALUE]


_adapter = TypeAdapter(list[PortDefinition])


def parse_port_definitions(raw: str | None) -> list[PortDefinition] | None:
    """Parse the PORT_DEFINITIONS JSON document.

    Returns None when nothing is configured, so callers fall back to container
    ports. The value may arrive wrapped in single quotes from shell templating.
    """
    if raw is None or not raw.strip():
        logger.info("no port configuration (PORT_DEFINITIONS)")
        return None
    try:
        return _adapter.validate_json(raw.strip().strip("'"))
    except ValidationError as e:
        raise PortDefinitionsError(f"unable to parse port definitions: {e}") from e


def has_service_port(definitions: list[PortDefinition]) -> bool:
    return any(d.is_service for d in definitions)
