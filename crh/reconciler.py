from __future__ import annotations

from typing import Iterable

from .models import SECURED_SUFFIX, ServiceRecord


def orphaned_secured(records: Iterable[ServiceRecord]) -> list[ServiceRecord]:
    """Secured ids to deregister because their plain endpoint no longer asks for them.

    For every unsecured record without a "-secured" sibling among `records`, a
    deregistration-only record for `<id>-secured` is returned, so a secured
    variant registered by a previous deployment gets retired.
    """
    secured: set[str] = set()
    plain: list[str] = []
    for r in records:
        if r.id.endswith(SECURED_SUFFIX):
            secured.add(r.id)
        else:
            plain.append(r.id)

    return [ServiceRecord(id=f"{sid}{SECURED_SUFFIX}") for sid in plain if f"{sid}{SECURED_SUFFIX}" not in secured]
